"""Central configuration for the prompts sent to the chat-completion gateway."""

from __future__ import annotations

SYSTEM_PROMPTS = {
    "web_novel_assistant": {
        "max_new_tokens": 8000,
        "temperature": 0.8,
        "base": (
            "당신은 전문 웹소설 작가이자 S급 웹툰 콘티 작가입니다. 요청에 따라 다음 중 하나를 수행합니다:\n\n"
            "【웹소설 작성 시】\n"
            "1. 한국어 웹소설 스타일로 작성\n"
            "2. 5000자 이상의 분량으로 작성 (매우 중요!)\n"
            "3. 대화와 서술이 적절히 조화된 형태\n"
            "4. 독자의 몰입감을 높이는 생생한 묘사\n"
            "5. 등장인물의 성격과 특징을 정확히 반영\n"
            "6. 시놉시스의 세계관과 설정을 충실히 반영\n"
            "7. 회차의 줄거리를 자세히 풀어서 작성\n\n"
            "【콘티 작성 시】\n"
            "1. S급 일본 만화작가 + 한국 웹툰작가 스타일 융합\n"
            "2. 드라마틱 연출 (로우앵글, 하이앵글, 버드아이뷰)\n"
            "3. 감정적 몰입 극대화 (표정, 여백, 침묵 활용)\n"
            "4. 요청된 컷 수를 정확히 완성 (절대 중단 금지)\n"
            "5. 향상된 콘티 형식 준수:\n"
            "   - 컷 번호: 크기/앵글 - 연출 의도\n"
            "   - 배경: 상세 묘사 + 분위기/색감/조명\n"
            "   - 인물: 동작/표정/자세 + 감정 상태\n"
            "   - 대사/생각/효과음/나레이션 완벽 기입\n"
            "   - 연출 포인트 명시\n\n"
            "【공통 준수 사항】\n"
            "- 절대 중간에 끊지 말고 완료까지 진행\n"
            "- 요청된 분량/컷 수를 정확히 맞춤\n"
            "- 고퀄리티 창작물 수준의 완성도 유지"
        ),
    },
    "novel_generation": {
        "min_characters": 5000,
        "previous_excerpt_characters": 500,
        "style_guidelines": [
            "강력한 몰입감을 주는 생생한 현장감",
            "캐릭터의 감정과 내면을 섬세하게 표현",
            "긴장감 있는 장면 전환과 속도감 있는 전개",
            "독자의 호기심을 자극하는 복선과 반전",
            "감정이입을 돕는 감각적인 묘사",
            "캐릭터만의 개성있는 말투와 습관",
            "웹소설에 최적화된 간결하고 강렬한 문장",
            "절정 장면에서의 압도적인 연출",
            "독자의 기대를 배신하지 않는 탄탄한 구성",
            "중독성 있는 문장 끊기와 호흡",
        ],
    },
    "storyboard_generation": {
        "cut_format": (
            "컷 [번호]: [크기/앵글]\n"
            "배경: [배경 상세 묘사]\n"
            "인물: [인물 동작/표정 상세 묘사]\n"
            "대사: [인물명] \"[대사 내용]\"\n"
            "생각: [인물명] ([생각 내용])\n"
            "효과음: \"[효과음]\"\n"
            "나레이션: \"[나레이션 내용]\""
        ),
        "world_categories": ["background", "region", "era"],
        "item_types": ["weapon", "armor", "magic"],
    },
}


def get_system_prompt(name: str) -> str:
    """Return the ``base`` system message configured for ``name``."""

    entry = SYSTEM_PROMPTS.get(name, {})
    return str(entry.get("base", ""))


def get_prompt_setting(name: str, key: str, fallback=None):
    entry = SYSTEM_PROMPTS.get(name)
    if not isinstance(entry, dict):
        return fallback
    return entry.get(key, fallback)


def get_prompt_max_new_tokens(name: str, fallback: int | None = None) -> int | None:
    """Return the configured ``max_new_tokens`` for ``name`` if available."""

    entry = SYSTEM_PROMPTS.get(name)
    if not isinstance(entry, dict):
        return fallback

    raw_value = entry.get("max_new_tokens")
    if raw_value is None:
        return fallback

    try:
        tokens = int(raw_value)
    except (TypeError, ValueError):
        return fallback

    if tokens <= 0:
        return fallback

    return tokens
