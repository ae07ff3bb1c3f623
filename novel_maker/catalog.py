"""Fixed vocabularies used by the entity model and the prompt assemblers."""

from __future__ import annotations

from typing import Dict, Optional, Tuple

WRITING_STYLES: Tuple[Dict[str, str], ...] = (
    {"value": "modern", "label": "현대적 문체", "description": "간결하고 현대적인 표현"},
    {"value": "classical", "label": "고전적 문체", "description": "격조 있고 우아한 표현"},
    {"value": "casual", "label": "일상적 문체", "description": "친근하고 편안한 표현"},
    {"value": "dramatic", "label": "극적 문체", "description": "감정적이고 드라마틱한 표현"},
    {"value": "poetic", "label": "시적 문체", "description": "아름답고 서정적인 표현"},
    {"value": "humorous", "label": "유머러스 문체", "description": "재미있고 위트 있는 표현"},
    {"value": "serious", "label": "진중한 문체", "description": "무겁고 진지한 표현"},
    {"value": "fantasy", "label": "판타지 문체", "description": "환상적이고 신비로운 표현"},
)

GENRE_OPTIONS: Tuple[str, ...] = (
    "로맨스", "판타지", "현대물", "사극", "액션", "스릴러", "미스터리",
    "코미디", "드라마", "SF", "호러", "무협", "학원물", "직장물",
    "가족물", "성장물", "복수물", "환생물", "회귀물", "빙의물",
)

MBTI_TRAITS: Dict[str, str] = {
    "ISTJ": "신중하고 책임감이 강하며 체계적인",
    "ISFJ": "배려심이 깊고 헌신적이며 꼼꼼한",
    "INFJ": "통찰력이 있고 이상적이며 공감능력이 뛰어난",
    "INTJ": "분석적이고 전략적이며 독립적인",
    "ISTP": "논리적이고 융통성 있으며 실용적인",
    "ISFP": "예술적 감각이 있고 자유로우며 섬세한",
    "INFP": "이상주의적이고 창의적이며 감수성이 풍부한",
    "INTP": "지적 호기심이 많고 혁신적이며 논리적인",
    "ESTP": "활동적이고 현실적이며 순발력 있는",
    "ESFP": "사교적이고 즉흥적이며 열정적인",
    "ENFP": "열정적이고 창의적이며 사람들을 잘 이끄는",
    "ENTP": "독창적이고 도전적이며 논쟁을 즐기는",
    "ESTJ": "체계적이고 실용적이며 지도력 있는",
    "ESFJ": "친절하고 협조적이며 사교성이 좋은",
    "ENFJ": "카리스마 있고 이타적이며 사람들을 잘 이끄는",
    "ENTJ": "결단력 있고 전략적이며 리더십이 있는",
}

MBTI_CODES: Tuple[str, ...] = tuple(MBTI_TRAITS)
BLOOD_TYPES: Tuple[str, ...] = ("A", "B", "AB", "O")

WORLD_SETTING_CATEGORIES: Dict[str, str] = {
    "background": "배경",
    "era": "시대",
    "region": "지역",
    "culture": "문화",
    "politics": "정치",
    "economy": "경제",
    "other": "기타",
}

EVENT_IMPORTANCE: Dict[str, str] = {"low": "낮음", "medium": "보통", "high": "높음"}

ITEM_TYPES: Dict[str, str] = {
    "weapon": "무기",
    "armor": "방어구",
    "accessory": "장신구",
    "consumable": "소모품",
    "magic": "마법",
    "skill": "스킬",
    "other": "기타",
}

ITEM_RARITIES: Dict[str, str] = {
    "common": "일반",
    "uncommon": "고급",
    "rare": "희귀",
    "epic": "영웅",
    "legendary": "전설",
}


def find_writing_style(value: Optional[str]) -> Optional[Dict[str, str]]:
    if not value:
        return None
    return next((style for style in WRITING_STYLES if style["value"] == value), None)


def mbti_traits(code: Optional[str]) -> str:
    if not code:
        return ""
    return MBTI_TRAITS.get(code.upper(), "")
