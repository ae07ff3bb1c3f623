"""Helpers for exporting a project's finished episodes to plain text files."""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from novel_maker.entities import Episode, Project
from novel_maker.queries import episodes_in_order

RULE = "=" * 50


class TextExportError(RuntimeError):
    """Raised when exporting data to a text file fails."""


def _clean(value: Optional[str]) -> str:
    """Return ``value`` stripped of leading/trailing whitespace."""

    if not value:
        return ""
    return str(value).strip()


def compose_episode_text(episode: Episode, *, storyboard: bool = False) -> str:
    """Return ``"{n}화. {title}"`` followed by the episode's prose or storyboard."""

    has_body = episode.has_storyboard if storyboard else episode.has_novel
    if not has_body:
        kind = "콘티" if storyboard else "소설"
        raise TextExportError(f"{episode.number}화에 {kind} 내용이 없습니다.")
    body = episode.storyboard_content if storyboard else episode.novel_content
    return f"{episode.number}화. {episode.title}\n\n{body}"


def compose_novel_text(project: Project) -> str:
    """Join every episode that has prose, in episode order, under the project header."""

    episodes = [e for e in episodes_in_order(project.episodes) if _clean(e.novel_content)]
    if not episodes:
        raise TextExportError("내보낼 소설 내용이 없습니다.")

    header = f"{project.title}\n\n{project.synopsis}\n\n{RULE}\n\n"
    separator = f"\n\n{RULE}\n\n"
    return header + separator.join(compose_episode_text(e) for e in episodes)


def export_novel_to_txt(project: Project, output_path: Optional[Path] = None) -> Path:
    """Write the composed novel for ``project`` to a UTF-8 encoded text file."""

    text_blob = compose_novel_text(project)
    resolved_path = Path(output_path) if output_path else Path(f"{_clean(project.title) or 'novel'}_소설.txt")

    try:
        resolved_path.write_text(text_blob, encoding="utf-8")
    except OSError as exc:  # pragma: no cover - IO failure
        raise TextExportError(f"Unable to export TXT file: {exc}") from exc

    return resolved_path


__all__ = ["TextExportError", "compose_episode_text", "compose_novel_text", "export_novel_to_txt"]
