"""Snippet text cleaning and duplicate fingerprints."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional

from .titles import DEFAULT_NORMALIZER, TitleNormalizer
from .types import ParsedSection

# A leading glyph and any whitespace after it; stacked glyphs ("- - item")
# are removed together so that cleaning a clean line changes nothing.
BULLET_PATTERN = re.compile(r"^(?:[-*+•●]\s*)+")
_INTERIOR_WHITESPACE = re.compile(r"\s{2,}")
_ANY_WHITESPACE = re.compile(r"\s+")
_LINE_ENDINGS = re.compile(r"\r\n?")


def _clean_line(line: str) -> str:
    line = line.strip()
    line = BULLET_PATTERN.sub("", line)
    line = _INTERIOR_WHITESPACE.sub(" ", line)
    return line.strip()


def sanitize_snippet(content: str) -> str:
    """Return the canonical body of a snippet.

    Line endings are normalized, every line is trimmed and stripped of leading
    bullet glyphs, interior whitespace runs are collapsed and empty lines are
    dropped. The function is idempotent.
    """

    if not isinstance(content, str):
        return ""
    lines = _LINE_ENDINGS.sub("\n", content).split("\n")
    cleaned = [_clean_line(line) for line in lines]
    return "\n".join(line for line in cleaned if line).strip()


def fingerprint(content: str) -> str:
    """Case- and whitespace-insensitive key used only for duplicate detection."""

    return _ANY_WHITESPACE.sub(" ", sanitize_snippet(content)).strip().lower()


def sanitize_snippets(contents: Iterable[str]) -> List[str]:
    sanitized = (sanitize_snippet(content) for content in contents or [])
    return [content for content in sanitized if content]


def sanitize_parsed_sections(
    sections: Iterable[ParsedSection],
    normalizer: Optional[TitleNormalizer] = None,
) -> List[ParsedSection]:
    """Canonicalize titles and clean snippets, dropping sections left empty."""

    normalizer = normalizer or DEFAULT_NORMALIZER
    result: List[ParsedSection] = []
    for section in sections:
        snippets = sanitize_snippets(section.snippets)
        if not snippets:
            continue
        result.append(ParsedSection(title=normalizer.canonicalize(section.title), snippets=snippets))
    return result


__all__ = [
    "BULLET_PATTERN",
    "sanitize_snippet",
    "fingerprint",
    "sanitize_snippets",
    "sanitize_parsed_sections",
]
