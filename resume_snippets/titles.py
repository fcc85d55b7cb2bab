"""Section title canonicalization."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

HEADER_SECTION_TITLE = "Header"
HEADER_SECTION_KEY = "header"
UNTITLED_SECTION_TITLE = "Untitled Section"

DEFAULT_TITLE_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "header": HEADER_SECTION_TITLE,
        "contact information": HEADER_SECTION_TITLE,
        "contact info": HEADER_SECTION_TITLE,
        "contact details": HEADER_SECTION_TITLE,
        "personal information": HEADER_SECTION_TITLE,
        "personal info": HEADER_SECTION_TITLE,
        "personal details": HEADER_SECTION_TITLE,
    }
)

_WHITESPACE_RUN = re.compile(r"\s+")


def _freeze(aliases: Mapping[str, str]) -> Mapping[str, str]:
    return MappingProxyType({" ".join(alias.lower().split()): target for alias, target in aliases.items()})


@dataclass(frozen=True)
class TitleNormalizer:
    """Immutable alias table plus the canonicalization rules built on it."""

    aliases: Mapping[str, str] = field(default_factory=lambda: DEFAULT_TITLE_ALIASES)

    def __post_init__(self) -> None:
        object.__setattr__(self, "aliases", _freeze(self.aliases))

    def with_aliases(self, extra: Mapping[str, str]) -> "TitleNormalizer":
        merged = dict(self.aliases)
        merged.update(extra)
        return TitleNormalizer(aliases=merged)

    def canonicalize(self, title: str) -> str:
        trimmed = (title or "").strip() if isinstance(title, str) else ""
        if not trimmed:
            return UNTITLED_SECTION_TITLE
        collapsed = _WHITESPACE_RUN.sub(" ", trimmed)
        alias = self.aliases.get(collapsed.lower())
        if alias:
            return alias
        return collapsed

    def key(self, title: str) -> str:
        return self.canonicalize(title).lower()

    def is_header(self, title: str) -> bool:
        return self.key(title) == HEADER_SECTION_KEY


DEFAULT_NORMALIZER = TitleNormalizer()


def canonical_section_title(title: str) -> str:
    """Trim, collapse whitespace and resolve header aliases."""

    return DEFAULT_NORMALIZER.canonicalize(title)


def section_key(title: str) -> str:
    """Lookup key: two titles name the same section iff their keys match."""

    return DEFAULT_NORMALIZER.key(title)


def is_header_title(title: str) -> bool:
    return DEFAULT_NORMALIZER.is_header(title)


__all__ = [
    "HEADER_SECTION_TITLE",
    "HEADER_SECTION_KEY",
    "UNTITLED_SECTION_TITLE",
    "DEFAULT_TITLE_ALIASES",
    "TitleNormalizer",
    "DEFAULT_NORMALIZER",
    "canonical_section_title",
    "section_key",
    "is_header_title",
]
