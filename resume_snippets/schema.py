"""Structured-data schema for exported resumes."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List


@dataclass
class ExportedSection:
    """A section as written to structured data: a title and snippet strings."""

    title: str = ""
    snippets: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.title = "" if self.title is None else str(self.title)
        self.snippets = [str(item) for item in self.snippets or [] if item is not None]


@dataclass
class ResumeDocument:
    """Top-level structured resume representation."""

    sections: List[ExportedSection] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.sections = [item if isinstance(item, ExportedSection) else ExportedSection(**item) for item in self.sections]

    def to_dict(self) -> Dict[str, Any]:
        return {"sections": [asdict(item) for item in self.sections]}

    def json(self, indent: int = 2, ensure_ascii: bool = False) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=ensure_ascii)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "ResumeDocument":
        payload = dict(payload)
        sections = payload.get("sections", [])
        if not isinstance(sections, list):
            raise TypeError("sections must be a list")
        return cls(sections=[{"title": item.get("title", ""), "snippets": item.get("snippets", [])} for item in sections])

    @classmethod
    def from_json(cls, text: str) -> "ResumeDocument":
        return cls.from_dict(json.loads(text))


__all__ = ["ExportedSection", "ResumeDocument"]
