"""Common data structures used across the snippet pipeline."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

MAX_SECTION_DEPTH = 4

BANK_ID_PREFIX = "bank"
SNIPPET_ID_PREFIX = "snippet"
SECTION_ID_PREFIX = "section"


def new_id(prefix: str) -> str:
    """Return a fresh opaque identifier such as ``bank-<uuid4>``."""

    return f"{prefix}-{uuid.uuid4()}"


@dataclass
class Snippet:
    """One discrete, user-editable text entry (e.g. a resume bullet)."""

    id: str
    content: str

    def copy_with_new_id(self, prefix: str) -> "Snippet":
        return Snippet(id=new_id(prefix), content=self.content)


@dataclass
class Section:
    """A titled, ordered collection of snippets.

    Bank sections carry no ``id``; resume sections do. ``subsections`` may nest
    further sections, traversed with :func:`iter_sections`.
    """

    title: str
    snippets: List[Snippet] = field(default_factory=list)
    id: Optional[str] = None
    subsections: List["Section"] = field(default_factory=list)

    def clone(self) -> "Section":
        """Copy the section and its subsections without recursion."""

        root = Section(title=self.title, snippets=[Snippet(s.id, s.content) for s in self.snippets], id=self.id)
        stack: List[Tuple["Section", "Section"]] = [(self, root)]
        while stack:
            source, target = stack.pop()
            for child in source.subsections or []:
                copied = Section(
                    title=child.title,
                    snippets=[Snippet(s.id, s.content) for s in child.snippets],
                    id=child.id,
                )
                target.subsections.append(copied)
                stack.append((child, copied))
        return root

    def find_snippet(self, snippet_id: str) -> Optional[Snippet]:
        for snippet in self.snippets:
            if snippet.id == snippet_id:
                return snippet
        return None


@dataclass
class ParsedSection:
    """Raw section produced by a parser, before sanitizing and id assignment."""

    title: str
    snippets: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"title": self.title, "snippets": list(self.snippets)}


def iter_sections(
    sections: List[Section],
    max_depth: int = MAX_SECTION_DEPTH,
) -> Iterator[Tuple[int, Section]]:
    """Yield ``(depth, section)`` pairs in document order without recursion.

    Subsections nested deeper than *max_depth* are reported at *max_depth*.
    """

    stack: List[Tuple[int, Section]] = [(0, section) for section in reversed(sections)]
    while stack:
        depth, section = stack.pop()
        yield depth, section
        child_depth = min(depth + 1, max_depth)
        for child in reversed(section.subsections or []):
            stack.append((child_depth, child))


__all__ = [
    "MAX_SECTION_DEPTH",
    "BANK_ID_PREFIX",
    "SNIPPET_ID_PREFIX",
    "SECTION_ID_PREFIX",
    "new_id",
    "Snippet",
    "Section",
    "ParsedSection",
    "iter_sections",
]
