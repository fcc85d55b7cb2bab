"""Snippet bank merging and moves between the bank and the resume."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .markdown_parser import build_header_snippet
from .sanitize import fingerprint, sanitize_parsed_sections, sanitize_snippet, sanitize_snippets
from .titles import DEFAULT_NORMALIZER, HEADER_SECTION_KEY, HEADER_SECTION_TITLE, TitleNormalizer
from .types import (
    BANK_ID_PREFIX,
    SECTION_ID_PREFIX,
    SNIPPET_ID_PREFIX,
    ParsedSection,
    Section,
    Snippet,
    new_id,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class MergeResult:
    """Outcome of merging parsed sections into the snippet bank."""

    bank: List[Section] = field(default_factory=list)
    added_sections: int = 0
    added_snippets: int = 0


def _clone_bank_section(section: Section, normalizer: TitleNormalizer) -> Section:
    return Section(
        title=normalizer.canonicalize(section.title),
        snippets=[Snippet(id=snippet.id, content=sanitize_snippet(snippet.content)) for snippet in section.snippets],
    )


def ensure_unique_snippets(snippets: Iterable[Snippet]) -> List[Snippet]:
    """Drop empty snippets and later duplicates, keeping first occurrences."""

    seen: Set[str] = set()
    unique: List[Snippet] = []
    for snippet in snippets:
        content = sanitize_snippet(snippet.content)
        key = fingerprint(content)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(Snippet(id=snippet.id, content=content))
    return unique


def pin_header_first(sections: List[Section], normalizer: Optional[TitleNormalizer] = None) -> List[Section]:
    """Move the header section to the front, preserving the rest of the order."""

    normalizer = normalizer or DEFAULT_NORMALIZER
    for index, section in enumerate(sections):
        if normalizer.key(section.title) == HEADER_SECTION_KEY:
            if index > 0:
                sections.insert(0, sections.pop(index))
            break
    return sections


def merge_into_bank(
    existing_bank: List[Section],
    incoming: Iterable[ParsedSection],
    normalizer: Optional[TitleNormalizer] = None,
) -> MergeResult:
    """Merge *incoming* parsed sections into a copy of *existing_bank*.

    New titles create sections, known titles (by canonical key) receive only
    snippets whose fingerprint is not already banked. Neither input is
    modified, and merging the same input twice adds nothing the second time.
    """

    normalizer = normalizer or DEFAULT_NORMALIZER
    bank: Dict[str, Section] = {}
    for section in existing_bank:
        key = normalizer.key(section.title)
        if key in bank:
            bank[key].snippets.extend(_clone_bank_section(section, normalizer).snippets)
        else:
            bank[key] = _clone_bank_section(section, normalizer)

    touched: Set[str] = set()
    added_sections = 0
    added_snippets = 0

    for parsed in incoming:
        contents = sanitize_snippets(parsed.snippets)
        if not contents:
            continue
        key = normalizer.key(parsed.title)
        target = bank.get(key)
        if target is None:
            target = Section(title=normalizer.canonicalize(parsed.title))
            bank[key] = target
            added_sections += 1
        known = {fingerprint(snippet.content) for snippet in target.snippets}
        for content in contents:
            content_key = fingerprint(content)
            if content_key in known:
                continue
            known.add(content_key)
            target.snippets.append(Snippet(id=new_id(BANK_ID_PREFIX), content=content))
            added_snippets += 1
        touched.add(key)

    for key in touched:
        bank[key].snippets = ensure_unique_snippets(bank[key].snippets)

    merged = pin_header_first(list(bank.values()), normalizer)
    LOGGER.info("Merged into snippet bank: %s new sections, %s new snippets", added_sections, added_snippets)
    return MergeResult(bank=merged, added_sections=added_sections, added_snippets=added_snippets)


def prepare_sections_for_bank(
    sections: Iterable[ParsedSection],
    resume_text: str,
    normalizer: Optional[TitleNormalizer] = None,
) -> List[ParsedSection]:
    """Sanitize extracted sections and make sure a header block leads them.

    When the extractor produced no header section, one is synthesized from the
    top of *resume_text*.
    """

    normalizer = normalizer or DEFAULT_NORMALIZER
    prepared = sanitize_parsed_sections(sections, normalizer)
    header_index = next(
        (index for index, section in enumerate(prepared) if normalizer.is_header(section.title)),
        None,
    )
    if header_index is not None:
        if header_index > 0:
            prepared.insert(0, prepared.pop(header_index))
        return prepared

    header_snippet = sanitize_snippet(build_header_snippet(resume_text) or "")
    if not header_snippet:
        return prepared
    LOGGER.debug("Synthesized header section from document text")
    return [ParsedSection(title=HEADER_SECTION_TITLE, snippets=[header_snippet])] + prepared


def _find_section_by_key(sections: List[Section], key: str, normalizer: TitleNormalizer) -> Optional[Section]:
    for section in sections:
        if normalizer.key(section.title) == key:
            return section
    return None


def take_from_bank(
    bank: List[Section],
    resume: List[Section],
    section_title: str,
    snippet_id: str,
    normalizer: Optional[TitleNormalizer] = None,
) -> Tuple[List[Section], List[Section]]:
    """Move a banked snippet into the resume section with the same title.

    The resume receives a copy under a fresh id; the bank loses the original
    and drops the section once it is empty. Returns ``(bank, resume)``.
    """

    normalizer = normalizer or DEFAULT_NORMALIZER
    key = normalizer.key(section_title)
    new_bank = [section.clone() for section in bank]
    new_resume = [section.clone() for section in resume]

    source = _find_section_by_key(new_bank, key, normalizer)
    snippet = source.find_snippet(snippet_id) if source else None
    if source is None or snippet is None:
        raise KeyError(f"Snippet {snippet_id!r} not found in bank section {section_title!r}")

    target = _find_section_by_key(new_resume, key, normalizer)
    if target is None:
        target = Section(title=source.title, id=new_id(SECTION_ID_PREFIX))
        new_resume.append(target)
    target.snippets.append(snippet.copy_with_new_id(SNIPPET_ID_PREFIX))

    source.snippets = [item for item in source.snippets if item.id != snippet_id]
    if not source.snippets:
        new_bank = [section for section in new_bank if section is not source]
    return new_bank, new_resume


def return_to_bank(
    bank: List[Section],
    resume: List[Section],
    section_id: str,
    snippet_id: str,
    normalizer: Optional[TitleNormalizer] = None,
) -> Tuple[List[Section], List[Section]]:
    """Remove a snippet from the resume and put a copy back into the bank.

    Returns ``(bank, resume)``. Content already banked is not duplicated.
    """

    normalizer = normalizer or DEFAULT_NORMALIZER
    new_bank = [section.clone() for section in bank]
    new_resume = [section.clone() for section in resume]

    source = next((section for section in new_resume if section.id == section_id), None)
    snippet = source.find_snippet(snippet_id) if source else None
    if source is None or snippet is None:
        raise KeyError(f"Snippet {snippet_id!r} not found in resume section {section_id!r}")
    source.snippets = [item for item in source.snippets if item.id != snippet_id]

    content = sanitize_snippet(snippet.content)
    if not content:
        return new_bank, new_resume
    key = normalizer.key(source.title)
    target = _find_section_by_key(new_bank, key, normalizer)
    if target is None:
        target = Section(title=normalizer.canonicalize(source.title))
        new_bank.append(target)
    if fingerprint(content) not in {fingerprint(item.content) for item in target.snippets}:
        target.snippets.append(Snippet(id=new_id(BANK_ID_PREFIX), content=content))
    return pin_header_first(new_bank, normalizer), new_resume


__all__ = [
    "MergeResult",
    "ensure_unique_snippets",
    "merge_into_bank",
    "pin_header_first",
    "prepare_sections_for_bank",
    "return_to_bank",
    "take_from_bank",
]
