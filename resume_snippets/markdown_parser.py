"""Structural parser turning resume text into titled sections of snippets.

Two modes are supported:

* heading-driven, used whenever the text contains Markdown headings
  (``#`` to ``######``); and
* plain text, for documents extracted from PDF/DOCX files without Markdown
  markup, where section headings and the header block are found by
  heuristics.

Both return :class:`~resume_snippets.types.ParsedSection` objects holding raw,
unsanitized snippet text.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .titles import HEADER_SECTION_TITLE, UNTITLED_SECTION_TITLE
from .types import ParsedSection

LOGGER = logging.getLogger(__name__)

FALLBACK_SECTION_TITLE = "General"

HEADING_PATTERN = re.compile(r"^(#{1,6})(?:\s+(.*))?$")
LIST_ITEM_PATTERN = re.compile(r"^(?P<indent>\s*)(?:[-*+]\s+|\d+[.)]\s+|[•●]\s*)\S")
HEADER_DIVIDER_PATTERN = re.compile(r"\s*\|\s*")

SECTION_KEYWORDS = (
    "summary",
    "professional summary",
    "objective",
    "profile",
    "experience",
    "work experience",
    "professional experience",
    "employment history",
    "skills",
    "technical skills",
    "core competencies",
    "education",
    "projects",
    "certifications",
    "awards",
    "honors",
    "achievements",
    "volunteer",
    "volunteering",
    "leadership",
    "publications",
    "languages",
    "interests",
    "references",
    "contact",
    "contact information",
)

MAX_HEADING_WORDS = 6
MAX_HEADING_LENGTH = 60


@dataclass
class ParserConfig:
    """Configuration for the structural parser."""

    # A level-1 heading is the document title and belongs to the header block.
    level_one_joins_header: bool = True
    max_header_lines: int = 4


def _trim_blank_edges(lines: List[str]) -> List[str]:
    start, end = 0, len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    return lines[start:end]


def _split_lines(text: str) -> List[str]:
    return re.sub(r"\r\n?", "\n", text).split("\n")


def _indent_of(line: str) -> int:
    expanded = line.replace("\t", "    ")
    return len(expanded) - len(expanded.lstrip())


class _SnippetBuffer:
    """Accumulates the lines of the snippet currently being read."""

    def __init__(self) -> None:
        self.lines: List[str] = []
        self.list_indent: Optional[int] = None

    def flush(self) -> Optional[str]:
        trimmed = _trim_blank_edges(self.lines)
        self.lines = []
        self.list_indent = None
        if not trimmed:
            return None
        return "\n".join(trimmed)

    def add(self, line: str) -> Optional[str]:
        """Add *line*; return a finished snippet if the line closed one."""

        if not line.strip():
            return self.flush()
        match = LIST_ITEM_PATTERN.match(line)
        indent = _indent_of(line)
        if match:
            if self.list_indent is not None and indent > self.list_indent:
                self.lines.append(line)
                return None
            finished = self.flush()
            self.lines = [line]
            self.list_indent = indent
            return finished
        if self.list_indent is not None:
            if indent > self.list_indent:
                self.lines.append(line)
                return None
            finished = self.flush()
            self.lines = [line]
            return finished
        self.lines.append(line)
        return None


class _SectionBuilder:
    """Collects snippets into sections.

    Headings deeper than the section level form a context stack; every snippet
    read under them starts with those heading lines, so list items keep their
    employer or project heading.
    """

    def __init__(self) -> None:
        self.sections: List[ParsedSection] = []
        self.current: Optional[ParsedSection] = None
        self.buffer = _SnippetBuffer()
        self.context: List[Tuple[int, str]] = []
        self.context_used = False

    def _append(self, snippet: str) -> None:
        if self.current is None:
            self.current = ParsedSection(title=FALLBACK_SECTION_TITLE)
            self.sections.append(self.current)
        self.current.snippets.append(snippet)

    def _store(self, snippet: Optional[str]) -> None:
        if snippet is None:
            return
        if self.context:
            snippet = "\n".join([line for _, line in self.context] + [snippet])
            self.context_used = True
        self._append(snippet)

    def _close_context(self, level: Optional[int] = None) -> None:
        """Pop context headings at *level* or deeper (all of them when ``None``).

        Headings that never received content are kept as a snippet of their own.
        """

        remaining = [entry for entry in self.context if level is not None and entry[0] < level]
        if len(remaining) == len(self.context):
            return
        if not self.context_used:
            self._append("\n".join(line for _, line in self.context))
        self.context = remaining
        self.context_used = bool(remaining)

    def start_section(self, title: str) -> None:
        self._store(self.buffer.flush())
        self._close_context()
        self.current = ParsedSection(title=title.strip() or UNTITLED_SECTION_TITLE)
        self.sections.append(self.current)

    def add_line(self, line: str) -> None:
        if self.current is None and line.strip():
            self.start_section(FALLBACK_SECTION_TITLE)
        self._store(self.buffer.add(line))

    def add_heading_line(self, level: int, line: str) -> None:
        self._store(self.buffer.flush())
        self._close_context(level)
        self.context.append((level, line))
        self.context_used = False

    def add_header(self, lines: List[str]) -> None:
        trimmed = _trim_blank_edges(lines)
        if trimmed:
            self.sections.append(ParsedSection(title=HEADER_SECTION_TITLE, snippets=["\n".join(trimmed)]))

    def finish(self) -> List[ParsedSection]:
        self._store(self.buffer.flush())
        self._close_context()
        return self.sections


def has_markdown_headings(text: str) -> bool:
    return any(HEADING_PATTERN.match(line.rstrip()) for line in _split_lines(text or ""))


def parse_markdown_resume(text: str, config: Optional[ParserConfig] = None) -> List[ParsedSection]:
    """Parse Markdown-style text where headings delimit sections."""

    config = config or ParserConfig()
    builder = _SectionBuilder()
    header_lines: List[str] = []
    capturing_header = True
    base_level: Optional[int] = None

    def end_header() -> None:
        nonlocal capturing_header
        if capturing_header:
            builder.add_header(header_lines)
            capturing_header = False

    for raw_line in _split_lines(text or ""):
        line = raw_line.rstrip()
        heading = HEADING_PATTERN.match(line)
        if heading is None:
            if capturing_header:
                header_lines.append(line)
            else:
                builder.add_line(line)
            continue

        level = len(heading.group(1))
        heading_text = (heading.group(2) or "").strip()

        if base_level is None:
            if level == 1 and config.level_one_joins_header:
                base_level = 2
                header_lines.append(line)
                continue
            base_level = level

        if level <= base_level:
            end_header()
            builder.start_section(heading_text)
        elif capturing_header:
            header_lines.append(line)
        else:
            builder.add_heading_line(level, line)

    end_header()
    return builder.finish()


def _normalize_spaces(line: str) -> str:
    return " ".join(line.split())


def _strip_heading_punctuation(line: str) -> str:
    return _normalize_spaces(line).rstrip(":").strip()


def _is_all_caps_heading(line: str) -> bool:
    letters = re.sub(r"[^A-Za-z]", "", line)
    return len(letters) >= 4 and line == line.upper() and not re.search(r"[|,@]", line)


def is_likely_header_boundary(line: str, index: int) -> bool:
    """Return True when *line* should end the header block at position *index*."""

    lowered = _normalize_spaces(line).lower()
    if any(lowered.startswith(keyword) for keyword in SECTION_KEYWORDS):
        return True
    if LIST_ITEM_PATTERN.match(line.strip()):
        return True
    heading = HEADING_PATTERN.match(line.strip())
    if heading and len(heading.group(1)) > 1:
        return True
    return index > 0 and _is_all_caps_heading(_normalize_spaces(line))


def is_section_heading(line: str) -> bool:
    """Heuristic used in plain-text mode to detect a section title line."""

    stripped = line.strip()
    if not stripped or LIST_ITEM_PATTERN.match(stripped):
        return False
    title = _strip_heading_punctuation(stripped)
    if not title or len(title) > MAX_HEADING_LENGTH or len(title.split()) > MAX_HEADING_WORDS:
        return False
    if title.lower() in SECTION_KEYWORDS:
        return True
    return _is_all_caps_heading(title)


def _split_header_block(lines: List[str], max_lines: int) -> Tuple[List[str], int]:
    header: List[str] = []
    index = 0
    while index < len(lines):
        trimmed = lines[index].strip()
        if not trimmed:
            if header:
                break
            index += 1
            continue
        if is_likely_header_boundary(trimmed, len(header)):
            break
        header.append(_normalize_spaces(trimmed))
        index += 1
        if len(header) >= max_lines:
            break
    return header, index


def _format_header(lines: List[str]) -> Optional[str]:
    cleaned = [
        _normalize_spaces(HEADER_DIVIDER_PATTERN.sub(" | ", line)).strip()
        for line in lines
    ]
    cleaned = [line for line in cleaned if line]
    while len(cleaned) > 1 and is_likely_header_boundary(cleaned[-1], len(cleaned) - 1):
        cleaned.pop()
    if not cleaned:
        return None
    name, details = cleaned[0], cleaned[1:]
    if details:
        return f"{name}\n{' • '.join(details)}"
    return name


def build_header_snippet(text: str, max_lines: int = 4) -> Optional[str]:
    """Isolate the name/contact block at the top of *text*.

    Returns the name on the first line and the remaining contact details
    joined by bullets on the second, or ``None`` when no block is found.
    """

    if not text:
        return None
    header, _ = _split_header_block(_split_lines(text), max_lines)
    return _format_header(header)


def parse_plain_text_resume(text: str, config: Optional[ParserConfig] = None) -> List[ParsedSection]:
    """Parse text without Markdown markup using heading heuristics."""

    config = config or ParserConfig()
    lines = [line.rstrip() for line in _split_lines(text or "")]
    header, body_start = _split_header_block(lines, config.max_header_lines)
    builder = _SectionBuilder()
    header_snippet = _format_header(header)
    if header_snippet:
        builder.add_header([header_snippet])

    for line in lines[body_start:]:
        if is_section_heading(line):
            builder.start_section(_strip_heading_punctuation(line))
        else:
            builder.add_line(line)
    return builder.finish()


def parse_resume_text(text: str, config: Optional[ParserConfig] = None) -> List[ParsedSection]:
    """Parse raw resume text into ordered sections.

    Never raises for text input: when no structure is found, a non-blank
    document comes back as a single ``General`` section.
    """

    text = text or ""
    if has_markdown_headings(text):
        LOGGER.debug("Parsing resume text in heading-driven mode")
        sections = parse_markdown_resume(text, config)
    else:
        LOGGER.debug("No Markdown headings found; parsing resume text heuristically")
        sections = parse_plain_text_resume(text, config)

    if not sections and text.strip():
        LOGGER.warning("No sections detected; falling back to a single %s section", FALLBACK_SECTION_TITLE)
        return [ParsedSection(title=FALLBACK_SECTION_TITLE, snippets=[text.strip()])]
    LOGGER.debug("Parsed %s sections", len(sections))
    return sections


__all__ = [
    "FALLBACK_SECTION_TITLE",
    "ParserConfig",
    "SECTION_KEYWORDS",
    "build_header_snippet",
    "has_markdown_headings",
    "is_likely_header_boundary",
    "is_section_heading",
    "parse_markdown_resume",
    "parse_plain_text_resume",
    "parse_resume_text",
]
