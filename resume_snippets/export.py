"""Serialize resume sections into Markdown, text, JSON, HTML and PDF."""

from __future__ import annotations

import html
import io
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .schema import ExportedSection, ResumeDocument
from .titles import DEFAULT_NORMALIZER
from .types import MAX_SECTION_DEPTH, Section, iter_sections

LOGGER = logging.getLogger(__name__)

EMPTY_RESUME_MESSAGE = "Cannot export an empty resume."

_HEADING_MARKER = re.compile(r"^#{1,6}(?:\s+|$)")


class EmptyResumeError(ValueError):
    """Raised when there is nothing to export."""


class UnsupportedFormatError(ValueError):
    """Raised for an unknown export format token."""


@dataclass(frozen=True)
class ExportFormatOption:
    value: str
    label: str
    extension: str
    mime_type: str
    description: str = ""
    binary: bool = False


EXPORT_FORMATS: Dict[str, ExportFormatOption] = {
    "markdown": ExportFormatOption(
        "markdown", "Markdown (.md)", "md", "text/markdown",
        "Markdown formatted resume ready for Markdown editors.",
    ),
    "text": ExportFormatOption(
        "text", "Plain text (.txt)", "txt", "text/plain",
        "Plain text version with headings and bullet points.",
    ),
    "json": ExportFormatOption(
        "json", "JSON (.json)", "json", "application/json",
        "Structured data for integrations or future editing.",
    ),
    "html": ExportFormatOption(
        "html", "HTML (.html)", "html", "text/html",
        "Styled HTML document ready for printing or conversion.",
    ),
    "pdf": ExportFormatOption(
        "pdf", "PDF (.pdf)", "pdf", "application/pdf",
        "Paginated PDF document.", binary=True,
    ),
}

FORMAT_ALIASES = {
    "md": "markdown",
    "txt": "text",
    "plain-text": "text",
    "structured-data": "json",
    "styled-document": "pdf",
}


@dataclass
class NormalizedSection:
    title: str
    items: List[str]
    is_header: bool = False
    depth: int = 0


@dataclass
class PdfStyle:
    """Page geometry and type sizes for the styled document, in points."""

    page_width: float = LETTER[0]
    page_height: float = LETTER[1]
    margin: float = 48
    line_height: float = 18
    title_size: float = 24
    heading_size: float = 18
    body_size: float = 12
    font: str = "Helvetica"
    bold_font: str = "Helvetica-Bold"
    bullet: str = "•"
    bullet_indent: float = 14
    section_gap: float = 8

    @property
    def content_width(self) -> float:
        return self.page_width - 2 * self.margin


@dataclass
class PlacedLine:
    """One line of text positioned on a PDF page (baseline coordinates)."""

    page: int
    x: float
    y: float
    text: str
    font: str
    size: float


def _section_fields(section: Any) -> Tuple[str, List[Any], List[Any]]:
    if isinstance(section, dict):
        return section.get("title") or "", list(section.get("snippets") or []), list(section.get("subsections") or [])
    return (
        getattr(section, "title", "") or "",
        list(getattr(section, "snippets", []) or []),
        list(getattr(section, "subsections", []) or []),
    )


def _snippet_text(snippet: Any) -> str:
    if isinstance(snippet, dict):
        snippet = snippet.get("content", "")
    else:
        snippet = getattr(snippet, "content", snippet)
    return snippet.strip() if isinstance(snippet, str) else ""


def _as_section(section: Any) -> Section:
    """Convert a dict or section-like object tree into ``Section`` objects.

    Children are visited with an explicit stack, so nesting depth is bounded
    only by memory.
    """

    if isinstance(section, Section):
        return section
    title, snippets, subsections = _section_fields(section)
    root = Section(title=title, snippets=snippets)
    stack: List[Tuple[Section, List[Any]]] = [(root, subsections)]
    while stack:
        target, children = stack.pop()
        for child in children:
            if isinstance(child, Section):
                target.subsections.append(child)
                continue
            child_title, child_snippets, grandchildren = _section_fields(child)
            converted = Section(title=child_title, snippets=child_snippets)
            target.subsections.append(converted)
            stack.append((converted, grandchildren))
    return root


def normalize_sections(sections: Iterable[Any]) -> List[NormalizedSection]:
    """Trim titles and snippets, flatten subsections and drop empty sections.

    A header section without a name line has nothing to render and is dropped
    as well.
    """

    roots = [_as_section(section) for section in sections or []]
    normalized: List[NormalizedSection] = []
    for depth, section in iter_sections(roots, MAX_SECTION_DEPTH):
        title, snippets, _ = _section_fields(section)
        title = title.strip() if isinstance(title, str) else ""
        items = [text for text in (_snippet_text(snippet) for snippet in snippets) if text]
        if not title and not items:
            continue
        candidate = NormalizedSection(
            title=title,
            items=items,
            is_header=bool(title) and DEFAULT_NORMALIZER.is_header(title),
            depth=depth,
        )
        if candidate.is_header and _header_lines(candidate)[0] is None:
            continue
        normalized.append(candidate)
    return normalized


def has_exportable_content(sections: Iterable[Any]) -> bool:
    """True when :func:`generate_resume_content` has something to serialize."""

    return bool(normalize_sections(sections))


def _header_lines(section: NormalizedSection) -> Tuple[Optional[str], List[str]]:
    lines: List[str] = []
    for item in section.items:
        for line in item.split("\n"):
            cleaned = _HEADING_MARKER.sub("", line.strip()).strip()
            if cleaned:
                lines.append(cleaned)
    if not lines:
        return None, []
    return lines[0], lines[1:]


def to_markdown(sections: List[NormalizedSection]) -> str:
    blocks: List[str] = []
    for section in sections:
        if section.is_header:
            name, details = _header_lines(section)
            if name is None:
                continue
            block = f"# {name}"
            if details:
                # Markdown soft line break: two trailing spaces.
                block += "\n" + "  \n".join(details)
            blocks.append(block)
            continue
        heading = f"{'#' * min(section.depth + 2, 6)} {section.title}" if section.title else ""
        bullets = "\n".join("- " + item.replace("\n", "\n  ") for item in section.items)
        blocks.append("\n\n".join(part for part in (heading, bullets) if part))
    return "\n\n".join(blocks) + "\n"


def to_plain_text(sections: List[NormalizedSection]) -> str:
    blocks: List[str] = []
    for section in sections:
        if section.is_header:
            name, details = _header_lines(section)
            if name is not None:
                blocks.append("\n".join([name] + details))
            continue
        heading = ""
        if section.title:
            title = section.title.upper() if section.depth == 0 else section.title
            heading = f"{title}\n{'-' * len(title)}"
        bullets = "\n".join("• " + item.replace("\n", "\n  ") for item in section.items)
        blocks.append("\n\n".join(part for part in (heading, bullets) if part))
    return "\n\n".join(blocks) + "\n"


def to_json(sections: List[NormalizedSection]) -> str:
    document = ResumeDocument(
        sections=[ExportedSection(title=section.title, snippets=list(section.items)) for section in sections]
    )
    return document.json(indent=2, ensure_ascii=False)


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8" />
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; color: #1f2937; line-height: 1.5; margin: 2rem auto; max-width: 800px; }}
    header {{ text-align: center; margin-bottom: 2rem; }}
    h1 {{ font-size: 2rem; margin-bottom: 0.25rem; color: #0f172a; }}
    header p {{ margin: 0; }}
    section {{ margin-bottom: 1.5rem; }}
    h2 {{ font-size: 1.25rem; margin-bottom: 0.5rem; }}
    ul {{ list-style: disc; margin-left: 1.5rem; }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""


def _escape_multiline(text: str) -> str:
    return "<br />".join(html.escape(line) for line in text.split("\n"))


def to_html(sections: List[NormalizedSection]) -> str:
    parts: List[str] = []
    document_title = "Resume"
    for section in sections:
        if section.is_header:
            name, details = _header_lines(section)
            if name is None:
                continue
            document_title = name
            lines = [f"  <h1>{html.escape(name)}</h1>"] + [f"  <p>{html.escape(line)}</p>" for line in details]
            parts.append("<header>\n" + "\n".join(lines) + "\n</header>")
            continue
        section_parts: List[str] = []
        if section.title:
            level = min(section.depth + 2, 6)
            section_parts.append(f"  <h{level}>{html.escape(section.title)}</h{level}>")
        if section.items:
            items = "\n".join(f"    <li>{_escape_multiline(item)}</li>" for item in section.items)
            section_parts.append(f"  <ul>\n{items}\n  </ul>")
        parts.append("<section>\n" + "\n".join(section_parts) + "\n</section>")
    return HTML_TEMPLATE.format(title=html.escape(document_title), body="\n".join(parts))


class _PdfCursor:
    """Tracks the vertical position and starts new pages on overflow."""

    def __init__(self, style: PdfStyle) -> None:
        self.style = style
        self.page = 1
        self.top = style.page_height - style.margin
        self.lines: List[PlacedLine] = []

    def skip(self, amount: float) -> None:
        self.top -= amount

    def place(self, text: str, font: str, size: float, x: float) -> None:
        baseline = self.top - size
        if baseline < self.style.margin:
            self.page += 1
            self.top = self.style.page_height - self.style.margin
            baseline = self.top - size
        self.lines.append(PlacedLine(page=self.page, x=x, y=baseline, text=text, font=font, size=size))
        self.top -= max(self.style.line_height, size + 6)

    def place_wrapped(self, text: str, font: str, size: float, x: float, width: float) -> None:
        for line in simpleSplit(text, font, size, width) or [""]:
            self.place(line, font, size, x)


def layout_pdf(sections: List[NormalizedSection], style: Optional[PdfStyle] = None) -> List[PlacedLine]:
    """Compute where every line of the styled document goes.

    Each wrapped line is checked against the bottom margin on its own, so a
    long bullet may continue on the next page.
    """

    style = style or PdfStyle()
    cursor = _PdfCursor(style)
    left = style.margin
    width = style.content_width
    for index, section in enumerate(sections):
        if section.is_header:
            name, details = _header_lines(section)
            if name is None:
                continue
            cursor.place_wrapped(name, style.bold_font, style.title_size, left, width)
            for line in details:
                cursor.place_wrapped(line, style.font, style.body_size, left, width)
            cursor.skip(style.section_gap)
            continue
        if index > 0:
            cursor.skip(style.section_gap)
        if section.title:
            size = style.heading_size if section.depth == 0 else style.body_size + 2
            cursor.place_wrapped(section.title, style.bold_font, size, left, width)
        text_left = left + style.bullet_indent
        text_width = width - style.bullet_indent
        for item in section.items:
            first = True
            for paragraph in item.split("\n"):
                for line in simpleSplit(paragraph, style.font, style.body_size, text_width) or [""]:
                    if first:
                        cursor.place(f"{style.bullet} {line}", style.font, style.body_size, left)
                        first = False
                    else:
                        cursor.place(line, style.font, style.body_size, text_left)
    return cursor.lines


def to_pdf(sections: List[NormalizedSection], style: Optional[PdfStyle] = None) -> bytes:
    style = style or PdfStyle()
    placed = layout_pdf(sections, style)
    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=(style.page_width, style.page_height))
    title = next((line.text for line in placed if line.size == style.title_size), "Resume")
    pdf.setTitle(title)
    page = 1
    for line in placed:
        while page < line.page:
            pdf.showPage()
            page += 1
        pdf.setFont(line.font, line.size)
        pdf.drawString(line.x, line.y, line.text)
    pdf.save()
    LOGGER.debug("Rendered PDF with %s pages", page)
    return buffer.getvalue()


_SERIALIZERS: Dict[str, Callable[[List[NormalizedSection]], Union[str, bytes]]] = {
    "markdown": to_markdown,
    "text": to_plain_text,
    "json": to_json,
    "html": to_html,
    "pdf": to_pdf,
}


def resolve_format(fmt: str) -> ExportFormatOption:
    token = (fmt or "").strip().lower()
    token = FORMAT_ALIASES.get(token, token)
    option = EXPORT_FORMATS.get(token)
    if option is None:
        raise UnsupportedFormatError(f"Unsupported resume export format: {fmt}")
    return option


def generate_resume_content(
    sections: Iterable[Any],
    fmt: str,
    pdf_style: Optional[PdfStyle] = None,
) -> Union[str, bytes]:
    """Serialize *sections* in the given format.

    Returns ``str`` for text formats and ``bytes`` for PDF.

    Raises:
        UnsupportedFormatError: If *fmt* is not a known format token.
        EmptyResumeError: If no section has a title or a non-blank snippet.
    """

    option = resolve_format(fmt)
    normalized = normalize_sections(sections)
    if not normalized:
        raise EmptyResumeError(EMPTY_RESUME_MESSAGE)
    LOGGER.info("Exporting %s sections as %s", len(normalized), option.value)
    if option.value == "pdf":
        return to_pdf(normalized, pdf_style)
    return _SERIALIZERS[option.value](normalized)


def export_resume_to_file(
    sections: Iterable[Any],
    fmt: str,
    directory: Union[str, Path] = ".",
    filename: str = "resume",
    pdf_style: Optional[PdfStyle] = None,
) -> Path:
    """Write the serialized resume to ``<directory>/<filename>.<extension>``."""

    option = resolve_format(fmt)
    content = generate_resume_content(sections, option.value, pdf_style)
    output_dir = Path(directory)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"{filename}.{option.extension}"
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    LOGGER.info("Saved %s export to %s", option.label, path)
    return path


__all__ = [
    "EMPTY_RESUME_MESSAGE",
    "EXPORT_FORMATS",
    "FORMAT_ALIASES",
    "EmptyResumeError",
    "ExportFormatOption",
    "NormalizedSection",
    "PdfStyle",
    "PlacedLine",
    "UnsupportedFormatError",
    "export_resume_to_file",
    "generate_resume_content",
    "has_exportable_content",
    "layout_pdf",
    "normalize_sections",
    "resolve_format",
    "to_html",
    "to_json",
    "to_markdown",
    "to_pdf",
    "to_plain_text",
]
