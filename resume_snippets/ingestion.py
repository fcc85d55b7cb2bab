"""Document ingestion: turn an uploaded resume file into raw text."""

from __future__ import annotations

import io
import logging
import re
from collections import defaultdict
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional, Tuple

try:  # pragma: no cover - optional dependency
    import pdfplumber  # type: ignore
except Exception:  # pragma: no cover
    pdfplumber = None

try:  # pragma: no cover - optional dependency
    from PIL import Image  # type: ignore
except Exception:  # pragma: no cover
    Image = None  # type: ignore

try:
    from pdf2image import convert_from_path  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    convert_from_path = None

try:  # pragma: no cover - optional dependency
    import easyocr
except Exception:  # pragma: no cover
    easyocr = None

try:  # pragma: no cover - optional dependency
    import docx  # python-docx
except Exception:
    docx = None

try:  # pragma: no cover - optional dependency
    import docx2txt  # type: ignore
except Exception:
    docx2txt = None

LOGGER = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".txt", ".md", ".markdown"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | {".pdf", ".docx", ".doc"}


class EmptyDocumentError(ValueError):
    """Raised when a document contains no text."""


@dataclass
class IngestionConfig:
    """Configuration options for ingestion."""

    max_pages: Optional[int] = None
    ocr_language: str = "en"
    strip_repeated_lines: bool = True
    # Number of lines at the top and bottom of each page checked for
    # running headers/footers.
    repeated_line_region: int = 2
    min_repeats: int = 2


def detect_file_type(file_path: str) -> str:
    """Return the canonical file extension for *file_path*.

    Raises:
        ValueError: If the file extension is not supported.
    """

    extension = Path(file_path).suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {extension}")
    return extension


def read_text_file(file_path: str) -> str:
    return Path(file_path).read_text(encoding="utf-8-sig", errors="replace")


def _docx_heading_level(style_name: str) -> Optional[int]:
    if style_name == "Title":
        return 1
    match = re.match(r"Heading (\d)", style_name)
    if match:
        return min(int(match.group(1)) + 1, 6)
    return None


def extract_docx_text(file_path: str) -> str:
    """Extract text from a DOCX/DOC file.

    Heading styles become Markdown headings (``Title`` is level 1 and
    ``Heading N`` is level N + 1) and list paragraphs become ``-`` items, so
    the heading-driven parser can follow the document structure. Legacy DOC
    files go through *docx2txt* and keep their plain lines.
    """

    extension = Path(file_path).suffix.lower()
    if extension == ".doc":
        if docx2txt is None:
            raise ImportError("docx2txt is required to parse DOC files")
        LOGGER.info("Converting legacy .doc file via docx2txt")
        return docx2txt.process(file_path) or ""

    if docx is None:
        raise ImportError("python-docx is required to parse DOCX files")

    document = docx.Document(file_path)  # type: ignore
    lines: List[str] = []
    for paragraph in document.paragraphs:
        text = paragraph.text.strip()
        if not text:
            lines.append("")
            continue
        style_name = paragraph.style.name if paragraph.style is not None else ""
        level = _docx_heading_level(style_name)
        if level is not None:
            lines.append(f"{'#' * level} {text}")
        elif style_name.startswith("List"):
            lines.append(f"- {text}")
        else:
            lines.append(text)
    return "\n".join(lines)


@lru_cache(maxsize=4)
def _ocr_reader(language: str):
    if easyocr is None:
        raise ImportError("easyocr is required for OCR on scanned PDFs")
    return easyocr.Reader([language], gpu=False)


def group_ocr_results(results: List[Tuple[List[List[float]], str, float]]) -> List[str]:
    """Group easyocr detections into text lines ordered top to bottom."""

    boxes = []
    for bbox, text, _confidence in results:
        text = (text or "").strip()
        if not text:
            continue
        ys = [point[1] for point in bbox]
        xs = [point[0] for point in bbox]
        boxes.append((min(ys), max(ys), min(xs), text))
    if not boxes:
        return []
    heights = sorted(bottom - top for top, bottom, _, _ in boxes)
    tolerance = max(heights[len(heights) // 2] / 2.0, 1.0)

    lines: List[List[Tuple[float, float, str]]] = []
    centers: List[float] = []
    for top, bottom, left, text in sorted(boxes):
        center = (top + bottom) / 2.0
        if centers and abs(center - centers[-1]) <= tolerance:
            lines[-1].append((left, center, text))
            continue
        lines.append([(left, center, text)])
        centers.append(center)
    return [" ".join(text for _, _, text in sorted(line)) for line in lines]


def _perform_easyocr(page_image, config: IngestionConfig) -> List[str]:
    if Image is None:
        raise ImportError("Pillow is required for OCR on scanned PDFs")
    reader = _ocr_reader(config.ocr_language)
    buffer = io.BytesIO()
    page_image.convert("RGB").save(buffer, format="PNG")
    results = reader.readtext(buffer.getvalue(), detail=1, paragraph=False)
    return group_ocr_results(results)


def _line_key(line: str) -> str:
    # Page numbers differ from page to page.
    return re.sub(r"\d+", "#", " ".join(line.split()).lower())


def remove_repeated_lines(
    pages: List[List[str]],
    region: int = 2,
    min_repeats: int = 2,
) -> List[List[str]]:
    """Remove running headers and footers repeated across pages.

    Args:
        pages: Non-blank text lines of each page.
        region: Number of lines at the top and bottom of a page to inspect.
        min_repeats: Minimum number of pages a line must appear on to be removed.
    """

    if len(pages) < max(min_repeats, 2):
        return pages

    counts: Dict[str, int] = defaultdict(int)
    for lines in pages:
        edge = set(_line_key(line) for line in lines[:region] + lines[-region:])
        for key in edge:
            counts[key] += 1
    repeated = {key for key, count in counts.items() if count >= min_repeats}
    if not repeated:
        return pages

    cleaned_pages: List[List[str]] = []
    for lines in pages:
        edge_indices = set(range(min(region, len(lines)))) | set(range(max(len(lines) - region, 0), len(lines)))
        cleaned_pages.append(
            [line for index, line in enumerate(lines) if not (index in edge_indices and _line_key(line) in repeated)]
        )
    LOGGER.debug("Removed %s repeated header/footer lines", len(repeated))
    return cleaned_pages


def extract_pdf_text(file_path: str, config: IngestionConfig) -> str:
    """Extract text from a PDF file using pdfplumber.

    Falls back to OCR for pages without selectable text.
    """

    if pdfplumber is None:
        raise ImportError("pdfplumber is required to parse PDF files")

    pages: List[List[str]] = []
    with pdfplumber.open(file_path) as pdf:
        for page_number, page in enumerate(pdf.pages, start=1):
            if config.max_pages and page_number > config.max_pages:
                break
            text = page.extract_text() or ""
            if text.strip():
                lines = text.splitlines()
            else:
                LOGGER.info("No selectable text on page %s; running OCR", page_number)
                if convert_from_path is None:
                    raise ImportError("pdf2image is required to OCR scanned PDFs")
                lines = []
                for image in convert_from_path(file_path, first_page=page_number, last_page=page_number):
                    lines.extend(_perform_easyocr(image, config))
                    image.close()
            pages.append([line.rstrip() for line in lines if line.strip()])

    if config.strip_repeated_lines:
        pages = remove_repeated_lines(pages, config.repeated_line_region, config.min_repeats)
    return "\n\n".join("\n".join(lines) for lines in pages if lines)


def load_document_text(file_path: str, config: Optional[IngestionConfig] = None) -> str:
    """Read *file_path* and return its text.

    Raises:
        ValueError: If the file type is not supported.
        EmptyDocumentError: If the document holds no text.
    """

    if config is None:
        config = IngestionConfig()

    file_type = detect_file_type(file_path)
    LOGGER.info("Ingesting document %s", file_path)
    if file_type in TEXT_EXTENSIONS:
        text = read_text_file(file_path)
    elif file_type in {".doc", ".docx"}:
        text = extract_docx_text(file_path)
    else:
        text = extract_pdf_text(file_path, config)

    if not text.strip():
        raise EmptyDocumentError(f"The selected file is empty: {file_path}")
    LOGGER.debug("Loaded %s characters", len(text))
    return text


__all__ = [
    "EmptyDocumentError",
    "IngestionConfig",
    "SUPPORTED_EXTENSIONS",
    "detect_file_type",
    "extract_docx_text",
    "extract_pdf_text",
    "group_ocr_results",
    "load_document_text",
    "read_text_file",
    "remove_repeated_lines",
]
