"""In-memory resume workspace tying import, bank and export together."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import List, Optional, Union

from . import bank, export, ingestion
from .extractors import ExtractionError, SectionExtractor, build_extractor
from .titles import DEFAULT_NORMALIZER, TitleNormalizer
from .types import SECTION_ID_PREFIX, Section, Snippet, new_id

LOGGER = logging.getLogger(__name__)


class ParseFailureError(RuntimeError):
    """Raised when an import yields no usable section."""


class ImportInProgressError(RuntimeError):
    """Raised when an import starts while another one is still running."""


class ResumeWorkspace:
    """Session state: a snippet bank and the resume being assembled."""

    def __init__(
        self,
        extractor: Optional[SectionExtractor] = None,
        ingestion_config: Optional[ingestion.IngestionConfig] = None,
        normalizer: Optional[TitleNormalizer] = None,
        resume: Optional[List[Section]] = None,
    ) -> None:
        self.extractor = extractor or build_extractor()
        self.ingestion_config = ingestion_config or ingestion.IngestionConfig()
        self.normalizer = normalizer or DEFAULT_NORMALIZER
        self.bank: List[Section] = []
        self.resume: List[Section] = [section.clone() for section in resume or []]
        self._import_lock = threading.Lock()

    def import_text(self, text: str, source: Optional[str] = None) -> bank.MergeResult:
        """Parse *text* and merge its snippets into the bank.

        Raises:
            EmptyDocumentError: If *text* is blank.
            ImportInProgressError: If another import has not finished.
            ParseFailureError: If no usable section was extracted; the bank is
                left untouched.
        """

        if not text or not text.strip():
            raise ingestion.EmptyDocumentError("The selected file is empty.")
        if not self._import_lock.acquire(blocking=False):
            raise ImportInProgressError("An import is already in progress.")
        try:
            LOGGER.info("Extracting sections from %s", source or "text")
            try:
                parsed = self.extractor.extract(text)
            except ExtractionError as exc:
                raise ParseFailureError(str(exc)) from exc
            prepared = bank.prepare_sections_for_bank(parsed, text, self.normalizer)
            if not prepared:
                LOGGER.warning("No content was found in %s", source or "the uploaded resume")
                raise ParseFailureError("Unable to extract snippets from the uploaded resume.")
            result = bank.merge_into_bank(self.bank, prepared, self.normalizer)
            self.bank = result.bank
            return result
        finally:
            self._import_lock.release()

    def import_file(self, file_path: Union[str, Path]) -> bank.MergeResult:
        path = str(Path(file_path).expanduser().resolve())
        text = ingestion.load_document_text(path, self.ingestion_config)
        return self.import_text(text, source=path)

    def _resume_section(self, section_id: str) -> Section:
        for section in self.resume:
            if section.id == section_id:
                return section
        raise KeyError(f"Unknown resume section {section_id!r}")

    def add_section(self, title: str = "New Section") -> Section:
        section = Section(title=title, id=new_id(SECTION_ID_PREFIX))
        self.resume.append(section)
        return section

    def remove_section(self, section_id: str) -> None:
        self._resume_section(section_id)
        self.resume = [section for section in self.resume if section.id != section_id]

    def rename_section(self, section_id: str, title: str) -> None:
        self._resume_section(section_id).title = title

    def update_snippet(self, section_id: str, snippet_id: str, content: str) -> Snippet:
        snippet = self._resume_section(section_id).find_snippet(snippet_id)
        if snippet is None:
            raise KeyError(f"Unknown snippet {snippet_id!r}")
        snippet.content = content
        return snippet

    def take_from_bank(self, section_title: str, snippet_id: str) -> None:
        self.bank, self.resume = bank.take_from_bank(
            self.bank, self.resume, section_title, snippet_id, self.normalizer
        )

    def return_to_bank(self, section_id: str, snippet_id: str) -> None:
        self.bank, self.resume = bank.return_to_bank(
            self.bank, self.resume, section_id, snippet_id, self.normalizer
        )

    def export(self, fmt: str, pdf_style: Optional[export.PdfStyle] = None) -> Union[str, bytes]:
        return export.generate_resume_content(self.resume, fmt, pdf_style)

    def export_to_file(
        self,
        fmt: str,
        directory: Union[str, Path] = ".",
        filename: str = "resume",
    ) -> Path:
        return export.export_resume_to_file(self.resume, fmt, directory, filename)


__all__ = ["ImportInProgressError", "ParseFailureError", "ResumeWorkspace"]
