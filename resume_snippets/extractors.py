"""Section extractors: the local structural parser and an optional SLM."""

from __future__ import annotations

import json
import logging
import os
import textwrap
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol
from urllib import error as urlerror
from urllib import request

from .markdown_parser import ParserConfig, parse_resume_text
from .types import ParsedSection

LOGGER = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "Failed to parse resume with AI."

PROMPT_TEMPLATE = textwrap.dedent(
    """
    You are a strict JSON extraction engine for resume text.

    GOAL:
    - Split the resume into its logical sections (e.g. "Header", "Work Experience",
      "Education", "Skills").
    - Put the name and contact details at the top of the resume into a section
      titled "Header".
    - Extract each bullet point or entry of a section as a separate snippet.
    - Copy text verbatim. DO NOT invent or rephrase content.

    OUTPUT SCHEMA:
    [
      {{
        "title": string,
        "snippets": [string]
      }}
    ]

    OUTPUT:
    - Return ONLY the JSON array.
    - No markdown.
    - No comments.
    - No explanations.

    Resume text:
    \"\"\"{resume_text}\"\"\"
    """
)

TITLE_KEYS = ("title", "name", "heading", "section")
SNIPPET_KEYS = ("snippets", "items", "bullets", "entries", "content")


class ExtractionError(RuntimeError):
    """Raised when an extractor cannot produce any usable section."""


class SectionExtractor(Protocol):
    """Anything that turns resume text into parsed sections."""

    def extract(self, text: str) -> List[ParsedSection]:
        ...


@dataclass
class ExtractorConfig:
    """Configuration for the SLM-backed extractor."""

    enabled: bool = False
    endpoint: Optional[str] = None
    model: Optional[str] = None
    timeout: float = 60.0
    max_new_tokens: int = 2048
    temperature: float = 0.1
    use_gpu: bool = False

    @classmethod
    def from_env(cls) -> "ExtractorConfig":
        return cls(
            enabled=os.getenv("ENABLE_SLM_EXTRACTOR", "0").lower() in {"1", "true", "yes"},
            endpoint=os.getenv("SLM_EXTRACTOR_ENDPOINT") or None,
            model=os.getenv("SLM_EXTRACTOR_MODEL") or None,
            timeout=float(os.getenv("SLM_EXTRACTOR_TIMEOUT", "60")),
            max_new_tokens=int(os.getenv("SLM_EXTRACTOR_MAX_TOKENS", "2048")),
            temperature=float(os.getenv("SLM_EXTRACTOR_TEMPERATURE", "0.1")),
            use_gpu=bool(os.getenv("SLM_EXTRACTOR_USE_GPU")),
        )


class MarkdownSectionExtractor:
    """Extractor backed by the local structural parser."""

    def __init__(self, config: Optional[ParserConfig] = None) -> None:
        self.config = config or ParserConfig()

    def extract(self, text: str) -> List[ParsedSection]:
        return parse_resume_text(text, self.config)


def build_extraction_prompt(resume_text: str) -> str:
    """Build the prompt that is sent to the SLM."""

    text_payload = (resume_text or "").replace('"""', '\\"\\"\\"')
    return PROMPT_TEMPLATE.format(resume_text=text_payload)


def _first_value(record: Dict[str, Any], keys: Iterable[str]) -> Any:
    for key in keys:
        if key in record and record[key] not in (None, ""):
            return record[key]
    return None


def _coerce_record(record: Any) -> Optional[ParsedSection]:
    if not isinstance(record, dict):
        return None
    title = _first_value(record, TITLE_KEYS)
    title = title.strip() if isinstance(title, str) else ""
    raw_snippets = _first_value(record, SNIPPET_KEYS)
    if isinstance(raw_snippets, str):
        raw_snippets = [raw_snippets]
    if not isinstance(raw_snippets, list):
        return None
    snippets = [item for item in raw_snippets if isinstance(item, str) and item.strip()]
    if not snippets:
        return None
    return ParsedSection(title=title, snippets=snippets)


def _looks_like_sections(value: Any) -> bool:
    return isinstance(value, list) and any(isinstance(item, dict) for item in value)


def _locate_section_list(payload: Any) -> Optional[List[Any]]:
    if isinstance(payload, list):
        return payload
    if not isinstance(payload, dict):
        return None
    for value in payload.values():
        if _looks_like_sections(value):
            return value
    for value in payload.values():
        if isinstance(value, dict):
            for nested in value.values():
                if _looks_like_sections(nested):
                    return nested
    return None


def coerce_parsed_sections(payload: Any) -> List[ParsedSection]:
    """Normalize loosely-shaped extractor output into parsed sections.

    The section list may be the payload itself or sit under any key of the
    payload or of an object nested one level down. Records without at least
    one non-blank snippet string are discarded.

    Raises:
        ExtractionError: If no usable section is found.
    """

    records = _locate_section_list(payload)
    if records is None:
        raise ExtractionError("Extractor output is not in the expected array format.")
    sections = [section for section in (_coerce_record(record) for record in records) if section]
    if not sections:
        raise ExtractionError("Extractor output contains no usable sections.")
    dropped = len(records) - len(sections)
    if dropped:
        LOGGER.warning("Discarded %s malformed section records from extractor output", dropped)
    return sections


def _strip_code_fence(text: str) -> str:
    candidate = text.strip()
    if candidate.startswith("```"):
        candidate = candidate.strip("`")
        if candidate.lower().startswith("json"):
            candidate = candidate[4:]
    return candidate.strip()


_GENERATOR = None


class SLMSectionExtractor:
    """Extractor backed by a small language model.

    The model is reached through ``config.endpoint`` (HTTP POST of
    ``{"prompt": ...}``) or, when only ``config.model`` is set, loaded locally
    with a ``transformers`` text-generation pipeline.
    """

    def __init__(self, config: Optional[ExtractorConfig] = None) -> None:
        self.config = config or ExtractorConfig.from_env()

    def _http_call(self, prompt: str) -> Optional[str]:
        if not self.config.endpoint:
            return None
        body = json.dumps({"prompt": prompt}).encode("utf-8")
        req = request.Request(
            self.config.endpoint,
            data=body,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        try:
            with request.urlopen(req, timeout=self.config.timeout) as response:
                content_type = response.headers.get("Content-Type", "")
                payload = response.read().decode("utf-8")
        except (urlerror.URLError, OSError) as exc:
            LOGGER.error("SLM HTTP call failed: %s", exc)
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc
        if "application/json" in content_type:
            try:
                data = json.loads(payload)
            except json.JSONDecodeError:
                return payload
            if isinstance(data, dict) and ("output" in data or "response" in data):
                return str(data.get("output") or data.get("response") or "")
        return payload

    def _local_generator(self, prompt: str) -> Optional[str]:
        if not self.config.model:
            return None
        global _GENERATOR
        if _GENERATOR is None:
            try:  # pragma: no cover - heavy dependency branch
                import torch
                from transformers import pipeline
            except ImportError as exc:  # pragma: no cover
                LOGGER.error("Unable to import transformers pipeline: %s", exc)
                raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc
            device = 0 if self.config.use_gpu and torch.cuda.is_available() else -1
            try:  # pragma: no cover
                _GENERATOR = pipeline("text-generation", model=self.config.model, device=device)
            except (OSError, ValueError) as exc:  # pragma: no cover
                LOGGER.error("Failed to load SLM model %s: %s", self.config.model, exc)
                raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc
        outputs = _GENERATOR(
            prompt,
            max_new_tokens=self.config.max_new_tokens,
            temperature=self.config.temperature,
            return_full_text=False,
        )
        if not outputs:
            return None
        result = outputs[0]
        if isinstance(result, dict):
            return str(result.get("generated_text", ""))
        return str(result)

    def _call_slm(self, prompt: str) -> Optional[str]:
        response = self._http_call(prompt)
        if response:
            return response
        return self._local_generator(prompt)

    def extract(self, text: str) -> List[ParsedSection]:
        prompt = build_extraction_prompt(text)
        try:
            response_text = self._call_slm(prompt)
        except ExtractionError:
            raise
        except Exception as exc:
            LOGGER.error("SLM extraction failed: %s", exc)
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc
        if not response_text:
            LOGGER.error("SLM returned no data")
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE)
        try:
            payload = json.loads(_strip_code_fence(response_text))
        except json.JSONDecodeError as exc:
            LOGGER.warning("Failed to parse SLM response as JSON: %s", exc)
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc
        try:
            return coerce_parsed_sections(payload)
        except ExtractionError as exc:
            LOGGER.warning("SLM output failed validation: %s", exc)
            raise ExtractionError(EXTRACTION_FAILED_MESSAGE) from exc


def build_extractor(
    config: Optional[ExtractorConfig] = None,
    parser_config: Optional[ParserConfig] = None,
) -> SectionExtractor:
    """Return the SLM extractor when enabled, the local parser otherwise."""

    config = config or ExtractorConfig.from_env()
    if config.enabled and (config.endpoint or config.model):
        LOGGER.info("Using SLM section extractor")
        return SLMSectionExtractor(config)
    return MarkdownSectionExtractor(parser_config)


__all__ = [
    "ExtractionError",
    "ExtractorConfig",
    "MarkdownSectionExtractor",
    "SLMSectionExtractor",
    "SectionExtractor",
    "build_extraction_prompt",
    "build_extractor",
    "coerce_parsed_sections",
]
