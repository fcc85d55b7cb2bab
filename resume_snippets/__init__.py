"""Top-level package for the resume snippet pipeline."""

from .bank import MergeResult, merge_into_bank
from .export import generate_resume_content
from .markdown_parser import parse_resume_text
from .pipeline import ResumeWorkspace
from .types import ParsedSection, Section, Snippet

__all__ = [
    "MergeResult",
    "ParsedSection",
    "ResumeWorkspace",
    "Section",
    "Snippet",
    "generate_resume_content",
    "merge_into_bank",
    "parse_resume_text",
]
