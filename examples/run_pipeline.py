"""Command-line helper: import resumes into a snippet bank and export them."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path

from resume_snippets import ResumeWorkspace
from resume_snippets.export import EXPORT_FORMATS, FORMAT_ALIASES

logging.basicConfig(level=logging.INFO)


def main() -> None:
    parser = argparse.ArgumentParser(description="Build a resume from the snippets of existing documents")
    parser.add_argument("files", type=Path, nargs="+", help="Resume files to import (TXT/MD/PDF/DOCX/DOC)")
    parser.add_argument(
        "--format",
        default="markdown",
        choices=sorted(set(EXPORT_FORMATS) | set(FORMAT_ALIASES)),
        help="Export format",
    )
    parser.add_argument("--output-dir", type=Path, default=Path("."), help="Directory for the exported file")
    parser.add_argument("--filename", default="resume", help="Base name of the exported file")
    parser.add_argument("--bank-json", type=Path, default=None, help="Optional path to save the snippet bank")
    args = parser.parse_args()

    workspace = ResumeWorkspace()
    for file_path in args.files:
        result = workspace.import_file(file_path)
        logging.info(
            "Imported %s: %s new sections, %s new snippets",
            file_path, result.added_sections, result.added_snippets,
        )

    if args.bank_json:
        payload = [
            {"title": section.title, "snippets": [{"id": s.id, "content": s.content} for s in section.snippets]}
            for section in workspace.bank
        ]
        args.bank_json.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        logging.info("Saved snippet bank to %s", args.bank_json)

    # Without an editor, every banked snippet goes into the resume in bank order.
    for section in list(workspace.bank):
        for snippet in list(section.snippets):
            workspace.take_from_bank(section.title, snippet.id)

    path = workspace.export_to_file(args.format, args.output_dir, args.filename)
    print(path)


if __name__ == "__main__":
    main()
