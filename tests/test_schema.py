import json

import pytest

from resume_snippets.schema import ExportedSection, ResumeDocument


def test_resume_document_serialization_roundtrip():
    document = ResumeDocument(
        sections=[
            ExportedSection(title="Header", snippets=["Jane Doe\njane@example.com"]),
            ExportedSection(title="Skills", snippets=["Python", "Data Analysis"]),
        ]
    )

    payload = json.loads(document.json())
    assert payload["sections"][0]["title"] == "Header"
    assert payload["sections"][1]["snippets"] == ["Python", "Data Analysis"]
    assert ResumeDocument.from_json(document.json()) == document


def test_resume_document_missing_optional_fields():
    document = ResumeDocument.from_dict({"sections": [{"title": "Skills"}, {"snippets": ["orphan", None]}]})
    assert document.sections[0].snippets == []
    assert document.sections[1].title == ""
    assert document.sections[1].snippets == ["orphan"]
    assert ResumeDocument.from_dict({}).sections == []


def test_resume_document_rejects_non_list_sections():
    with pytest.raises(TypeError):
        ResumeDocument.from_dict({"sections": {"title": "Skills"}})
