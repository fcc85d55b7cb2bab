import json

import pytest

from resume_snippets.export import (
    EXPORT_FORMATS,
    EmptyResumeError,
    PdfStyle,
    UnsupportedFormatError,
    export_resume_to_file,
    generate_resume_content,
    has_exportable_content,
    layout_pdf,
    normalize_sections,
)
from resume_snippets.schema import ResumeDocument
from resume_snippets.types import Section, Snippet

ALL_FORMATS = sorted(EXPORT_FORMATS)


def _section(title, *contents, subsections=None):
    return Section(
        title=title,
        id=f"section-{title}",
        snippets=[Snippet(id=f"{title}-{index}", content=content) for index, content in enumerate(contents)],
        subsections=subsections or [],
    )


def _resume():
    return [
        _section("Header", "Jane Doe\n123 Main St", "jane@example.com"),
        _section("Skills", "Python", "Data pipelines\nand ETL"),
        _section("Education"),
    ]


def test_markdown_header_and_empty_section():
    sections = [_section("Header", "Jane Doe\n123 Main St"), _section("Education")]
    content = generate_resume_content(sections, "markdown")
    lines = content.splitlines()
    assert lines[0] == "# Jane Doe"
    assert lines[1] == "123 Main St"
    assert "## Education" in lines
    assert not any(line.startswith("- ") for line in lines)
    assert "Header" not in content


def test_markdown_detail_lines_use_soft_breaks_and_bullets():
    content = generate_resume_content(_resume(), "md")
    assert content.startswith("# Jane Doe\n123 Main St  \njane@example.com\n\n## Skills\n\n")
    assert "- Python\n- Data pipelines\n  and ETL" in content


def test_header_heading_markers_are_not_repeated():
    content = generate_resume_content([_section("Contact Info", "# Jane Doe\njane@x.com")], "markdown")
    assert content.splitlines()[0] == "# Jane Doe"


def test_plain_text_uppercases_titles_except_header():
    content = generate_resume_content(_resume(), "plain-text")
    assert content.startswith("Jane Doe\n123 Main St\njane@example.com\n\nSKILLS\n------\n\n")
    assert "• Python\n• Data pipelines\n  and ETL" in content
    assert "EDUCATION\n---------" in content
    assert "HEADER" not in content


def test_json_round_trip_preserves_order():
    sections = [_section("Skills", "Python", "SQL"), _section("Education", "BSc")]
    content = generate_resume_content(sections, "structured-data")
    payload = json.loads(content)
    assert payload == {
        "sections": [
            {"title": "Skills", "snippets": ["Python", "SQL"]},
            {"title": "Education", "snippets": ["BSc"]},
        ]
    }
    document = ResumeDocument.from_json(content)
    assert [section.title for section in document.sections] == ["Skills", "Education"]


def test_json_keeps_non_ascii_text():
    content = generate_resume_content([_section("Compétences", "Café ☕")], "json")
    assert "Compétences" in content
    assert "☕" in content


def test_html_escapes_content_and_uses_name_as_heading():
    sections = [_section("Header", "Jane Doe\nBerlin"), _section("Projects", "<script>x</script>")]
    content = generate_resume_content(sections, "html")
    assert "<h1>Jane Doe</h1>" in content
    assert "<title>Jane Doe</title>" in content
    assert "&lt;script&gt;x&lt;/script&gt;" in content
    assert "<h2>Projects</h2>" in content


@pytest.mark.parametrize("fmt", ALL_FORMATS)
@pytest.mark.parametrize(
    "sections",
    [
        [],
        [{"title": "", "snippets": []}],
        [Section(title="  ", snippets=[Snippet(id="1", content="   ")])],
        [Section(title="Header")],
    ],
)
def test_empty_resume_is_refused(fmt, sections):
    with pytest.raises(EmptyResumeError):
        generate_resume_content(sections, fmt)


def test_unknown_format_is_rejected():
    with pytest.raises(UnsupportedFormatError):
        generate_resume_content(_resume(), "docx")


def test_has_exportable_content():
    assert not has_exportable_content([])
    assert not has_exportable_content([{"title": " ", "snippets": [" "]}])
    assert has_exportable_content([{"title": "Skills", "snippets": []}])
    assert has_exportable_content([{"title": "", "snippets": ["Python"]}])


def test_subsections_follow_their_parent():
    experience = _section("Experience", "Overview", subsections=[_section("Acme", "Built things")])
    content = generate_resume_content([experience, _section("Skills", "Go")], "markdown")
    assert content.index("## Experience") < content.index("### Acme") < content.index("## Skills")


def test_deeply_nested_subsections_are_flattened_without_recursion():
    section = _section("Level 0", "x")
    root = section
    for depth in range(1, 2000):
        child = _section(f"Level {depth}", "x")
        section.subsections = [child]
        section = child
    normalized = normalize_sections([root])
    assert len(normalized) == 2000
    assert max(item.depth for item in normalized) == 4


def test_pdf_output_is_a_pdf_document():
    content = generate_resume_content(_resume(), "styled-document")
    assert isinstance(content, bytes)
    assert content.startswith(b"%PDF")


def test_pdf_layout_breaks_pages_before_overflow():
    style = PdfStyle()
    sections = normalize_sections([_section("Header", "Jane Doe"), _section("Skills", *[f"Skill {i}" for i in range(120)])])
    placed = layout_pdf(sections, style)
    pages = [line.page for line in placed]
    assert pages == sorted(pages)
    assert pages[-1] >= 3
    assert all(line.y >= style.margin for line in placed)
    assert all(line.y <= style.page_height - style.margin for line in placed)
    assert placed[0].text == "Jane Doe"
    assert placed[0].size == style.title_size
    assert placed[1].text == "Skills"
    assert placed[1].size == style.heading_size
    assert not any(line.text == "Header" for line in placed)


def test_pdf_long_bullets_wrap_under_the_bullet():
    style = PdfStyle()
    long_text = " ".join(["word"] * 80)
    placed = layout_pdf(normalize_sections([_section("Summary", long_text)]), style)
    bullet_lines = placed[1:]
    assert len(bullet_lines) > 1
    assert bullet_lines[0].text.startswith("• ")
    assert all(line.x == style.margin + style.bullet_indent for line in bullet_lines[1:])


def test_export_resume_to_file_uses_format_extension(tmp_path):
    json_path = export_resume_to_file(_resume(), "json", tmp_path, "cv")
    assert json_path == tmp_path / "cv.json"
    assert json.loads(json_path.read_text(encoding="utf-8"))["sections"][0]["title"] == "Header"
    pdf_path = export_resume_to_file(_resume(), "pdf", tmp_path / "out")
    assert pdf_path.name == "resume.pdf"
    assert pdf_path.read_bytes().startswith(b"%PDF")


def test_deeply_nested_dict_sections_export_without_recursion():
    root = {"title": "Level 0", "snippets": ["x"], "subsections": []}
    node = root
    for depth in range(1, 3000):
        child = {"title": f"Level {depth}", "snippets": [{"content": "x"}], "subsections": []}
        node["subsections"] = [child]
        node = child
    normalized = normalize_sections([root])
    assert len(normalized) == 3000
    assert max(item.depth for item in normalized) == 4
    content = generate_resume_content([root], "markdown")
    assert content.startswith("## Level 0\n\n- x")
    assert "###### Level 2999" in content


@pytest.mark.parametrize(
    "sections",
    [
        [Section(title="Header")],
        [{"title": "Contact Info", "snippets": ["#", "  "]}],
        [{"title": "Header", "snippets": []}, {"title": " ", "snippets": [" "]}],
        [{"title": "Header", "snippets": ["Jane Doe"]}],
        [{"title": "Skills", "snippets": []}],
    ],
)
def test_has_exportable_content_agrees_with_export(sections):
    if has_exportable_content(sections):
        assert generate_resume_content(sections, "markdown")
    else:
        with pytest.raises(EmptyResumeError):
            generate_resume_content(sections, "markdown")


def test_header_only_sections_are_not_exportable():
    assert not has_exportable_content([Section(title="Header")])
    assert has_exportable_content([Section(title="Header", snippets=[Snippet(id="1", content="Jane Doe")])])


def test_hash_signs_inside_header_details_are_kept():
    content = generate_resume_content([_section("Header", "# Jane Doe\n#1 Sales Rep\n#opentowork")], "markdown")
    assert content.splitlines()[:3] == ["# Jane Doe", "#1 Sales Rep  ", "#opentowork"]
