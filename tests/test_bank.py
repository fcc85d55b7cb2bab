import pytest

from resume_snippets.bank import (
    merge_into_bank,
    prepare_sections_for_bank,
    return_to_bank,
    take_from_bank,
)
from resume_snippets.sanitize import fingerprint
from resume_snippets.types import ParsedSection, Section, Snippet


def _bank_section(title, *contents):
    return Section(
        title=title,
        snippets=[Snippet(id=f"{title}-{index}", content=content) for index, content in enumerate(contents)],
    )


def _contents(section):
    return [snippet.content for snippet in section.snippets]


def test_merge_creates_sections_and_counts():
    incoming = [
        ParsedSection(title="Skills", snippets=["- Python", "- SQL", "", "- python"]),
        ParsedSection(title="Education", snippets=["BSc, 2015"]),
    ]
    result = merge_into_bank([], incoming)
    assert result.added_sections == 2
    assert result.added_snippets == 3
    assert [section.title for section in result.bank] == ["Skills", "Education"]
    assert _contents(result.bank[0]) == ["Python", "SQL"]
    assert all(snippet.id.startswith("bank-") for snippet in result.bank[0].snippets)


def test_merge_skips_case_insensitive_duplicates():
    bank = [_bank_section("Skills", "python")]
    result = merge_into_bank(bank, [ParsedSection(title="Skills", snippets=["Python"])])
    assert result.added_snippets == 0
    assert result.added_sections == 0
    assert _contents(result.bank[0]) == ["python"]


def test_merge_dedups_whitespace_variants_against_bank():
    bank = [_bank_section("Experience", "Built the  API\nin Go")]
    incoming = [ParsedSection(title="experience", snippets=["• built the api in go"])]
    result = merge_into_bank(bank, incoming)
    assert result.added_snippets == 0


def test_merge_is_idempotent_and_keeps_ids():
    incoming = [
        ParsedSection(title="Header", snippets=["Jane Doe"]),
        ParsedSection(title="Skills", snippets=["Python", "SQL"]),
        ParsedSection(title="Projects", snippets=["Snippet bank"]),
    ]
    first = merge_into_bank([_bank_section("Skills", "Go")], incoming)
    second = merge_into_bank(first.bank, incoming)
    assert (second.added_sections, second.added_snippets) == (0, 0)
    assert [[s.id for s in section.snippets] for section in second.bank] == [
        [s.id for s in section.snippets] for section in first.bank
    ]


def test_merge_does_not_mutate_inputs():
    bank = [_bank_section("Skills", "  Go  ")]
    incoming = [ParsedSection(title="Skills", snippets=["Rust"])]
    merge_into_bank(bank, incoming)
    assert _contents(bank[0]) == ["  Go  "]
    assert incoming[0].snippets == ["Rust"]


def test_header_is_pinned_first_and_order_is_kept():
    bank = [_bank_section("Skills", "Go"), _bank_section("Education", "BSc")]
    incoming = [
        ParsedSection(title="Projects", snippets=["Thing"]),
        ParsedSection(title="Contact Info", snippets=["Jane Doe"]),
    ]
    result = merge_into_bank(bank, incoming)
    assert [section.title for section in result.bank] == ["Header", "Skills", "Education", "Projects"]


def test_existing_header_moves_to_front_even_without_new_content():
    bank = [_bank_section("Skills", "Go"), _bank_section("header", "Jane")]
    result = merge_into_bank(bank, [])
    assert result.bank[0].title == "Header"


def test_empty_incoming_sections_are_skipped():
    result = merge_into_bank([], [ParsedSection(title="Skills", snippets=["  ", "•"])])
    assert result.bank == []
    assert result.added_sections == 0


def test_merged_sections_have_unique_fingerprints():
    bank = [_bank_section("Skills", "Go", "go ")]
    result = merge_into_bank(bank, [ParsedSection(title="Skills", snippets=["GO", "Rust"])])
    keys = [fingerprint(snippet.content) for snippet in result.bank[0].snippets]
    assert keys == ["go", "rust"]
    assert result.bank[0].snippets[0].id == "Skills-0"


def test_prepare_sections_synthesizes_header():
    text = "Jane Doe\njane@x.com\n\nSKILLS\n- Go"
    prepared = prepare_sections_for_bank([ParsedSection(title="Skills", snippets=["- Go"])], text)
    assert [section.title for section in prepared] == ["Header", "Skills"]
    assert prepared[0].snippets == ["Jane Doe\njane@x.com"]
    assert prepared[1].snippets == ["Go"]


def test_prepare_sections_moves_existing_header_first():
    sections = [
        ParsedSection(title="Skills", snippets=["Go"]),
        ParsedSection(title="Contact details", snippets=["Jane"]),
    ]
    prepared = prepare_sections_for_bank(sections, "")
    assert [section.title for section in prepared] == ["Header", "Skills"]


def test_take_from_bank_copies_with_new_id():
    bank = [_bank_section("Skills", "Go", "Rust")]
    resume = [Section(title="skills", id="section-1")]
    new_bank, new_resume = take_from_bank(bank, resume, "Skills", "Skills-0")
    assert _contents(new_bank[0]) == ["Rust"]
    moved = new_resume[0].snippets[0]
    assert moved.content == "Go"
    assert moved.id.startswith("snippet-")
    assert moved.id != "Skills-0"
    assert _contents(bank[0]) == ["Go", "Rust"]


def test_take_last_snippet_removes_bank_section_and_creates_resume_section():
    bank = [_bank_section("Awards", "Hackathon winner")]
    new_bank, new_resume = take_from_bank(bank, [], "Awards", "Awards-0")
    assert new_bank == []
    assert new_resume[0].title == "Awards"
    assert new_resume[0].id.startswith("section-")


def test_take_unknown_snippet_raises():
    with pytest.raises(KeyError):
        take_from_bank([_bank_section("Skills", "Go")], [], "Skills", "missing")


def test_return_to_bank_rebanks_under_section_title():
    resume = [Section(title="Skills", id="section-1", snippets=[Snippet(id="snippet-1", content="Go")])]
    new_bank, new_resume = return_to_bank([], resume, "section-1", "snippet-1")
    assert new_resume[0].snippets == []
    assert new_bank[0].title == "Skills"
    assert new_bank[0].snippets[0].id.startswith("bank-")
    assert new_bank[0].snippets[0].content == "Go"


def test_return_to_bank_does_not_duplicate_content():
    bank = [_bank_section("Skills", "go")]
    resume = [Section(title="Skills", id="section-1", snippets=[Snippet(id="snippet-1", content="Go")])]
    new_bank, _ = return_to_bank(bank, resume, "section-1", "snippet-1")
    assert _contents(new_bank[0]) == ["go"]
