import pytest

from resume_snippets.titles import (
    TitleNormalizer,
    canonical_section_title,
    is_header_title,
    section_key,
)


@pytest.mark.parametrize(
    "title",
    ["Header", "contact info", "  Contact   Information ", "PERSONAL DETAILS", "personal info"],
)
def test_header_aliases_map_to_header(title):
    assert canonical_section_title(title) == "Header"
    assert is_header_title(title)


def test_canonicalize_collapses_whitespace_and_keeps_case():
    assert canonical_section_title("  Work    Experience\t") == "Work Experience"
    assert section_key("  Work    Experience\t") == "work experience"


def test_blank_titles_become_untitled():
    assert canonical_section_title("") == "Untitled Section"
    assert canonical_section_title("   ") == "Untitled Section"
    assert canonical_section_title(None) == "Untitled Section"


def test_keys_identify_same_section():
    assert section_key("SKILLS") == section_key("skills ")
    assert not is_header_title("Skills")


def test_custom_aliases_do_not_touch_default_table():
    normalizer = TitleNormalizer().with_aliases({"Kontakt": "Header"})
    assert normalizer.is_header("kontakt")
    assert not is_header_title("kontakt")
    with pytest.raises(TypeError):
        normalizer.aliases["new"] = "Header"
