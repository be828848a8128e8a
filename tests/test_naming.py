"""Tests for PDF filename assignment."""

from vaultsync.models import Creator, Item
from vaultsync.naming import (
    assign_filenames,
    build_pdf_display_name,
    build_pdf_filename,
    extract_year,
    get_author_last_names,
)


def _item(key, authors=(), date="", title="Untitled"):
    return Item(
        key=key,
        item_type="journalArticle",
        title=title,
        date=date,
        creators=[Creator(creator_type="author", last_name=a) for a in authors],
    )


def test_author_last_names_only_authors():
    creators = [
        Creator(creator_type="editor", last_name="Editor"),
        Creator(creator_type="author", first_name="Ada", last_name="Lovelace"),
        Creator(creator_type="author", name="World Health Organization"),
        Creator(creator_type="author"),
    ]
    assert get_author_last_names(creators) == ["Lovelace", "World Health Organization"]


def test_extract_year():
    assert extract_year("2024-03-01") == "2024"
    assert extract_year("March 1999") == "1999"
    assert extract_year("n.d.") == ""
    assert extract_year("") == ""


def test_display_name_with_author_and_year():
    assert build_pdf_display_name(["Smith", "Jones"], "2024", "A title") == "Smith et al. 2024"


def test_display_name_without_year():
    assert build_pdf_display_name(["Smith"], "", "A title") == "Smith et al."


def test_display_name_falls_back_to_truncated_title():
    title = "Forecasting: Principles and Practice, Third Edition"
    name = build_pdf_display_name([], "2021", title)
    # title[:40] is "Forecasting: Principles and Practice, Th"; ':' sanitized
    assert name == "Forecasting- Principles and Practice, Th 2021"


def test_filename_is_sanitized():
    assert build_pdf_filename(["O/Brien"], "2020", "") == "O-Brien et al. 2020.pdf"


def test_collisions_get_numbered_suffix_in_order():
    items = [
        _item("A", ["Smith"], "2024"),
        _item("B", ["Smith"], "2024"),
        _item("C", ["Jones"], "2023"),
        _item("D", ["Smith"], "2024-05"),
    ]
    assert assign_filenames(items) == {
        "A": "Smith et al. 2024.pdf",
        "B": "Smith et al. 2024 (2).pdf",
        "C": "Jones et al. 2023.pdf",
        "D": "Smith et al. 2024 (3).pdf",
    }


def test_assignment_is_deterministic_for_same_order():
    items = [_item(k, ["Smith"], "2024") for k in ("A", "B", "C")]
    assert assign_filenames(items) == assign_filenames(list(items))


def test_reordering_changes_suffixes():
    a = _item("A", ["Smith"], "2024")
    b = _item("B", ["Smith"], "2024")
    assert assign_filenames([a, b])["B"] == "Smith et al. 2024 (2).pdf"
    assert assign_filenames([b, a])["B"] == "Smith et al. 2024.pdf"
