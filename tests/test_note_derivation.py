from services.note_service import (
    auto_title,
    content_preview,
    join_note_tags,
    parse_note_tags,
    strip_markup,
    word_count,
)
from services.errors import ValidationFailed

import pytest


def test_auto_title_uses_first_line_of_content():
    assert auto_title("Untitled", "<p>Hello world</p>\nmore") == "Hello world"


def test_auto_title_keeps_explicit_title():
    assert auto_title("Groceries", "<p>Milk</p>") == "Groceries"


def test_auto_title_falls_back_when_nothing_to_derive():
    assert auto_title("Untitled", "") == "Untitled Note"
    assert auto_title("", None) == "Untitled Note"
    assert auto_title("Untitled", "<p>   </p>") == "Untitled Note"


def test_auto_title_truncates_long_first_line():
    title = auto_title("Untitled", "x" * 80)

    assert title == "x" * 50 + "..."


def test_content_preview_truncates_to_one_hundred_characters():
    preview = content_preview("a" * 150)

    assert preview == "a" * 100 + "..."
    assert len(preview) == 103


def test_content_preview_collapses_whitespace_and_strips_tags():
    preview = content_preview("<h1>Title</h1>\n\n<p>Some   <strong>bold</strong>\ttext</p>")

    assert preview == "TitleSome bold text" or preview == "Title Some bold text"
    assert "<" not in preview


def test_content_preview_of_empty_content():
    assert content_preview("") == "No content"
    assert content_preview(None) == "No content"


def test_short_preview_is_not_truncated():
    assert content_preview("<p>short note</p>") == "short note"


def test_word_count_ignores_markup():
    assert word_count("<p>one two</p>\n<p>three &amp; four</p>") == 5
    assert word_count("") == 0
    assert word_count(None) == 0


def test_strip_markup_unescapes_entities():
    assert strip_markup("<p>Fish &amp; chips</p>") == "Fish & chips"


def test_note_tags_round_trip_through_storage_text():
    assert parse_note_tags(" work, ,ideas ,") == ["work", "ideas"]
    assert parse_note_tags(None) == []
    assert join_note_tags(["work", " ideas ", ""]) == "work, ideas"
    assert join_note_tags([]) is None
    assert join_note_tags("a,b") == "a, b"


def test_note_tags_are_limited_in_length():
    with pytest.raises(ValidationFailed) as excinfo:
        join_note_tags(["x" * 51])

    assert "tags" in excinfo.value.errors
