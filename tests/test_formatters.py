# tests/test_formatters.py
"""Tests for Markdown formatting helpers."""

from ragstore_chat.core.models import ChatMessage, Citation, CustomMetadata, UploadProgress
from ragstore_chat.utils.formatters import (
    format_answer_with_citations,
    format_progress,
    parse_metadata,
)


def test_answer_without_citations_is_unchanged():
    assert format_answer_with_citations(ChatMessage.model("Plain answer.")) == "Plain answer."


def test_answer_lists_sources_in_order(citation):
    linked = Citation(title="Guide", uri="https://example.com/guide.pdf", text=None)
    message = ChatMessage.model("Answer.", [citation, linked])

    text = format_answer_with_citations(message)

    assert text.startswith("Answer.\n\n**Sources:**")
    assert "1. manual.pdf - _Hold the reset button for 5 s._" in text
    assert "2. [Guide](https://example.com/guide.pdf)" in text


def test_long_excerpts_are_shortened():
    message = ChatMessage.model("A", [Citation(text="word " * 100)])

    text = format_answer_with_citations(message)

    assert "1. Source Document - _" in text
    assert text.endswith("..._")


def test_progress_shows_counts_and_file():
    progress = UploadProgress(
        current=2, total=4, message="Generating embeddings...", file_name="(2/2) b.pdf"
    )

    text = format_progress(progress)

    assert "**Generating embeddings...**" in text
    assert "2/4" in text
    assert "(2/2) b.pdf" in text


def test_progress_without_state():
    assert format_progress(None) == "Preparing..."


def test_parse_metadata():
    assert parse_metadata("model=WM2077CW; year = 2023\nbad; =x") == [
        CustomMetadata("model", "WM2077CW"),
        CustomMetadata("year", "2023"),
    ]


def test_parse_metadata_skip():
    assert parse_metadata("-") == []
    assert parse_metadata(None) == []
