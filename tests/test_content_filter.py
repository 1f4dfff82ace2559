# =============================================================================
# Unit Tests — Content Filter
# =============================================================================

from __future__ import annotations

import pytest

from app.services.content_filter import (
    check_question,
    find_blocked_content,
    normalize_question,
)
from app.services.errors import ContentRejected, ValidationFailed


class TestNormalizeQuestion:
    def test_trims_outer_whitespace_only(self):
        assert normalize_question("  what \t is   this?  ") == "what \t is   this?"

    def test_keeps_code_indentation(self):
        question = "Why does this fail?\n\ndef f():\n    if x:\n        return 1"
        assert normalize_question(question) == question

    def test_keeps_blank_lines_and_normalises_crlf(self):
        assert normalize_question("a\r\n\r\n\r\nb") == "a\n\n\nb"

    def test_removes_control_characters(self):
        assert normalize_question("a\x00b\x07c") == "abc"


class TestFindBlockedContent:
    @pytest.mark.parametrize(
        ("text", "reason"),
        [
            ("<script>alert(1)</script>", "script tag"),
            ("< SCRIPT src=x>", "script tag"),
            ('<iframe src="evil">', "iframe tag"),
            ("click javascript:alert(1)", "javascript url"),
            ('<img src=x onerror="y()">', "inline event handler"),
            ("data:text/html;base64,AAAA", "data url"),
        ],
    )
    def test_detects_payloads(self, text, reason):
        assert find_blocked_content(text) == reason

    @pytest.mark.parametrize(
        "text",
        [
            "How do I write a for loop in JavaScript?",
            "What does the onload event do?",
            'In React, why is onClick="handle()" wrong?',
            "Explain data: URLs please",
            "Is 3 < 5 in python?",
        ],
    )
    def test_allows_ordinary_questions(self, text):
        assert find_blocked_content(text) is None


class TestCheckQuestion:
    def test_returns_cleaned_question(self):
        assert check_question("  hello   world ", max_length=50) == "hello   world"

    def test_empty_rejected(self):
        with pytest.raises(ValidationFailed):
            check_question("  \n\t ", max_length=50)

    def test_length_checked_after_trimming(self):
        assert check_question("  " + "x" * 10 + "  ", max_length=10) == "x" * 10

    def test_too_long_rejected(self):
        with pytest.raises(ValidationFailed) as exc_info:
            check_question("x" * 11, max_length=10)
        assert exc_info.value.details == {"length": 11, "max_length": 10}

    def test_blocked_rejected(self):
        with pytest.raises(ContentRejected) as exc_info:
            check_question("<script>x</script>", max_length=100)
        assert exc_info.value.status_code == 400
        assert exc_info.value.details == {"reason": "script tag"}
