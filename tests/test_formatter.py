# =============================================================================
# Unit Tests — Answer Formatter
# =============================================================================
#
# Markdown rendering, code highlighting and HTML sanitisation. Pure
# functions, no app or database needed.
# =============================================================================

from __future__ import annotations

from app.services.formatter import format_answer, render_markdown, sanitize_html


class TestRenderMarkdown:
    """Markdown features used by provider answers."""

    def test_emphasis_and_inline_code(self):
        html = format_answer("Use **bold** and `code`.")
        assert "<strong>bold</strong>" in html
        assert "<code>code</code>" in html

    def test_fenced_code_is_highlighted(self):
        html = format_answer("```python\ndef f():\n    return 1\n```")
        assert 'class="highlight"' in html
        assert "<pre>" in html
        assert "<span" in html

    def test_tables(self):
        html = format_answer("| a | b |\n|---|---|\n| 1 | 2 |")
        assert "<table>" in html
        assert "<td>1</td>" in html

    def test_lists(self):
        html = format_answer("- one\n- two")
        assert "<ul>" in html
        assert html.count("<li>") == 2

    def test_single_newline_becomes_break(self):
        assert "<br" in format_answer("line one\nline two")

    def test_empty_input(self):
        assert format_answer("") == ""
        assert format_answer("   \n ") == ""


class TestSanitisation:
    """Untrusted markup never reaches the client."""

    def test_raw_script_is_escaped(self):
        html = format_answer("Hi <script>alert(1)</script>")
        assert "<script" not in html
        assert "&lt;script&gt;" in html

    def test_raw_html_is_not_passed_through(self):
        html = render_markdown('<div onclick="x()">hi</div>')
        assert "<div onclick" not in html

    def test_javascript_links_removed(self):
        html = format_answer("[click](javascript:void)")
        assert "javascript:" not in html

    def test_safe_links_kept_with_rel(self):
        html = format_answer("[docs](https://docs.python.org)")
        assert 'href="https://docs.python.org"' in html
        assert "noopener" in html
        assert "noreferrer" in html

    def test_sanitize_strips_disallowed_tags_and_attributes(self):
        html = sanitize_html(
            '<p onclick="x()">ok</p><img src="x" onerror="y()"><iframe></iframe>'
        )
        assert html == "<p>ok</p>"
