# =============================================================================
# Answer Formatter — Markdown → Sanitized HTML
# =============================================================================
#
# Provider answers are markdown-flavoured text. The browser client displays
# HTML, so every answer is rendered once at creation time and stored next to
# the raw text as `formatted_answer`.
#
# PIPELINE:
#   1. Python-Markdown renders the text (fenced code, tables, sane lists,
#      newline-to-<br>), with Pygments highlighting fenced code blocks via
#      the codehilite extension (CSS classes, not inline styles).
#   2. nh3 strips everything outside an explicit tag/attribute allow-list,
#      which removes <script>, event handlers and javascript: URLs.
#      Raw HTML in the answer is escaped by step 1 before it gets here.
#   3. Links are forced to `rel="noopener noreferrer"` and open in a new tab.
# =============================================================================

from __future__ import annotations

import logging

import markdown
import nh3

logger = logging.getLogger(__name__)

_EXTENSIONS = [
    "fenced_code",
    "codehilite",
    "tables",
    "sane_lists",
    "nl2br",
]

_EXTENSION_CONFIGS = {
    "codehilite": {
        "css_class": "highlight",
        "guess_lang": False,
        "use_pygments": True,
    },
}

ALLOWED_TAGS = {
    "a", "b", "blockquote", "br", "code", "del", "div", "em", "h1", "h2",
    "h3", "h4", "h5", "h6", "hr", "i", "li", "ol", "p", "pre", "span",
    "strong", "table", "tbody", "td", "th", "thead", "tr", "ul",
}

ALLOWED_ATTRIBUTES = {
    "a": {"href", "title"},
    "code": {"class"},
    "div": {"class"},
    "pre": {"class"},
    "span": {"class"},
    "td": {"align"},
    "th": {"align"},
}

ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}


class _EscapeRawHtml(markdown.Extension):
    """Drop Python-Markdown's raw-HTML passthrough so tags render as text."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:  # noqa: N802
        md.preprocessors.deregister("html_block")
        md.inlinePatterns.deregister("html")


def render_markdown(text: str) -> str:
    """Render markdown to (unsanitized) HTML."""
    md = markdown.Markdown(
        extensions=[*_EXTENSIONS, _EscapeRawHtml()],
        extension_configs=_EXTENSION_CONFIGS,
        output_format="html",
    )
    return md.convert(text)


def sanitize_html(html: str) -> str:
    """Keep only allow-listed tags/attributes and safe link schemes."""
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_URL_SCHEMES,
        link_rel="noopener noreferrer",
        set_tag_attribute_values={"a": {"target": "_blank"}},
    )


def format_answer(text: str) -> str:
    """
    Convert a provider answer to sanitized HTML.

    Empty input yields an empty string.
    """
    if not text or not text.strip():
        return ""
    html = render_markdown(text)
    cleaned = sanitize_html(html)
    logger.debug(
        "Formatted answer: %d markdown chars → %d html chars",
        len(text), len(cleaned),
    )
    return cleaned
