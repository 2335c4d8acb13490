"""Markdown rendering and HTML allowlist filtering."""

from __future__ import annotations

import html
from typing import TYPE_CHECKING, Final

import bleach
import markdown

if TYPE_CHECKING:
    from collections.abc import Collection

    from indexport.domain.ports import MarkupRenderer

MARKDOWN_EXTENSIONS: Final[tuple[str, ...]] = ("tables", "fenced_code", "sane_lists")

HTML_TAGS: Final[frozenset[str]] = frozenset(
    {
        "a",
        "abbr",
        "b",
        "blockquote",
        "br",
        "caption",
        "code",
        "dd",
        "del",
        "div",
        "dl",
        "dt",
        "em",
        "figcaption",
        "figure",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "hr",
        "i",
        "iframe",
        "img",
        "li",
        "ol",
        "p",
        "pre",
        "s",
        "span",
        "strong",
        "sub",
        "sup",
        "table",
        "tbody",
        "td",
        "tfoot",
        "th",
        "thead",
        "tr",
        "u",
        "ul",
    }
)
STRICT_HTML_TAGS: Final[frozenset[str]] = HTML_TAGS - {"img", "iframe"}

HTML_ATTRIBUTES: Final[dict[str, list[str]]] = {
    "a": ["href", "title", "target", "rel"],
    "abbr": ["title"],
    "img": ["src", "alt", "title", "width", "height"],
    "iframe": ["src", "title", "width", "height", "frameborder", "allowfullscreen"],
    "td": ["colspan", "rowspan"],
    "th": ["colspan", "rowspan", "scope"],
}


def render_markdown(text: str) -> str:
    return markdown.markdown(text, extensions=list(MARKDOWN_EXTENSIONS), output_format="html")


def sanitize_html(content: str, allowed_tags: Collection[str] = HTML_TAGS) -> str:
    """Drop every tag outside ``allowed_tags`` but keep its text."""

    return bleach.clean(
        content,
        tags=set(allowed_tags),
        attributes=HTML_ATTRIBUTES,
        protocols={"http", "https", "mailto"},
        strip=True,
    )


def strip_tags(content: str) -> str:
    return html.unescape(bleach.clean(content, tags=set(), attributes={}, strip=True))


class MarkdownRenderer:
    """:class:`MarkupRenderer` built on Python-Markdown and bleach."""

    def render(self, text: str) -> str:
        return render_markdown(text)

    def sanitize(self, content: str, *, strict: bool = False) -> str:
        return sanitize_html(content, STRICT_HTML_TAGS if strict else HTML_TAGS)

    def strip_tags(self, content: str) -> str:
        return strip_tags(content)


if TYPE_CHECKING:
    _renderer_check: MarkupRenderer = MarkdownRenderer()
