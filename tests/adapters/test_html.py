from __future__ import annotations

from indexport.adapters.html import MarkdownRenderer, render_markdown, sanitize_html, strip_tags


def test_render_markdown_supports_tables() -> None:
    html = render_markdown("| a | b |\n|---|---|\n| 1 | 2 |")

    assert "<table>" in html
    assert "<td>1</td>" in html


def test_sanitize_html_keeps_allowed_markup_only() -> None:
    html = sanitize_html(
        '<p onclick="x()">Hi <a href="javascript:alert(1)">bad</a> '
        '<a href="https://example.org" style="color:red">good</a><form>f</form></p>'
    )

    assert "onclick" not in html
    assert "javascript:" not in html
    assert "style=" not in html
    assert '<a href="https://example.org">good</a>' in html
    assert "<form>" not in html
    assert "f</p>" in html


def test_strict_sanitizing_drops_media() -> None:
    renderer = MarkdownRenderer()
    content = (
        '<p><img src="https://example.org/a.png" alt="a">'
        '<iframe src="https://v.example"></iframe></p>'
    )

    assert "<img" in renderer.sanitize(content)
    assert "<img" not in renderer.sanitize(content, strict=True)
    assert "<iframe" not in renderer.sanitize(content, strict=True)


def test_strip_tags_returns_plain_text() -> None:
    assert strip_tags("<p>Fish &amp; <strong>chips</strong></p>") == "Fish & chips"
