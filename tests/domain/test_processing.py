from __future__ import annotations

from datetime import UTC, datetime

import pytest

from indexport.config import SiteConfig
from indexport.domain.bundles import BundleRegistry
from indexport.domain.descriptors import EntityDescriptor
from indexport.domain.packed import FILE_COLUMNS, IMAGE_COLUMNS, encode_tuples
from indexport.domain.processing import Processor
from indexport.domain.references import ReferenceCache
from indexport.domain.types import Directive
from tests.helpers.fakes import make_processor

NOW = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
STYLES = "https://example.org/files/styles"


@pytest.fixture
def processor() -> Processor:
    return make_processor(clock=NOW)


def test_process_builds_a_document(
    processor: Processor,
    article_descriptor: EntityDescriptor,
) -> None:
    row = {
        "id": "12",
        "uuid": "uuid-12",
        "title": "Floods",
        "date_created": "1700000000",
        "body": "Water **rising**",
        "keywords": "flood%%%rain%%%flood",
        "summary": "",
        "missing": None,
    }

    document = processor.process(article_descriptor, row, "/news/floods update")

    assert document["id"] == 12
    assert document["url"] == "https://example.org/node/12"
    assert document["url_alias"] == "https://example.org/news/floods%20update"
    assert document["date_created"] == 1_700_000_000_000
    assert "<strong>rising</strong>" in document["body-html"]
    assert document["keywords"] == ["flood", "rain"]
    assert document["timestamp"] == NOW.isoformat()
    assert "summary" not in document
    assert "missing" not in document


def test_process_runs_post_process_item_last(article_descriptor: EntityDescriptor) -> None:
    seen: list[dict[str, object]] = []
    processor = make_processor(clock=NOW)
    processor.post_process_item = seen.append

    document = processor.process(article_descriptor, {"id": 3, "title": "Hello"})

    assert seen == [document]


@pytest.mark.parametrize(
    ("directive", "value", "expected"),
    [
        (Directive.BOOL, "0", False),
        (Directive.BOOL, "off", False),
        (Directive.BOOL, "1", True),
        (Directive.INT, "42", 42),
        (Directive.INT, "4.7", 4),
        (Directive.FLOAT, "2.5", 2.5),
        (Directive.TIME, 1_600_000_000, 1_600_000_000_000),
        (Directive.TIME, "2024-01-02T00:00:00", 1_704_153_600_000),
        (Directive.TIME, "2024-01-02T02:00:00+02:00", 1_704_153_600_000),
        (Directive.MULTI_INT, "3%%%x%%%1%%%3", [3, 1]),
        (Directive.SINGLE, ["first", "second"], "first"),
        (
            Directive.MULTI_STRING,
            "GL-2024-01, FL-2024-02  EQ-1",
            ["GL-2024-01", "FL-2024-02", "EQ-1"],
        ),
    ],
)
def test_convert_coerces_values(
    processor: Processor,
    directive: Directive,
    value: object,
    expected: object,
) -> None:
    document: dict[str, object] = {"field": value}

    processor.convert(document, "field", directive)

    assert document["field"] == expected


@pytest.mark.parametrize(
    ("directive", "value"),
    [
        (Directive.INT, "many"),
        (Directive.FLOAT, "n/a"),
        (Directive.TIME, "not a date"),
        (Directive.SINGLE, "scalar"),
        (Directive.SINGLE, []),
        (Directive.MULTI_STRING, 12),
        (Directive.MULTI_INT, "x%%%y"),
        (Directive.INT, float("nan")),
        (Directive.INT, float("inf")),
        (Directive.INT, "-inf"),
        (Directive.FLOAT, "nan"),
        (Directive.FLOAT, 10**400),
        (Directive.TIME, float("inf")),
        (Directive.TIME, "9" * 400),
    ],
)
def test_convert_drops_unconvertible_values(
    processor: Processor,
    directive: Directive,
    value: object,
) -> None:
    document: dict[str, object] = {"field": value}

    processor.convert(document, "field", directive)

    assert "field" not in document


def test_process_links_makes_links_absolute(processor: Processor) -> None:
    text = (
        '[report](/node/1) <a href="/country/afg">Afghanistan</a> '
        "<a href='/x'>x</a> https://www.example.org/updates //cdn.example.net/a.js"
    )

    result = processor.process_links(text)

    assert "[report](https://example.org/node/1)" in result
    assert 'href="https://example.org/country/afg"' in result
    assert "href='https://example.org/x'" in result
    assert "https://example.org/updates" in result
    assert "//cdn.example.net/a.js" in result


def test_links_directive_leaves_non_strings_alone(processor: Processor) -> None:
    document: dict[str, object] = {"body": ["not", "text"]}

    processor.convert(document, "body", Directive.LINKS)

    assert document["body"] == ["not", "text"]


def test_html_directives(processor: Processor) -> None:
    text = '![map](https://example.org/map.png)\n\n[iframe:640x480 "Clip"](https://video.example/v)'
    document: dict[str, object] = {"a": text, "b": text, "c": text}

    processor.convert(document, "a", Directive.HTML_IFRAME)
    processor.convert(document, "b", Directive.HTML_STRICT)
    processor.convert(document, "c", Directive.HTML)

    assert "<iframe" in str(document["a-html"])
    assert 'src="https://video.example/v"' in str(document["a-html"])
    assert "<img" in str(document["a-html"])
    assert "<img" not in str(document["b-html"])
    assert "<iframe" not in str(document["b-html"])
    assert "<iframe" not in str(document["c-html"])
    assert document["a"] == text


def test_html_directive_removes_stale_derived_key(processor: Processor) -> None:
    document: dict[str, object] = {"body": 12, "body-html": "<p>old</p>"}

    processor.convert(document, "body", Directive.HTML)

    assert "body-html" not in document


def test_html_sanitizer_drops_scripts(processor: Processor) -> None:
    html = processor.render_html("Hello <script>alert(1)</script> **there**")

    assert "<script" not in html
    assert "<strong>there</strong>" in html


def test_process_iframes_without_size() -> None:
    html = Processor.process_iframes("[iframe](https://video.example/v?a=1&b=2)")

    assert html == (
        '<iframe title="" src="https://video.example/v?a=1&amp;b=2" '
        'frameborder="0" allowfullscreen></iframe>'
    )


def test_process_image(processor: Processor) -> None:
    packed = encode_tuples(
        [
            {
                "delta": 1,
                "id": 8,
                "width": 800,
                "height": 600,
                "uri": "public://images/flood map.jpg",
                "filename": "flood map.jpg",
                "filesize": 1234,
                "copyright": "@OCHA",
                "caption": "Flood map",
            },
            {"delta": 0, "id": 7},
        ],
        IMAGE_COLUMNS,
    )

    (image,) = processor.process_image(packed)

    assert image == {
        "id": 8,
        "width": 800,
        "height": 600,
        "url": "https://example.org/files/images/flood%20map.jpg",
        "url-large": f"{STYLES}/attachment-large/public/images/flood%20map.jpg",
        "url-small": f"{STYLES}/attachment-small/public/images/flood%20map.jpg",
        "url-thumb": f"{STYLES}/m/public/images/flood%20map.jpg",
        "filename": "flood map.jpg",
        "mimetype": "image/jpeg",
        "filesize": 1234,
        "copyright": "OCHA",
        "caption": "Flood map",
    }


def _file_tuple(**overrides: object) -> dict[str, object]:
    record: dict[str, object] = {
        "delta": 0,
        "revision_id": 55,
        "uuid": "abc",
        "filename": "report.pdf",
        "filehash": "hash",
        "page_count": 3,
        "description": "Main report",
        "language": "en",
        "preview_uuid": "",
        "preview_page": 2,
        "preview_rotation": 90,
        "uri": "public://2024/01/report.pdf",
        "filemime": "application/pdf",
        "filesize": 999,
    }
    record.update(overrides)
    return record


def test_process_file_with_pdf_preview(processor: Processor) -> None:
    (record,) = processor.process_file(encode_tuples([_file_tuple()], FILE_COLUMNS))

    assert record["id"] == 55
    assert record["uuid"] == "abc"
    assert record["url"] == "https://example.org/files/2024/01/report.pdf"
    assert record["mimetype"] == "application/pdf"
    assert record["pagecount"] == 3
    assert record["preview"]["url"] == (
        "https://example.org/files/2024/01-pdf-previews/abc-report.png"
    )
    assert record["preview"]["version"] == "2-90"
    assert record["preview"]["url-thumb"] == (
        "https://example.org/files/styles/m/public/2024/01-pdf-previews/abc-report.png"
    )


@pytest.mark.parametrize(
    "overrides",
    [{"preview_rotation": 45}, {"preview_page": 0}, {"filename": "data.xlsx"}],
)
def test_process_file_skips_invalid_previews(
    processor: Processor,
    overrides: dict[str, object],
) -> None:
    (record,) = processor.process_file(encode_tuples([_file_tuple(**overrides)], FILE_COLUMNS))

    assert "preview" not in record


def test_process_file_prefers_preview_uuid(processor: Processor) -> None:
    packed = encode_tuples([_file_tuple(preview_uuid="prev", preview_rotation="")], FILE_COLUMNS)

    (record,) = processor.process_file(packed)

    assert record["preview"]["url"].endswith("/2024/01-pdf-previews/prev-report.png")
    assert record["preview"]["version"] == "2-0"


def test_process_file_preview_decodes_the_filename(processor: Processor) -> None:
    packed = encode_tuples([_file_tuple(filename="flash%20update.pdf")], FILE_COLUMNS)

    (record,) = processor.process_file(packed)

    assert record["filename"] == "flash%20update.pdf"
    assert record["preview"]["url"].endswith("/2024/01-pdf-previews/abc-flash%20update.png")


def test_process_river_search(processor: Processor) -> None:
    packed = (
        "1###https://example.org/updates?x=2###Second###"
        "%%%0###https://example.org/jobs###Jobs###1"
    )

    rivers = processor.process_river_search(packed)

    assert rivers == [
        {"url": "https://example.org/jobs", "title": "Jobs", "override": 1},
        {"url": "https://example.org/updates?x=2", "title": "Second"},
    ]


def test_references_are_replaced_by_cached_records(registry: BundleRegistry) -> None:
    cache = ReferenceCache()
    cache.set(
        "country",
        {
            1: {"id": 1, "name": "Chad", "iso3": "tcd", "status": "normal"},
            2: {"id": 2, "name": "Mali", "iso3": "mli"},
        },
    )
    processor = make_processor(references=cache, clock=NOW)

    document = processor.process(
        registry.get("report"),
        {"id": 9, "title": "Update", "country": [1, 2, 77], "primary_country": [2], "source": [4]},
    )

    assert document["country"] == [
        {"id": 1, "name": "Chad", "iso3": "tcd"},
        {"id": 2, "name": "Mali", "iso3": "mli", "primary": True},
    ]
    assert document["primary_country"] == {"id": 2, "name": "Mali", "iso3": "mli"}
    assert "source" not in document


def test_flag_primary_on_single_object() -> None:
    document: dict[str, object] = {
        "type": {"id": 4, "name": "Flood"},
        "primary_type": {"id": 4},
    }

    Processor.flag_primary(document, "type")

    assert document["type"] == {"id": 4, "name": "Flood", "primary": True}


def test_file_url_keeps_absolute_urls() -> None:
    processor = make_processor(site=SiteConfig(website="https://example.org"))

    assert processor.file_url("https://cdn.example.org/a.png") == "https://cdn.example.org/a.png"
    assert processor.file_url("public://a b.png") == (
        "https://example.org/sites/reliefweb.int/files/a%20b.png"
    )
