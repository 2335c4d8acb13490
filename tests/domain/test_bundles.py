from __future__ import annotations

from datetime import UTC, datetime

import pytest

from indexport.config import ConfigurationError
from indexport.domain.bundles import (
    BundleRegistry,
    country_hook,
    disaster_hook,
    report_hook,
    source_hook,
    topic_hook,
)
from indexport.domain.descriptors import (
    EntityCategory,
    EntityDescriptor,
    JoinedField,
    ReferenceField,
)
from tests.helpers.fakes import make_processor


def _term(name: str, *references: str) -> EntityDescriptor:
    return EntityDescriptor(
        name=name,
        category=EntityCategory.TAXONOMY_TERM,
        index=f"{name}s",
        references=tuple(
            ReferenceField(f"field_{bundle}", bundle, bundle) for bundle in references
        ),
    )


def test_default_registry_is_consistent(registry: BundleRegistry) -> None:
    assert "report" in registry
    assert len(registry) > 10
    for name in registry:
        descriptor = registry.get(name)
        assert descriptor.schema is not None
        assert "id" in descriptor.schema()


def test_report_dependencies_come_before_their_dependants(registry: BundleRegistry) -> None:
    dependencies = registry.dependencies("report")

    assert "report" not in dependencies
    assert {"country", "source", "disaster", "disaster_type"} <= set(dependencies)
    assert dependencies.index("country") < dependencies.index("source")
    assert dependencies.index("disaster_type") < dependencies.index("disaster")


def test_unknown_bundle_lists_valid_ones(registry: BundleRegistry) -> None:
    with pytest.raises(ConfigurationError, match="Valid ones are"):
        registry.get("nonsense")


def test_registry_rejects_unknown_references() -> None:
    with pytest.raises(ConfigurationError, match="unknown bundle"):
        BundleRegistry({"a": _term("a", "missing")})


def test_registry_rejects_self_references() -> None:
    with pytest.raises(ConfigurationError, match="references itself"):
        BundleRegistry({"a": _term("a", "a")})


def test_registry_rejects_cycles() -> None:
    with pytest.raises(ConfigurationError, match="Cyclic bundle dependency: a -> b -> a"):
        BundleRegistry({"a": _term("a", "b"), "b": _term("b", "a")})


def test_registry_rejects_mismatched_keys() -> None:
    with pytest.raises(ConfigurationError, match="does not match"):
        BundleRegistry({"b": _term("a")})


def test_descriptor_rejects_duplicate_aliases() -> None:
    with pytest.raises(ConfigurationError, match="duplicate aliases"):
        EntityDescriptor(
            name="page",
            category=EntityCategory.NODE,
            index="pages",
            fields={"title": "title"},
            joins=(JoinedField("field_title", "title"),),
        )


def test_descriptor_rejects_unknown_category_and_directives() -> None:
    with pytest.raises(ConfigurationError):
        EntityDescriptor(name="page", category="comment", index="pages")  # type: ignore[arg-type]
    with pytest.raises(ConfigurationError):
        EntityDescriptor(
            name="page",
            category=EntityCategory.NODE,
            index="pages",
            conversions={"title": ("shout",)},  # type: ignore[dict-item]
        )


def test_report_hook_builds_headline_from_body() -> None:
    processor = make_processor(clock=datetime(2024, 1, 1, tzinfo=UTC))
    document = {
        "date_created": 1000,
        "headline": True,
        "headline_title": "Big news",
        "headline_image": [{"id": 3}],
        "body-html": "<p>" + "word " * 100 + "</p>",
        "origin": "someone@example.org",
        "disaster": [
            {"id": 1, "status": "current"},
            {"id": 2, "status": "draft"},
        ],
    }

    report_hook(document, processor)

    assert document["date"] == {"created": 1000, "original": 1000}
    assert document["headline"]["title"] == "Big news"
    assert document["headline"]["image"] == {"id": 3}
    assert document["headline"]["summary"].endswith("...")
    assert len(document["headline"]["summary"]) <= 303
    assert "origin" not in document
    assert document["disaster"] == [{"id": 1, "status": "current"}]


def test_report_hook_drops_headline_without_title() -> None:
    document: dict[str, object] = {"headline": True, "disaster": [{"id": 2, "status": "draft"}]}

    report_hook(document, make_processor())

    assert "headline" not in document
    assert "disaster" not in document


def test_topic_hook_collects_rivers() -> None:
    document: dict[str, object] = {
        "reports_search": [{"url": "https://example.org/updates", "override": 1}],
        "sections": [{"url": "https://example.org/maps", "title": "Maps"}],
    }

    topic_hook(document, make_processor())

    assert document["rivers"] == [
        {
            "url": "https://example.org/updates",
            "override": 1,
            "id": "reports",
            "title": "Latest Updates",
        },
        {"id": "section-1", "url": "https://example.org/maps", "title": "Maps"},
    ]


def test_country_hook_sets_location_and_current_flag() -> None:
    document: dict[str, object] = {"status": "current", "latitude": 12.5, "longitude": 18.0}

    country_hook(document, make_processor())

    assert document == {"status": "current", "current": True, "location": [18.0, 12.5]}


def test_disaster_hook_normalizes_status_and_profile() -> None:
    document: dict[str, object] = {
        "status": "current",
        "date_event": 500,
        "description": "text",
        "description-html": "<p>text</p>",
    }

    disaster_hook(document, make_processor())

    assert document == {
        "status": "ongoing",
        "current": True,
        "date": {"event": 500, "created": 500},
    }


def test_source_hook_maps_content_types() -> None:
    document: dict[str, object] = {"content_type": [0, 1, 9]}

    source_hook(document, make_processor())

    assert document["content_type"] == ["job", "report"]
