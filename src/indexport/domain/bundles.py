"""Bundle registry and the default bundle table.

Each bundle is a plain :class:`EntityDescriptor`; per-kind behaviour lives in the
hook functions below rather than in subclasses.
"""

from __future__ import annotations

import textwrap
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from indexport.config.errors import ConfigurationError

from .descriptors import EntityCategory, EntityDescriptor, JoinedField, ReferenceField
from .mapping import Mapping as SchemaMapping
from .types import Directive, FieldEncoding

if TYPE_CHECKING:
    from typing import Any

    from .descriptors import DocumentHook, SchemaFactory
    from .processing import Processor
    from .types import Document


@dataclass(frozen=True, slots=True)
class BundleRegistry:
    """Immutable name -> descriptor table, validated once at construction."""

    descriptors: Mapping[str, EntityDescriptor] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "descriptors", dict(self.descriptors))
        for name, descriptor in self.descriptors.items():
            if name != descriptor.name:
                raise ConfigurationError(f"Bundle key {name!r} does not match {descriptor.name!r}")
            for bundle in descriptor.referenced_bundles():
                if bundle == name:
                    raise ConfigurationError(f"Bundle {name!r} references itself")
                if bundle not in self.descriptors:
                    raise ConfigurationError(
                        f"Bundle {name!r} references unknown bundle {bundle!r}"
                    )
        for name in self.descriptors:
            self.dependencies(name)

    def __contains__(self, bundle: object) -> bool:
        return bundle in self.descriptors

    def __iter__(self) -> Iterator[str]:
        return iter(self.descriptors)

    def __len__(self) -> int:
        return len(self.descriptors)

    def get(self, bundle: str) -> EntityDescriptor:
        try:
            return self.descriptors[bundle]
        except KeyError:
            valid = ", ".join(self.descriptors)
            raise ConfigurationError(
                f"No descriptor for the bundle {bundle!r}. Valid ones are: {valid}"
            ) from None

    def dependencies(self, bundle: str) -> tuple[str, ...]:
        """Referenced bundles of ``bundle``, dependencies first, excluding itself."""

        ordered: dict[str, None] = {}

        def visit(name: str, path: tuple[str, ...]) -> None:
            for referenced in self.get(name).referenced_bundles():
                if referenced in path:
                    cycle = " -> ".join((*path, referenced))
                    raise ConfigurationError(f"Cyclic bundle dependency: {cycle}")
                if referenced not in ordered:
                    visit(referenced, (*path, referenced))
                    ordered[referenced] = None

        visit(bundle, (bundle,))
        return tuple(ordered)


# Sub-fields copied from referenced records.
COUNTRY_FIELDS: Final = ("id", "name", "shortname", "iso3", "location")
SOURCE_FIELDS: Final = (
    "id",
    "name",
    "shortname",
    "longname",
    "spanish_name",
    "type",
    "homepage",
    "disclaimer",
)
TERM_FIELDS: Final = ("id", "name")
CODED_TERM_FIELDS: Final = ("id", "name", "code")
DISASTER_FIELDS: Final = ("id", "name", "glide", "type", "status")

PUBLISHED_DISASTER_STATUSES: Final = frozenset({"alert", "current", "ongoing", "past"})
HEADLINE_SUMMARY_LENGTH: Final = 300
SOURCE_CONTENT_TYPES: Final = ("job", "report", "training")
TOPIC_RIVERS: Final = (
    ("disasters", "Disasters"),
    ("jobs", "Jobs"),
    ("reports", "Latest Updates"),
    ("training", "Training"),
)

NODE_FIELDS: Final = {
    "title": "title",
    "date_created": "created",
    "date_changed": "changed",
    "status": "moderation_status",
}
TERM_BASE_FIELDS: Final = {"name": "name", "description": "description__value"}

_TIME: Final = (Directive.TIME,)
_NODE_CONVERSIONS: Final = {"date_created": _TIME, "date_changed": _TIME}


def _join(
    field_name: str,
    alias: str,
    encoding: FieldEncoding = FieldEncoding.COLUMN,
    column: str = "value",
) -> JoinedField:
    return JoinedField(field_name=field_name, alias=alias, encoding=encoding, column=column)


def _ref(field_name: str, alias: str, bundle: str, subfields: tuple[str, ...]) -> ReferenceField:
    return ReferenceField(field_name=field_name, alias=alias, bundle=bundle, subfields=subfields)


# Hooks.


def _group_dates(document: Document, *names: str) -> None:
    for name in names:
        value = document.pop(f"date_{name}", None)
        if value is not None:
            document.setdefault("date", {})[name] = value


def _city_compat(document: Document) -> None:
    if "city" in document:
        document["city"] = [{"name": document["city"]}]


def report_hook(document: Document, processor: Processor) -> None:
    _group_dates(document, "created", "changed", "original")
    dates = document.get("date", {})
    if "original" not in dates and "created" in dates:
        dates["original"] = dates["created"]

    title = document.pop("headline_title", None)
    summary = document.pop("headline_summary", None)
    image = document.pop("headline_image", None)
    if document.get("headline") and title:
        headline: dict[str, Any] = {"title": title}
        if summary:
            headline["summary"] = summary
        elif document.get("body-html"):
            text = processor.renderer.strip_tags(document["body-html"]).strip()
            if len(text) > HEADLINE_SUMMARY_LENGTH:
                text = textwrap.wrap(text, HEADLINE_SUMMARY_LENGTH)[0] + "..."
            headline["summary"] = text
        if image:
            headline["image"] = image[0] if isinstance(image, list) else image
        document["headline"] = headline
    else:
        document.pop("headline", None)

    origin = document.get("origin")
    if isinstance(origin, str) and "@" in origin:
        del document["origin"]

    disasters = document.get("disaster")
    if isinstance(disasters, list):
        published = [
            disaster
            for disaster in disasters
            if isinstance(disaster, dict)
            and disaster.get("status") in PUBLISHED_DISASTER_STATUSES
        ]
        if published:
            document["disaster"] = published
        else:
            del document["disaster"]


def job_hook(document: Document, _processor: Processor) -> None:
    _group_dates(document, "created", "changed", "closing")
    _city_compat(document)


def training_hook(document: Document, _processor: Processor) -> None:
    _group_dates(document, "created", "changed", "registration", "start", "end")
    _city_compat(document)
    if document.get("cost") == "free":
        document.pop("fee_information", None)


def dated_node_hook(document: Document, _processor: Processor) -> None:
    _group_dates(document, "created", "changed")


def topic_hook(document: Document, _processor: Processor) -> None:
    _group_dates(document, "created", "changed")
    rivers: list[dict[str, Any]] = []
    for river_id, title in TOPIC_RIVERS:
        searches = document.pop(f"{river_id}_search", None)
        if searches:
            rivers.append({**searches[0], "id": river_id, "title": title})
    for position, section in enumerate(document.pop("sections", None) or [], start=1):
        rivers.append({"id": f"section-{position}", **section})
    if rivers:
        document["rivers"] = rivers


def country_hook(document: Document, _processor: Processor) -> None:
    document["current"] = document.get("status") == "current"
    latitude = document.pop("latitude", None)
    longitude = document.pop("longitude", None)
    if latitude is not None and longitude is not None:
        document["location"] = [longitude, latitude]


def disaster_hook(document: Document, _processor: Processor) -> None:
    event = document.pop("date_event", None)
    if event is not None:
        # The event date doubles as creation date when none is recorded.
        document.setdefault("date", {}).update(event=event, created=event)
    _group_dates(document, "created", "changed")

    if document.get("status") in {"current", "ongoing"}:
        document["current"] = True
        document["status"] = "ongoing"

    if not document.pop("show_profile", False):
        document.pop("description", None)
        document.pop("description-html", None)


def source_hook(document: Document, _processor: Processor) -> None:
    content_types = document.get("content_type")
    if isinstance(content_types, list):
        names = [
            SOURCE_CONTENT_TYPES[value]
            for value in content_types
            if 0 <= value < len(SOURCE_CONTENT_TYPES)
        ]
        if names:
            document["content_type"] = names
        else:
            del document["content_type"]


def taxonomy_hook(document: Document, _processor: Processor) -> None:
    document.pop("url", None)
    document.pop("url_alias", None)


# Schemas.


def _node_schema() -> SchemaMapping:
    return (
        SchemaMapping()
        .add_integer("id")
        .add_string("uuid", index=False)
        .add_string("url", index=False)
        .add_string("url_alias", index=False)
        .add_status()
        .add_string("title", True, True, suggest=True)  # noqa: FBT003
    )


def _country_taxonomy(mapping: SchemaMapping, name: str) -> SchemaMapping:
    return (
        mapping.add_taxonomy(name, ("shortname", "iso3"))
        .add_geo_point(f"{name}.location")
        .add_boolean(f"{name}.primary")
    )


def _source_taxonomy(mapping: SchemaMapping) -> SchemaMapping:
    return (
        mapping.add_taxonomy("source", ("shortname", "longname", "spanish_name"))
        .add_string("source.homepage", index=None)
        .add_string("source.disclaimer", index=None)
        .add_taxonomy("source.type")
    )


def report_schema() -> dict[str, Any]:
    mapping = (
        _node_schema()
        .add_string("origin", index=False)
        .add_string("body")
        .add_string("body-html", index=None)
        .add_dates("date", ("created", "changed", "original"))
        .add_string("headline.title", True, True)  # noqa: FBT003
        .add_string("headline.summary")
        .add_image("headline.image")
        .add_taxonomy("language", ("code",))
    )
    _country_taxonomy(mapping, "primary_country")
    _country_taxonomy(mapping, "country")
    _source_taxonomy(mapping)
    return (
        mapping.add_taxonomy("disaster", ("glide",))
        .add_taxonomy("disaster.type")
        .add_string("disaster.status", index=False)
        .add_taxonomy("format")
        .add_taxonomy("theme")
        .add_taxonomy("disaster_type", ("code",))
        .add_taxonomy("vulnerable_groups")
        .add_taxonomy("ocha_product")
        .add_taxonomy("feature")
        .add_image("image")
        .add_file("file")
        .export()
    )


def job_schema() -> dict[str, Any]:
    mapping = (
        _node_schema()
        .add_string("body")
        .add_string("body-html", index=None)
        .add_string("how_to_apply")
        .add_string("how_to_apply-html", index=None)
        .add_dates("date", ("created", "changed", "closing"))
        .add_taxonomy("city")
        .add_taxonomy("language", ("code",))
    )
    _country_taxonomy(mapping, "country")
    _source_taxonomy(mapping)
    return (
        mapping.add_taxonomy("theme")
        .add_taxonomy("type")
        .add_taxonomy("experience")
        .add_taxonomy("career_categories")
        .export()
    )


def training_schema() -> dict[str, Any]:
    mapping = (
        _node_schema()
        .add_string("body")
        .add_string("body-html", index=None)
        .add_string("how_to_register")
        .add_string("how_to_register-html", index=None)
        .add_string("fee_information")
        .add_string("cost", index=False)
        .add_string("event_url", index=False)
        .add_dates("date", ("created", "changed", "registration", "start", "end"))
        .add_taxonomy("city")
        .add_taxonomy("language", ("code",))
        .add_taxonomy("training_language", ("code",))
    )
    _country_taxonomy(mapping, "country")
    _source_taxonomy(mapping)
    return (
        mapping.add_taxonomy("theme")
        .add_taxonomy("type")
        .add_taxonomy("format")
        .add_taxonomy("career_categories")
        .export()
    )


def blog_schema() -> dict[str, Any]:
    return (
        _node_schema()
        .add_string("author", index=False)
        .add_string("body")
        .add_string("body-html", index=None)
        .add_dates("date", ("created", "changed"))
        .add_taxonomy("tags")
        .add_image("image")
        .add_image("attached_image")
        .export()
    )


def book_schema() -> dict[str, Any]:
    return (
        _node_schema()
        .add_string("body")
        .add_string("body-html", index=None)
        .add_dates("date", ("created", "changed"))
        .export()
    )


def topic_schema() -> dict[str, Any]:
    return (
        _node_schema()
        .add_boolean("featured")
        .add_string("introduction")
        .add_string("introduction-html", index=None)
        .add_string("overview")
        .add_string("overview-html", index=None)
        .add_string("resources")
        .add_string("resources-html", index=None)
        .add_dates("date", ("created", "changed"))
        .add_image("icon")
        .add_river_search("rivers")
        .add_taxonomy("theme")
        .add_taxonomy("disaster_type", ("code",))
        .export()
    )


def _term_schema() -> SchemaMapping:
    return (
        SchemaMapping()
        .add_integer("id")
        .add_string("uuid", index=False)
        .add_string("url", index=False)
        .add_string("url_alias", index=False)
        .add_string("name", True, True, suggest=True)  # noqa: FBT003
        .add_string("description")
        .add_string("description-html", index=None)
    )


def country_schema() -> dict[str, Any]:
    return (
        _term_schema()
        .add_status()
        .add_boolean("current")
        .add_boolean("featured")
        .add_geo_point("location")
        .add_string("shortname", True, True)  # noqa: FBT003
        .add_string("iso3", True, True)  # noqa: FBT003
        .export()
    )


def disaster_schema() -> dict[str, Any]:
    mapping = (
        _term_schema()
        .add_status()
        .add_boolean("current")
        .add_string("glide", True, True)  # noqa: FBT003
        .add_string("related_glide", index=False)
        .add_dates("date", ("created", "changed", "event"))
    )
    _country_taxonomy(mapping, "primary_country")
    _country_taxonomy(mapping, "country")
    return (
        mapping.add_taxonomy("primary_type", ("code",))
        .add_taxonomy("type", ("code",))
        .add_boolean("type.primary")
        .export()
    )


def source_schema() -> dict[str, Any]:
    mapping = (
        _term_schema()
        .add_status()
        .add_string("homepage", index=None)
        .add_string("disclaimer", index=None)
        .add_string("content_type", index=False)
        .add_string("shortname", True, True)  # noqa: FBT003
        .add_string("longname", True, True)  # noqa: FBT003
        .add_string("spanish_name", True, True)  # noqa: FBT003
        .add_taxonomy("type")
    )
    _country_taxonomy(mapping, "country")
    return mapping.export()


def coded_term_schema() -> dict[str, Any]:
    return _term_schema().add_string("code", index=False).export()


def term_schema() -> dict[str, Any]:
    return _term_schema().export()


# Descriptors.


def _node(
    name: str,
    index: str,
    *,
    joins: tuple[JoinedField, ...] = (),
    references: tuple[ReferenceField, ...] = (),
    conversions: Mapping[str, tuple[Directive, ...]] | None = None,
    hook: DocumentHook = dated_node_hook,
    schema: SchemaFactory | None = None,
) -> EntityDescriptor:
    return EntityDescriptor(
        name=name,
        category=EntityCategory.NODE,
        index=index,
        fields=NODE_FIELDS,
        joins=joins,
        references=references,
        conversions={**_NODE_CONVERSIONS, **(conversions or {})},
        hook=hook,
        schema=schema,
    )


def _term(
    name: str,
    index: str,
    *,
    fields: Mapping[str, str] = TERM_BASE_FIELDS,
    joins: tuple[JoinedField, ...] = (),
    references: tuple[ReferenceField, ...] = (),
    conversions: Mapping[str, tuple[Directive, ...]] | None = None,
    preload: bool = True,
    hook: DocumentHook | None = taxonomy_hook,
    schema: SchemaFactory = term_schema,
) -> EntityDescriptor:
    return EntityDescriptor(
        name=name,
        category=EntityCategory.TAXONOMY_TERM,
        index=index,
        fields=fields,
        joins=joins,
        references=references,
        conversions=conversions or {},
        preload=preload,
        hook=hook,
        schema=schema,
    )


_VOCABULARIES: Final = {
    "career_category": "career_categories",
    "content_format": "content_formats",
    "feature": "features",
    "job_type": "job_types",
    "job_experience": "job_experiences",
    "ocha_product": "ocha_products",
    "organization_type": "organization_types",
    "tag": "tags",
    "theme": "themes",
    "training_format": "training_formats",
    "training_type": "training_types",
    "vulnerable_group": "vulnerable_groups",
}


def default_descriptors() -> list[EntityDescriptor]:  # noqa: PLR0915
    country_refs = (
        _ref("field_primary_country", "primary_country", "country", COUNTRY_FIELDS),
        _ref("field_country", "country", "country", COUNTRY_FIELDS),
    )
    descriptors = [
        _node(
            "report",
            "reports",
            joins=(
                _join("field_original_publication_date", "date_original"),
                _join("body", "body"),
                _join("field_headline", "headline"),
                _join("field_headline_title", "headline_title"),
                _join("field_headline_summary", "headline_summary"),
                _join("field_headline_image", "headline_image", FieldEncoding.IMAGE_REFERENCE),
                _join("field_image", "image", FieldEncoding.IMAGE_REFERENCE),
                _join("field_file", "file", FieldEncoding.FILE_REFERENCE),
                _join("field_origin_notes", "origin"),
            ),
            references=(
                *country_refs,
                _ref("field_source", "source", "source", SOURCE_FIELDS),
                _ref("field_language", "language", "language", CODED_TERM_FIELDS),
                _ref("field_theme", "theme", "theme", TERM_FIELDS),
                _ref("field_content_format", "format", "content_format", TERM_FIELDS),
                _ref("field_ocha_product", "ocha_product", "ocha_product", TERM_FIELDS),
                _ref("field_disaster", "disaster", "disaster", DISASTER_FIELDS),
                _ref("field_disaster_type", "disaster_type", "disaster_type", CODED_TERM_FIELDS),
                _ref(
                    "field_vulnerable_groups",
                    "vulnerable_groups",
                    "vulnerable_group",
                    TERM_FIELDS,
                ),
                _ref("field_feature", "feature", "feature", TERM_FIELDS),
            ),
            conversions={
                "body": (Directive.LINKS, Directive.HTML),
                "date_original": _TIME,
                "headline": (Directive.BOOL,),
                "image": (Directive.SINGLE,),
                "country": (Directive.PRIMARY,),
                "primary_country": (Directive.SINGLE,),
            },
            hook=report_hook,
            schema=report_schema,
        ),
        _node(
            "job",
            "jobs",
            joins=(
                _join("field_job_closing_date", "date_closing"),
                _join("body", "body"),
                _join("field_how_to_apply", "how_to_apply"),
                _join("field_city", "city"),
            ),
            references=(
                _ref("field_country", "country", "country", COUNTRY_FIELDS),
                _ref("field_source", "source", "source", SOURCE_FIELDS),
                _ref("field_language", "language", "language", CODED_TERM_FIELDS),
                _ref("field_theme", "theme", "theme", TERM_FIELDS),
                _ref("field_job_type", "type", "job_type", TERM_FIELDS),
                _ref("field_job_experience", "experience", "job_experience", TERM_FIELDS),
                _ref(
                    "field_career_categories",
                    "career_categories",
                    "career_category",
                    TERM_FIELDS,
                ),
            ),
            conversions={
                "body": (Directive.LINKS, Directive.HTML_STRICT),
                "how_to_apply": (Directive.LINKS, Directive.HTML_STRICT),
                "date_closing": _TIME,
            },
            hook=job_hook,
            schema=job_schema,
        ),
        _node(
            "training",
            "training",
            joins=(
                _join("field_cost", "cost"),
                _join("field_registration_deadline", "date_registration"),
                _join("field_training_date", "date_start"),
                _join("field_training_date", "date_end", column="end_value"),
                _join("body", "body"),
                _join("field_link", "event_url", column="uri"),
                _join("field_fee_information", "fee_information"),
                _join("field_how_to_register", "how_to_register"),
                _join("field_city", "city"),
            ),
            references=(
                _ref("field_country", "country", "country", COUNTRY_FIELDS),
                _ref("field_source", "source", "source", SOURCE_FIELDS),
                _ref("field_language", "language", "language", CODED_TERM_FIELDS),
                _ref("field_theme", "theme", "theme", TERM_FIELDS),
                _ref("field_training_type", "type", "training_type", TERM_FIELDS),
                _ref("field_training_format", "format", "training_format", TERM_FIELDS),
                _ref(
                    "field_training_language",
                    "training_language",
                    "language",
                    CODED_TERM_FIELDS,
                ),
                _ref(
                    "field_career_categories",
                    "career_categories",
                    "career_category",
                    TERM_FIELDS,
                ),
            ),
            conversions={
                "body": (Directive.LINKS, Directive.HTML_STRICT),
                "how_to_register": (Directive.LINKS, Directive.HTML_STRICT),
                "date_registration": _TIME,
                "date_start": _TIME,
                "date_end": _TIME,
            },
            hook=training_hook,
            schema=training_schema,
        ),
        _node(
            "blog_post",
            "blog",
            joins=(
                _join("body", "body"),
                _join("field_author", "author"),
                _join("field_image", "image", FieldEncoding.IMAGE_REFERENCE),
                _join("field_attached_images", "attached_image", FieldEncoding.IMAGE_REFERENCE),
            ),
            references=(_ref("field_tags", "tags", "tag", TERM_FIELDS),),
            conversions={
                "body": (Directive.LINKS, Directive.HTML_IFRAME),
                "image": (Directive.SINGLE,),
            },
            schema=blog_schema,
        ),
        _node(
            "book",
            "book",
            joins=(_join("body", "body"),),
            conversions={"body": (Directive.LINKS, Directive.HTML_IFRAME)},
            schema=book_schema,
        ),
        _node(
            "topic",
            "topics",
            joins=(
                _join("body", "introduction"),
                _join("field_overview", "overview"),
                _join("field_resources", "resources"),
                _join("field_disasters_search", "disasters_search", FieldEncoding.RIVER_SEARCH),
                _join("field_jobs_search", "jobs_search", FieldEncoding.RIVER_SEARCH),
                _join("field_reports_search", "reports_search", FieldEncoding.RIVER_SEARCH),
                _join("field_training_search", "training_search", FieldEncoding.RIVER_SEARCH),
                _join("field_sections", "sections", FieldEncoding.RIVER_SEARCH),
                _join("field_icon", "icon", FieldEncoding.IMAGE_REFERENCE),
                _join("field_featured", "featured"),
            ),
            references=(
                _ref("field_theme", "theme", "theme", TERM_FIELDS),
                _ref("field_disaster_type", "disaster_type", "disaster_type", CODED_TERM_FIELDS),
            ),
            conversions={
                "introduction": (Directive.LINKS, Directive.HTML),
                "overview": (Directive.LINKS, Directive.HTML_IFRAME),
                "resources": (Directive.LINKS, Directive.HTML),
                "featured": (Directive.BOOL,),
                "icon": (Directive.SINGLE,),
            },
            hook=topic_hook,
            schema=topic_schema,
        ),
        _term(
            "country",
            "countries",
            fields={**TERM_BASE_FIELDS, "status": "moderation_status"},
            joins=(
                _join("field_shortname", "shortname"),
                _join("field_iso3", "iso3"),
                _join("field_featured", "featured"),
                _join("field_location", "latitude", column="lat"),
                _join("field_location", "longitude", column="lon"),
            ),
            conversions={
                "description": (Directive.LINKS, Directive.HTML),
                "featured": (Directive.BOOL,),
                "latitude": (Directive.FLOAT,),
                "longitude": (Directive.FLOAT,),
            },
            hook=country_hook,
            schema=country_schema,
        ),
        _term(
            "disaster",
            "disasters",
            fields={
                **TERM_BASE_FIELDS,
                "status": "moderation_status",
                "date_created": "created",
                "date_changed": "changed",
            },
            joins=(
                _join("field_disaster_date", "date_event"),
                _join("field_glide", "glide"),
                _join("field_glide_related", "related_glide"),
                _join("field_profile", "show_profile"),
            ),
            references=(
                *country_refs,
                _ref(
                    "field_primary_disaster_type",
                    "primary_type",
                    "disaster_type",
                    CODED_TERM_FIELDS,
                ),
                _ref("field_disaster_type", "type", "disaster_type", CODED_TERM_FIELDS),
            ),
            conversions={
                "description": (Directive.LINKS, Directive.HTML),
                "date_event": _TIME,
                "date_created": _TIME,
                "date_changed": _TIME,
                "show_profile": (Directive.BOOL,),
                "country": (Directive.PRIMARY,),
                "type": (Directive.PRIMARY,),
                "primary_country": (Directive.SINGLE,),
                "primary_type": (Directive.SINGLE,),
                "related_glide": (Directive.MULTI_STRING,),
            },
            preload=False,
            hook=disaster_hook,
            schema=disaster_schema,
        ),
        _term(
            "source",
            "sources",
            fields={**TERM_BASE_FIELDS, "status": "moderation_status"},
            joins=(
                _join("field_shortname", "shortname"),
                _join("field_longname", "longname"),
                _join("field_spanish_name", "spanish_name"),
                _join("field_homepage", "homepage", column="uri"),
                _join("field_disclaimer", "disclaimer"),
                _join("field_allowed_content_types", "content_type", FieldEncoding.MULTI_VALUE),
            ),
            references=(
                _ref("field_organization_type", "type", "organization_type", TERM_FIELDS),
                _ref("field_country", "country", "country", COUNTRY_FIELDS),
            ),
            conversions={
                "description": (Directive.LINKS, Directive.HTML),
                "content_type": (Directive.MULTI_INT,),
            },
            preload=False,
            hook=source_hook,
            schema=source_schema,
        ),
        _term(
            "language",
            "languages",
            joins=(_join("field_language_code", "code"),),
            schema=coded_term_schema,
        ),
        _term(
            "disaster_type",
            "disaster_types",
            joins=(_join("field_disaster_type_code", "code"),),
            schema=coded_term_schema,
        ),
    ]
    descriptors.extend(_term(name, index) for name, index in _VOCABULARIES.items())
    return descriptors


def default_registry() -> BundleRegistry:
    return BundleRegistry({descriptor.name: descriptor for descriptor in default_descriptors()})
