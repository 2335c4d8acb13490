from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from indexport.domain.bundles import BundleRegistry, default_registry
from indexport.domain.descriptors import EntityCategory, EntityDescriptor, JoinedField
from indexport.domain.types import Directive, FieldEncoding
from tests.helpers.drupal import create_entity_tables
from tests.helpers.fakes import FakeEntitySource, FakeSearchIndex

if TYPE_CHECKING:
    from collections.abc import Iterator

    import sqlalchemy as sa
    from sqlalchemy.engine import Engine


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DATABASE_URI",
        "MYSQL_HOST",
        "MYSQL_PORT",
        "MYSQL_USER",
        "MYSQL_PASSWORD",
        "MYSQL_DATABASE",
        "ELASTICSEARCH_URL",
        "ELASTICSEARCH_MAX_REQUESTS_PER_SECOND",
        "INDEXPORT_BASE_INDEX_NAME",
        "INDEXPORT_TAG",
        "INDEXPORT_SHARDS",
        "INDEXPORT_REPLICAS",
        "INDEXPORT_WEBSITE",
        "INDEXPORT_FILES_PATH",
        "INDEXPORT_LEGACY_HOSTS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(scope="session")
def registry() -> BundleRegistry:
    return default_registry()


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite+pysqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def drupal_schema(sqlite_engine: Engine, registry: BundleRegistry) -> sa.MetaData:
    """Tables read by every default bundle, created empty."""

    return create_entity_tables(sqlite_engine, registry.descriptors.values())


@pytest.fixture
def article_descriptor() -> EntityDescriptor:
    """Small node bundle with a couple of joined fields and no references."""

    return EntityDescriptor(
        name="article",
        category=EntityCategory.NODE,
        index="articles",
        fields={"title": "title", "date_created": "created"},
        joins=(
            JoinedField("body", "body"),
            JoinedField("field_keywords", "keywords", FieldEncoding.MULTI_VALUE),
        ),
        conversions={"date_created": (Directive.TIME,), "body": (Directive.HTML,)},
    )


@pytest.fixture
def fake_source() -> FakeEntitySource:
    return FakeEntitySource()


@pytest.fixture
def fake_index() -> FakeSearchIndex:
    return FakeSearchIndex()
