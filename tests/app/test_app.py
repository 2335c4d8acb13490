from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from indexport import app
from indexport.config import IndexingOptions, SearchEngineConfig, SiteConfig
from indexport.domain.bundles import BundleRegistry
from indexport.domain.errors import NothingToIndexError
from indexport.domain.indexing import IndexingResult

if TYPE_CHECKING:
    from indexport.app import Services
    from indexport.domain.descriptors import EntityDescriptor
    from indexport.domain.types import Document
    from tests.helpers.fakes import FakeEntitySource, FakeSearchIndex

INDEX = "test_articles_index"
ALIAS = "test_articles"


@pytest.fixture
def services(
    article_descriptor: EntityDescriptor,
    fake_source: FakeEntitySource,
    fake_index: FakeSearchIndex,
) -> Services:
    fake_source.add("article", {"id": 1, "title": "One"}, {"id": 2, "title": "Two"})
    return {
        "search_config": SearchEngineConfig(base_index_name="test"),
        "site": SiteConfig(website="https://example.org"),
        "source": fake_source,
        "search_index": fake_index,
        "registry": BundleRegistry({"article": article_descriptor}),
    }


def test_run_indexes_and_sets_alias(services: Services, fake_index: FakeSearchIndex) -> None:
    outcome = app.run(IndexingOptions(bundle="article", alias=True), **services)

    assert outcome == IndexingResult(processed=2, cursor=0, limit=2)
    assert set(fake_index.documents[INDEX]) == {1, 2}
    assert fake_index.aliases == {ALIAS: INDEX}


def test_run_simulate_only_counts(services: Services, fake_index: FakeSearchIndex) -> None:
    outcome = app.run(IndexingOptions(bundle="article", simulate=True, limit=1), **services)

    assert outcome == 1
    assert not fake_index.indices
    assert not fake_index.bulk_calls


def test_run_single_item(services: Services, fake_index: FakeSearchIndex) -> None:
    assert app.run(IndexingOptions(bundle="article", item_id=2), **services) is True
    assert fake_index.bulk_calls == [(INDEX, [2])]

    assert app.run(IndexingOptions(bundle="article", item_id=2, remove=True), **services) is True
    assert fake_index.documents[INDEX] == {}


def test_run_alias_only(services: Services, fake_index: FakeSearchIndex) -> None:
    assert app.run(IndexingOptions(bundle="article", alias_only=True), **services) is None
    assert fake_index.aliases == {ALIAS: INDEX}

    app.run(IndexingOptions(bundle="article", alias_only=True, remove=True), **services)
    assert fake_index.aliases == {}
    assert not fake_index.bulk_calls


def test_run_remove_index_and_alias(services: Services, fake_index: FakeSearchIndex) -> None:
    app.run(IndexingOptions(bundle="article", alias=True), **services)

    outcome = app.run(IndexingOptions(bundle="article", remove=True, alias=True), **services)

    assert outcome is True
    assert not fake_index.indices
    assert not fake_index.aliases


def test_run_without_entities(
    article_descriptor: EntityDescriptor,
    fake_source: FakeEntitySource,
    fake_index: FakeSearchIndex,
) -> None:
    with pytest.raises(NothingToIndexError):
        app.run(
            IndexingOptions(bundle="article"),
            source=fake_source,
            search_index=fake_index,
            registry=BundleRegistry({"article": article_descriptor}),
            search_config=SearchEngineConfig(base_index_name="test"),
        )


def test_module_level_operations(services: Services, fake_index: FakeSearchIndex) -> None:
    seen: list[Document] = []

    assert app.count("article", **services) == 2
    result = app.index("article", chunk_size=1, post_process_item=seen.append, **services)

    assert result.processed == 2
    assert [document["id"] for document in seen] == [2, 1]
    assert fake_index.bulk_calls == [(INDEX, [2]), (INDEX, [1])]

    assert app.index_item("article", 1, **services)
    assert app.remove_item("article", 1, **services)
    app.set_alias("article", **services)
    assert fake_index.aliases == {ALIAS: INDEX}
    assert app.remove_index("article", **services)
