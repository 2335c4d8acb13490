"""Reusable in-memory fakes for the indexing ports."""

from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from indexport.adapters.html import MarkdownRenderer
from indexport.config import SearchEngineConfig, SiteConfig
from indexport.domain.indexing import Indexer
from indexport.domain.processing import Processor
from indexport.domain.references import ReferenceCache

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence
    from datetime import datetime

    from indexport.domain.bundles import BundleRegistry
    from indexport.domain.descriptors import EntityDescriptor
    from indexport.domain.filters import FilterConditions
    from indexport.domain.ports import EntitySource, SearchIndex
    from indexport.domain.types import Document, EntityId, Row


@dataclass
class FakeEntitySource:
    """Rows per bundle; honours cursor, limit, ids and base field filters."""

    rows: dict[str, dict[EntityId, Row]] = field(default_factory=dict)
    aliases: dict[EntityId, str] = field(default_factory=dict)
    fetch_calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    def add(self, bundle: str, *rows: Row) -> FakeEntitySource:
        table = self.rows.setdefault(bundle, {})
        for row in rows:
            table[int(row["id"])] = dict(row)
        return self

    def _matching(
        self,
        descriptor: EntityDescriptor,
        cursor: EntityId | None,
        conditions: FilterConditions | None,
    ) -> list[Row]:
        rows = sorted(
            self.rows.get(descriptor.name, {}).values(), key=lambda row: row["id"], reverse=True
        )
        if cursor is not None:
            rows = [row for row in rows if row["id"] <= cursor]
        if conditions:
            for alias, values in conditions.fields.items():
                rows = [row for row in rows if str(row.get(alias)) in values or "*" in values]
        return rows

    def latest_id(
        self,
        descriptor: EntityDescriptor,
        conditions: FilterConditions | None = None,
    ) -> EntityId | None:
        rows = self._matching(descriptor, None, conditions)
        return rows[0]["id"] if rows else None

    def count(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        conditions: FilterConditions | None = None,
    ) -> int:
        return len(self._matching(descriptor, cursor, conditions))

    def fetch_rows(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        limit: int | None = None,
        ids: Sequence[EntityId] | None = None,
        conditions: FilterConditions | None = None,
    ) -> dict[EntityId, Row]:
        self.fetch_calls.append(
            (descriptor.name, {"cursor": cursor, "limit": limit, "ids": ids})
        )
        rows = self._matching(descriptor, cursor, conditions)
        if ids is not None:
            rows = [row for row in rows if row["id"] in set(ids)]
        if limit is not None:
            rows = rows[:limit]
        return {row["id"]: deepcopy(row) for row in rows}

    def url_aliases(
        self,
        descriptor: EntityDescriptor,  # noqa: ARG002
        ids: Iterable[EntityId],
    ) -> dict[EntityId, str]:
        return {item_id: self.aliases[item_id] for item_id in ids if item_id in self.aliases}


@dataclass
class FakeSearchIndex:
    """Records every write; documents are kept per index name."""

    indices: dict[str, dict[str, Any]] = field(default_factory=dict)
    documents: dict[str, dict[EntityId, Document]] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    bulk_calls: list[tuple[str, list[EntityId]]] = field(default_factory=list)

    def create_index_if_missing(
        self,
        name: str,
        schema: Mapping[str, Any],
        *,
        shards: int,
        replicas: int,
    ) -> bool:
        if name in self.indices:
            return False
        self.indices[name] = {"schema": dict(schema), "shards": shards, "replicas": replicas}
        return True

    def bulk_upsert(self, name: str, documents: Sequence[tuple[EntityId, Document]]) -> None:
        self.bulk_calls.append((name, [document_id for document_id, _ in documents]))
        self.documents.setdefault(name, {}).update(documents)

    def delete_document(self, name: str, document_id: EntityId) -> bool:
        return self.documents.get(name, {}).pop(document_id, None) is not None

    def delete_index(self, name: str) -> bool:
        self.documents.pop(name, None)
        return self.indices.pop(name, None) is not None

    def add_alias(self, name: str, alias: str) -> None:
        self.aliases[alias] = name

    def remove_alias(self, name: str, alias: str) -> bool:
        if self.aliases.get(alias) != name:
            return False
        del self.aliases[alias]
        return True


def make_processor(
    *,
    site: SiteConfig | None = None,
    references: ReferenceCache | None = None,
    clock: datetime | None = None,
) -> Processor:
    processor = Processor(
        site=site or SiteConfig(website="https://example.org", files_path="/files/"),
        references=references if references is not None else ReferenceCache(),
        renderer=MarkdownRenderer(),
    )
    if clock is not None:
        processor.clock = lambda: clock
    return processor


def make_indexer(
    registry: BundleRegistry,
    source: FakeEntitySource,
    search_index: FakeSearchIndex,
    *,
    processor: Processor | None = None,
    search_config: SearchEngineConfig | None = None,
) -> Indexer:
    return Indexer(
        registry=registry,
        source=source,
        search_index=search_index,
        processor=processor or make_processor(),
        search_config=search_config or SearchEngineConfig(base_index_name="test"),
    )


if TYPE_CHECKING:
    _source_check: EntitySource = FakeEntitySource()
    _index_check: SearchIndex = FakeSearchIndex()
