"""Chunked, resumable indexing of one bundle into the search engine."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Any

from indexport.config.indexing import DEFAULT_CHUNK_SIZE

from .errors import NothingToIndexError
from .filters import parse_filter
from .mapping import Mapping

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping as MappingType

    from indexport.config.search import SearchEngineConfig

    from .bundles import BundleRegistry
    from .descriptors import EntityDescriptor
    from .filters import FilterConditions
    from .ports import EntitySource, SearchIndex
    from .processing import Processor
    from .references import ReferenceCache
    from .types import Document, EntityId, Row

log = getLogger(__name__)


class IndexingState(StrEnum):
    IDLE = "idle"
    COMPUTING_CURSOR = "computing_cursor"
    COMPUTING_LIMIT = "computing_limit"
    RESOLVING_MAPPING = "resolving_mapping"
    CHUNK_LOOP = "chunk_loop"
    COMPLETED = "completed"


@dataclass(slots=True, frozen=True)
class IndexingResult:
    """Outcome of a bulk run; ``cursor`` is where a follow-up run would resume."""

    processed: int
    cursor: EntityId
    limit: int


@dataclass(slots=True)
class Indexer:
    """Drive the indexing of bundles described by ``registry``.

    A bulk run walks entities from the newest id down. After every submitted chunk
    the cursor moves to one below the smallest id of that chunk, so a run that dies
    can be restarted from the last logged cursor; bulk submission is an upsert
    keyed by id.
    """

    registry: BundleRegistry
    source: EntitySource
    search_index: SearchIndex
    processor: Processor
    search_config: SearchEngineConfig
    state: IndexingState = field(default=IndexingState.IDLE)

    @property
    def references(self) -> ReferenceCache:
        return self.processor.references

    # Bulk.

    def index(
        self,
        bundle: str,
        *,
        offset: int = 0,
        limit: int = 0,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        filter_expression: str = "",
    ) -> IndexingResult:
        started = time.perf_counter()
        descriptor = self.registry.get(bundle)
        conditions = parse_filter(filter_expression, descriptor)

        self.state = IndexingState.COMPUTING_CURSOR
        cursor = self._starting_cursor(descriptor, offset, conditions)

        self.state = IndexingState.COMPUTING_LIMIT
        limit = self._effective_limit(descriptor, cursor, limit, conditions)

        self.state = IndexingState.RESOLVING_MAPPING
        index_path = self.ensure_index(descriptor)
        self.preload_references(descriptor)

        self.state = IndexingState.CHUNK_LOOP
        log.info(
            "Indexing %s into %s: limit=%s, offset=%s, chunk_size=%s",
            bundle,
            index_path,
            limit,
            cursor,
            chunk_size,
        )
        processed = 0
        while cursor > 0 and processed < limit:
            rows = self.source.fetch_rows(
                descriptor,
                cursor=cursor,
                limit=min(chunk_size, limit - processed),
                conditions=conditions,
            )
            if not rows:
                break
            documents = self.build_documents(descriptor, rows)
            self.search_index.bulk_upsert(index_path, list(documents.items()))
            cursor = min(rows) - 1
            processed += len(rows)
            log.info("Indexed %s/%s %s entities, next offset %s", processed, limit, bundle, cursor)

        self.state = IndexingState.COMPLETED
        log.info("Last indexed entity is %s", cursor + 1)
        log.info(
            "Indexed %s %s entities in %.2fs", processed, bundle, time.perf_counter() - started
        )
        return IndexingResult(processed=processed, cursor=cursor, limit=limit)

    def count(
        self,
        bundle: str,
        *,
        offset: int = 0,
        limit: int = 0,
        filter_expression: str = "",
    ) -> int:
        """Number of entities a bulk run with the same arguments would index."""

        descriptor = self.registry.get(bundle)
        conditions = parse_filter(filter_expression, descriptor)
        cursor = self._starting_cursor(descriptor, offset, conditions)
        return self._effective_limit(descriptor, cursor, limit, conditions)

    def _starting_cursor(
        self,
        descriptor: EntityDescriptor,
        offset: int,
        conditions: FilterConditions,
    ) -> EntityId:
        cursor = offset if offset > 0 else self.source.latest_id(descriptor, conditions)
        if cursor is None or cursor <= 0:
            raise NothingToIndexError(f"No entity to index for bundle {descriptor.name}.")
        return cursor

    def _effective_limit(
        self,
        descriptor: EntityDescriptor,
        cursor: EntityId,
        limit: int,
        conditions: FilterConditions,
    ) -> int:
        total = self.source.count(descriptor, cursor=cursor, conditions=conditions)
        return min(limit, total) if limit > 0 else total

    # Single items.

    def index_item(self, bundle: str, item_id: EntityId) -> bool:
        descriptor = self.registry.get(bundle)
        rows = self.source.fetch_rows(descriptor, ids=[item_id])
        if item_id not in rows:
            log.info("No %s entity with id %s, nothing to index", bundle, item_id)
            return False
        index_path = self.ensure_index(descriptor)
        documents = self.build_documents(descriptor, rows)
        self.search_index.bulk_upsert(index_path, [(item_id, documents[item_id])])
        log.info("Indexed %s entity %s", bundle, item_id)
        return True

    def remove_item(self, bundle: str, item_id: EntityId) -> bool:
        descriptor = self.registry.get(bundle)
        removed = self.search_index.delete_document(self.index_path(descriptor), item_id)
        log.info("%s %s entity %s", "Removed" if removed else "No document for", bundle, item_id)
        return removed

    # Index lifecycle.

    def index_path(self, descriptor: EntityDescriptor) -> str:
        return self.search_config.index_path(descriptor.index)

    def ensure_index(self, descriptor: EntityDescriptor) -> str:
        index_path = self.index_path(descriptor)
        created = self.search_index.create_index_if_missing(
            index_path,
            self.schema(descriptor),
            shards=self.search_config.shards,
            replicas=self.search_config.replicas,
        )
        if created:
            log.info("Created index %s", index_path)
        return index_path

    @staticmethod
    def schema(descriptor: EntityDescriptor) -> dict[str, Any]:
        if descriptor.schema is not None:
            return descriptor.schema()
        return Mapping().add_integer("id").export()

    def remove_index(self, bundle: str) -> bool:
        index_path = self.index_path(self.registry.get(bundle))
        removed = self.search_index.delete_index(index_path)
        log.info("%s index %s", "Removed" if removed else "No", index_path)
        return removed

    def set_alias(self, bundle: str, *, remove: bool = False) -> None:
        descriptor = self.registry.get(bundle)
        index_path = self.index_path(descriptor)
        alias = self.search_config.index_alias(descriptor.index)
        if remove:
            if self.search_index.remove_alias(index_path, alias):
                log.info("Removed alias %s from %s", alias, index_path)
            else:
                log.info("No alias %s on %s, nothing to remove", alias, index_path)
        else:
            self.search_index.add_alias(index_path, alias)
            log.info("Pointed alias %s to %s", alias, index_path)

    # References.

    def build_documents(
        self,
        descriptor: EntityDescriptor,
        rows: MappingType[EntityId, Row],
    ) -> dict[EntityId, Document]:
        """Resolve references for ``rows`` then transform each row into a document."""

        self.resolve_references(descriptor, rows.values())
        aliases = self.source.url_aliases(descriptor, rows.keys()) if rows else {}
        return {
            item_id: self.processor.process(descriptor, row, aliases.get(item_id))
            for item_id, row in rows.items()
        }

    def resolve_references(self, descriptor: EntityDescriptor, rows: Iterable[Row]) -> None:
        wanted: dict[str, list[EntityId]] = {}
        for row in rows:
            for reference in descriptor.references:
                ids = row.get(reference.alias)
                if isinstance(ids, list):
                    wanted.setdefault(reference.bundle, []).extend(ids)
        for bundle, ids in wanted.items():
            self.load_references(bundle, ids)

    def load_references(self, bundle: str, ids: Iterable[EntityId]) -> None:
        wanted = self.references.get_not_loaded(bundle, ids)
        if not wanted:
            return
        descriptor = self.registry.get(bundle)
        rows = self.source.fetch_rows(descriptor, ids=wanted)
        self.references.set_items(bundle, self.build_documents(descriptor, rows))
        self.references.set_missing(bundle, (item_id for item_id in wanted if item_id not in rows))
        log.debug("Loaded %s of %s missing %s references", len(rows), len(wanted), bundle)

    def preload_references(self, descriptor: EntityDescriptor) -> None:
        """Load whole vocabularies flagged ``preload`` that ``descriptor`` depends on."""

        for bundle in self.registry.dependencies(descriptor.name):
            dependency = self.registry.get(bundle)
            if not dependency.preload or self.references.has(bundle):
                continue
            rows = self.source.fetch_rows(dependency)
            self.references.set(bundle, self.build_documents(dependency, rows))
            log.info("Loaded %s %s references", len(rows), bundle)
