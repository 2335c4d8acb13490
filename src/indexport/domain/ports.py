"""Ports used by the indexing orchestrator and the document processor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from .descriptors import EntityDescriptor
    from .filters import FilterConditions
    from .types import Document, EntityId, Row


@runtime_checkable
class EntitySource(Protocol):
    """Read access to the relational store, one bundle at a time."""

    def latest_id(
        self,
        descriptor: EntityDescriptor,
        conditions: FilterConditions | None = None,
    ) -> EntityId | None: ...

    def count(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        conditions: FilterConditions | None = None,
    ) -> int: ...

    def fetch_rows(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        limit: int | None = None,
        ids: Sequence[EntityId] | None = None,
        conditions: FilterConditions | None = None,
    ) -> dict[EntityId, Row]:
        """Return rows keyed by id, newest first, reference aliases as id lists."""
        ...

    def url_aliases(
        self,
        descriptor: EntityDescriptor,
        ids: Iterable[EntityId],
    ) -> dict[EntityId, str]: ...


@runtime_checkable
class SearchIndex(Protocol):
    """Write access to the document search engine."""

    def create_index_if_missing(
        self,
        name: str,
        schema: Mapping[str, Any],
        *,
        shards: int,
        replicas: int,
    ) -> bool: ...

    def bulk_upsert(self, name: str, documents: Sequence[tuple[EntityId, Document]]) -> None: ...

    def delete_document(self, name: str, document_id: EntityId) -> bool: ...

    def delete_index(self, name: str) -> bool: ...

    def add_alias(self, name: str, alias: str) -> None: ...

    def remove_alias(self, name: str, alias: str) -> bool: ...


@runtime_checkable
class MarkupRenderer(Protocol):
    """Markdown rendering and HTML allowlist filtering."""

    def render(self, text: str) -> str: ...

    def sanitize(self, content: str, *, strict: bool = False) -> str: ...

    def strip_tags(self, content: str) -> str: ...


__all__ = ["EntitySource", "MarkupRenderer", "SearchIndex"]
