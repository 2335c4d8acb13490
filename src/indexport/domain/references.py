"""In-memory cache of resolved reference records, keyed by bundle and id."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .types import EntityId, Record


@dataclass(slots=True)
class ReferenceCache:
    """Records of referenced bundles, loaded at most once per run.

    ``set_items`` merges with first-writer-wins semantics: an id already present is
    never replaced, so a record stays stable for the whole run. ``set`` stores a whole
    bundle, after which no id of that bundle is reported as not loaded. Ids that were
    looked up but do not exist are remembered through ``set_missing``.
    """

    _items: dict[str, dict[EntityId, Record]] = field(default_factory=dict)
    _complete: set[str] = field(default_factory=set)
    _missing: dict[str, set[EntityId]] = field(default_factory=dict)

    def has(self, bundle: str) -> bool:
        return bundle in self._items

    def get(self, bundle: str) -> dict[EntityId, Record]:
        return self._items.get(bundle, {})

    def get_item(
        self,
        bundle: str,
        item_id: EntityId,
        fields: Iterable[str] | None = None,
    ) -> Record | None:
        """Return a copy of one record, restricted to ``fields`` when given."""

        record = self._items.get(bundle, {}).get(item_id)
        if record is None:
            return None
        if fields is None:
            return dict(record)
        return {name: record[name] for name in fields if name in record}

    def set(self, bundle: str, records: Mapping[EntityId, Record]) -> None:
        self._items[bundle] = dict(records)
        self._complete.add(bundle)
        self._missing.pop(bundle, None)

    def set_items(self, bundle: str, records: Mapping[EntityId, Record]) -> None:
        existing = self._items.setdefault(bundle, {})
        for item_id, record in records.items():
            existing.setdefault(item_id, record)

    def set_missing(self, bundle: str, ids: Iterable[EntityId]) -> None:
        if bundle not in self._complete:
            self._missing.setdefault(bundle, set()).update(ids)

    def get_not_loaded(self, bundle: str, ids: Iterable[EntityId]) -> list[EntityId]:
        if bundle in self._complete:
            return []
        loaded = self._items.get(bundle, {})
        missing = self._missing.get(bundle, set())
        return [
            item_id
            for item_id in dict.fromkeys(ids)
            if item_id not in loaded and item_id not in missing
        ]

    def clear(self) -> None:
        self._items.clear()
        self._complete.clear()
        self._missing.clear()
