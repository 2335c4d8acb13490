"""Fluent builder for search index field mappings."""

from __future__ import annotations

from copy import deepcopy
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

type FieldMapping = dict[str, Any]


def _multi_field() -> FieldMapping:
    return {"type": "text", "norms": False, "fields": {"exact": {"type": "keyword"}}}


class Mapping:
    """Build the ``properties`` of an index mapping.

    Dotted field names address nested properties, so ``add_string("headline.title")``
    creates ``headline.properties.title``. Taxonomy and date helpers also register
    ``common_*`` fields used as catch-all search targets through ``copy_to``.
    """

    def __init__(self) -> None:
        self._mapping: dict[str, FieldMapping] = {
            "timestamp": {"type": "date", "store": True, "index": False},
        }

    def add_integer(self, name: str) -> Mapping:
        self._add(name, {"type": "integer"})
        return self

    def add_boolean(self, name: str) -> Mapping:
        self._add(name, {"type": "boolean"})
        return self

    def add_geo_point(self, name: str) -> Mapping:
        self._add(name, {"type": "geo_point"})
        return self

    def add_status(self) -> Mapping:
        self._add("status", {"type": "keyword", "normalizer": "status"})
        return self

    def add_string(
        self,
        name: str,
        index: bool | None = True,  # noqa: FBT002
        exact: bool = False,  # noqa: FBT001, FBT002
        *,
        suggest: bool = False,
    ) -> Mapping:
        """Add a string field.

        ``index=True`` is analysed full text, ``False`` a keyword and ``None`` stored
        but not searchable.
        """

        mapping: FieldMapping = {"type": "text"}
        if index is None:
            mapping["index"] = False
        elif index:
            mapping["norms"] = False
        else:
            mapping["type"] = "keyword"
        if exact:
            mapping.setdefault("fields", {})["exact"] = {"type": "keyword"}
        if suggest:
            mapping.setdefault("fields", {})["suggest"] = {
                "type": "search_as_you_type",
                "analyzer": "search_as_you_type",
                "search_analyzer": "search_as_you_type",
            }
        self._add(name, mapping)
        return self

    def add_dates(self, name: str, subfields: Iterable[str]) -> Mapping:
        names = list(subfields)
        properties: dict[str, FieldMapping] = {subfield: {"type": "date"} for subfield in names}
        if names:
            properties[names[0]]["copy_to"] = self._common_field(name, "date")
        self._add(name, {"properties": properties})
        return self

    def add_taxonomy(self, name: str, subfields: Iterable[str] = ()) -> Mapping:
        properties: dict[str, FieldMapping] = {"id": {"type": "integer"}}
        for subfield in ("name", *subfields):
            properties[subfield] = _multi_field()
            properties[subfield]["copy_to"] = self._common_field(name)
        self._add(name, {"properties": properties})
        return self

    def add_river_search(self, name: str) -> Mapping:
        self._add(
            name,
            {
                "properties": {
                    "id": {"type": "keyword"},
                    "url": {"type": "keyword"},
                    "title": {"type": "text", "norms": False},
                    "override": {"type": "integer"},
                }
            },
        )
        return self

    def add_image(self, name: str) -> Mapping:
        self._add(
            name,
            {
                "properties": {
                    "id": {"type": "integer"},
                    "mimetype": {"type": "keyword"},
                    "filename": {"type": "keyword"},
                    "filesize": {"type": "integer"},
                    "caption": {"type": "text", "norms": False},
                    "copyright": {"type": "text", "norms": False},
                    "url": {"type": "keyword"},
                    "url-large": {"type": "text", "index": False},
                    "url-small": {"type": "text", "index": False},
                    "url-thumb": {"type": "text", "index": False},
                    "width": {"type": "integer"},
                    "height": {"type": "integer"},
                }
            },
        )
        return self

    def add_file(self, name: str) -> Mapping:
        self._add(
            name,
            {
                "properties": {
                    "id": {"type": "integer"},
                    "uuid": {"type": "keyword"},
                    "mimetype": {"type": "keyword"},
                    "filename": {"type": "keyword"},
                    "filehash": {"type": "keyword"},
                    "filesize": {"type": "integer"},
                    "pagecount": {"type": "integer"},
                    "language": {"type": "keyword"},
                    "description": {"type": "text", "norms": False},
                    "url": {"type": "keyword"},
                    "preview": {
                        "properties": {
                            "url": {"type": "keyword"},
                            "url-large": {"type": "text", "index": False},
                            "url-small": {"type": "text", "index": False},
                            "url-thumb": {"type": "text", "index": False},
                            "version": {"type": "keyword"},
                        }
                    },
                }
            },
        )
        return self

    def export(self) -> dict[str, FieldMapping]:
        return deepcopy(self._mapping)

    def _common_field(self, name: str, kind: str = "string") -> list[str]:
        common = f"common_{name.replace('.', '_')}"
        if kind != "string":
            if common not in self._mapping:
                self._add(common, {"type": kind})
            return [common]
        if common not in self._mapping:
            self.add_string(common)
            self.add_string(f"{common}_exact", index=False)
        return [common, f"{common}_exact"]

    def _add(self, name: str, mapping: FieldMapping) -> None:
        head, *path = name.split(".")
        parent = self._mapping.setdefault(head, {})
        for part in path:
            parent = parent.setdefault("properties", {}).setdefault(part, {})
        for key, value in mapping.items():
            parent.setdefault(key, value)
