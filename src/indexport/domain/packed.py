"""Packed value encoding shared by the query builder and the document processor.

One-to-many data is flattened by the database into a single string: values are
joined with :data:`OUTER_DELIMITER` and the positions of a composite tuple with
:data:`INNER_DELIMITER`. Column orders below are the contract between both sides;
empty positions are kept as empty strings so decoding can stay positional.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

OUTER_DELIMITER: Final[str] = "%%%"
INNER_DELIMITER: Final[str] = "###"

IMAGE_COLUMNS: Final[tuple[str, ...]] = (
    "delta",
    "id",
    "width",
    "height",
    "uri",
    "filename",
    "filemime",
    "filesize",
    "copyright",
    "caption",
)

FILE_COLUMNS: Final[tuple[str, ...]] = (
    "delta",
    "revision_id",
    "uuid",
    "filename",
    "filehash",
    "page_count",
    "description",
    "language",
    "preview_uuid",
    "preview_page",
    "preview_rotation",
    "uri",
    "filemime",
    "filesize",
)

RIVER_SEARCH_COLUMNS: Final[tuple[str, ...]] = ("delta", "url", "title", "override")


def split_values(packed: object) -> list[str]:
    """Split a packed value into its distinct, non-empty parts in order."""

    if packed is None:
        return []
    text = str(packed)
    if not text:
        return []
    return [value for value in dict.fromkeys(text.split(OUTER_DELIMITER)) if value != ""]


def split_tuple(value: str, columns: Sequence[str]) -> dict[str, str]:
    parts = value.split(INNER_DELIMITER)
    if len(parts) < len(columns):
        parts.extend([""] * (len(columns) - len(parts)))
    return dict(zip(columns, parts, strict=False))


def _delta_key(record: Mapping[str, str]) -> int:
    try:
        return int(record.get("delta", ""))
    except ValueError:
        return 0


def decode_tuples(packed: object, columns: Sequence[str]) -> list[dict[str, str]]:
    """Decode a packed composite field into records ordered by delta."""

    records = [split_tuple(value, columns) for value in split_values(packed)]
    return sorted(records, key=_delta_key)


def encode_values(values: Iterable[object]) -> str:
    return OUTER_DELIMITER.join("" if value is None else str(value) for value in values)


def encode_tuple(record: Mapping[str, object], columns: Sequence[str]) -> str:
    return INNER_DELIMITER.join(
        "" if record.get(column) is None else str(record.get(column)) for column in columns
    )


def encode_tuples(records: Iterable[Mapping[str, object]], columns: Sequence[str]) -> str:
    return encode_values(encode_tuple(record, columns) for record in records)
