"""Per-run indexing options."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from .errors import ConfigurationError, InvalidFilterError

DEFAULT_CHUNK_SIZE: Final[int] = 500
MAX_CHUNK_SIZE: Final[int] = 1000

_FILTER_VALUES = r"[a-zA-Z0-9_*-]+(?:,[a-zA-Z0-9_*-]+)*"
_FILTER_CLAUSE = rf"[a-zA-Z0-9_-]+:{_FILTER_VALUES}"
FILTER_PATTERN: Final[re.Pattern[str]] = re.compile(
    rf"^(?:{_FILTER_CLAUSE}(?:\+{_FILTER_CLAUSE})*)?$"
)


def validate_filter_expression(expression: str) -> str:
    if not FILTER_PATTERN.match(expression):
        raise InvalidFilterError(
            f"Invalid filter {expression!r}, expected 'field:value1,value2+field2:value3'"
        )
    return expression


@dataclass(frozen=True, slots=True)
class IndexingOptions:
    """Options for a single invocation against one bundle.

    ``limit`` and ``offset`` of 0 mean "everything" and "start from the most recent
    entity" respectively. ``item_id`` switches to single-item mode, combined with
    ``remove`` it deletes the document instead.
    """

    bundle: str
    limit: int = 0
    offset: int = 0
    chunk_size: int = DEFAULT_CHUNK_SIZE
    filter_expression: str = ""
    item_id: int = 0
    remove: bool = False
    alias: bool = False
    alias_only: bool = False
    simulate: bool = False

    def __post_init__(self) -> None:
        if not self.bundle:
            raise ConfigurationError("A bundle to index is required")
        if not 1 <= self.chunk_size <= MAX_CHUNK_SIZE:
            raise ConfigurationError(f"Chunk size must be between 1 and {MAX_CHUNK_SIZE}")
        for name in ("limit", "offset", "item_id"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name.replace('_', ' ').capitalize()} must be >= 0")
        validate_filter_expression(self.filter_expression)
