"""Parsing of ``field:v1,v2+field2:v3`` filter expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Final

from indexport.config.indexing import validate_filter_expression

from .types import FieldEncoding

if TYPE_CHECKING:
    from .descriptors import EntityDescriptor

log = getLogger(__name__)

ANY_VALUE: Final[str] = "*"

_FILTERABLE_ENCODINGS = frozenset({FieldEncoding.COLUMN, FieldEncoding.MULTI_VALUE})


@dataclass(slots=True)
class FilterConditions:
    """Filter values grouped by where the field lives.

    Keys are document aliases. Values within one field are OR-ed and fields are
    AND-ed. A value list containing ``*`` only requires the field to be present.
    """

    fields: dict[str, list[str]] = field(default_factory=dict)
    joins: dict[str, list[str]] = field(default_factory=dict)
    references: dict[str, list[str]] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return bool(self.fields or self.joins or self.references)


def parse_filter(expression: str | None, descriptor: EntityDescriptor) -> FilterConditions:
    """Parse a filter expression against the fields known to ``descriptor``.

    Malformed expressions raise :class:`~indexport.config.errors.InvalidFilterError`.
    Fields the bundle does not know, or composite fields, are skipped with a warning.
    """

    conditions = FilterConditions()
    if not expression:
        return conditions
    validate_filter_expression(expression)

    for clause in expression.split("+"):
        name, _, raw_values = clause.partition(":")
        values = list(dict.fromkeys(raw_values.split(",")))

        if name in descriptor.fields:
            conditions.fields.setdefault(name, []).extend(values)
            continue
        joined = descriptor.joined(name)
        if joined is not None and joined.encoding in _FILTERABLE_ENCODINGS:
            conditions.joins.setdefault(name, []).extend(values)
            continue
        if descriptor.reference(name) is not None:
            conditions.references.setdefault(name, []).extend(values)
            continue
        log.warning("Ignoring filter on unknown field %r for bundle %s", name, descriptor.name)

    return conditions
