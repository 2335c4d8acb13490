"""Static descriptions of indexable bundles."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from indexport.config.errors import ConfigurationError

from .types import Directive, FieldEncoding

if TYPE_CHECKING:
    from .processing import Processor
    from .types import Document

type DocumentHook = Callable[[Document, Processor], None]
type SchemaFactory = Callable[[], dict[str, Any]]


class EntityCategory(StrEnum):
    NODE = "node"
    TAXONOMY_TERM = "taxonomy_term"

    @classmethod
    def parse(cls, value: str | EntityCategory) -> EntityCategory:
        try:
            return cls(value)
        except ValueError as exc:
            raise ConfigurationError(f"Unsupported entity type: {value!r}") from exc

    @property
    def base_table(self) -> str:
        return f"{self.value}_field_data"

    @property
    def id_column(self) -> str:
        return "nid" if self is EntityCategory.NODE else "tid"

    @property
    def uuid_table(self) -> str:
        return "node" if self is EntityCategory.NODE else "taxonomy_term_data"

    @property
    def bundle_column(self) -> str:
        return "type" if self is EntityCategory.NODE else "vid"

    @property
    def path_prefix(self) -> str:
        """Site path segment, e.g. ``node`` or ``taxonomy/term``."""

        return self.value.replace("_", "/")

    def field_table(self, field_name: str) -> str:
        return f"{self.value}__{field_name}"


@dataclass(frozen=True, slots=True)
class JoinedField:
    """Field stored in its own ``<category>__<field>`` table."""

    field_name: str
    alias: str
    encoding: FieldEncoding = FieldEncoding.COLUMN
    column: str = "value"

    @property
    def value_column(self) -> str:
        return f"{self.field_name}_{self.column}"


@dataclass(frozen=True, slots=True)
class ReferenceField:
    """Entity reference resolved into embedded records of another bundle."""

    field_name: str
    alias: str
    bundle: str
    subfields: tuple[str, ...] = ("id", "name")

    @property
    def target_column(self) -> str:
        return f"{self.field_name}_target_id"


@dataclass(frozen=True, slots=True)
class EntityDescriptor:
    """Everything the pipeline needs to know to index one bundle.

    ``fields`` maps document aliases to columns of the category base table. Joined
    fields and references are listed in the order their aliases should appear.
    Conversions are applied per alias in declaration order after reference
    substitution. ``preload`` marks small vocabularies loaded in full before other
    bundles referencing them are indexed.
    """

    name: str
    category: EntityCategory
    index: str
    fields: Mapping[str, str] = field(default_factory=dict)
    joins: tuple[JoinedField, ...] = ()
    references: tuple[ReferenceField, ...] = ()
    conversions: Mapping[str, tuple[Directive, ...]] = field(default_factory=dict)
    preload: bool = False
    hook: DocumentHook | None = None
    schema: SchemaFactory | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", EntityCategory.parse(self.category))
        try:
            conversions = {
                alias: tuple(Directive(directive) for directive in directives)
                for alias, directives in self.conversions.items()
            }
        except ValueError as exc:
            raise ConfigurationError(f"Bundle {self.name}: {exc}") from exc
        object.__setattr__(self, "conversions", conversions)

        aliases = [
            *self.fields,
            *(joined.alias for joined in self.joins),
            *(reference.alias for reference in self.references),
        ]
        duplicates = sorted({alias for alias in aliases if aliases.count(alias) > 1})
        if duplicates:
            raise ConfigurationError(f"Bundle {self.name}: duplicate aliases {duplicates}")

    def joined(self, alias: str) -> JoinedField | None:
        return next((joined for joined in self.joins if joined.alias == alias), None)

    def reference(self, alias: str) -> ReferenceField | None:
        return next((ref for ref in self.references if ref.alias == alias), None)

    def referenced_bundles(self) -> tuple[str, ...]:
        return tuple(dict.fromkeys(reference.bundle for reference in self.references))
