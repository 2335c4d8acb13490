"""SQLAlchemy Core statements for reading Drupal style entity tables."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

import sqlalchemy as sa

from indexport.domain.filters import ANY_VALUE
from indexport.domain.packed import INNER_DELIMITER
from indexport.domain.types import FieldEncoding

from .functions import group_concat

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from sqlalchemy.sql.elements import ColumnElement
    from sqlalchemy.sql.selectable import CompoundSelect, FromClause, Join, Select

    from indexport.domain.descriptors import EntityDescriptor, JoinedField
    from indexport.domain.filters import FilterConditions
    from indexport.domain.types import EntityId

PATH_ALIAS_TABLE: Final[str] = "path_alias"
FILE_TABLE: Final[str] = "file_managed"
MEDIA_IMAGE_FIELD: Final[str] = "field_media_image"
MEDIA_COPYRIGHT_FIELD: Final[str] = "field_copyright"
MEDIA_DESCRIPTION_FIELD: Final[str] = "field_description"

# Column suffixes of a file reference field, in packed tuple order after delta.
FILE_FIELD_COLUMNS: Final[tuple[str, ...]] = (
    "revision_id",
    "uuid",
    "file_name",
    "file_hash",
    "page_count",
    "description",
    "language",
    "preview_uuid",
    "preview_page",
    "preview_rotation",
)
RIVER_SEARCH_FIELD_COLUMNS: Final[tuple[str, ...]] = ("url", "title", "override")


def _table(name: str, *columns: str) -> sa.TableClause:
    return sa.table(name, *(sa.column(column) for column in columns))


def _field_table(name: str, *columns: str) -> sa.TableClause:
    return _table(name, "entity_id", "delta", *columns)


def _text(column: ColumnElement[object]) -> ColumnElement[str]:
    return sa.func.coalesce(sa.cast(column, sa.String), "")


def _packed_tuple(*columns: ColumnElement[object]) -> ColumnElement[str]:
    """``col1###col2###...`` with NULL positions rendered as empty strings."""

    expression = _text(columns[0])
    for column in columns[1:]:
        expression = expression + sa.literal(INNER_DELIMITER) + _text(column)
    return expression


def _aggregate_tuple(
    target: ColumnElement[object],
    *columns: ColumnElement[object],
) -> ColumnElement[str]:
    return group_concat(sa.case((target.is_not(None), _packed_tuple(*columns)), else_=None))


@dataclass(slots=True)
class EntityQuery:
    """Build the statements needed to read one bundle.

    Every value reaches the database as a bound parameter; table and column names
    come only from the static bundle descriptors.
    """

    descriptor: EntityDescriptor
    base: sa.TableClause = field(init=False)
    entity: sa.TableClause = field(init=False)

    def __post_init__(self) -> None:
        category = self.descriptor.category
        self.base = _table(
            category.base_table,
            category.id_column,
            category.bundle_column,
            *dict.fromkeys(self.descriptor.fields.values()),
        )
        self.entity = _table(category.uuid_table, category.id_column, "uuid")

    @property
    def id_column(self) -> ColumnElement[int]:
        return self.base.c[self.descriptor.category.id_column]

    # Statements.

    def rows_statement(
        self,
        *,
        cursor: EntityId | None = None,
        limit: int | None = None,
        ids: Sequence[EntityId] | None = None,
        conditions: FilterConditions | None = None,
    ) -> Select[tuple[object, ...]]:
        base = self.base
        entity = self.entity
        id_column = base.c[self.descriptor.category.id_column]
        from_clause: FromClause = base.join(
            entity, entity.c[self.descriptor.category.id_column] == id_column
        )

        group_columns = dict.fromkeys(self.descriptor.fields.values())
        base_columns = [
            base.c[column].label(alias) for alias, column in self.descriptor.fields.items()
        ]
        aggregated: list[ColumnElement[object]] = []
        for joined in self.descriptor.joins:
            from_clause, column = self._join_field(from_clause, joined)
            aggregated.append(column.label(joined.alias))

        from_clause, filters = self._apply_filters(from_clause, conditions)
        statement = (
            sa.select(
                id_column.label("id"),
                entity.c.uuid.label("uuid"),
                *base_columns,
                *aggregated,
            )
            .select_from(from_clause)
            .where(*self._scope(cursor=cursor, ids=ids), *filters)
            .group_by(id_column, entity.c.uuid, *(base.c[name] for name in group_columns))
            .order_by(id_column.desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return statement

    def count_statement(
        self,
        *,
        cursor: EntityId | None = None,
        conditions: FilterConditions | None = None,
    ) -> Select[tuple[int]]:
        id_column = self.id_column
        from_clause, filters = self._apply_filters(self.base, conditions)
        return (
            sa.select(sa.func.count(sa.distinct(id_column)))
            .select_from(from_clause)
            .where(*self._scope(cursor=cursor), *filters)
        )

    def latest_id_statement(
        self,
        conditions: FilterConditions | None = None,
    ) -> Select[tuple[int]]:
        id_column = self.id_column
        from_clause, filters = self._apply_filters(self.base, conditions)
        return (
            sa.select(id_column)
            .select_from(from_clause)
            .where(*self._scope(), *filters)
            .order_by(id_column.desc())
            .limit(1)
        )

    def references_statement(self, ids: Sequence[EntityId]) -> CompoundSelect | None:
        """Target ids of every reference field as ``(entity_id, delta, target_id, alias)``."""

        selects = []
        for reference in self.descriptor.references:
            table = _field_table(
                self.descriptor.category.field_table(reference.field_name),
                reference.target_column,
            )
            selects.append(
                sa.select(
                    table.c.entity_id.label("entity_id"),
                    table.c.delta.label("delta"),
                    table.c[reference.target_column].label("target_id"),
                    sa.literal(reference.alias, sa.String).label("alias"),
                ).where(
                    table.c.entity_id.in_(ids),
                    table.c[reference.target_column].is_not(None),
                )
            )
        if not selects:
            return None
        return sa.union_all(*selects)

    def url_alias_statement(self, ids: Iterable[EntityId]) -> Select[tuple[str, str]]:
        table = _table(PATH_ALIAS_TABLE, "id", "path", "alias")
        paths = [self.entity_path(item_id) for item_id in ids]
        return (
            sa.select(table.c.path, table.c.alias)
            .where(table.c.path.in_(paths))
            .order_by(table.c.id)
        )

    def entity_path(self, item_id: EntityId) -> str:
        return f"/{self.descriptor.category.path_prefix}/{item_id}"

    # Helpers.

    def _scope(
        self,
        *,
        cursor: EntityId | None = None,
        ids: Sequence[EntityId] | None = None,
    ) -> list[ColumnElement[bool]]:
        base = self.base
        clauses: list[ColumnElement[bool]] = [
            base.c[self.descriptor.category.bundle_column] == self.descriptor.name
        ]
        if cursor is not None:
            clauses.append(self.id_column <= cursor)
        if ids is not None:
            clauses.append(self.id_column.in_(list(ids)))
        return clauses

    def _join_field(
        self,
        from_clause: FromClause,
        joined: JoinedField,
    ) -> tuple[Join, ColumnElement[object]]:
        category = self.descriptor.category
        id_column = self.id_column
        table_name = category.field_table(joined.field_name)
        prefix = joined.field_name

        match joined.encoding:
            case FieldEncoding.IMAGE_REFERENCE:
                source = _field_table(table_name, f"{prefix}_target_id").alias(joined.alias)
                target = source.c[f"{prefix}_target_id"]
                image = _field_table(
                    f"media__{MEDIA_IMAGE_FIELD}",
                    f"{MEDIA_IMAGE_FIELD}_target_id",
                    f"{MEDIA_IMAGE_FIELD}_width",
                    f"{MEDIA_IMAGE_FIELD}_height",
                ).alias(f"{joined.alias}_image")
                copyright_ = _field_table(
                    f"media__{MEDIA_COPYRIGHT_FIELD}", f"{MEDIA_COPYRIGHT_FIELD}_value"
                ).alias(f"{joined.alias}_copyright")
                description = _field_table(
                    f"media__{MEDIA_DESCRIPTION_FIELD}", f"{MEDIA_DESCRIPTION_FIELD}_value"
                ).alias(f"{joined.alias}_description")
                file = _table(FILE_TABLE, "fid", "uri", "filename", "filemime", "filesize").alias(
                    f"{joined.alias}_file"
                )
                joined_from = (
                    from_clause.outerjoin(source, source.c.entity_id == id_column)
                    .outerjoin(image, image.c.entity_id == target)
                    .outerjoin(copyright_, copyright_.c.entity_id == target)
                    .outerjoin(description, description.c.entity_id == target)
                    .outerjoin(file, file.c.fid == image.c[f"{MEDIA_IMAGE_FIELD}_target_id"])
                )
                column = _aggregate_tuple(
                    target,
                    source.c.delta,
                    target,
                    image.c[f"{MEDIA_IMAGE_FIELD}_width"],
                    image.c[f"{MEDIA_IMAGE_FIELD}_height"],
                    file.c.uri,
                    file.c.filename,
                    file.c.filemime,
                    file.c.filesize,
                    copyright_.c[f"{MEDIA_COPYRIGHT_FIELD}_value"],
                    description.c[f"{MEDIA_DESCRIPTION_FIELD}_value"],
                )
            case FieldEncoding.FILE_REFERENCE:
                columns = [f"{prefix}_{suffix}" for suffix in FILE_FIELD_COLUMNS]
                source = _field_table(table_name, *columns, f"{prefix}_file_uuid").alias(
                    joined.alias
                )
                file = _table(FILE_TABLE, "uuid", "uri", "filemime", "filesize").alias(
                    f"{joined.alias}_file"
                )
                joined_from = from_clause.outerjoin(
                    source, source.c.entity_id == id_column
                ).outerjoin(file, file.c.uuid == source.c[f"{prefix}_file_uuid"])
                target = source.c[f"{prefix}_revision_id"]
                column = _aggregate_tuple(
                    target,
                    source.c.delta,
                    *(source.c[name] for name in columns),
                    file.c.uri,
                    file.c.filemime,
                    file.c.filesize,
                )
            case FieldEncoding.RIVER_SEARCH:
                columns = [f"{prefix}_{suffix}" for suffix in RIVER_SEARCH_FIELD_COLUMNS]
                source = _field_table(table_name, *columns).alias(joined.alias)
                joined_from = from_clause.outerjoin(source, source.c.entity_id == id_column)
                target = source.c[f"{prefix}_url"]
                column = _aggregate_tuple(
                    target, source.c.delta, *(source.c[name] for name in columns)
                )
            case FieldEncoding.MULTI_VALUE:
                source = _field_table(table_name, joined.value_column).alias(joined.alias)
                joined_from = from_clause.outerjoin(source, source.c.entity_id == id_column)
                column = group_concat(source.c[joined.value_column])
            case _:
                source = _field_table(table_name, joined.value_column).alias(joined.alias)
                joined_from = from_clause.outerjoin(
                    source, sa.and_(source.c.entity_id == id_column, source.c.delta == 0)
                )
                column = sa.func.max(source.c[joined.value_column])
        return joined_from, column

    def _apply_filters(
        self,
        from_clause: FromClause,
        conditions: FilterConditions | None,
    ) -> tuple[FromClause, list[ColumnElement[bool]]]:
        clauses: list[ColumnElement[bool]] = []
        if not conditions:
            return from_clause, clauses

        base = self.base
        for alias, values in conditions.fields.items():
            column = base.c[self.descriptor.fields[alias]]
            clauses.append(column.is_not(None) if ANY_VALUE in values else column.in_(values))

        for alias, values in conditions.joins.items():
            joined = self.descriptor.joined(alias)
            if joined is None:
                continue
            table = _field_table(
                self.descriptor.category.field_table(joined.field_name), joined.value_column
            ).alias(f"{alias}_filter")
            from_clause = from_clause.join(table, table.c.entity_id == self.id_column)
            if ANY_VALUE not in values:
                clauses.append(table.c[joined.value_column].in_(values))

        for alias, values in conditions.references.items():
            reference = self.descriptor.reference(alias)
            if reference is None:
                continue
            table = _field_table(
                self.descriptor.category.field_table(reference.field_name),
                reference.target_column,
            ).alias(f"{alias}_filter")
            from_clause = from_clause.join(table, table.c.entity_id == self.id_column)
            if ANY_VALUE not in values:
                targets = [int(value) if value.isdigit() else value for value in values]
                clauses.append(table.c[reference.target_column].in_(targets))

        return from_clause, clauses
