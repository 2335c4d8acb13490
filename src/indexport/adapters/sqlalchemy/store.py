"""Read-only access to the relational source through SQLAlchemy Core."""

from __future__ import annotations

from itertools import batched
from logging import getLogger
from typing import TYPE_CHECKING, Any, Final

from sqlalchemy import create_engine, event

from .query import EntityQuery

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from types import TracebackType

    from sqlalchemy.engine import Connection, Engine, Result
    from sqlalchemy.sql import Executable

    from indexport.domain.descriptors import EntityDescriptor
    from indexport.domain.filters import FilterConditions
    from indexport.domain.ports import EntitySource
    from indexport.domain.types import EntityId, Row

log = getLogger(__name__)

GROUP_CONCAT_MAX_LEN: Final[int] = 100_000
# Upper bound of ids sent in one IN (...) clause.
ID_BATCH_SIZE: Final[int] = 1000


def create_source_engine(uri: str, *, echo: bool = False) -> Engine:
    """Create the engine for the source database.

    MySQL sessions get a raised ``group_concat_max_len`` so packed multi-value
    columns are not silently truncated.
    """

    engine = create_engine(uri, echo=echo, future=True, pool_pre_ping=True)
    if engine.dialect.name == "mysql":

        @event.listens_for(engine, "connect")
        def _configure_session(dbapi_connection: Any, _record: Any) -> None:
            cursor = dbapi_connection.cursor()
            try:
                cursor.execute(f"SET SESSION group_concat_max_len = {GROUP_CONCAT_MAX_LEN}")
            finally:
                cursor.close()

    return engine


class SqlAlchemyEntityStore:
    """:class:`EntitySource` backed by a SQLAlchemy engine.

    Used as a context manager the store keeps a single connection open for the
    whole run; outside of one, every call borrows a pooled connection.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._connection: Connection | None = None

    def __enter__(self) -> SqlAlchemyEntityStore:
        self._connection = self.engine.connect()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._connection is not None:
            self._connection.close()
            self._connection = None

    def latest_id(
        self,
        descriptor: EntityDescriptor,
        conditions: FilterConditions | None = None,
    ) -> EntityId | None:
        value = self._scalar(EntityQuery(descriptor).latest_id_statement(conditions))
        return int(value) if value is not None else None

    def count(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        conditions: FilterConditions | None = None,
    ) -> int:
        statement = EntityQuery(descriptor).count_statement(cursor=cursor, conditions=conditions)
        return int(self._scalar(statement) or 0)

    def fetch_rows(
        self,
        descriptor: EntityDescriptor,
        *,
        cursor: EntityId | None = None,
        limit: int | None = None,
        ids: Sequence[EntityId] | None = None,
        conditions: FilterConditions | None = None,
    ) -> dict[EntityId, Row]:
        query = EntityQuery(descriptor)
        rows: dict[EntityId, Row] = {}
        if ids is None:
            statement = query.rows_statement(cursor=cursor, limit=limit, conditions=conditions)
            self._collect_rows(statement, rows)
        else:
            for batch in batched(dict.fromkeys(ids), ID_BATCH_SIZE):
                statement = query.rows_statement(
                    cursor=cursor, limit=limit, ids=batch, conditions=conditions
                )
                self._collect_rows(statement, rows)
            rows = dict(sorted(rows.items(), reverse=True))
        if rows and descriptor.references:
            self._attach_references(query, rows)
        log.debug("Fetched %s %s rows", len(rows), descriptor.name)
        return rows

    def url_aliases(
        self,
        descriptor: EntityDescriptor,
        ids: Iterable[EntityId],
    ) -> dict[EntityId, str]:
        """Return the URL alias of each entity; the most recent alias of a path wins."""

        query = EntityQuery(descriptor)
        aliases: dict[EntityId, str] = {}
        for batch in batched(dict.fromkeys(ids), ID_BATCH_SIZE):
            for path, alias in self._execute(query.url_alias_statement(batch)):
                _, _, raw_id = str(path).rpartition("/")
                if raw_id.isdigit() and alias:
                    aliases[int(raw_id)] = str(alias)
        return aliases

    # Helpers.

    def _collect_rows(self, statement: Executable, rows: dict[EntityId, Row]) -> None:
        for result in self._execute(statement):
            row = dict(result._mapping)  # noqa: SLF001
            item_id = int(row["id"])
            row["id"] = item_id
            rows[item_id] = row

    def _attach_references(self, query: EntityQuery, rows: dict[EntityId, Row]) -> None:
        targets: dict[tuple[EntityId, str], list[tuple[int, int]]] = {}
        for batch in batched(rows, ID_BATCH_SIZE):
            statement = query.references_statement(batch)
            if statement is None:
                return
            for entity_id, delta, target_id, alias in self._execute(statement):
                targets.setdefault((int(entity_id), str(alias)), []).append(
                    (int(delta or 0), int(target_id))
                )
        for (entity_id, alias), values in targets.items():
            row = rows.get(entity_id)
            if row is None:
                continue
            row[alias] = list(dict.fromkeys(target_id for _, target_id in sorted(values)))

    def _scalar(self, statement: Executable) -> object:
        return self._execute(statement).scalar()

    def _execute(self, statement: Executable) -> Result[Any]:
        if self._connection is not None:
            return self._connection.execute(statement)
        with self.engine.connect() as connection:
            return connection.execute(statement).freeze()()


if TYPE_CHECKING:
    _store_check: EntitySource = SqlAlchemyEntityStore(create_source_engine("sqlite://"))
