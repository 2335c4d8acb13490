"""Dialect aware ``GROUP_CONCAT`` for packed value aggregation."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import String
from sqlalchemy.ext.compiler import compiles
from sqlalchemy.sql.functions import FunctionElement

from indexport.domain.packed import OUTER_DELIMITER

if TYPE_CHECKING:
    from sqlalchemy.sql.compiler import SQLCompiler


class group_concat(FunctionElement[str]):  # noqa: N801
    """Aggregate distinct values joined by the packed value outer delimiter.

    MySQL deduplicates with ``DISTINCT``; other dialects (SQLite in tests) cannot
    combine ``DISTINCT`` with a separator, so decoders drop duplicates instead.
    """

    type = String()
    name = "group_concat"
    inherit_cache = True


def _separator(compiler: SQLCompiler) -> str:
    return compiler.render_literal_value(OUTER_DELIMITER, String())


@compiles(group_concat)
def _compile_group_concat(element: group_concat, compiler: SQLCompiler, **kw: Any) -> str:
    (expression,) = element.clauses
    return f"group_concat({compiler.process(expression, **kw)}, {_separator(compiler)})"


@compiles(group_concat, "mysql")
def _compile_group_concat_mysql(element: group_concat, compiler: SQLCompiler, **kw: Any) -> str:
    (expression,) = element.clauses
    return (
        f"GROUP_CONCAT(DISTINCT {compiler.process(expression, **kw)} "
        f"SEPARATOR {_separator(compiler)})"
    )
