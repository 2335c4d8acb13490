"""SQLAlchemy adapter reading Drupal style entity tables."""

from __future__ import annotations

from .functions import group_concat
from .query import EntityQuery
from .store import SqlAlchemyEntityStore, create_source_engine

__all__ = [
    "EntityQuery",
    "SqlAlchemyEntityStore",
    "create_source_engine",
    "group_concat",
]
