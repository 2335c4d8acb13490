"""Elasticsearch adapter."""

from __future__ import annotations

from .client import BulkIndexError, ElasticsearchClient, SearchEngineError
from .schema import BulkResponse, ErrorResponse
from .settings import index_body, index_settings

__all__ = [
    "BulkIndexError",
    "BulkResponse",
    "ElasticsearchClient",
    "ErrorResponse",
    "SearchEngineError",
    "index_body",
    "index_settings",
]
