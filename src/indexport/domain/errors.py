"""Errors raised by the indexing domain."""

from __future__ import annotations


class IndexingError(RuntimeError):
    """Base class for failures of an indexing run."""


class NothingToIndexError(IndexingError):
    """Raised when a bulk run finds no entity to index."""
