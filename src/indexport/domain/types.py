"""Shared aliases and enums for the indexing domain."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

# Basic aliases (PEP 695) for the shapes that flow through the pipeline.
type EntityId = int
type Row = dict[str, Any]
type Document = dict[str, Any]
type Record = dict[str, Any]


class Directive(StrEnum):
    """Conversion directives applied to a document field, in declaration order."""

    BOOL = "bool"
    INT = "int"
    FLOAT = "float"
    TIME = "time"
    LINKS = "links"
    HTML = "html"
    HTML_STRICT = "html_strict"
    HTML_IFRAME = "html_iframe"
    MULTI_INT = "multi_int"
    SINGLE = "single"
    MULTI_STRING = "multi_string"
    PRIMARY = "primary"


class FieldEncoding(StrEnum):
    """How a joined field is aggregated by the query builder."""

    COLUMN = "column"
    MULTI_VALUE = "multi_value"
    IMAGE_REFERENCE = "image_reference"
    FILE_REFERENCE = "file_reference"
    RIVER_SEARCH = "river_search"
