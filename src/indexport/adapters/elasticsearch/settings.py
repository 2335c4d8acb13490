"""Index settings shared by every index the indexer creates."""

from __future__ import annotations

from copy import deepcopy
from typing import Any, Final

# Deep pagination through search results.
MAX_RESULT_WINDOW: Final[int] = 2_000_000

_TEXT_FILTERS: Final[tuple[str, ...]] = (
    "lowercase",
    "asciifolding",
    "elision",
    "filter_stop",
    "filter_stemmer_possessive",
    "filter_word_delimiter",
    "filter_shingle",
)

STATUS_SYNONYMS: Final[tuple[str, ...]] = (
    "current => ongoing",
    "on_hold => on-hold",
    "to_review => to-review",
    "alert_archive => alert-archive",
    "draft_archive => draft-archive",
    "external_archive => external-archive",
)

_ANALYSIS: Final[dict[str, Any]] = {
    "analyzer": {
        "default": {
            "type": "custom",
            "tokenizer": "standard",
            "filter": list(_TEXT_FILTERS),
            "char_filter": ["html_strip"],
        },
        "default_search": {
            "type": "custom",
            "tokenizer": "standard",
            "filter": list(_TEXT_FILTERS),
        },
        "search_as_you_type": {
            "type": "custom",
            "tokenizer": "standard",
            "filter": ["lowercase", "asciifolding", "elision"],
        },
    },
    "normalizer": {
        "status": {
            "type": "custom",
            "char_filter": ["status_synonyms"],
            "filter": ["lowercase"],
        },
    },
    "filter": {
        "filter_stemmer_possessive": {"type": "stemmer", "name": "possessive_english"},
        "filter_shingle": {
            "type": "shingle",
            "min_shingle_size": 2,
            "max_shingle_size": 4,
            "output_unigrams": True,
        },
        "filter_edge_ngram": {"type": "edge_ngram", "min_gram": 1, "max_gram": 20},
        "filter_word_delimiter": {"type": "word_delimiter", "preserve_original": True},
        "filter_stop": {"type": "stop", "stopwords": ["_english_"]},
    },
    "char_filter": {
        "status_synonyms": {"type": "mapping", "mappings": list(STATUS_SYNONYMS)},
    },
}


def index_settings(*, shards: int, replicas: int) -> dict[str, Any]:
    return {
        "number_of_shards": shards,
        "number_of_replicas": replicas,
        "max_result_window": MAX_RESULT_WINDOW,
        "analysis": deepcopy(_ANALYSIS),
    }


def index_body(
    properties: dict[str, Any],
    *,
    shards: int,
    replicas: int,
) -> dict[str, Any]:
    """Request body creating an index with ``properties`` as its mapping."""

    return {
        "settings": index_settings(shards=shards, replicas=replicas),
        "mappings": {"properties": properties},
    }
