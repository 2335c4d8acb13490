"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_env, optional_env_float, optional_env_int, require_env_vars
from .errors import ConfigurationError, InvalidFilterError, MissingConfigurationError
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .indexing import (
    DEFAULT_CHUNK_SIZE,
    FILTER_PATTERN,
    MAX_CHUNK_SIZE,
    IndexingOptions,
    validate_filter_expression,
)
from .logging import configure_logging
from .search import SearchEngineConfig, get_search_engine_config
from .site import SiteConfig, get_site_config
from .storage import DatabaseConfig, get_database_config

__all__ = [
    "DEFAULT_CHUNK_SIZE",
    "FILTER_PATTERN",
    "MAX_CHUNK_SIZE",
    "ConfigurationError",
    "DatabaseConfig",
    "IndexingOptions",
    "InvalidFilterError",
    "MissingConfigurationError",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SearchEngineConfig",
    "SiteConfig",
    "configure_logging",
    "get_database_config",
    "get_search_engine_config",
    "get_site_config",
    "optional_env",
    "optional_env_float",
    "optional_env_int",
    "require_env_vars",
    "validate_filter_expression",
]
