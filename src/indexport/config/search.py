"""Search engine configuration values."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Final

from .env import optional_env, optional_env_float, optional_env_int
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

ELASTICSEARCH_URL: Final[str] = "http://127.0.0.1:9200"
DEFAULT_BASE_INDEX_NAME: Final[str] = "reliefwebint_0"
DEFAULT_TIMEOUT_SECONDS: Final[float] = 20.0
BULK_TIMEOUT_SECONDS: Final[float] = 200.0
MAX_SHARDS: Final[int] = 8

_INDEX_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9_-]*$")
_TAG_RE = re.compile(r"^[a-z0-9_-]*$")


def _default_resilience(base_url: str, max_requests_per_second: float | None) -> ResilienceConfig:
    ratelimit = (
        RateLimit(max_calls=int(max_requests_per_second), per_seconds=1.0)
        if max_requests_per_second
        else None
    )
    return ResilienceConfig(
        name="elasticsearch",
        base_url=base_url,
        timeout_seconds=DEFAULT_TIMEOUT_SECONDS,
        ratelimit=ratelimit,
    )


@dataclass(frozen=True, slots=True)
class SearchEngineConfig:
    """Connection and naming settings for the target search engine."""

    url: str = ELASTICSEARCH_URL
    base_index_name: str = DEFAULT_BASE_INDEX_NAME
    tag: str = ""
    shards: int = 1
    replicas: int = 1
    bulk_timeout_seconds: float = BULK_TIMEOUT_SECONDS
    resilience: ResilienceConfig = field(
        default_factory=lambda: _default_resilience(ELASTICSEARCH_URL, None)
    )

    def __post_init__(self) -> None:
        if not self.url.startswith(("http://", "https://")):
            raise ConfigurationError(f"Invalid search engine URL: {self.url!r}")
        if not _INDEX_NAME_RE.match(self.base_index_name):
            raise ConfigurationError(f"Invalid base index name: {self.base_index_name!r}")
        if not _TAG_RE.match(self.tag):
            raise ConfigurationError(f"Invalid index tag: {self.tag!r}")
        if not 1 <= self.shards <= MAX_SHARDS:
            raise ConfigurationError(f"Shards must be between 1 and {MAX_SHARDS}")
        if self.replicas < 0:
            raise ConfigurationError("Replicas must be a non-negative integer")

    def index_path(self, index: str) -> str:
        """Physical index name, ``<base>_<index>_index[_<tag>]``."""

        path = f"{self.base_index_name}_{index}_index"
        return f"{path}_{self.tag}" if self.tag else path

    def index_alias(self, index: str) -> str:
        return f"{self.base_index_name}_{index}"


def get_search_engine_config(
    *,
    url: str | None = None,
    base_index_name: str | None = None,
    tag: str | None = None,
    shards: int | None = None,
    replicas: int | None = None,
) -> SearchEngineConfig:
    """Build the search engine settings, explicit arguments taking precedence over env."""

    effective_url = (url or optional_env("ELASTICSEARCH_URL", ELASTICSEARCH_URL)).rstrip("/")
    return SearchEngineConfig(
        url=effective_url,
        base_index_name=base_index_name
        or optional_env("INDEXPORT_BASE_INDEX_NAME", DEFAULT_BASE_INDEX_NAME),
        tag=tag if tag is not None else optional_env("INDEXPORT_TAG", ""),
        shards=shards if shards is not None else optional_env_int("INDEXPORT_SHARDS", 1),
        replicas=replicas if replicas is not None else optional_env_int("INDEXPORT_REPLICAS", 1),
        resilience=_default_resilience(
            effective_url, optional_env_float("ELASTICSEARCH_MAX_REQUESTS_PER_SECOND")
        ),
    )
