"""Public website settings used to build absolute URLs in documents."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final
from urllib.parse import urlsplit

from .env import optional_env
from .errors import ConfigurationError

DEFAULT_WEBSITE: Final[str] = "https://reliefweb.int"
DEFAULT_FILES_PATH: Final[str] = "/sites/reliefweb.int/files/"


def _toggle_www(host: str) -> str:
    return host.removeprefix("www.") if host.startswith("www.") else f"www.{host}"


@dataclass(frozen=True, slots=True)
class SiteConfig:
    website: str = DEFAULT_WEBSITE
    files_path: str = DEFAULT_FILES_PATH
    legacy_hosts: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        parts = urlsplit(self.website)
        if parts.scheme not in {"http", "https"} or not parts.netloc:
            raise ConfigurationError(
                f"Invalid website option, it must be a valid URL: {self.website!r}"
            )
        if not self.files_path.startswith("/") or not self.files_path.endswith("/"):
            raise ConfigurationError("Files path must start and end with '/'")

    @property
    def host(self) -> str:
        return urlsplit(self.website).netloc

    def effective_legacy_hosts(self) -> tuple[str, ...]:
        """Hosts whose absolute links are rewritten to the website origin."""

        if self.legacy_hosts:
            return self.legacy_hosts
        return (_toggle_www(self.host),)


def get_site_config(*, website: str | None = None) -> SiteConfig:
    hosts = optional_env("INDEXPORT_LEGACY_HOSTS", "")
    return SiteConfig(
        website=(website or optional_env("INDEXPORT_WEBSITE", DEFAULT_WEBSITE)).rstrip("/"),
        files_path=optional_env("INDEXPORT_FILES_PATH", DEFAULT_FILES_PATH),
        legacy_hosts=tuple(host.strip() for host in hosts.split(",") if host.strip()),
    )
