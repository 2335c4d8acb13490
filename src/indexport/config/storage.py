"""Relational source configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from sqlalchemy.engine import URL

from .env import optional_env_int, require_env_vars

MYSQL_ENV_VARS: Final[tuple[str, ...]] = ("MYSQL_HOST", "MYSQL_USER", "MYSQL_DATABASE")


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def get_database_config() -> DatabaseConfig:
    """Read ``DATABASE_URI`` or assemble a MySQL URL from the ``MYSQL_*`` variables.

    Without ``DATABASE_URI``, host, user and database name are required; the password
    and port (3306) are optional.
    """

    env_uri = os.getenv("DATABASE_URI")
    if env_uri:
        return DatabaseConfig(uri=env_uri)
    values = require_env_vars(MYSQL_ENV_VARS)
    url = URL.create(
        "mysql+pymysql",
        username=values["MYSQL_USER"],
        password=os.getenv("MYSQL_PASSWORD") or None,
        host=values["MYSQL_HOST"],
        port=optional_env_int("MYSQL_PORT", 3306),
        database=values["MYSQL_DATABASE"],
        query={"charset": "utf8mb4"},
    )
    return DatabaseConfig(uri=url.render_as_string(hide_password=False))
