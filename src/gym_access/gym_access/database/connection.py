from __future__ import annotations

from dataclasses import dataclass

import mysql.connector

from ..core.constants import DEFAULT_STORE_TIMEOUT_SECONDS


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    timeout_seconds: int = DEFAULT_STORE_TIMEOUT_SECONDS


class DatabaseConnection:
    """DB connection factory.

    Note: We create short-lived connections per unit of work (safe for simple Flask apps).
    One instance is built at startup and injected into every repository.
    """

    def __init__(self, config: DBConfig):
        self._config = config

    def connect(self, *, timeout_seconds: int | None = None):
        return mysql.connector.connect(
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            connection_timeout=int(timeout_seconds or self._config.timeout_seconds),
        )
