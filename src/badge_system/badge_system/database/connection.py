from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connection_timeout: int = 10

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "DBConfig":
        """Build from a settings `DB_CONFIG` dict; missing keys take local defaults."""
        return cls(
            host=str(settings.get("host") or "localhost"),
            port=int(settings.get("port") or 3306),
            user=str(settings.get("user") or "root"),
            password=str(settings.get("password") or ""),
            database=str(settings.get("database") or "badge_db"),
        )

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Opens one short-lived connection per unit of work.

    A badge write, an oubli approval or a validation decision each get their
    own connection and transaction; nothing is pooled between requests.
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    def _open(self, database: Optional[str]) -> Any:
        return mysql.connector.connect(
            host=self._config.host,
            port=self._config.port,
            user=self._config.user,
            password=self._config.password,
            database=database,
            connection_timeout=self._config.connection_timeout,
            autocommit=False,
        )

    def connect(self) -> Any:
        return self._open(self._config.database)

    def connect_server(self) -> Any:
        """Connection with no schema selected (used to create the database)."""
        return self._open(None)
