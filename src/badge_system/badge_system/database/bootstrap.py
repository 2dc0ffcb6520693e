"""Create the configured database and apply `database/schema.sql` to it."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Mapping, Union

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

# schema.sql names its own database for manual use; the configured one wins.
_SKIPPED = re.compile(r"^\s*(CREATE\s+DATABASE|USE)\b", re.IGNORECASE)


def schema_statements(sql: str) -> Iterator[str]:
    """Split the schema on statement-ending semicolons.

    The schema keeps one statement per block and every `;` at a line end, so
    there is no quoting to track.
    """

    lines = [line for line in sql.splitlines() if not line.lstrip().startswith("--")]
    for chunk in re.split(r";[ \t]*$", "\n".join(lines), flags=re.MULTILINE):
        stmt = chunk.strip()
        if stmt and not _SKIPPED.match(stmt):
            yield stmt


def ensure_database_exists(config: DBConfig) -> None:
    conn = DatabaseConnection(config).connect_server()
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: Mapping, *, schema_path: Union[str, Path]) -> None:
    config = DBConfig.from_settings(db_config)
    ensure_database_exists(config)

    statements = list(schema_statements(Path(schema_path).read_text(encoding="utf-8")))
    conn = DatabaseConnection(config).connect()
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()
    logger.info("Applied %d schema statements to %s", len(statements), config.describe())


def list_tables(db_config: Mapping) -> list[str]:
    conn = DatabaseConnection(DBConfig.from_settings(db_config)).connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return sorted(row[0] for row in cur.fetchall())
    finally:
        conn.close()
