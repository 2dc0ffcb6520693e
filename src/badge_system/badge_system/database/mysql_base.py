from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, time, timedelta
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

import mysql.connector
from mysql.connector import errorcode

from ..core.exceptions import ConflictError, TransientIOError
from .connection import DatabaseConnection

Row = Dict[str, Any]


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[Tuple[Any, Any]]:
    """Yield (conn, cursor) inside one transaction.

    Commits when the block exits normally and rolls back otherwise. A
    duplicate-key violation on a pending-request index becomes ConflictError;
    an unreachable server becomes TransientIOError.
    """

    try:
        conn = conn_factory.connect()
    except (mysql.connector.errors.InterfaceError, mysql.connector.errors.OperationalError) as e:
        raise TransientIOError(f"Base de données injoignable: {e}") from e

    cur = conn.cursor(dictionary=dictionary)
    try:
        yield conn, cur
        conn.commit()
    except mysql.connector.errors.IntegrityError as e:
        conn.rollback()
        if e.errno == errorcode.ER_DUP_ENTRY:
            raise ConflictError("Une demande est déjà en attente pour cet élément") from e
        raise
    except BaseException:
        conn.rollback()
        raise
    finally:
        cur.close()
        conn.close()


def fetchone(cur) -> Optional[Row]:
    return cur.fetchone() or None


def fetchall(cur) -> List[Row]:
    return list(cur.fetchall() or ())


def in_clause(values: Sequence[Any]) -> str:
    """`%s,%s,...` for an IN (...) filter; callers never pass an empty list."""
    return ", ".join("%s" for _ in values)


def optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None


def normalize_mysql_time(value: Any) -> Optional[time]:
    """TIME columns come back as timedelta (C and pure connector), time or 'HH:MM[:SS]'."""

    if value is None or isinstance(value, time):
        return value
    if isinstance(value, timedelta):
        return (datetime.min + timedelta(seconds=int(value.total_seconds()) % 86400)).time()
    if isinstance(value, str):
        try:
            return time.fromisoformat(value.strip())
        except ValueError as e:
            raise ValueError(f"Heure invalide: {value!r}") from e
    raise TypeError(f"Type TIME non géré: {type(value)!r}")
