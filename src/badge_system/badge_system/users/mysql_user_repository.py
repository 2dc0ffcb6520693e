from __future__ import annotations

from typing import Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import User, user_from_row
from .repository import UserRepository

_SELECT_USER = """
    SELECT u.id, u.nom, u.prenom, u.email, u.role, u.service, u.lieux, u.status,
           u.heures_contractuelles_semaine, u.actif, u.updated_at,
           (SELECT b.numero_badge FROM appbadge_badges b
             WHERE b.utilisateur_id = u.id AND b.actif = 1
             ORDER BY b.id DESC LIMIT 1) AS numero_badge
    FROM appbadge_utilisateurs u
"""


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, user_id: int) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT_USER + " WHERE u.id=%s", (int(user_id),))
            row = fetchone(cur)
            return user_from_row(row) if row else None

    def list_active(self) -> Sequence[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(_SELECT_USER + " WHERE u.actif=1 ORDER BY u.nom ASC")
            return [user_from_row(r) for r in fetchall(cur)]

    def update_presence(self, user_id: int, *, lieux: Optional[str], status: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE appbadge_utilisateurs
                SET lieux=COALESCE(%s, lieux), status=%s
                WHERE id=%s
                """,
                (lieux, status, int(user_id)),
            )
            return cur.rowcount > 0
