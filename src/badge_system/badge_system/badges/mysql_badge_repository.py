from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from ..core.enums import BadgeAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, optional_float
from .model import Badge, BadgeEvent, NewBadgeEvent
from .repository import BadgeRepository

_EVENT_COLUMNS = "id, utilisateur_id, date_heure, type_action, code, latitude, longitude, lieux, commentaire"

INSERT_EVENT_SQL = """
    INSERT INTO appbadge_badgeages(
        utilisateur_id, date_heure, type_action, code, latitude, longitude, lieux, commentaire
    )
    VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
"""


def event_params(event: NewBadgeEvent) -> tuple:
    return (
        int(event.utilisateur_id),
        event.date_heure,
        event.type_action.value,
        event.code,
        event.latitude,
        event.longitude,
        event.lieux,
        event.commentaire,
    )


def _row_to_event(r: dict[str, Any]) -> BadgeEvent:
    return BadgeEvent(
        badge_event_id=int(r["id"]),
        utilisateur_id=int(r["utilisateur_id"]),
        date_heure=r["date_heure"],
        type_action=BadgeAction(r["type_action"]),
        code=r["code"],
        latitude=optional_float(r.get("latitude")),
        longitude=optional_float(r.get("longitude")),
        lieux=r.get("lieux"),
        commentaire=r.get("commentaire"),
    )


def _row_to_badge(r: dict[str, Any]) -> Badge:
    return Badge(
        badge_id=int(r["id"]),
        utilisateur_id=int(r["utilisateur_id"]),
        numero_badge=str(r["numero_badge"]),
        uid_tag=r.get("uid_tag"),
        actif=bool(r.get("actif", True)),
    )


class MySQLBadgeRepository(BadgeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, event: NewBadgeEvent) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(INSERT_EVENT_SQL, event_params(event))
            return int(cur.lastrowid)

    def get_event(self, badge_event_id: int) -> Optional[BadgeEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EVENT_COLUMNS} FROM appbadge_badgeages WHERE id=%s", (int(badge_event_id),))
            r = fetchone(cur)
            return _row_to_event(r) if r else None

    def get_last_action(self, user_id: int) -> Optional[BadgeAction]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT type_action FROM appbadge_badgeages
                WHERE utilisateur_id=%s
                ORDER BY date_heure DESC, id DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return BadgeAction(r["type_action"]) if r else None

    def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[BadgeEvent]:
        where = ["utilisateur_id=%s"]
        params: list[Any] = [int(user_id)]
        if start is not None:
            where.append("date_heure >= %s")
            params.append(start)
        if end is not None:
            where.append("date_heure < %s")
            params.append(end)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS} FROM appbadge_badgeages
                WHERE {' AND '.join(where)}
                ORDER BY date_heure ASC, id ASC
                """,
                tuple(params),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[BadgeEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EVENT_COLUMNS} FROM appbadge_badgeages
                WHERE date_heure >= %s AND date_heure < %s
                ORDER BY utilisateur_id ASC, date_heure ASC, id ASC
                """,
                (start, end),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def get_active_badge_for_user(self, user_id: int) -> Optional[Badge]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, utilisateur_id, numero_badge, uid_tag, actif
                FROM appbadge_badges
                WHERE utilisateur_id=%s AND actif=1
                ORDER BY id DESC
                LIMIT 1
                """,
                (int(user_id),),
            )
            r = fetchone(cur)
            return _row_to_badge(r) if r else None

    def get_active_badge_by_tag(self, uid_tag: str) -> Optional[Badge]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, utilisateur_id, numero_badge, uid_tag, actif
                FROM appbadge_badges
                WHERE uid_tag=%s AND actif=1
                LIMIT 1
                """,
                (uid_tag,),
            )
            r = fetchone(cur)
            return _row_to_badge(r) if r else None
