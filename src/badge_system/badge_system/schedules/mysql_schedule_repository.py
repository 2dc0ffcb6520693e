from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, normalize_mysql_time, optional_float
from .model import StandardSchedule
from .repository import ScheduleRepository


class MySQLScheduleRepository(ScheduleRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[StandardSchedule]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT id, lieux, heure_debut, heure_fin, ip_address, latitude, longitude
                FROM appbadge_horaires_standards
                ORDER BY id ASC
                """
            )
            return [
                StandardSchedule(
                    schedule_id=int(r["id"]),
                    lieux=r["lieux"],
                    start_time=normalize_mysql_time(r.get("heure_debut")),
                    end_time=normalize_mysql_time(r.get("heure_fin")),
                    ip_address=r.get("ip_address"),
                    latitude=optional_float(r.get("latitude")),
                    longitude=optional_float(r.get("longitude")),
                )
                for r in fetchall(cur)
            ]
