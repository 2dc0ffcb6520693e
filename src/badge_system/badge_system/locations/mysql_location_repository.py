from __future__ import annotations

from typing import Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, optional_float
from .model import AuthorizedSite
from .repository import LocationRepository


class MySQLLocationRepository(LocationRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_authorized_sites(self) -> Sequence[AuthorizedSite]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT ip_address, lieux, latitude, longitude
                FROM appbadge_horaires_standards
                WHERE ip_address IS NOT NULL AND ip_address <> ''
                ORDER BY id ASC
                """
            )
            return [
                AuthorizedSite(
                    address=str(r["ip_address"]).strip(),
                    site_name=r["lieux"],
                    latitude=optional_float(r.get("latitude")),
                    longitude=optional_float(r.get("longitude")),
                )
                for r in fetchall(cur)
            ]
