from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..common.datetime_utils import parse_iso_datetime
from ..core.constants import NOT_BADGED_LABEL
from ..core.enums import PresenceStatus, Role


@dataclass(frozen=True)
class User:
    """Domain entity: a badging user.

    `lieux` is None only for users who have never badged.
    """

    user_id: int
    nom: str
    prenom: str
    email: str
    role: Role
    service: Optional[str] = None
    lieux: Optional[str] = None
    status: Optional[str] = None
    numero_badge: Optional[str] = None
    heures_contractuelles_semaine: Optional[float] = None
    actif: bool = True
    updated_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.prenom} {self.nom}".strip()

    @property
    def has_badged_before(self) -> bool:
        return self.lieux is not None

    @property
    def display_status(self) -> str:
        return self.status or NOT_BADGED_LABEL


_STATUS_ORDER = {
    PresenceStatus.ENTRE.value: 0,
    PresenceStatus.EN_PAUSE.value: 1,
    PresenceStatus.SORTI.value: 2,
}


def status_sort_key(user: User) -> tuple[int, str]:
    """Entré < En pause < Sorti < anything else, then first name (case-insensitive)."""
    return (_STATUS_ORDER.get(user.status or "", 3), (user.prenom or "").casefold())


def user_from_row(r: dict[str, Any]) -> User:
    """Build a User from a store row (query result or change notification)."""
    hours = r.get("heures_contractuelles_semaine")
    return User(
        user_id=int(r["id"]),
        nom=r.get("nom") or "",
        prenom=r.get("prenom") or "",
        email=r.get("email") or "",
        role=Role.from_label(r.get("role")),
        service=r.get("service"),
        lieux=r.get("lieux"),
        status=r.get("status"),
        numero_badge=r.get("numero_badge"),
        heures_contractuelles_semaine=float(hours) if hours is not None else None,
        actif=bool(r.get("actif", True)),
        updated_at=_stamp(r.get("updated_at")),
    )


def _stamp(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return parse_iso_datetime(str(value))
