from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Closed set of roles that drive badge resolution."""

    ADMIN = "Admin"
    MANAGER = "Manager"
    FIELD_AGENT = "A-E"
    STANDARD = "Standard"

    @classmethod
    def from_label(cls, label: Optional[str]) -> "Role":
        """Parse a stored role label; anything unknown or empty is STANDARD."""
        if not label:
            return cls.STANDARD
        value = label.strip()
        for role in cls:
            if role.value.lower() == value.lower():
                return role
        return cls.STANDARD

    @property
    def is_privileged(self) -> bool:
        return self in (Role.ADMIN, Role.MANAGER)


class BadgeAction(str, Enum):
    """Type d'action enregistrée par un badgeage."""

    ENTREE = "entrée"
    SORTIE = "sortie"
    PAUSE = "pause"
    RETOUR = "retour"


class PresenceStatus(str, Enum):
    """Statut de présence dérivé du dernier badgeage."""

    ENTRE = "Entré"
    EN_PAUSE = "En pause"
    SORTI = "Sorti"


class RequestStatus(str, Enum):
    """Cycle de vie des demandes de correction (modification / oubli)."""

    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PeriodKind(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
