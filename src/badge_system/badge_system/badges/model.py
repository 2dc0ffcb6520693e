from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import BadgeAction


@dataclass(frozen=True)
class Badge:
    badge_id: int
    utilisateur_id: int
    numero_badge: str
    uid_tag: Optional[str] = None
    actif: bool = True


@dataclass(frozen=True)
class NewBadgeEvent:
    """Payload ready to be appended to the badge log."""

    utilisateur_id: int
    date_heure: datetime
    type_action: BadgeAction
    code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    lieux: Optional[str] = None
    commentaire: Optional[str] = None


@dataclass(frozen=True)
class BadgeEvent:
    """Immutable, append-only badge fact."""

    badge_event_id: int
    utilisateur_id: int
    date_heure: datetime
    type_action: BadgeAction
    code: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    lieux: Optional[str] = None
    commentaire: Optional[str] = None
