from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..core.enums import PresenceStatus


@dataclass(frozen=True)
class Session:
    """Derived entry-to-exit span for one user and one local day (never stored)."""

    utilisateur_id: int
    jour_local: date
    entree_id: int
    entree_ts: datetime
    sortie_id: int
    sortie_ts: datetime
    pause_minutes: int
    duree_minutes: int
    lieux: Optional[str] = None
    retard_minutes: int = 0
    depart_anticipe_minutes: int = 0
    corrected: bool = False

    @property
    def total_minutes(self) -> int:
        return int((self.sortie_ts - self.entree_ts).total_seconds() // 60)


@dataclass(frozen=True)
class OpenSession:
    """Entry without exit yet: the user's live status, not part of history."""

    utilisateur_id: int
    entree_id: int
    entree_ts: datetime
    status: PresenceStatus
    pause_minutes: int
    lieux: Optional[str] = None


@dataclass(frozen=True)
class ReconcileResult:
    sessions: list[Session]
    current: Optional[OpenSession] = None
    orphans: int = 0
