from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import RequestStatus


@dataclass(frozen=True)
class ModificationRequest:
    """Proposed correction of one session, keyed by its entry event."""

    modif_id: int
    entree_id: int
    utilisateur_id: int
    proposed_entree_ts: Optional[datetime]
    proposed_sortie_ts: Optional[datetime]
    pause_delta_minutes: int
    motif: Optional[str]
    commentaire: Optional[str]
    created_at: datetime
    status: RequestStatus = RequestStatus.PENDING


@dataclass(frozen=True)
class ModificationValidation:
    modif_id: int
    validateur_id: int
    approuve: bool
    commentaire: Optional[str]
    validated_at: datetime


@dataclass(frozen=True)
class ModificationStatus:
    status: RequestStatus
    request: Optional[ModificationRequest] = None
    validation: Optional[ModificationValidation] = None


@dataclass(frozen=True)
class NewModificationRequest:
    entree_id: int
    utilisateur_id: int
    proposed_entree_ts: Optional[datetime]
    proposed_sortie_ts: Optional[datetime]
    pause_delta_minutes: int
    motif: Optional[str]
    commentaire: Optional[str]


@dataclass(frozen=True)
class OubliRequest:
    """Forgot-to-badge: a retroactive session awaiting validation."""

    oubli_id: int
    utilisateur_id: int
    date_heure_saisie: datetime
    date_heure_entree: datetime
    date_heure_sortie: datetime
    date_heure_pause_debut: Optional[datetime]
    date_heure_pause_fin: Optional[datetime]
    raison: str
    commentaire: Optional[str]
    perte_badge: bool
    status: RequestStatus = RequestStatus.PENDING
    validateur_id: Optional[int] = None
    date_validation: Optional[datetime] = None
    validator_comment: Optional[str] = None

    @property
    def has_pause(self) -> bool:
        return self.date_heure_pause_debut is not None and self.date_heure_pause_fin is not None


@dataclass(frozen=True)
class NewOubliRequest:
    utilisateur_id: int
    date_heure_entree: datetime
    date_heure_sortie: datetime
    date_heure_pause_debut: Optional[datetime]
    date_heure_pause_fin: Optional[datetime]
    raison: str
    commentaire: Optional[str]
    perte_badge: bool = False
