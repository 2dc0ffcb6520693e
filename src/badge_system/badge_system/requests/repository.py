from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..badges.model import NewBadgeEvent
from .model import (
    ModificationRequest,
    ModificationValidation,
    NewModificationRequest,
    NewOubliRequest,
    OubliRequest,
)


class RequestRepository(Protocol):
    # Session modifications
    def create_modification(self, req: NewModificationRequest) -> int:
        """Insert a pending request; a second pending one for the same entry raises ConflictError."""

        raise NotImplementedError

    def get_modification(self, modif_id: int) -> Optional[ModificationRequest]:
        raise NotImplementedError

    def get_latest_modification(self, entree_id: int) -> Optional[ModificationRequest]:
        raise NotImplementedError

    def has_pending_modification(self, entree_id: int) -> bool:
        raise NotImplementedError

    def get_validation(self, modif_id: int) -> Optional[ModificationValidation]:
        raise NotImplementedError

    def list_approved_modifications(self, entree_ids: Sequence[int]) -> Sequence[ModificationRequest]:
        raise NotImplementedError

    def decide_modification(
        self,
        *,
        modif_id: int,
        validateur_id: int,
        approuve: bool,
        commentaire: Optional[str],
        validated_at: datetime,
    ) -> bool:
        """Resolve a pending request and record its validation; False if it was no longer pending."""

        raise NotImplementedError

    def list_pending_modifications(self, *, limit: int = 500) -> Sequence[dict]:
        """Return UI rows (joined with user and entry event)."""

        raise NotImplementedError

    # Oublis
    def create_oubli(self, req: NewOubliRequest) -> int:
        raise NotImplementedError

    def get_oubli(self, oubli_id: int) -> Optional[OubliRequest]:
        raise NotImplementedError

    def has_pending_oubli(self, user_id: int, day: date) -> bool:
        raise NotImplementedError

    def reject_oubli(
        self,
        *,
        oubli_id: int,
        validateur_id: int,
        commentaire: Optional[str],
        validated_at: datetime,
    ) -> bool:
        raise NotImplementedError

    def approve_oubli(
        self,
        *,
        oubli_id: int,
        validateur_id: int,
        commentaire: Optional[str],
        validated_at: datetime,
        events: Sequence[NewBadgeEvent],
    ) -> list[int]:
        """Mark approved and append `events` in one transaction.

        Raises ConflictError (and writes nothing) if the request is no longer
        pending.
        """

        raise NotImplementedError

    def list_pending_oublis(self, *, limit: int = 500) -> Sequence[dict]:
        raise NotImplementedError
