from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from ..badges.model import BadgeEvent, NewBadgeEvent
from ..badges.repository import BadgeRepository
from ..common.datetime_utils import now_local
from ..common.validators import optional_text, require_non_empty
from ..core.constants import DEFAULT_PENDING_LIMIT
from ..core.enums import BadgeAction, RequestStatus, Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DataIntegrityError,
    ValidationError,
)
from ..sessions.model import Session
from ..sessions.reconciler import SessionReconciler
from ..users.repository import UserRepository
from .model import ModificationStatus, NewModificationRequest, NewOubliRequest, OubliRequest
from .repository import RequestRepository

logger = logging.getLogger(__name__)


def synthesize_events(request: OubliRequest, code: str, lieux: Optional[str] = None) -> list[NewBadgeEvent]:
    """Badge events standing for an approved oubli: entrée, [pause, retour,] sortie."""

    comment = f"Oubli de badgeage: {request.raison}"
    stamps = [(BadgeAction.ENTREE, request.date_heure_entree)]
    if request.has_pause:
        stamps.append((BadgeAction.PAUSE, request.date_heure_pause_debut))
        stamps.append((BadgeAction.RETOUR, request.date_heure_pause_fin))
    stamps.append((BadgeAction.SORTIE, request.date_heure_sortie))

    return [
        NewBadgeEvent(
            utilisateur_id=request.utilisateur_id,
            date_heure=ts,
            type_action=action,
            code=code,
            lieux=lieux,
            commentaire=comment,
        )
        for action, ts in stamps
    ]


class ModificationWorkflow:
    """Correction requests on sessions (modifications) and missing sessions (oublis).

    Lifecycle: none -> pending -> approved | rejected. Resolved requests are
    final.
    """

    def __init__(
        self,
        requests: RequestRepository,
        badges: BadgeRepository,
        users: UserRepository,
        *,
        reconciler: Optional[SessionReconciler] = None,
    ):
        self._requests = requests
        self._badges = badges
        self._users = users
        self._reconciler = reconciler or SessionReconciler()

    def _session_for_entry(self, entree: BadgeEvent) -> Optional[Session]:
        day = entree.date_heure.date()
        start = datetime.combine(day, datetime.min.time())
        events = self._badges.list_for_user(entree.utilisateur_id, start=start, end=start + timedelta(days=1))
        for s in self._reconciler.reconcile(events).sessions:
            if s.entree_id == entree.badge_event_id:
                return s
        return None

    @staticmethod
    def _check_validator(current_role: Role, validator_id: int, requester_id: int) -> None:
        if current_role != Role.ADMIN:
            raise AuthorizationError("Seul un administrateur peut valider une demande")
        if int(validator_id) == int(requester_id):
            raise AuthorizationError("Vous ne pouvez pas valider votre propre demande")

    # -------- Session modifications --------
    def create_modification(
        self,
        *,
        requester_id: int,
        entree_id: int,
        proposed_entree_ts: Optional[datetime] = None,
        proposed_sortie_ts: Optional[datetime] = None,
        pause_delta_minutes: int = 0,
        motif: Optional[str] = None,
        commentaire: Optional[str] = None,
    ) -> int:
        entree = self._badges.get_event(int(entree_id))
        if (
            entree is None
            or entree.utilisateur_id != int(requester_id)
            or entree.type_action != BadgeAction.ENTREE
        ):
            raise ValidationError("Référence de session invalide", code="invalid_entry_reference")

        session = self._session_for_entry(entree)
        original_sortie = session.sortie_ts if session else None

        if proposed_entree_ts == entree.date_heure:
            proposed_entree_ts = None
        if proposed_sortie_ts is not None and proposed_sortie_ts == original_sortie:
            proposed_sortie_ts = None
        motif = optional_text(motif)
        commentaire = optional_text(commentaire)
        pause_delta = int(pause_delta_minutes or 0)

        if proposed_entree_ts is None and proposed_sortie_ts is None and pause_delta == 0 and not motif and not commentaire:
            raise ValidationError("Aucune modification demandée", code="noop_request")

        effective_entree = proposed_entree_ts or entree.date_heure
        effective_sortie = proposed_sortie_ts or original_sortie
        if effective_sortie is not None and effective_sortie <= effective_entree:
            raise ValidationError("L'heure de sortie doit être après l'heure d'entrée", code="invalid_times")

        if self._requests.has_pending_modification(entree.badge_event_id):
            raise ConflictError("Une demande est déjà en attente pour cette session")

        modif_id = self._requests.create_modification(
            NewModificationRequest(
                entree_id=entree.badge_event_id,
                utilisateur_id=entree.utilisateur_id,
                proposed_entree_ts=proposed_entree_ts,
                proposed_sortie_ts=proposed_sortie_ts,
                pause_delta_minutes=pause_delta,
                motif=motif,
                commentaire=commentaire,
            )
        )
        logger.info("Modification request %s created for entry %s", modif_id, entree.badge_event_id)
        return modif_id

    def modification_status(self, entree_id: int) -> ModificationStatus:
        req = self._requests.get_latest_modification(int(entree_id))
        if req is None:
            return ModificationStatus(status=RequestStatus.NONE)
        validation = self._requests.get_validation(req.modif_id)
        return ModificationStatus(status=req.status, request=req, validation=validation)

    def validate_modification(
        self,
        *,
        current_role: Role,
        validator_id: int,
        modif_id: int,
        approve: bool,
        comment: Optional[str] = None,
    ) -> None:
        req = self._requests.get_modification(int(modif_id))
        if req is None:
            raise DataIntegrityError("Demande de modification introuvable")
        self._check_validator(current_role, validator_id, req.utilisateur_id)
        if req.status != RequestStatus.PENDING:
            raise DataIntegrityError("Cette demande a déjà été traitée")
        if self._badges.get_event(req.entree_id) is None:
            raise DataIntegrityError("Le badgeage d'entrée de cette demande n'existe plus")

        decided = self._requests.decide_modification(
            modif_id=req.modif_id,
            validateur_id=int(validator_id),
            approuve=bool(approve),
            commentaire=optional_text(comment),
            validated_at=now_local(),
        )
        if not decided:
            raise ConflictError("La demande a été traitée entre-temps")
        logger.info(
            "Modification request %s %s by %s",
            req.modif_id,
            "approved" if approve else "rejected",
            validator_id,
        )

    # -------- Oublis --------
    def create_oubli(
        self,
        *,
        user_id: int,
        date_heure_entree: datetime,
        date_heure_sortie: datetime,
        raison: str,
        date_heure_pause_debut: Optional[datetime] = None,
        date_heure_pause_fin: Optional[datetime] = None,
        commentaire: Optional[str] = None,
        perte_badge: bool = False,
    ) -> int:
        raison = require_non_empty(raison, "La raison", code="missing_reason")

        if date_heure_sortie <= date_heure_entree:
            raise ValidationError("L'heure de sortie doit être après l'heure d'entrée", code="invalid_times")
        if date_heure_sortie.date() != date_heure_entree.date():
            raise ValidationError("L'entrée et la sortie doivent être le même jour", code="invalid_times")
        if (date_heure_pause_debut is None) != (date_heure_pause_fin is None):
            raise ValidationError("La pause doit avoir un début et une fin", code="invalid_times")
        if date_heure_pause_debut is not None and date_heure_pause_fin is not None:
            if not (date_heure_entree <= date_heure_pause_debut < date_heure_pause_fin <= date_heure_sortie):
                raise ValidationError("La pause doit être comprise dans la session", code="invalid_times")

        if self._users.get_by_id(int(user_id)) is None:
            raise DataIntegrityError("Utilisateur introuvable")
        if self._requests.has_pending_oubli(int(user_id), date_heure_entree.date()):
            raise ConflictError("Une demande d'oubli est déjà en attente pour ce jour")

        oubli_id = self._requests.create_oubli(
            NewOubliRequest(
                utilisateur_id=int(user_id),
                date_heure_entree=date_heure_entree,
                date_heure_sortie=date_heure_sortie,
                date_heure_pause_debut=date_heure_pause_debut,
                date_heure_pause_fin=date_heure_pause_fin,
                raison=raison,
                commentaire=optional_text(commentaire),
                perte_badge=bool(perte_badge),
            )
        )
        logger.info("Oubli request %s created for user %s", oubli_id, user_id)
        return oubli_id

    def validate_oubli(
        self,
        *,
        current_role: Role,
        validator_id: int,
        oubli_id: int,
        approve: bool,
        comment: Optional[str] = None,
    ) -> list[int]:
        """Approve or reject; returns the ids of the appended events (empty on reject)."""

        req = self._requests.get_oubli(int(oubli_id))
        if req is None:
            raise DataIntegrityError("Demande d'oubli introuvable")
        self._check_validator(current_role, validator_id, req.utilisateur_id)
        if req.status != RequestStatus.PENDING:
            raise DataIntegrityError("Cette demande a déjà été traitée")

        comment = optional_text(comment)
        if not approve:
            if not self._requests.reject_oubli(
                oubli_id=req.oubli_id,
                validateur_id=int(validator_id),
                commentaire=comment,
                validated_at=now_local(),
            ):
                raise ConflictError("La demande a été traitée entre-temps")
            logger.info("Oubli request %s rejected by %s", req.oubli_id, validator_id)
            return []

        badge = self._badges.get_active_badge_for_user(req.utilisateur_id)
        if badge is None:
            raise DataIntegrityError("Aucun badge actif trouvé pour cet utilisateur.")

        user = self._users.get_by_id(req.utilisateur_id)
        events = synthesize_events(req, badge.numero_badge, user.lieux if user else None)
        ids = self._requests.approve_oubli(
            oubli_id=req.oubli_id,
            validateur_id=int(validator_id),
            commentaire=comment,
            validated_at=now_local(),
            events=events,
        )
        logger.info("Oubli request %s approved by %s (%d events)", req.oubli_id, validator_id, len(ids))
        return ids

    def list_pending(self, *, limit: int = DEFAULT_PENDING_LIMIT) -> dict:
        return {
            "modifications": self._requests.list_pending_modifications(limit=limit),
            "oublis": self._requests.list_pending_oublis(limit=limit),
        }
