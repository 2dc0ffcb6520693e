from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional, Union

from ..core.constants import DEFAULT_GEOLOCATION_TIMEOUT_SECONDS, OFFSITE_SITE
from ..core.enums import BadgeAction
from ..core.exceptions import DataIntegrityError, DomainError
from ..locations.authorizer import LocationAuthorizer
from ..locations.model import LocationVerdict
from ..users.repository import UserRepository
from .context import BadgeScanContext, ScanState
from .geolocation import GeolocationProvider, Position, acquire_position
from .guard import SingleFlight
from .nfc import NfcReaderHandle, NfcScanSession
from .repository import BadgeRepository
from .resolver import BadgeActionResolver, presence_for
from .strategies.base import BadgePlan

logger = logging.getLogger(__name__)


class BadgeService:
    """Use case: turn one physical scan into at most one badge event."""

    def __init__(
        self,
        badges: BadgeRepository,
        users: UserRepository,
        authorizer: LocationAuthorizer,
        *,
        resolver: Optional[BadgeActionResolver] = None,
        geolocation: Optional[GeolocationProvider] = None,
        geolocation_timeout: float = DEFAULT_GEOLOCATION_TIMEOUT_SECONDS,
        guard: Optional[SingleFlight] = None,
    ):
        self._badges = badges
        self._users = users
        self._authorizer = authorizer
        self._resolver = resolver or BadgeActionResolver()
        self._geolocation = geolocation
        self._geolocation_timeout = float(geolocation_timeout)
        self._guard = guard or SingleFlight()

    def plan_for(self, user_id: int, *, verdict: Optional[LocationVerdict] = None) -> BadgePlan:
        """What the form must collect before `badge()` can succeed."""
        user = self._users.get_by_id(int(user_id))
        if not user:
            raise DataIntegrityError("Utilisateur introuvable")
        return self._resolver.plan(
            user,
            verdict or self._authorizer.current_verdict(),
            self._badges.get_last_action(user.user_id),
        )

    def badge(
        self,
        user_id: int,
        *,
        verdict: Optional[LocationVerdict] = None,
        action: Union[str, BadgeAction, None] = None,
        comment: Optional[str] = None,
        code: Optional[str] = None,
        position: Optional[Position] = None,
        now: Optional[datetime] = None,
    ) -> Optional[BadgeScanContext]:
        """Resolve and record a scan.

        Returns None (and writes nothing) when a scan for the same user is
        still being written.
        """

        user_id = int(user_id)
        with self._guard.attempt(user_id) as acquired:
            if not acquired:
                logger.info("Ignoring re-entrant scan for user %s while a write is pending", user_id)
                return None

            ctx = BadgeScanContext()
            try:
                self._run(
                    ctx,
                    user_id,
                    verdict=verdict,
                    action=action,
                    comment=comment,
                    code=code,
                    position=position,
                    now=now or datetime.now(),
                )
            except DomainError as e:
                if ctx.state not in (ScanState.SUBMITTED, ScanState.FAILED):
                    ctx.fail(e)
                raise
            return ctx

    def badge_from_tag(
        self,
        uid_tag: str,
        *,
        verdict: Optional[LocationVerdict] = None,
        action: Union[str, BadgeAction, None] = None,
        comment: Optional[str] = None,
        position: Optional[Position] = None,
        now: Optional[datetime] = None,
    ) -> Optional[BadgeScanContext]:
        badge = self._badges.get_active_badge_by_tag(uid_tag)
        if not badge:
            raise DataIntegrityError("Aucun badge actif trouvé pour ce tag.")
        return self.badge(
            badge.utilisateur_id,
            verdict=verdict,
            action=action,
            comment=comment,
            code=badge.numero_badge,
            position=position,
            now=now,
        )

    def start_nfc_scan(self, handle: NfcReaderHandle, *, poll_timeout: float = 0.5) -> NfcScanSession:
        """Listen on the reader and badge every tapped tag until cancelled.

        Raises ConflictError when another scan session owns the reader.
        """
        return NfcScanSession(handle, self._badge_tag, poll_timeout=poll_timeout).start()

    def _badge_tag(self, uid_tag: str) -> None:
        try:
            self.badge_from_tag(uid_tag)
        except DomainError as e:
            logger.warning("NFC tag %s rejected: %s", uid_tag, e)

    def _run(
        self,
        ctx: BadgeScanContext,
        user_id: int,
        *,
        verdict: Optional[LocationVerdict],
        action: Union[str, BadgeAction, None],
        comment: Optional[str],
        code: Optional[str],
        position: Optional[Position],
        now: datetime,
    ) -> None:
        user = self._users.get_by_id(user_id)
        if not user:
            raise DataIntegrityError("Utilisateur introuvable")

        verdict = verdict or self._authorizer.current_verdict()
        ctx.identify(user, verdict)

        plan = self._resolver.plan(user, verdict, self._badges.get_last_action(user_id))
        ctx.planned(plan)

        if plan.needs_gps and position is None and self._geolocation is not None:
            position = acquire_position(self._geolocation, timeout=self._geolocation_timeout)
        ctx.position = position

        badge_code = code or user.numero_badge
        if not badge_code:
            active = self._badges.get_active_badge_for_user(user_id)
            badge_code = active.numero_badge if active else None
        if not badge_code:
            raise DataIntegrityError("Aucun badge actif trouvé pour cet utilisateur.")

        event = self._resolver.resolve(
            plan,
            user_id=user_id,
            code=badge_code,
            now=now,
            chosen_action=action,
            comment=comment,
            position=position,
        )
        ctx.ready(event)

        event_id = self._badges.append(event)
        ctx.submitted(event_id)
        logger.info("Badge %s recorded for user %s (%s)", event.type_action.value, user_id, event.lieux or "-")

        self._users.update_presence(
            user_id,
            lieux=event.lieux or OFFSITE_SITE,
            status=presence_for(event.type_action).value,
        )
