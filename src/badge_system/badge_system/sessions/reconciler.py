from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

from ..badges.model import BadgeEvent
from ..core.enums import BadgeAction, PresenceStatus
from ..schedules.model import StandardSchedule
from ..schedules.repository import schedule_for_site
from .model import OpenSession, ReconcileResult, Session

if TYPE_CHECKING:
    from ..requests.model import ModificationRequest

logger = logging.getLogger(__name__)


def _minutes(seconds: float) -> int:
    return int(seconds // 60)


@dataclass
class _Open:
    entree: BadgeEvent
    pause_started: Optional[datetime] = None
    pause_seconds: float = 0.0

    @property
    def day(self):
        return self.entree.date_heure.date()


class SessionReconciler:
    """Groups a user's badge events into sessions.

    Orphaned events (a pause or exit with no open session, a second entry
    while one is open, a return without a pause) are skipped, never raised.
    """

    def __init__(self, schedules: Optional[Mapping[str, StandardSchedule]] = None):
        self._schedules = dict(schedules or {})

    def lateness(self, lieux: Optional[str], entree_ts: datetime) -> int:
        sc = schedule_for_site(self._schedules, lieux)
        if not sc or sc.start_time is None:
            return 0
        scheduled = datetime.combine(entree_ts.date(), sc.start_time)
        return max(0, _minutes((entree_ts - scheduled).total_seconds()))

    def early_departure(self, lieux: Optional[str], sortie_ts: datetime) -> int:
        sc = schedule_for_site(self._schedules, lieux)
        if not sc or sc.end_time is None:
            return 0
        scheduled = datetime.combine(sortie_ts.date(), sc.end_time)
        return max(0, _minutes((scheduled - sortie_ts).total_seconds()))

    def _close(self, state: _Open, sortie: BadgeEvent) -> Session:
        pause_seconds = state.pause_seconds
        if state.pause_started is not None:
            pause_seconds += (sortie.date_heure - state.pause_started).total_seconds()

        entree = state.entree
        total = _minutes((sortie.date_heure - entree.date_heure).total_seconds())
        pause = _minutes(pause_seconds)
        return Session(
            utilisateur_id=entree.utilisateur_id,
            jour_local=state.day,
            entree_id=entree.badge_event_id,
            entree_ts=entree.date_heure,
            sortie_id=sortie.badge_event_id,
            sortie_ts=sortie.date_heure,
            pause_minutes=pause,
            duree_minutes=max(0, total - pause),
            lieux=entree.lieux,
            retard_minutes=self.lateness(entree.lieux, entree.date_heure),
            depart_anticipe_minutes=self.early_departure(entree.lieux, sortie.date_heure),
        )

    def reconcile(self, events: Iterable[BadgeEvent]) -> ReconcileResult:
        """Reconcile one user's events (any order; sorted here)."""

        ordered = sorted(events, key=lambda e: (e.date_heure, e.badge_event_id))
        sessions: list[Session] = []
        state: Optional[_Open] = None
        orphans = 0

        def orphan(ev: BadgeEvent, reason: str) -> None:
            nonlocal orphans
            orphans += 1
            logger.debug("Skipping orphan %s #%s: %s", ev.type_action.value, ev.badge_event_id, reason)

        for ev in ordered:
            same_day = state is not None and ev.date_heure.date() == state.day

            if state is not None and not same_day:
                logger.debug("Dropping incomplete session opened by #%s", state.entree.badge_event_id)
                state = None

            if ev.type_action == BadgeAction.ENTREE:
                if state is not None:
                    orphan(ev, "session already open")
                    continue
                state = _Open(entree=ev)

            elif ev.type_action == BadgeAction.PAUSE:
                if state is None:
                    orphan(ev, "no open session")
                elif state.pause_started is not None:
                    orphan(ev, "already paused")
                else:
                    state.pause_started = ev.date_heure

            elif ev.type_action == BadgeAction.RETOUR:
                if state is None or state.pause_started is None:
                    orphan(ev, "no pause in progress")
                else:
                    state.pause_seconds += (ev.date_heure - state.pause_started).total_seconds()
                    state.pause_started = None

            elif ev.type_action == BadgeAction.SORTIE:
                if state is None:
                    orphan(ev, "no open session")
                elif ev.date_heure <= state.entree.date_heure:
                    orphan(ev, "exit not after entry")
                else:
                    sessions.append(self._close(state, ev))
                    state = None

        current = None
        if state is not None:
            current = OpenSession(
                utilisateur_id=state.entree.utilisateur_id,
                entree_id=state.entree.badge_event_id,
                entree_ts=state.entree.date_heure,
                status=PresenceStatus.EN_PAUSE if state.pause_started is not None else PresenceStatus.ENTRE,
                pause_minutes=_minutes(state.pause_seconds),
                lieux=state.entree.lieux,
            )
        return ReconcileResult(sessions=sessions, current=current, orphans=orphans)

    def reconcile_many(self, events: Sequence[BadgeEvent]) -> dict[int, ReconcileResult]:
        by_user: dict[int, list[BadgeEvent]] = {}
        for ev in events:
            by_user.setdefault(ev.utilisateur_id, []).append(ev)
        return {uid: self.reconcile(evs) for uid, evs in by_user.items()}

    def apply_correction(self, session: Session, request: "ModificationRequest") -> Session:
        """Overlay an approved modification on a session; events stay untouched."""

        entree_ts = request.proposed_entree_ts or session.entree_ts
        sortie_ts = request.proposed_sortie_ts or session.sortie_ts
        pause = max(0, session.pause_minutes + int(request.pause_delta_minutes or 0))
        total = _minutes((sortie_ts - entree_ts).total_seconds())
        return replace(
            session,
            entree_ts=entree_ts,
            sortie_ts=sortie_ts,
            pause_minutes=pause,
            duree_minutes=max(0, total - pause),
            retard_minutes=self.lateness(session.lieux, entree_ts),
            depart_anticipe_minutes=self.early_departure(session.lieux, sortie_ts),
            corrected=True,
        )
