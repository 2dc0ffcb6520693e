from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional, Sequence

from ..badges.repository import BadgeRepository
from ..core.constants import DEFAULT_SESSION_LIMIT
from ..requests.model import ModificationRequest, ModificationStatus
from ..requests.repository import RequestRepository
from ..requests.service import ModificationWorkflow
from ..schedules.repository import ScheduleRepository, schedules_by_site
from .model import OpenSession, Session
from .reconciler import SessionReconciler


class SessionService:
    def __init__(
        self,
        badges: BadgeRepository,
        requests: RequestRepository,
        workflow: ModificationWorkflow,
        *,
        schedules: Optional[ScheduleRepository] = None,
    ):
        self._badges = badges
        self._requests = requests
        self._workflow = workflow
        self._schedules = schedules

    def _reconciler(self) -> SessionReconciler:
        if self._schedules is None:
            return SessionReconciler()
        return SessionReconciler(schedules_by_site(self._schedules.list_all()))

    def list_sessions(
        self,
        user_id: int,
        *,
        limit: int = DEFAULT_SESSION_LIMIT,
        before: Optional[datetime] = None,
    ) -> list[Session]:
        """Most recent completed sessions first, approved corrections applied."""

        reconciler = self._reconciler()
        events = self._badges.list_for_user(int(user_id), end=before)
        sessions = sorted(
            reconciler.reconcile(events).sessions,
            key=lambda s: s.entree_ts,
            reverse=True,
        )[: max(0, int(limit))]
        if not sessions:
            return []

        approved: dict[int, ModificationRequest] = {}
        for req in self._requests.list_approved_modifications([s.entree_id for s in sessions]):
            # Later approvals win.
            approved[req.entree_id] = req

        return [
            reconciler.apply_correction(s, approved[s.entree_id]) if s.entree_id in approved else s
            for s in sessions
        ]

    def modification_statuses(self, entree_ids: Sequence[int]) -> dict[int, ModificationStatus]:
        return {int(i): self._workflow.modification_status(int(i)) for i in entree_ids}

    def current_status(self, user_id: int, today: date) -> Optional[OpenSession]:
        start = datetime.combine(today, datetime.min.time())
        events = self._badges.list_for_user(int(user_id), start=start, end=start + timedelta(days=1))
        return SessionReconciler().reconcile(events).current
