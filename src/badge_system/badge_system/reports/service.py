from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ..badges.repository import BadgeRepository
from ..core.enums import PeriodKind
from ..requests.model import ModificationRequest
from ..requests.repository import RequestRepository
from ..schedules.repository import ScheduleRepository, schedules_by_site
from ..sessions.model import Session
from ..sessions.reconciler import SessionReconciler
from ..users.repository import UserRepository
from .kpi import KpiBundle, KpiFilters, aggregate, filter_users, sort_by_status
from .model import MonthlyTeamStats, UserMonthlyStats
from .period import DateRange, PeriodSelector, resolve


def _hours(minutes: float) -> float:
    return round(minutes / 60, 2)


class ReportService:
    def __init__(
        self,
        users: UserRepository,
        badges: BadgeRepository,
        schedules: ScheduleRepository,
        *,
        requests: Optional[RequestRepository] = None,
        default_weekly_hours: Optional[float] = None,
    ):
        self._users = users
        self._badges = badges
        self._schedules = schedules
        self._requests = requests
        self._default_weekly_hours = default_weekly_hours

    def _sessions(self, period: DateRange) -> list[Session]:
        reconciler = SessionReconciler(schedules_by_site(self._schedules.list_all()))
        events = self._badges.list_between(start=period.start_at, end=period.end_at)

        sessions: list[Session] = []
        for result in reconciler.reconcile_many(events).values():
            sessions.extend(result.sessions)

        if self._requests is None or not sessions:
            return sessions

        approved: dict[int, ModificationRequest] = {}
        for req in self._requests.list_approved_modifications([s.entree_id for s in sessions]):
            approved[req.entree_id] = req
        return [
            reconciler.apply_correction(s, approved[s.entree_id]) if s.entree_id in approved else s
            for s in sessions
        ]

    def kpis(self, selector: PeriodSelector, filters: KpiFilters, today: date) -> KpiBundle:
        period = resolve(selector, today)
        users = sort_by_status(filter_users(self._users.list_active(), filters))
        return aggregate(
            users,
            self._sessions(period),
            period,
            PeriodKind(selector.kind),
            default_weekly_hours=self._default_weekly_hours,
        )

    def list_services(self) -> list[str]:
        return sorted({u.service for u in self._users.list_active() if u.service})

    def monthly_team_stats(self, year: int, month: int, service: Optional[str] = None) -> Sequence[MonthlyTeamStats]:
        """Per-service totals for one calendar month."""

        period = resolve(PeriodSelector(kind=PeriodKind.MONTH, month_number=int(month), year=int(year)), date.today())
        users = [u for u in self._users.list_active() if service is None or u.service == service]

        by_user: dict[int, list[Session]] = {u.user_id: [] for u in users}
        for s in self._sessions(period):
            if s.utilisateur_id in by_user:
                by_user[s.utilisateur_id].append(s)

        by_service: dict[str, list[UserMonthlyStats]] = {}
        for u in sorted(users, key=lambda u: ((u.nom or "").casefold(), (u.prenom or "").casefold())):
            mine = by_user[u.user_id]
            worked = sum(s.duree_minutes for s in mine)
            days = len({s.jour_local for s in mine})
            by_service.setdefault(u.service or "Sans service", []).append(
                UserMonthlyStats(
                    utilisateur_id=u.user_id,
                    nom=u.nom,
                    prenom=u.prenom,
                    email=u.email,
                    total_hours=_hours(worked),
                    avg_hours_per_day=_hours(worked / days) if days else 0.0,
                    total_delays_minutes=sum(s.retard_minutes for s in mine),
                    jours_travailles=days,
                )
            )

        out: list[MonthlyTeamStats] = []
        for name in sorted(by_service):
            rows = by_service[name]
            total = round(sum(r.total_hours for r in rows), 2)
            out.append(
                MonthlyTeamStats(
                    service=name,
                    total_hours=total,
                    avg_hours_per_user=round(total / len(rows), 2),
                    total_delays_minutes=sum(r.total_delays_minutes for r in rows),
                    absences_count=sum(1 for r in rows if r.is_absent),
                    users=rows,
                )
            )
        return out
