"""Attendance indicators computed locally from reconciled sessions.

All averages are taken over the users that have at least one session in the
window. Performance compares worked minutes with contracted hours prorated
over the window's business days and is None whenever there is no baseline.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Iterable, Optional, Sequence

from ..core.constants import NOT_BADGED_LABEL, WORK_DAYS_PER_WEEK
from ..core.enums import PeriodKind, PresenceStatus, Role
from ..sessions.model import Session
from ..users.model import User, status_sort_key
from .period import DateRange, business_days


@dataclass(frozen=True)
class KpiFilters:
    service: Optional[str] = None
    role: Optional[Role] = None
    lieux: Optional[str] = None
    search: Optional[str] = None


@dataclass(frozen=True)
class UserKpi:
    user_id: int
    full_name: str
    role: Role
    service: Optional[str]
    lieux: Optional[str]
    status: str
    sessions: int
    worked_minutes: int
    pause_minutes: int
    retard_minutes: int
    depart_anticipe_minutes: int
    expected_minutes: Optional[int]
    performance: Optional[int]


@dataclass(frozen=True)
class GlobalKpi:
    users: int
    present_users: int
    retard_total_minutes: int
    avg_worked_minutes: Optional[int]
    avg_pause_minutes: Optional[int]
    punctuality_rate: Optional[int]
    performance: Optional[int]


@dataclass(frozen=True)
class Subtotal:
    users: int = 0
    worked_minutes: int = 0
    retard_minutes: int = 0


@dataclass(frozen=True)
class KpiBundle:
    window_start: date
    window_end: date
    period: PeriodKind
    global_kpi: GlobalKpi
    users: list[UserKpi]
    presence: Optional[dict[str, int]] = None
    subtotals: dict[str, dict[str, Subtotal]] = field(default_factory=dict)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _matches(user: User, needle: str) -> bool:
    return any(needle in (v or "").casefold() for v in (user.nom, user.prenom, user.email))


def filter_users(users: Iterable[User], filters: KpiFilters) -> list[User]:
    needle = (filters.search or "").strip().casefold()
    out: list[User] = []
    for u in users:
        if filters.service and u.service != filters.service:
            continue
        if filters.role is not None and u.role != filters.role:
            continue
        if filters.lieux and u.lieux != filters.lieux:
            continue
        if needle and not _matches(u, needle):
            continue
        out.append(u)
    return out


def sort_by_status(users: Iterable[User]) -> list[User]:
    return sorted(users, key=status_sort_key)


def expected_minutes(weekly_hours: Optional[float], days: int) -> Optional[int]:
    if weekly_hours is None or weekly_hours <= 0:
        return None
    return round_half_up(weekly_hours * 60 * days / WORK_DAYS_PER_WEEK)


def _percent(part: float, whole: Optional[float]) -> Optional[int]:
    if not whole:
        return None
    return round_half_up(100 * part / whole)


def _presence_counts(users: Sequence[User]) -> dict[str, int]:
    counts = Counter(u.display_status for u in users)
    out = {s.value: counts.get(s.value, 0) for s in PresenceStatus}
    out[NOT_BADGED_LABEL] = sum(c for label, c in counts.items() if label not in out)
    return out


def _subtotals(rows: Sequence[UserKpi], key) -> dict[str, Subtotal]:
    acc: dict[str, Subtotal] = {}
    for r in rows:
        k = key(r) or "Non renseigné"
        s = acc.get(k, Subtotal())
        acc[k] = Subtotal(
            users=s.users + 1,
            worked_minutes=s.worked_minutes + r.worked_minutes,
            retard_minutes=s.retard_minutes + r.retard_minutes,
        )
    return acc


def aggregate(
    users: Sequence[User],
    sessions: Iterable[Session],
    period: DateRange,
    period_kind: PeriodKind,
    *,
    default_weekly_hours: Optional[float] = None,
) -> KpiBundle:
    """Per-user and global indicators for `users` over `period`."""

    by_user: dict[int, list[Session]] = {u.user_id: [] for u in users}
    for s in sessions:
        if s.utilisateur_id in by_user and s.jour_local in period:
            by_user[s.utilisateur_id].append(s)

    days = business_days(period)
    rows: list[UserKpi] = []
    for u in users:
        mine = by_user[u.user_id]
        worked = sum(s.duree_minutes for s in mine)
        hours = u.heures_contractuelles_semaine
        if hours is None:
            hours = default_weekly_hours
        expected = expected_minutes(hours, days)
        rows.append(
            UserKpi(
                user_id=u.user_id,
                full_name=u.full_name,
                role=u.role,
                service=u.service,
                lieux=u.lieux,
                status=u.display_status,
                sessions=len(mine),
                worked_minutes=worked,
                pause_minutes=sum(s.pause_minutes for s in mine),
                retard_minutes=sum(s.retard_minutes for s in mine),
                depart_anticipe_minutes=sum(s.depart_anticipe_minutes for s in mine),
                expected_minutes=expected,
                performance=_percent(worked, expected),
            )
        )

    present = [r for r in rows if r.sessions > 0]
    n = len(present)
    punctual = sum(1 for r in present if r.retard_minutes == 0)
    expected_total = sum(r.expected_minutes or 0 for r in rows)
    worked_total = sum(r.worked_minutes for r in rows if r.expected_minutes)

    global_kpi = GlobalKpi(
        users=len(rows),
        present_users=n,
        retard_total_minutes=sum(r.retard_minutes for r in present),
        avg_worked_minutes=round_half_up(sum(r.worked_minutes for r in present) / n) if n else None,
        avg_pause_minutes=round_half_up(sum(r.pause_minutes for r in present) / n) if n else None,
        punctuality_rate=_percent(punctual, n),
        performance=_percent(worked_total, expected_total),
    )

    return KpiBundle(
        window_start=period.start,
        window_end=period.end,
        period=period_kind,
        global_kpi=global_kpi,
        users=rows,
        presence=_presence_counts(users) if period_kind == PeriodKind.DAY else None,
        subtotals={
            "by_role": _subtotals(rows, lambda r: r.role.value),
            "by_lieux": _subtotals(rows, lambda r: r.lieux),
            "by_service": _subtotals(rows, lambda r: r.service),
        },
    )
