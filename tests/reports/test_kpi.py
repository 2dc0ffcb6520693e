from __future__ import annotations

from datetime import date, datetime, time

from src.badge_system.badge_system.core.enums import BadgeAction, PeriodKind, Role
from src.badge_system.badge_system.reports.kpi import (
    KpiFilters,
    aggregate,
    expected_minutes,
    filter_users,
    round_half_up,
    sort_by_status,
)
from src.badge_system.badge_system.reports.period import DateRange, PeriodSelector
from src.badge_system.badge_system.reports.service import ReportService
from src.badge_system.badge_system.schedules.model import StandardSchedule
from src.badge_system.badge_system.sessions.model import Session

from tests.fakes import InMemoryBadges, InMemorySchedules, InMemoryUsers, make_user

DAY = date(2026, 3, 2)
TODAY_WINDOW = DateRange(DAY, date(2026, 3, 3))


def _session(user_id, *, worked=420, pause=60, retard=0):
    start = datetime.combine(DAY, time(9))
    return Session(
        utilisateur_id=user_id,
        jour_local=DAY,
        entree_id=user_id * 10,
        entree_ts=start,
        sortie_id=user_id * 10 + 1,
        sortie_ts=start.replace(hour=17),
        pause_minutes=pause,
        duree_minutes=worked,
        retard_minutes=retard,
    )


def test_punctuality_and_cumulative_lateness():
    users = [make_user(1), make_user(2), make_user(3)]
    sessions = [_session(1, retard=0), _session(2, retard=5), _session(3, retard=10)]

    bundle = aggregate(users, sessions, TODAY_WINDOW, PeriodKind.DAY)

    assert bundle.global_kpi.punctuality_rate == 33
    assert bundle.global_kpi.retard_total_minutes == 15
    assert bundle.global_kpi.present_users == 3
    assert bundle.global_kpi.avg_worked_minutes == 420


def test_averages_only_over_users_with_sessions():
    users = [make_user(1), make_user(2)]

    bundle = aggregate(users, [_session(1, worked=400, pause=45)], TODAY_WINDOW, PeriodKind.DAY)

    assert bundle.global_kpi.users == 2
    assert bundle.global_kpi.avg_worked_minutes == 400
    assert bundle.global_kpi.avg_pause_minutes == 45
    assert bundle.global_kpi.punctuality_rate == 100


def test_empty_window_has_no_rates():
    bundle = aggregate([make_user(1)], [], TODAY_WINDOW, PeriodKind.DAY)

    assert bundle.global_kpi.avg_worked_minutes is None
    assert bundle.global_kpi.punctuality_rate is None


def test_performance_against_prorated_contract():
    # 35h/week over one business day = 420 expected minutes
    bundle = aggregate([make_user(1)], [_session(1, worked=378)], TODAY_WINDOW, PeriodKind.DAY)

    row = bundle.users[0]
    assert row.expected_minutes == 420
    assert row.performance == 90
    assert bundle.global_kpi.performance == 90


def test_performance_is_none_without_baseline():
    user = make_user(1, heures_contractuelles_semaine=None)

    bundle = aggregate([user], [_session(1)], TODAY_WINDOW, PeriodKind.DAY)
    assert bundle.users[0].performance is None
    assert bundle.global_kpi.performance is None

    weekend = DateRange(date(2026, 3, 7), date(2026, 3, 8))
    assert aggregate([make_user(1)], [], weekend, PeriodKind.DAY).users[0].performance is None

    with_default = aggregate([user], [_session(1)], TODAY_WINDOW, PeriodKind.DAY, default_weekly_hours=35)
    assert with_default.users[0].performance == 100


def test_sessions_outside_window_are_ignored():
    outside = _session(1)
    outside = Session(**{**outside.__dict__, "jour_local": date(2026, 3, 3)})

    bundle = aggregate([make_user(1)], [outside], TODAY_WINDOW, PeriodKind.DAY)

    assert bundle.users[0].sessions == 0


def test_presence_counts_only_for_day_period():
    users = [
        make_user(1, status="Entré"),
        make_user(2, status="Sorti"),
        make_user(3, status="En pause"),
        make_user(4, status=None),
    ]

    day = aggregate(users, [], TODAY_WINDOW, PeriodKind.DAY)
    week = aggregate(users, [], DateRange(DAY, date(2026, 3, 9)), PeriodKind.WEEK)

    assert day.presence == {"Entré": 1, "En pause": 1, "Sorti": 1, "Non badgé": 1}
    assert week.presence is None


def test_subtotals_by_role_and_site():
    users = [make_user(1), make_user(2, role=Role.MANAGER, lieux="Télétravail"), make_user(3)]
    sessions = [_session(1, worked=400), _session(2, worked=300), _session(3, worked=200, retard=7)]

    bundle = aggregate(users, sessions, TODAY_WINDOW, PeriodKind.DAY)

    assert bundle.subtotals["by_role"]["Standard"].users == 2
    assert bundle.subtotals["by_role"]["Standard"].worked_minutes == 600
    assert bundle.subtotals["by_role"]["Standard"].retard_minutes == 7
    assert bundle.subtotals["by_lieux"]["Télétravail"].worked_minutes == 300


def test_filters_and_search():
    users = [
        make_user(1, nom="Martin", service="RH"),
        make_user(2, nom="Durand", role=Role.FIELD_AGENT, lieux="Chantier"),
        make_user(3, email="claire.martin@example.org"),
    ]

    assert [u.user_id for u in filter_users(users, KpiFilters(service="RH"))] == [1]
    assert [u.user_id for u in filter_users(users, KpiFilters(role=Role.FIELD_AGENT))] == [2]
    assert [u.user_id for u in filter_users(users, KpiFilters(lieux="Chantier"))] == [2]
    assert [u.user_id for u in filter_users(users, KpiFilters(search=" MARTIN "))] == [1, 3]


def test_sort_by_status_then_first_name():
    users = [
        make_user(1, prenom="zoé", status="Sorti"),
        make_user(2, prenom="Bob", status=None),
        make_user(3, prenom="alice", status="Sorti"),
        make_user(4, prenom="Yann", status="En pause"),
        make_user(5, prenom="Marc", status="Entré"),
    ]

    assert [u.user_id for u in sort_by_status(users)] == [5, 4, 3, 1, 2]


def test_rounding_helpers():
    assert round_half_up(32.5) == 33
    assert round_half_up(33.3) == 33
    assert expected_minutes(35, 5) == 2100
    assert expected_minutes(0, 5) is None


def _report_env():
    users = InMemoryUsers(
        [
            make_user(1, service="RH"),
            make_user(2, service="RH"),
            make_user(3, service=None),
        ]
    )
    badges = InMemoryBadges()
    schedules = InMemorySchedules(
        [StandardSchedule(schedule_id=1, lieux="Siège", start_time=time(9), end_time=time(17))]
    )
    for day in (2, 3):
        badges.add(1, BadgeAction.ENTREE, datetime(2026, 3, day, 9, 10))
        badges.add(1, BadgeAction.SORTIE, datetime(2026, 3, day, 17, 10))
    badges.add(3, BadgeAction.ENTREE, datetime(2026, 3, 2, 9, 0))
    badges.add(3, BadgeAction.SORTIE, datetime(2026, 3, 2, 13, 0))
    return ReportService(users, badges, schedules)


def test_report_service_kpis_for_a_week():
    service = _report_env()

    bundle = service.kpis(
        PeriodSelector(kind=PeriodKind.WEEK, week_number=10, year=2026),
        KpiFilters(service="RH"),
        date(2026, 3, 4),
    )

    assert (bundle.window_start, bundle.window_end) == (date(2026, 3, 2), date(2026, 3, 9))
    by_id = {r.user_id: r for r in bundle.users}
    assert set(by_id) == {1, 2}
    assert by_id[1].sessions == 2
    assert by_id[1].worked_minutes == 960
    assert by_id[1].retard_minutes == 20
    assert by_id[2].sessions == 0
    assert bundle.global_kpi.punctuality_rate == 0


def test_monthly_team_stats_groups_by_service():
    service = _report_env()

    stats = {s.service: s for s in service.monthly_team_stats(2026, 3)}

    assert set(stats) == {"RH", "Sans service"}
    rh = stats["RH"]
    assert rh.total_hours == 16.0
    assert rh.absences_count == 1
    assert rh.total_delays_minutes == 20
    assert stats["Sans service"].users[0].avg_hours_per_day == 4.0
    assert service.list_services() == ["RH"]
