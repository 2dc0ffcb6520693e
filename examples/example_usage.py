"""Example: use the service layer directly, without Flask.

Controllers are thin; every rule lives in the services wired by the container.
"""

import importlib
from datetime import date

from config import get_settings_module

from src.badge_system.badge_system.container import build_container
from src.badge_system.badge_system.core.enums import PeriodKind
from src.badge_system.badge_system.reports.kpi import KpiFilters
from src.badge_system.badge_system.reports.period import PeriodSelector
from src.badge_system.badge_system.sessions.formatting import format_duration


def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(db_config=settings.DB_CONFIG, default_weekly_hours=settings.DEFAULT_WEEKLY_HOURS)

    for s in container.session_service.list_sessions(1, limit=5):
        print(s.jour_local, s.lieux, format_duration(s.duree_minutes))

    bundle = container.report_service.kpis(PeriodSelector(kind=PeriodKind.WEEK), KpiFilters(), date.today())
    print(bundle.global_kpi)


if __name__ == "__main__":
    main()
