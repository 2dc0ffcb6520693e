from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local
from ..common.web import admin_required, login_required, to_json
from ..container import Container
from ..core.enums import Role
from ..core.exceptions import ValidationError
from .kpi import KpiFilters
from .period import parse_selector


def register(app: Flask, container: Container) -> None:
    @app.route("/api/reports/kpis", methods=["GET"], endpoint="api_kpis")
    @login_required
    def kpis():
        args = request.args
        selector = parse_selector(
            args.get("period"),
            week_number=args.get("week"),
            month_number=args.get("month"),
            year=args.get("year"),
        )
        filters = KpiFilters(
            service=args.get("service") or None,
            role=Role.from_label(args["role"]) if args.get("role") else None,
            lieux=args.get("lieux") or None,
            search=args.get("search") or None,
        )
        bundle = container.report_service.kpis(selector, filters, now_local().date())
        return jsonify(to_json(bundle))

    @app.route("/api/reports/services", methods=["GET"], endpoint="api_report_services")
    @login_required
    def services():
        """Distinct services of active users, for the KPI filter."""
        return jsonify({"services": container.report_service.list_services()})

    @app.route("/api/reports/monthly", methods=["GET"], endpoint="api_monthly_stats")
    @admin_required
    def monthly():
        today = now_local().date()
        try:
            year = int(request.args.get("year") or today.year)
            month = int(request.args.get("month") or today.month)
        except ValueError as e:
            raise ValidationError("Période invalide", code="invalid_period") from e

        stats = container.report_service.monthly_team_stats(year, month, request.args.get("service") or None)
        out = []
        for team in stats:
            row = to_json(team)
            for user_row, user in zip(row["users"], team.users):
                user_row["is_absent"] = user.is_absent
            out.append(row)
        return jsonify(out)
