from __future__ import annotations

from flask import Flask, jsonify, request

from ..common.datetime_utils import now_local, parse_iso_datetime
from ..common.web import current_user_id, json_body, login_required, optional_datetime, to_json
from ..container import Container
from ..core.constants import DEFAULT_SESSION_LIMIT
from ..core.exceptions import ValidationError
from .formatting import format_duration


def _session_row(s) -> dict:
    row = to_json(s)
    row["total_minutes"] = s.total_minutes
    row["duree"] = format_duration(s.duree_minutes)
    return row


def register(app: Flask, container: Container) -> None:
    @app.route("/api/sessions", methods=["GET"], endpoint="api_sessions")
    @login_required
    def sessions():
        try:
            limit = int(request.args.get("limit") or DEFAULT_SESSION_LIMIT)
            before_raw = request.args.get("before")
            before = parse_iso_datetime(before_raw) if before_raw else None
        except ValueError as e:
            raise ValidationError("Paramètres de pagination invalides") from e

        user_id = current_user_id()
        rows = container.session_service.list_sessions(user_id, limit=limit, before=before)
        current = container.session_service.current_status(user_id, now_local().date())
        return jsonify({"sessions": [_session_row(s) for s in rows], "current": to_json(current)})

    @app.route("/api/sessions/statuses", methods=["GET"], endpoint="api_session_statuses")
    @login_required
    def statuses():
        try:
            ids = [int(v) for v in (request.args.get("ids") or "").split(",") if v.strip()]
        except ValueError as e:
            raise ValidationError("Identifiants invalides") from e
        data = container.session_service.modification_statuses(ids)
        return jsonify(to_json(data))

    @app.route("/api/sessions/<int:entree_id>/modifications", methods=["POST"], endpoint="api_create_modification")
    @login_required
    def create_modification(entree_id: int):
        payload = json_body()
        try:
            pause_delta = int(payload.get("pause_delta_minutes") or 0)
        except (TypeError, ValueError) as e:
            raise ValidationError("Durée de pause invalide", code="invalid_times") from e

        modif_id = container.workflow.create_modification(
            requester_id=current_user_id(),
            entree_id=entree_id,
            proposed_entree_ts=optional_datetime(payload, "proposed_entree_ts"),
            proposed_sortie_ts=optional_datetime(payload, "proposed_sortie_ts"),
            pause_delta_minutes=pause_delta,
            motif=payload.get("motif"),
            commentaire=payload.get("commentaire"),
        )
        return jsonify({"modif_id": modif_id, "status": "pending"}), 201
