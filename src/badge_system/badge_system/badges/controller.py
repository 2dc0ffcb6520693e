from __future__ import annotations

from typing import Optional

from flask import Flask, jsonify, request, session

from ..common.web import admin_required, error_response, json_body, to_json
from ..container import Container
from ..core.exceptions import ValidationError
from ..locations.authorizer import welcome_message
from ..locations.model import LocationVerdict
from .context import BadgeScanContext
from .geolocation import Position
from .resolver import presence_for


def _position(payload: dict) -> Optional[Position]:
    lat, lng = payload.get("latitude"), payload.get("longitude")
    if lat in (None, "") or lng in (None, ""):
        return None
    try:
        return Position(latitude=float(lat), longitude=float(lng))
    except (TypeError, ValueError) as e:
        raise ValidationError("Coordonnées GPS invalides", code="geolocation_unavailable") from e


def _scan_result(ctx: Optional[BadgeScanContext]):
    if ctx is None:
        # A write for the same user is still pending.
        return jsonify({"ignored": True}), 202
    if ctx.event is None:
        return error_response("internal_error", "Badgeage non enregistré", 500)
    return (
        jsonify(
            {
                "badge_event_id": ctx.badge_event_id,
                "type_action": ctx.event.type_action.value,
                "lieux": ctx.event.lieux,
                "status": presence_for(ctx.event.type_action).value,
                "date_heure": to_json(ctx.event.date_heure),
            }
        ),
        201,
    )


def register(app: Flask, container: Container) -> None:
    def verdict() -> LocationVerdict:
        if container.caller_address:
            return container.authorizer.current_verdict()
        return container.authorizer.authorize(request.remote_addr or "")

    def target_user_id(payload: dict) -> Optional[int]:
        raw = payload.get("user_id") or request.args.get("user_id") or session.get("user_id")
        if not raw:
            return None
        try:
            return int(raw)
        except (TypeError, ValueError) as e:
            raise ValidationError("Identifiant utilisateur invalide", code="invalid_user_id") from e

    @app.route("/api/location", methods=["GET"], endpoint="api_location")
    def location():
        v = verdict()
        return jsonify({**to_json(v), "message": welcome_message(v.site_name)})

    @app.route("/api/admin/locations/refresh", methods=["POST"], endpoint="api_locations_refresh")
    @admin_required
    def locations_refresh():
        """Drop the cached site table after an edit of the authorization entries."""
        container.authorizer.refresh()
        return jsonify({"refreshed": True})

    @app.route("/api/badges/plan", methods=["GET"], endpoint="api_badge_plan")
    def badge_plan():
        user_id = target_user_id({})
        if user_id is None:
            return error_response("unauthenticated", "Utilisateur non identifié", 401)
        plan = container.badge_service.plan_for(user_id, verdict=verdict())
        return jsonify(to_json(plan))

    @app.route("/api/badges", methods=["POST"], endpoint="api_badge")
    def badge():
        payload = json_body()
        user_id = target_user_id(payload)
        if user_id is None:
            return error_response("unauthenticated", "Utilisateur non identifié", 401)

        ctx = container.badge_service.badge(
            user_id,
            verdict=verdict(),
            action=payload.get("action"),
            comment=payload.get("comment"),
            code=payload.get("code"),
            position=_position(payload),
        )
        return _scan_result(ctx)

    @app.route("/api/badges/tag", methods=["POST"], endpoint="api_badge_tag")
    def badge_tag():
        payload = json_body()
        uid_tag = (payload.get("uid_tag") or "").strip()
        if not uid_tag:
            raise ValidationError("Numéro de tag manquant", code="missing_tag")

        ctx = container.badge_service.badge_from_tag(
            uid_tag,
            verdict=verdict(),
            action=payload.get("action"),
            comment=payload.get("comment"),
            position=_position(payload),
        )
        return _scan_result(ctx)
