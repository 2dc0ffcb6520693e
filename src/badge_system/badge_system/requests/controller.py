from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import (
    admin_required,
    current_role,
    current_user_id,
    json_body,
    login_required,
    optional_datetime,
    required_datetime,
)
from ..container import Container


def _approve_flag(payload: dict) -> bool:
    value = payload.get("approve")
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "oui"}
    return bool(value)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/oublis", methods=["POST"], endpoint="api_create_oubli")
    @login_required
    def create_oubli():
        payload = json_body()
        oubli_id = container.workflow.create_oubli(
            user_id=current_user_id(),
            date_heure_entree=required_datetime(payload, "date_heure_entree"),
            date_heure_sortie=required_datetime(payload, "date_heure_sortie"),
            date_heure_pause_debut=optional_datetime(payload, "date_heure_pause_debut"),
            date_heure_pause_fin=optional_datetime(payload, "date_heure_pause_fin"),
            raison=payload.get("raison") or "",
            commentaire=payload.get("commentaire"),
            perte_badge=bool(payload.get("perte_badge")),
        )
        return jsonify({"oubli_id": oubli_id, "status": "pending"}), 201

    @app.route("/api/admin/validations", methods=["GET"], endpoint="api_pending_validations")
    @admin_required
    def pending_validations():
        return jsonify(container.workflow.list_pending())

    @app.route("/api/admin/modifications/<int:modif_id>/validate", methods=["POST"], endpoint="api_validate_modification")
    @admin_required
    def validate_modification(modif_id: int):
        payload = json_body()
        approve = _approve_flag(payload)
        container.workflow.validate_modification(
            current_role=current_role(),
            validator_id=current_user_id(),
            modif_id=modif_id,
            approve=approve,
            comment=payload.get("comment"),
        )
        return jsonify({"modif_id": modif_id, "status": "approved" if approve else "rejected"})

    @app.route("/api/admin/oublis/<int:oubli_id>/validate", methods=["POST"], endpoint="api_validate_oubli")
    @admin_required
    def validate_oubli(oubli_id: int):
        payload = json_body()
        approve = _approve_flag(payload)
        event_ids = container.workflow.validate_oubli(
            current_role=current_role(),
            validator_id=current_user_id(),
            oubli_id=oubli_id,
            approve=approve,
            comment=payload.get("comment"),
        )
        return jsonify(
            {
                "oubli_id": oubli_id,
                "status": "approved" if approve else "rejected",
                "badge_event_ids": event_ids,
            }
        )
