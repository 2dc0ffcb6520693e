from __future__ import annotations

from flask import Flask, jsonify

from ..common.web import json_body, login_required, required_datetime, to_json
from ..container import Container
from ..core.enums import ChangeKind
from ..core.exceptions import ValidationError
from .presence import UserChange


def register(app: Flask, container: Container) -> None:
    feed = container.presence_feed

    @app.route("/api/presence", methods=["GET"], endpoint="api_presence")
    @login_required
    def presence():
        if not feed.board.loaded:
            feed.board.load(container.users_repo.list_active())
        feed.drain()
        users = []
        for u in feed.board.users():
            row = to_json(u)
            row["status"] = u.display_status
            users.append(row)
        return jsonify({"users": users})

    @app.route("/api/presence/changes", methods=["POST"], endpoint="api_presence_change")
    def presence_change():
        """Change notification pushed by the store for the users table."""
        payload = json_body()
        try:
            change = UserChange(
                kind=ChangeKind(str(payload.get("type") or "").upper()),
                user_id=int(payload.get("id") or (payload.get("record") or {}).get("id")),
                committed_at=required_datetime(payload, "commit_timestamp"),
                row=payload.get("record"),
            )
        except (TypeError, ValueError) as e:
            raise ValidationError("Notification invalide") from e
        feed.publish(change)
        return jsonify({"queued": True}), 202
