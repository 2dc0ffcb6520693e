"""Flask glue shared by the JSON controllers."""

from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime, time
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session
from werkzeug.exceptions import HTTPException

from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    ConflictError,
    DataIntegrityError,
    DomainError,
    TransientIOError,
    ValidationError,
)
from .datetime_utils import parse_iso_datetime

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (ValidationError, 400),
    (AuthorizationError, 403),
    (DataIntegrityError, 404),
    (ConflictError, 409),
    (TransientIOError, 503),
]


def status_for(error: DomainError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(error, cls):
            return status
    return 400


def error_response(code: str, message: str, status: int):
    return jsonify({"error": code, "message": message}), status


def to_json(value: Any) -> Any:
    """Dataclasses, enums and dates to plain JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_json(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_json(k)): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def current_user_id() -> int:
    return int(session["user_id"])


def current_role() -> Role:
    return Role.from_label(session.get("role"))


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("unauthenticated", "Veuillez vous connecter pour continuer", 401)
        return view(*args, **kwargs)

    return wrapper


def admin_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        if "user_id" not in session:
            return error_response("unauthenticated", "Veuillez vous connecter pour continuer", 401)
        if current_role() != Role.ADMIN:
            return error_response(AuthorizationError.kind, "Accès réservé aux administrateurs", 403)
        return view(*args, **kwargs)

    return wrapper


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def optional_datetime(payload: dict, key: str) -> Optional[datetime]:
    raw = payload.get(key)
    if raw in (None, ""):
        return None
    try:
        return parse_iso_datetime(str(raw))
    except ValueError as e:
        raise ValidationError(f"Date invalide pour {key}", code="invalid_times") from e


def required_datetime(payload: dict, key: str) -> datetime:
    value = optional_datetime(payload, key)
    if value is None:
        raise ValidationError(f"{key} est obligatoire", code="invalid_times")
    return value


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(e: DomainError):
        return error_response(e.code, str(e), status_for(e))

    @app.errorhandler(Exception)
    def _unexpected(e: Exception):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return error_response("internal_error", "Erreur système", 500)
