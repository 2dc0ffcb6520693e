from __future__ import annotations

from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str, *, code: Optional[str] = None) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} est obligatoire", code=code)
    return value.strip()


def optional_text(value: Optional[str]) -> Optional[str]:
    return (value or "").strip() or None
