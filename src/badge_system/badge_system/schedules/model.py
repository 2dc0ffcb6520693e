from __future__ import annotations

from dataclasses import dataclass
from datetime import time
from typing import Optional


@dataclass(frozen=True)
class StandardSchedule:
    """Horaire standard d'un site (et, le cas échéant, son adresse réseau)."""

    schedule_id: int
    lieux: str
    start_time: Optional[time]
    end_time: Optional[time]
    ip_address: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
