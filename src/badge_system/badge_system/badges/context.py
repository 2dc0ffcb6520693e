from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..core.exceptions import DomainError, ValidationError
from ..locations.model import LocationVerdict
from ..users.model import User
from .geolocation import Position
from .model import NewBadgeEvent
from .strategies.base import BadgePlan


class ScanState(str, Enum):
    IDLE = "idle"
    IDENTIFIED = "identified"
    PLANNED = "planned"
    READY = "ready"
    SUBMITTED = "submitted"
    FAILED = "failed"


_TRANSITIONS = {
    ScanState.IDLE: {ScanState.IDENTIFIED, ScanState.FAILED},
    ScanState.IDENTIFIED: {ScanState.PLANNED, ScanState.FAILED},
    ScanState.PLANNED: {ScanState.READY, ScanState.FAILED},
    ScanState.READY: {ScanState.SUBMITTED, ScanState.FAILED},
    ScanState.SUBMITTED: set(),
    ScanState.FAILED: set(),
}


@dataclass
class BadgeScanContext:
    """State of one badge scan, passed through the resolution pipeline."""

    state: ScanState = ScanState.IDLE
    user: Optional[User] = None
    verdict: Optional[LocationVerdict] = None
    plan: Optional[BadgePlan] = None
    position: Optional[Position] = None
    event: Optional[NewBadgeEvent] = None
    badge_event_id: Optional[int] = None
    error: Optional[DomainError] = None

    def _move(self, target: ScanState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise ValidationError(
                f"Transition {self.state.value} -> {target.value} interdite",
                code="illegal_transition",
            )
        self.state = target

    def identify(self, user: User, verdict: LocationVerdict) -> None:
        self._move(ScanState.IDENTIFIED)
        self.user = user
        self.verdict = verdict

    def planned(self, plan: BadgePlan) -> None:
        self._move(ScanState.PLANNED)
        self.plan = plan

    def ready(self, event: NewBadgeEvent) -> None:
        self._move(ScanState.READY)
        self.event = event

    def submitted(self, badge_event_id: int) -> None:
        self._move(ScanState.SUBMITTED)
        self.badge_event_id = badge_event_id

    def fail(self, error: DomainError) -> None:
        self._move(ScanState.FAILED)
        self.error = error
