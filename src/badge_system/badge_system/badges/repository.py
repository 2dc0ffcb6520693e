from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import BadgeAction
from .model import Badge, BadgeEvent, NewBadgeEvent


class BadgeRepository(Protocol):
    def append(self, event: NewBadgeEvent) -> int:
        raise NotImplementedError

    def get_event(self, badge_event_id: int) -> Optional[BadgeEvent]:
        raise NotImplementedError

    def get_last_action(self, user_id: int) -> Optional[BadgeAction]:
        raise NotImplementedError

    def list_for_user(
        self,
        user_id: int,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> Sequence[BadgeEvent]:
        """Events ordered by time, `start` inclusive and `end` exclusive."""

        raise NotImplementedError

    def list_between(self, *, start: datetime, end: datetime) -> Sequence[BadgeEvent]:
        raise NotImplementedError

    def get_active_badge_for_user(self, user_id: int) -> Optional[Badge]:
        raise NotImplementedError

    def get_active_badge_by_tag(self, uid_tag: str) -> Optional[Badge]:
        raise NotImplementedError
