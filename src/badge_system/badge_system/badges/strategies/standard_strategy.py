from __future__ import annotations

from typing import Optional

from ...core.enums import BadgeAction
from ...locations.model import LocationVerdict
from ...users.model import User
from .base import BadgePlan, BadgeStrategy, site_plan


class StandardStrategy(BadgeStrategy):
    """Other roles: off-network badges need an action, a justification and a GPS fix."""

    def plan(
        self,
        *,
        user: User,
        verdict: LocationVerdict,
        last_action: Optional[BadgeAction],
        telework_site: str,
    ) -> BadgePlan:
        if verdict.authorized:
            return site_plan(verdict, last_action)
        return BadgePlan(
            action=None,
            needs_action_choice=True,
            needs_comment=True,
            needs_gps=True,
        )
