from __future__ import annotations

from typing import Optional

from ...core.enums import BadgeAction
from ...locations.model import LocationVerdict
from ...users.model import User
from .base import BadgePlan, BadgeStrategy, site_plan


class PrivilegedStrategy(BadgeStrategy):
    """Admin / Manager: off-network badges are telework entries, no GPS, no comment."""

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
            action=BadgeAction.ENTREE,
            forced=True,
            allow_comment=False,
            lieux=telework_site,
        )
