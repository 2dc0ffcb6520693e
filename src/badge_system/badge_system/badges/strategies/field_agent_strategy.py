from __future__ import annotations

from typing import Optional

from ...core.constants import FIELD_AGENT_GPS_DECIMALS
from ...core.enums import BadgeAction
from ...locations.model import LocationVerdict
from ...users.model import User
from .base import BadgePlan, BadgeStrategy


class FieldAgentStrategy(BadgeStrategy):
    """A-E: first ever badge is a forced entry, afterwards the agent picks the action.

    Off-site positions are captured with reduced precision.
    """

    def plan(
        self,
        *,
        user: User,
        verdict: LocationVerdict,
        last_action: Optional[BadgeAction],
        telework_site: str,
    ) -> BadgePlan:
        first_badge = not user.has_badged_before
        if verdict.authorized:
            location = dict(lieux=verdict.site_name, latitude=verdict.latitude, longitude=verdict.longitude)
        else:
            location = dict(needs_gps=True, gps_decimals=FIELD_AGENT_GPS_DECIMALS)

        if first_badge:
            return BadgePlan(action=BadgeAction.ENTREE, forced=True, **location)
        return BadgePlan(action=None, needs_action_choice=True, **location)
