from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ...core.enums import BadgeAction
from ...locations.model import LocationVerdict
from ...users.model import User


@dataclass(frozen=True)
class BadgePlan:
    """What the scan needs before an event may be written.

    `action` is set when the action is forced or implied; otherwise the user
    must choose one.
    """

    action: Optional[BadgeAction]
    forced: bool = False
    needs_action_choice: bool = False
    needs_comment: bool = False
    allow_comment: bool = True
    needs_gps: bool = False
    gps_decimals: Optional[int] = None
    lieux: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


def implied_action(last_action: Optional[BadgeAction]) -> BadgeAction:
    """Next action implied by the prior badge state at a known site."""
    if last_action in (BadgeAction.ENTREE, BadgeAction.RETOUR):
        return BadgeAction.SORTIE
    if last_action == BadgeAction.PAUSE:
        return BadgeAction.RETOUR
    return BadgeAction.ENTREE


def site_plan(verdict: LocationVerdict, last_action: Optional[BadgeAction]) -> BadgePlan:
    """Authorized network: action implied, coordinates from the site table."""
    return BadgePlan(
        action=implied_action(last_action),
        lieux=verdict.site_name,
        latitude=verdict.latitude,
        longitude=verdict.longitude,
    )


class BadgeStrategy(ABC):
    """Strategy Pattern: one decision table row-set per role."""

    @abstractmethod
    def plan(
        self,
        *,
        user: User,
        verdict: LocationVerdict,
        last_action: Optional[BadgeAction],
        telework_site: str,
    ) -> BadgePlan:
        raise NotImplementedError
