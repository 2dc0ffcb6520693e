from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from ..common.validators import optional_text
from ..core.constants import TELEWORK_SITE
from ..core.enums import BadgeAction, PresenceStatus
from ..core.exceptions import GeolocationUnavailableError, ValidationError
from ..locations.model import LocationVerdict
from ..users.model import User
from .factory import BadgeStrategyFactory
from .geolocation import Position, round_position
from .model import NewBadgeEvent
from .strategies.base import BadgePlan

_PRESENCE_BY_ACTION = {
    BadgeAction.ENTREE: PresenceStatus.ENTRE,
    BadgeAction.RETOUR: PresenceStatus.ENTRE,
    BadgeAction.PAUSE: PresenceStatus.EN_PAUSE,
    BadgeAction.SORTIE: PresenceStatus.SORTI,
}


def presence_for(action: BadgeAction) -> PresenceStatus:
    return _PRESENCE_BY_ACTION[action]


def parse_action(value: Union[str, BadgeAction, None]) -> Optional[BadgeAction]:
    if value is None or isinstance(value, BadgeAction):
        return value
    v = value.strip().lower()
    if not v:
        return None
    aliases = {"entree": BadgeAction.ENTREE}
    if v in aliases:
        return aliases[v]
    try:
        return BadgeAction(v)
    except ValueError:
        raise ValidationError(f"Action inconnue: {value}", code="invalid_action")


class BadgeActionResolver:
    """Decides which event a scan represents and what input it still needs."""

    def __init__(self, *, factory: Optional[BadgeStrategyFactory] = None, telework_site: str = TELEWORK_SITE):
        self._factory = factory or BadgeStrategyFactory()
        self._telework_site = telework_site

    def plan(self, user: User, verdict: LocationVerdict, last_action: Optional[BadgeAction] = None) -> BadgePlan:
        strategy = self._factory.for_role(user.role)
        return strategy.plan(user=user, verdict=verdict, last_action=last_action, telework_site=self._telework_site)

    def resolve(
        self,
        plan: BadgePlan,
        *,
        user_id: int,
        code: str,
        now: datetime,
        chosen_action: Union[str, BadgeAction, None] = None,
        comment: Optional[str] = None,
        position: Optional[Position] = None,
    ) -> NewBadgeEvent:
        # Forced or implied actions ignore the user's choice.
        action = parse_action(chosen_action) if plan.needs_action_choice else plan.action
        if action is None:
            raise ValidationError("Veuillez choisir une action", code="missing_action")

        commentaire = optional_text(comment) if plan.allow_comment else None
        if plan.needs_comment and not commentaire:
            raise ValidationError("Une justification est obligatoire hors site autorisé", code="missing_comment")

        if plan.needs_gps:
            if position is None:
                raise GeolocationUnavailableError("Position GPS requise pour badger hors site")
            fix = round_position(position, plan.gps_decimals)
            latitude, longitude = fix.latitude, fix.longitude
        else:
            latitude, longitude = plan.latitude, plan.longitude

        return NewBadgeEvent(
            utilisateur_id=int(user_id),
            date_heure=now,
            type_action=action,
            code=code,
            latitude=latitude,
            longitude=longitude,
            lieux=plan.lieux,
            commentaire=commentaire,
        )
