from __future__ import annotations

from dataclasses import dataclass, field

from ..core.enums import Role
from .strategies.base import BadgeStrategy
from .strategies.field_agent_strategy import FieldAgentStrategy
from .strategies.privileged_strategy import PrivilegedStrategy
from .strategies.standard_strategy import StandardStrategy


def _default_strategies() -> dict[Role, BadgeStrategy]:
    privileged = PrivilegedStrategy()
    return {
        Role.ADMIN: privileged,
        Role.MANAGER: privileged,
        Role.FIELD_AGENT: FieldAgentStrategy(),
        Role.STANDARD: StandardStrategy(),
    }


@dataclass
class BadgeStrategyFactory:
    """Factory Pattern: choose the badge strategy for a role."""

    strategies: dict[Role, BadgeStrategy] = field(default_factory=_default_strategies)

    def __post_init__(self) -> None:
        missing = [r for r in Role if r not in self.strategies]
        if missing:
            raise ValueError(f"No badge strategy for roles: {', '.join(r.value for r in missing)}")

    def for_role(self, role: Role) -> BadgeStrategy:
        return self.strategies[role]
