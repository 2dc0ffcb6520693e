from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class UserMonthlyStats:
    utilisateur_id: int
    nom: str
    prenom: str
    email: str
    total_hours: float
    avg_hours_per_day: float
    total_delays_minutes: int
    jours_travailles: int

    @property
    def is_absent(self) -> bool:
        return self.jours_travailles == 0


@dataclass(frozen=True)
class MonthlyTeamStats:
    service: str
    total_hours: float
    avg_hours_per_user: float
    total_delays_minutes: int
    absences_count: int
    users: list[UserMonthlyStats] = field(default_factory=list)
