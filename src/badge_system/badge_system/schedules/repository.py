from __future__ import annotations

from typing import Mapping, Optional, Protocol, Sequence

from .model import StandardSchedule


class ScheduleRepository(Protocol):
    def list_all(self) -> Sequence[StandardSchedule]:
        raise NotImplementedError


def schedules_by_site(schedules: Sequence[StandardSchedule]) -> Mapping[str, StandardSchedule]:
    """First schedule with a start time wins for each site."""
    out: dict[str, StandardSchedule] = {}
    for sc in schedules:
        if sc.start_time is None:
            continue
        out.setdefault(sc.lieux, sc)
    return out


def schedule_for_site(table: Mapping[str, StandardSchedule], lieux: Optional[str]) -> Optional[StandardSchedule]:
    if not lieux:
        return None
    return table.get(lieux)
