from __future__ import annotations


def format_duration(minutes: float) -> str:
    """7h05 above one hour, 45min below."""
    hours = int(minutes // 60)
    mins = int(round(minutes % 60))
    if mins == 60:
        hours, mins = hours + 1, 0
    if hours > 0:
        return f"{hours}h{mins:02d}"
    return f"{mins}min"

