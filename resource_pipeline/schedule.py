"""Day-range redistribution and time-window capping for roadmap adaptation."""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from core import Module

from .scoring import round_half_up

WINDOW_TOLERANCE = 1.05
MIN_MODULE_HOURS = 0.5


def _raw_days(module: Module, hours_per_day: float) -> int:
    return max(1, round_half_up(max(MIN_MODULE_HOURS, float(module.estimated_hours or 0)) / hours_per_day))


def redistribute_day_ranges(
    modules: Sequence[Module],
    total_days: Optional[int],
    hours_per_day: float,
    completed_ids: Iterable[str] = (),
) -> List[Module]:
    """
    Lay remaining modules out on consecutive days after the completed ones.

    Completed modules keep their ranges and are returned as the same objects.
    When `total_days` is set, remaining modules are scaled to fit the days left.
    """
    hpd = max(0.1, float(hours_per_day or 1))
    completed = set(completed_ids or ())

    last_completed_day = 0
    for module in modules:
        if module.id in completed and module.day_end:
            last_completed_day = max(last_completed_day, int(module.day_end))

    remaining = [m for m in modules if m.id not in completed]
    if not remaining:
        return list(modules)

    days = [_raw_days(m, hpd) for m in remaining]
    if total_days:
        available = max(len(remaining), int(total_days) - last_completed_day)
        raw_total = sum(days)
        if raw_total != available:
            days = [max(1, round_half_up(d * available / raw_total)) for d in days]
            # Rounding drift is corrected one day at a time on the extremes.
            while sum(days) > available:
                idx = max(range(len(days)), key=lambda i: days[i])
                if days[idx] <= 1:
                    break
                days[idx] -= 1
            while sum(days) < available:
                idx = min(range(len(days)), key=lambda i: days[i])
                days[idx] += 1

    updates = {}
    cursor = last_completed_day + 1
    for module, span in zip(remaining, days):
        start, end = cursor, cursor + span - 1
        updates[module.id] = module.model_copy(
            update={"day_start": start, "day_end": end, "week": math.ceil(start / 7)}
        )
        cursor = end + 1

    return [updates.get(m.id, m) for m in modules]


def enforce_time_windows(
    modules: Sequence[Module],
    hours_per_day: float,
    completed_ids: Iterable[str] = (),
    tolerance: float = WINDOW_TOLERANCE,
) -> List[Module]:
    """
    Bring each remaining module's hours in line with its day window.

    Estimates more than `tolerance` over the window are cut to the window
    itself (rounded to 0.1h); estimates under half an hour are raised to it.
    """
    hpd = max(0.1, float(hours_per_day or 1))
    completed = set(completed_ids or ())
    out: List[Module] = []
    for module in modules:
        if module.id in completed or not module.day_start or not module.day_end:
            out.append(module)
            continue
        window_days = max(1, int(module.day_end) - int(module.day_start) + 1)
        cap = max(MIN_MODULE_HOURS, round(window_days * hpd, 1))
        hours = float(module.estimated_hours or MIN_MODULE_HOURS)
        if hours > cap * tolerance:
            out.append(module.model_copy(update={"estimated_hours": cap}))
        elif hours < MIN_MODULE_HOURS:
            out.append(module.model_copy(update={"estimated_hours": MIN_MODULE_HOURS}))
        else:
            out.append(module)
    return out
