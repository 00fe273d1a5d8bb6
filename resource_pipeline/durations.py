"""Duration parsing and view-count formatting for video candidates."""

from __future__ import annotations

import re
from typing import Optional

DEFAULT_DURATION_MINUTES = 15

_ISO8601_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")
_HMS_RE = re.compile(r"^(\d+):(\d+):(\d+)$")
_MS_RE = re.compile(r"^(\d+):(\d+)$")
_HOUR_MIN_RE = re.compile(r"(?:(\d+)\s*h(?:ours?)?)?\s*(?:(\d+)\s*m(?:in(?:ute)?s?)?)?", flags=re.IGNORECASE)
_MIN_RE = re.compile(r"(\d+)\s*min", flags=re.IGNORECASE)


def parse_iso8601_duration(value: Optional[str]) -> int:
    """`PT1H2M3S` -> 63 (partial minutes round up). 0 when unparseable."""
    match = _ISO8601_RE.search(str(value or ""))
    if not match:
        return 0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    seconds = int(match.group(3) or 0)
    return hours * 60 + minutes + (1 if seconds > 0 else 0)


def parse_duration_to_minutes(value: Optional[str]) -> int:
    """Free-text durations from search providers: `1:02:03`, `12:30`, `1h 20m`, `45 min`."""
    raw = str(value or "").strip().lower()
    if not raw:
        return DEFAULT_DURATION_MINUTES

    hms = _HMS_RE.match(raw)
    if hms:
        hours, minutes, seconds = (int(part) for part in hms.groups())
        return max(1, hours * 60 + minutes + (1 if seconds > 0 else 0))

    ms = _MS_RE.match(raw)
    if ms:
        minutes, seconds = (int(part) for part in ms.groups())
        return max(1, minutes + (1 if seconds > 0 else 0))

    hour_min = _HOUR_MIN_RE.match(raw)
    if hour_min and (hour_min.group(1) or hour_min.group(2)):
        hours = int(hour_min.group(1) or 0)
        minutes = int(hour_min.group(2) or 0)
        return max(1, hours * 60 + minutes)

    plain = _MIN_RE.search(raw)
    if plain:
        return max(1, int(plain.group(1)))
    return DEFAULT_DURATION_MINUTES


def format_view_count(count: int) -> str:
    value = int(count or 0)
    if value >= 1_000_000:
        return f"{value / 1_000_000:.1f}M"
    if value >= 1_000:
        return f"{value / 1_000:.1f}K"
    return str(value)
