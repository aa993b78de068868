"""Canonical runtime clock helpers.

Check timestamps carry a wall-clock part and a trailing monotonic reading, e.g.
``2023-07-25 14:10:17.812172 +0000 UTC m=+43.293003040``. Parsers must drop the
``m=`` token before reading the wall-clock part.
"""

from __future__ import annotations

import re
import time
from datetime import datetime, timedelta, timezone

_PROCESS_START = time.monotonic()
_TIMESTAMP_RE = re.compile(
    r"^(?P<wall>\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2})(?:\.(?P<frac>\d+))? (?P<offset>[+-]\d{4})(?: [A-Za-z]+)?$"
)
_DURATION_RE = re.compile(r"(?P<value>\d+(?:\.\d+)?)(?P<unit>h|ms|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


class SystemClock:
    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def monotonic(self) -> float:
        return time.monotonic()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def format_timestamp(moment: datetime, monotonic: float | None = None) -> str:
    moment = moment.astimezone(timezone.utc)
    wall = moment.strftime("%Y-%m-%d %H:%M:%S.%f +0000 UTC")
    reading = (time.monotonic() if monotonic is None else monotonic) - _PROCESS_START
    return f"{wall} m={reading:+.9f}"


def parse_timestamp(value: str) -> datetime:
    tokens = [token for token in str(value).strip().split(" ") if token and not token.startswith("m=")]
    match = _TIMESTAMP_RE.match(" ".join(tokens))
    if match is None:
        raise ValueError(f"unparseable timestamp `{value}`")
    wall = datetime.strptime(match.group("wall"), "%Y-%m-%d %H:%M:%S")
    frac = (match.group("frac") or "0")[:6].ljust(6, "0")
    offset = match.group("offset")
    sign = -1 if offset[0] == "-" else 1
    tz = timezone(sign * timedelta(hours=int(offset[1:3]), minutes=int(offset[3:5])))
    return wall.replace(microsecond=int(frac), tzinfo=tz)


def format_iso_utc(moment: datetime) -> str:
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S+00:00")


def parse_duration(value: str | int | float) -> float:
    """Parse ``24h``, ``1h30m``, ``90s``, ``500ms`` or a plain number of seconds."""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value <= 0:
            raise ValueError(f"duration must be positive, got {value}")
        return float(value)
    raw = str(value).strip()
    try:
        seconds = float(raw)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_RE.finditer(raw):
            if match.start() != pos:
                break
            seconds += float(match.group("value")) * _DURATION_UNITS[match.group("unit")]
            pos = match.end()
        if pos != len(raw) or not raw:
            raise ValueError(f"invalid duration `{value}`") from None
    if seconds <= 0:
        raise ValueError(f"duration must be positive, got `{value}`")
    return seconds
