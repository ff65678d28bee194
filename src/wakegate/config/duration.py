"""Duration strings: "30s", "5m", "1h30m", "250ms", "1.5h", "2d"."""

import re
from datetime import timedelta

# Seconds per unit. "d" is a 24h day; everything else follows the usual
# Go/Caddy duration units.
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
    "d": 86400.0,
}

# "ms" must be tried before "m", "ns"/"us" before "s".
_UNIT_PATTERN = "ns|us|µs|μs|ms|s|m|h|d"
_NUMBER_PATTERN = r"\d+\.?\d*|\.\d+"

_COMPONENT_RE = re.compile(rf"({_NUMBER_PATTERN})({_UNIT_PATTERN})")
_DURATION_RE = re.compile(rf"^[-+]?(?:(?:{_NUMBER_PATTERN})(?:{_UNIT_PATTERN}))+$")


def parse_duration(text: str) -> timedelta:
    """
    Parse a duration string into a timedelta.

    A duration is an optionally signed sequence of decimal numbers, each with
    a unit suffix, e.g. "300ms", "-1.5h" or "2h45m". A bare "0" is allowed.

    Args:
        text: Duration string

    Returns:
        Parsed duration

    Raises:
        ValueError: If the string is not a valid duration
    """
    if not isinstance(text, str):
        raise ValueError(f"invalid duration {text!r}: expected a string")
    s = text.strip()
    if s in ("0", "+0", "-0"):
        return timedelta(0)
    if not _DURATION_RE.match(s):
        raise ValueError(f"invalid duration '{text}'")

    sign = -1 if s.startswith("-") else 1
    seconds = sum(
        float(number) * _UNIT_SECONDS[unit]
        for number, unit in _COMPONENT_RE.findall(s.lstrip("+-"))
    )
    try:
        return timedelta(seconds=sign * seconds)
    except OverflowError as exc:
        raise ValueError(f"invalid duration '{text}': out of range") from exc


def format_duration(value: timedelta) -> str:
    """Render a timedelta compactly, e.g. ``10m0s``, ``1h30m0s`` or ``250ms``."""
    total = value.total_seconds()
    if total == 0:
        return "0s"
    sign = "-" if total < 0 else ""
    total = abs(total)
    if total < 1:
        return f"{sign}{total * 1000:g}ms"

    hours, rem = divmod(total, 3600)
    minutes, seconds = divmod(rem, 60)
    out = sign
    if hours:
        out += f"{int(hours)}h"
    if hours or minutes:
        out += f"{int(minutes)}m"
    return out + f"{round(seconds, 6):g}s"
