# app/core/durations.py
"""
Parsing for short duration strings such as "7d", "12h", "30m" or "45s".

parse_duration() is strict and raises on bad input. Callers that prefer
availability over strictness (e.g. refresh-token lifetimes read from env)
use parse_duration_or() with an explicit default.
"""
from __future__ import annotations

import re
from datetime import timedelta

DEFAULT_REFRESH_LIFETIME = timedelta(days=7)

_DURATION_RE = re.compile(r"^(\d+)(d|h|m|s)?$")

# A bare number is a count of days.
_DEFAULT_UNIT = "d"

_UNIT_SECONDS = {
    "d": 24 * 60 * 60,
    "h": 60 * 60,
    "m": 60,
    "s": 1,
}


class DurationParseError(ValueError):
    """Raised when a duration string does not match <digits>[d|h|m|s]."""


def parse_duration(value: str | None) -> timedelta:
    raw = (value or "").strip()
    match = _DURATION_RE.match(raw)
    if not match:
        raise DurationParseError(f"Invalid duration: {value!r}")

    unit = match.group(2) or _DEFAULT_UNIT
    try:
        return timedelta(seconds=int(match.group(1)) * _UNIT_SECONDS[unit])
    except (OverflowError, ValueError) as exc:
        raise DurationParseError(f"Duration out of range: {value!r}") from exc


def parse_duration_or(value: str | None, default: timedelta) -> timedelta:
    """Lenient variant: any value that fails to parse yields `default`."""
    try:
        return parse_duration(value)
    except DurationParseError:
        return default


def parse_duration_ms(value: str | None) -> int:
    lifetime = parse_duration_or(value, DEFAULT_REFRESH_LIFETIME)
    return int(lifetime.total_seconds()) * 1000
