"""Duration parsing for Helm/kubectl style timeouts ("90s", "15m", "1h30m")."""

from __future__ import annotations

import math
import re

_BARE_SECONDS = re.compile(r"\d+(?:\.\d+)?")
_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str) -> float:
    """Parse a Go-style duration string into seconds.

    A bare decimal number is read as seconds. Exponents, signs and
    non-finite values are rejected.

    Args:
        value: Duration such as "300s", "15m" or "1h30m"

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string is not a valid positive duration
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("Duration must not be empty")

    if _BARE_SECONDS.fullmatch(text):
        seconds = float(text)
    else:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(text):
            if match.start() != pos:
                raise ValueError(f"Invalid duration: '{value}'")
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(text):
            raise ValueError(f"Invalid duration: '{value}'")

    if not math.isfinite(seconds):
        raise ValueError(f"Duration is too large: '{value}'")
    if seconds <= 0:
        raise ValueError(f"Duration must be positive: '{value}'")
    return seconds


def normalize_duration(value: str) -> str:
    """Validate a duration and return the form passed to helm/kubectl.

    Units are lowercased and a bare number gets an explicit "s" suffix,
    so "15M" becomes "15m" and "300" becomes "300s".

    Raises:
        ValueError: If the string is not a valid positive duration
    """
    parse_duration(value)
    text = value.strip().lower()
    if _BARE_SECONDS.fullmatch(text):
        return f"{text}s"
    return text
