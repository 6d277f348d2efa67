"""Duration string parsing."""

import re

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$", re.IGNORECASE)

_UNIT_SECONDS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0}


def parse_duration(value: str | float | int, allow_zero: bool = False) -> float:
    """Parse ``30s``, ``5m``, ``1h``, ``250ms`` or bare seconds.

    Args:
        value: Duration string or number of seconds
        allow_zero: Accept a zero duration (e.g. no pause between retries)

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the value is malformed, negative, or zero when not allowed
    """
    if isinstance(value, (int, float)):
        seconds = float(value)
    else:
        match = _DURATION_RE.match(value)
        if not match:
            raise ValueError(f"Invalid duration: {value!r}")
        number, unit = match.groups()
        seconds = float(number) * _UNIT_SECONDS[(unit or "s").lower()]

    if seconds < 0 or (seconds == 0 and not allow_zero):
        raise ValueError(f"Duration must be positive: {value!r}")
    return seconds
