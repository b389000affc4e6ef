"""Duration parsing and formatting for mute commands and case logs."""

import re

_DURATION_PATTERN = re.compile(r"^(\d+)([smhdw])$", re.IGNORECASE)

_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 60 * 60,
    "d": 24 * 60 * 60,
    "w": 7 * 24 * 60 * 60,
}

# Largest unit first, no weeks
_DISPLAY_UNITS = (
    ("day", 24 * 60 * 60),
    ("hour", 60 * 60),
    ("minute", 60),
)


def parse_duration(text: str) -> int | None:
    """Parse a duration like "30m", "2h" or "7d" into seconds.

    Args:
        text: A positive integer followed by one of s, m, h, d, w.

    Returns:
        Duration in seconds, or None if the text is malformed or zero.
    """
    match = _DURATION_PATTERN.match(text.strip())
    if match is None:
        return None

    seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
    return seconds or None


def format_duration(seconds: int) -> str:
    """Render seconds using the largest whole non-zero unit.

    Examples: 90000 -> "1 day", 3661 -> "1 hour", 45 -> "45 seconds".

    Args:
        seconds: Non-negative duration in seconds.

    Returns:
        Human-readable duration, pluralized when the count is not 1.
    """
    for unit, size in _DISPLAY_UNITS:
        count = seconds // size
        if count > 0:
            return _pluralize(count, unit)
    return _pluralize(seconds, "second")


def _pluralize(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"
