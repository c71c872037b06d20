from __future__ import annotations

import math
import time

ATTRIBUTE_FIELDS = ("intoxication", "arousal")
ATTRIBUTE_MIN = 0
ATTRIBUTE_MAX = 100


def now_ms() -> int:
    return int(time.time() * 1000)


def normalize_character_key(name: object) -> str:
    return str(name or "Unknown").strip().casefold()


def clamp_attribute(value: object) -> int:
    """Coerce anything to an integer score in [0, 100]; non-numeric input becomes 0."""
    if isinstance(value, bool):
        return ATTRIBUTE_MIN
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return ATTRIBUTE_MIN
    else:
        return ATTRIBUTE_MIN
    if math.isnan(number):
        return ATTRIBUTE_MIN
    return int(max(ATTRIBUTE_MIN, min(ATTRIBUTE_MAX, number)))


def as_timestamp(value: object, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.strip()))
        except ValueError:
            return default
    return default
