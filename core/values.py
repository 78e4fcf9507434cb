"""
values.py -- Numeric value parsing and display formatting for KPI observations.

Observation strings arrive in free form: "99.5%", "3 sec", "10 MB", "2.14",
"true". parse_numeric() extracts the magnitude or returns None; callers treat
None as "exclude from the aggregate", never as zero.
"""

import math
import re
from typing import Optional

# Longest spellings first so "seconds" is not left as "onds" after "sec" is removed.
_UNIT_TOKENS = re.compile(r"percentage|percent|%|seconds|secs|sec|megabytes|mb", re.IGNORECASE)
_TRAILING_S = re.compile(r"s$", re.IGNORECASE)

# Characters that may precede a unit in a target string: "99.50%", "5 sec", "1,024 MB".
_LEADING_NUMBER = re.compile(r"^[0-9., ]*")


def _to_float(text: str) -> Optional[float]:
    try:
        value = float(text.replace(",", ""))
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_numeric(raw: Optional[str]) -> Optional[float]:
    """Return the numeric magnitude of raw, or None if it has none.

    Direct parse first ("2.14", "1,024"); otherwise known unit tokens are
    stripped case-insensitively and the remainder is parsed again
    ("99.50%" -> 99.5, "5 sec" -> 5.0, "10 MB" -> 10.0, "3s" -> 3.0).
    Boolean words and N/A yield None.
    """
    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None

    direct = _to_float(text)
    if direct is not None:
        return direct

    cleaned = _UNIT_TOKENS.sub("", text).strip()
    cleaned = _TRAILING_S.sub("", cleaned).strip()
    if not cleaned:
        return None
    return _to_float(cleaned)


def unit_of(target: Optional[str]) -> Optional[str]:
    """Return the unit spelling carried by a target string, verbatim.

    "5 sec" -> "sec", "99.50%" -> "%", "10 MB" -> "MB", "3" -> None.
    The "N/A" sentinel carries no unit.
    """
    if target is None:
        return None
    text = target.strip()
    if not text or text == "N/A":
        return None
    unit = _LEADING_NUMBER.sub("", text, count=1).strip()
    return unit or None


def format_number(value: float) -> str:
    """Round to 2 decimals and drop trailing zeros: 100.0 -> "100", 3.50 -> "3.5"."""
    rounded = round(value, 2)
    if rounded == int(rounded):
        return str(int(rounded))
    return f"{rounded:.2f}".rstrip("0").rstrip(".")


def with_unit(value: float, unit: str) -> str:
    """Render value with unit: percent attaches directly, other units after a space."""
    number = format_number(value)
    if unit.startswith("%"):
        return f"{number}{unit}"
    return f"{number} {unit}"
