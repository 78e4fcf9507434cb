"""
thresholds.py -- Maps 0-100 index values onto status tiers and domain labels.

classify_index() is the single source of the LOW/MEDIUM/HIGH boundaries. Every
domain label (health, performance, compliance, risk) derives from it, so a
boundary change in Thresholds moves all of them together.

0 and None both mean "no data yet" and always classify as UNKNOWN.
"""

from typing import Optional

from .config import DEFAULT_THRESHOLDS, Thresholds
from .models import IndexStatus

_HEALTH_LABELS: dict[IndexStatus, str] = {
    IndexStatus.HIGH: "HEALTHY",
    IndexStatus.MEDIUM: "FAIR",
    IndexStatus.LOW: "POOR",
    IndexStatus.UNKNOWN: "UNKNOWN",
}

_PERFORMANCE_LABELS: dict[IndexStatus, str] = {
    IndexStatus.HIGH: "GOOD",
    IndexStatus.MEDIUM: "AVERAGE",
    IndexStatus.LOW: "BELOW AVERAGE",
    IndexStatus.UNKNOWN: "UNKNOWN",
}

# High underlying index = low risk.
_RISK_LABELS: dict[IndexStatus, str] = {
    IndexStatus.HIGH: "LOW",
    IndexStatus.MEDIUM: "MEDIUM",
    IndexStatus.LOW: "HIGH",
    IndexStatus.UNKNOWN: "UNKNOWN",
}

# Ascending = worst first.
_HEALTH_SORT_RANK: dict[str, int] = {
    "POOR": 0,
    "FAIR": 1,
    "HEALTHY": 2,
    "UNKNOWN": 3,
}


def classify_index(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> IndexStatus:
    """Return the tier for a 0-100 index.

    0 / None -> UNKNOWN; < low -> LOW; low..high inclusive -> MEDIUM; > high -> HIGH.
    """
    if value is None or value == 0:
        return IndexStatus.UNKNOWN
    if value < thresholds.index_low:
        return IndexStatus.LOW
    if value <= thresholds.index_high:
        return IndexStatus.MEDIUM
    return IndexStatus.HIGH


def health_label(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    return _HEALTH_LABELS[classify_index(value, thresholds)]


def performance_label(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    return _PERFORMANCE_LABELS[classify_index(value, thresholds)]


def compliance_label(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    return classify_index(value, thresholds).value


def risk_label(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    """Return the bare risk tier word (inverted polarity). Callers add any " RISK" suffix."""
    return _RISK_LABELS[classify_index(value, thresholds)]


def health_sort_rank(value: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> int:
    """Sort rank for health labels: POOR=0, FAIR=1, HEALTHY=2, UNKNOWN=3."""
    return _HEALTH_SORT_RANK[health_label(value, thresholds)]
