"""
status.py -- Up/down status, last outage, "time ago" text and risk exposure.

Three outcomes are kept distinct throughout:
  UNKNOWN      -- no health observation exists at all (never UP, never DOWN)
  "NO OUTAGES" -- health history exists but contains no miss
  "N/A"        -- no value can be computed (e.g. header with no health data)
"""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Optional

from .config import DEFAULT_THRESHOLDS, Thresholds
from .models import NO_OUTAGES, NOT_AVAILABLE, AssetStatus, Observation
from .thresholds import risk_label


def is_asset_up(observation: Observation) -> bool:
    """True unless the observation's Target is empty or "miss"."""
    target = observation.target.strip().lower()
    return bool(target) and target != "miss"


def current_status(latest_health: Optional[Observation]) -> AssetStatus:
    """UP / DOWN from the latest health observation; UNKNOWN when there is none."""
    if latest_health is None:
        return AssetStatus.UNKNOWN
    return AssetStatus.UP if is_asset_up(latest_health) else AssetStatus.DOWN


# ---------------------------------------------------------------------------
# Time formatting
# ---------------------------------------------------------------------------


def _plural(value: int, unit: str) -> str:
    return f"{value} {unit}{'s' if value >= 2 else ''} ago"


def as_utc(moment: datetime) -> datetime:
    # Naive timestamps are stored as UTC.
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def time_ago(then: datetime, now: Optional[datetime] = None) -> str:
    """Human-readable distance from then to now.

    "Just now" under a minute; then minutes, hours, days (under 30),
    months (days // 30, under a year) and years (days // 365).
    """
    now = now or datetime.now(timezone.utc)
    elapsed = as_utc(now) - as_utc(then)
    seconds = elapsed.total_seconds()

    if seconds < 60:
        return "Just now"
    if seconds < 3600:
        return _plural(int(seconds // 60), "minute")
    if seconds < 86400:
        return _plural(int(seconds // 3600), "hour")
    days = elapsed.days
    if days < 30:
        return _plural(days, "day")
    if days < 365:
        return _plural(days // 30, "month")
    return _plural(days // 365, "year")


# ---------------------------------------------------------------------------
# Outages
# ---------------------------------------------------------------------------


def _is_outage(observation: Observation) -> bool:
    return observation.result.lower() == "miss" or observation.target.lower() == "miss"


def last_outage_at(history: Iterable[Observation]) -> Optional[datetime]:
    """Timestamp of the most recent health observation whose Result or Target is "miss"."""
    moments = [o.recorded_at for o in history if _is_outage(o) and o.recorded_at is not None]
    if not moments:
        return None
    return max(moments, key=as_utc)


def last_outage(history: Iterable[Observation], now: Optional[datetime] = None) -> str:
    """time_ago() of the last outage, or "NO OUTAGES"."""
    moment = last_outage_at(history)
    if moment is None:
        return NO_OUTAGES
    return time_ago(moment, now)


def last_checked(observation: Optional[Observation], now: Optional[datetime] = None) -> str:
    if observation is None or observation.checked_at is None:
        return NOT_AVAILABLE
    return time_ago(observation.checked_at, now)


# ---------------------------------------------------------------------------
# Risk exposure
# ---------------------------------------------------------------------------


def risk_exposure(
    current_health: Optional[float],
    security_index: Optional[float],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Bare risk tier for the mean of health and security (inverted: high index -> LOW)."""
    mean = ((current_health or 0) + (security_index or 0)) / 2
    return risk_label(mean, thresholds)


def card_risk_label(
    current_health: Optional[float],
    security_index: Optional[float],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> str:
    """Asset-list form: "HIGH RISK", "LOW RISK"; UNKNOWN stays bare."""
    label = risk_exposure(current_health, security_index, thresholds)
    return label if label == "UNKNOWN" else f"{label} RISK"


def header_risk_label(digital_risk_exposure: Optional[float], thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    """Dashboard-header form: bare tier word from the stored exposure index, rounded first."""
    if digital_risk_exposure is None:
        return risk_label(None, thresholds)
    return risk_label(round(digital_risk_exposure), thresholds)
