"""
kpi_values.py -- Collapses a window of observations into one KPI "current value".

Input is a KPI (id or definition), the observations for one asset+KPI that the
caller has already filtered to its lookback window, and the resolved target
(used only to borrow its unit spelling). Output is a display string or "N/A".

Rules shared by every kind:
  - Observations whose Target is "skipped" are dropped before any counting.
    If nothing is left the value is "N/A".
  - Target is authoritative for hit/miss outcome. A Result of "true" never
    turns a Target of "miss" into a hit.
  - Results that do not parse as numbers are left out of averages, never
    counted as zero.

Dispatch is one lookup: catalog.kind_of() -> _STRATEGIES[kind].
"""

import logging
from collections.abc import Callable, Iterable
from statistics import fmean
from typing import Optional

from .catalog import KpiRef, kind_of
from .models import NOT_AVAILABLE, KpiKind, Observation, OutcomeKind
from .values import format_number, unit_of, with_unit

logger = logging.getLogger("assetwatch.kpi_values")

_MISS_RESULT_WORDS = frozenset({"miss", "false", "fail"})

# Unit spellings sniffed from raw size results, checked in this order.
_SIZE_UNITS = (("gb", "GB"), ("mb", "MB"), ("kb", "KB"))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def usable(observations: Iterable[Observation]) -> list[Observation]:
    """Return the observations that count toward a value (everything not skipped)."""
    return [o for o in observations if not o.is_skipped]


def _is_hit(observation: Observation) -> bool:
    return observation.outcome.kind is OutcomeKind.HIT


def _is_miss(observation: Observation) -> bool:
    if observation.outcome.kind is OutcomeKind.MISS:
        return True
    return observation.result.lower() in _MISS_RESULT_WORDS


def _numeric_results(rows: list[Observation], kpi_label: str) -> list[float]:
    values = [o.result_value for o in rows if o.result_value is not None]
    dropped = len(rows) - len(values)
    if dropped:
        logger.debug("%s: ignored %d observation(s) with non-numeric results", kpi_label, dropped)
    return values


def _ratio(count: int, total: int, target: Optional[str]) -> str:
    return with_unit(count / total * 100.0, unit_of(target) or "%")


# ---------------------------------------------------------------------------
# Strategies -- each receives rows with skipped observations already removed
# ---------------------------------------------------------------------------


def hit_rate(rows: list[Observation], target: Optional[str] = None) -> str:
    """Percentage of rows whose Target is hit/pass: 2 hits of 3 -> "66.67%"."""
    if not rows:
        return NOT_AVAILABLE
    hits = sum(1 for o in rows if _is_hit(o))
    return _ratio(hits, len(rows), target)


def miss_rate(rows: list[Observation], target: Optional[str] = None) -> str:
    """Complement of hit_rate over the same rows: 1 non-hit of 3 -> "33.33%"."""
    if not rows:
        return NOT_AVAILABLE
    misses = sum(1 for o in rows if not _is_hit(o))
    return _ratio(misses, len(rows), target)


def miss_count(rows: list[Observation], target: Optional[str] = None) -> str:
    """Bare count of rows whose Result or Target indicates a miss/false/fail."""
    if not rows:
        return NOT_AVAILABLE
    return str(sum(1 for o in rows if _is_miss(o)))


def timed_average(rows: list[Observation], target: Optional[str] = None) -> str:
    """Mean of numeric results with the target's unit (default "sec"): [3, 4] + "5 sec" -> "3.5 sec"."""
    values = _numeric_results(rows, "timed")
    if not values:
        return NOT_AVAILABLE
    return f"{format_number(fmean(values))} {unit_of(target) or 'sec'}"


def sniff_size_unit(rows: list[Observation]) -> Optional[str]:
    """Return GB/MB/KB from the first result that mentions one, else None."""
    for observation in rows:
        lowered = observation.result.lower()
        for token, unit in _SIZE_UNITS:
            if token in lowered:
                return unit
    return None


def sized_average(rows: list[Observation], target: Optional[str] = None) -> str:
    """Mean of numeric results. Unit: sniffed from the results, else the target's, else "MB"."""
    values = _numeric_results(rows, "sized")
    if not values:
        return NOT_AVAILABLE
    unit = sniff_size_unit(rows) or unit_of(target) or "MB"
    return f"{format_number(fmean(values))} {unit}"


def score_average(rows: list[Observation], target: Optional[str] = None) -> str:
    values = _numeric_results(rows, "score")
    if not values:
        return NOT_AVAILABLE
    return with_unit(fmean(values), unit_of(target) or "%")


def manual_value(rows: list[Observation], target: Optional[str] = None) -> str:
    """The latest stored Result verbatim. No aggregation."""
    if not rows:
        return NOT_AVAILABLE
    latest = latest_observation(rows)
    return latest.result or NOT_AVAILABLE


_STRATEGIES: dict[KpiKind, Callable[[list[Observation], Optional[str]], str]] = {
    KpiKind.HIT_RATE: hit_rate,
    KpiKind.MISS_RATE: miss_rate,
    KpiKind.MISS_COUNT: miss_count,
    KpiKind.TIMED: timed_average,
    KpiKind.SIZED: sized_average,
    KpiKind.SCORE: score_average,
    KpiKind.MANUAL: manual_value,
}


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------


def latest_observation(observations: Iterable[Observation]) -> Optional[Observation]:
    """Most recently touched observation (updated_at, then recorded_at), or None.

    Rows without any timestamp sort oldest; ties keep the later row in input order.
    """
    latest: Optional[Observation] = None
    for observation in observations:
        if latest is None or _sort_key(observation) >= _sort_key(latest):
            latest = observation
    return latest


def _sort_key(observation: Observation):
    checked = observation.checked_at
    return (checked is not None, checked.timestamp() if checked is not None else 0.0)


def current_value_for(kpi: KpiRef, observations: Iterable[Observation], target: Optional[str] = None) -> str:
    """Return the display value for one asset+KPI over the supplied window.

    Raises UnknownKpiError if the KPI has no kind; every data problem
    resolves to "N/A" instead.
    """
    strategy = _STRATEGIES[kind_of(kpi)]
    return strategy(usable(observations), target)
