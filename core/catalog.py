"""
catalog.py -- The fixed KPI catalog and the per-KPI tables the engine dispatches on.

Each KPI id maps to one KpiKind. Polarity and the implicit unit for bare
numeric targets follow from the id (or, for definitions that carry their own
kind tag, from the kind). Dispatch is always a lookup here followed by a match
on the kind, never a set-membership test scattered through the engine.

A KPI id with no entry and no explicit kind is a catalog drift bug, not a data
condition: kind_of() raises UnknownKpiError so it surfaces immediately.
"""

from typing import Optional, Union

from .models import KpiDefinition, KpiKind, Polarity


class UnknownKpiError(LookupError):
    """Raised when a KPI id reaches a dispatch table it is not registered in."""

    def __init__(self, kpi_id: int) -> None:
        super().__init__(f"KPI {kpi_id} has no registered kind; the KPI catalog and the engine are out of sync.")
        self.kpi_id = kpi_id


KpiRef = Union[int, KpiDefinition]

# ---------------------------------------------------------------------------
# Kind table
# ---------------------------------------------------------------------------

_KIND_BY_ID: dict[int, KpiKind] = {
    1: KpiKind.HIT_RATE,
    2: KpiKind.HIT_RATE,
    6: KpiKind.TIMED,
    7: KpiKind.TIMED,
    8: KpiKind.SIZED,
    15: KpiKind.SCORE,
}
for _kpi_id in (3, 4, 5, 9, 10, 11, 12, 13, 14, 16, 17, 18, 19, 20, 21, 22, 23, 24):
    _KIND_BY_ID[_kpi_id] = KpiKind.MISS_RATE
for _kpi_id in range(25, 34):
    _KIND_BY_ID[_kpi_id] = KpiKind.MANUAL

_HIGHER_IS_BETTER_KINDS = frozenset({KpiKind.HIT_RATE, KpiKind.SCORE})

# Unit appended by ensure_unit() when a target is stored as a bare number.
_TARGET_UNIT_BY_ID: dict[int, str] = {
    6: " sec",
    7: " sec",
    8: " MB",
    1: "%",
    2: "%",
    15: "%",
    16: "%",
    17: "%",
    18: "%",
    20: "%",
    23: "%",
}

# Used only for definitions outside the id table that carry an explicit kind.
_TARGET_UNIT_BY_KIND: dict[KpiKind, str] = {
    KpiKind.TIMED: " sec",
    KpiKind.SIZED: " MB",
    KpiKind.HIT_RATE: "%",
    KpiKind.SCORE: "%",
}


def _split(kpi: KpiRef) -> tuple[int, Optional[KpiKind]]:
    if isinstance(kpi, KpiDefinition):
        return kpi.id, kpi.kind
    return kpi, None


def kind_of(kpi: KpiRef) -> KpiKind:
    """Return the aggregation kind for a KPI id or definition.

    An explicit kind on the definition wins over the id table.
    Raises UnknownKpiError when neither is available.
    """
    kpi_id, explicit = _split(kpi)
    if explicit is not None:
        return explicit
    try:
        return _KIND_BY_ID[kpi_id]
    except KeyError:
        raise UnknownKpiError(kpi_id) from None


def polarity_of(kpi: KpiRef) -> Polarity:
    """HIGHER_IS_BETTER for hit-rate and score KPIs; LOWER_IS_BETTER for all others."""
    if kind_of(kpi) in _HIGHER_IS_BETTER_KINDS:
        return Polarity.HIGHER_IS_BETTER
    return Polarity.LOWER_IS_BETTER


def target_unit(kpi: KpiRef) -> Optional[str]:
    """Return the suffix a bare numeric target of this KPI needs, or None."""
    kpi_id, explicit = _split(kpi)
    if kpi_id in _TARGET_UNIT_BY_ID:
        return _TARGET_UNIT_BY_ID[kpi_id]
    if explicit is not None:
        return _TARGET_UNIT_BY_KIND.get(explicit)
    return None


def known_kpi_ids() -> frozenset[int]:
    return frozenset(_KIND_BY_ID)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------

_AVAILABILITY = "Availability & Reliability"
_PERFORMANCE = "Performance & Efficiency"
_SECURITY = "Security, Trust & Privacy"
_ACCESSIBILITY = "Accessibility & Inclusivity"
_USER_EXPERIENCE = "User Experience & Journey Quality"
_NAVIGATION = "Navigation & Discoverability"
_TRAFFIC = "Traffic, Usage"


def _auto(kpi_id, name, group, outcome, targets, severity, weight, frequency, probe_type) -> KpiDefinition:
    high, medium, low = targets
    return KpiDefinition(
        id=kpi_id,
        name=name,
        group=group,
        outcome=outcome,
        target_high=high,
        target_medium=medium,
        target_low=low,
        manual="Auto",
        severity=severity,
        weight=weight,
        frequency=frequency,
        probe_type=probe_type,
    )


def _manual(kpi_id: int, name: str) -> KpiDefinition:
    return KpiDefinition(id=kpi_id, name=name, group=_TRAFFIC, manual="Manual", severity="P1", weight=0)


DEFAULT_CATALOG: tuple[KpiDefinition, ...] = (
    _auto(1, "Website completely down (no response)", _AVAILABILITY, "Flag",
          ("99.90%", "99.50%", "99.00%"), "P1", 5, "1 min", "http"),
    _auto(2, "DNS resolution failure", _AVAILABILITY, "Flag",
          ("99.90%", "99.50%", "99.00%"), "P1", 4, "5 min", "dns"),
    _auto(3, "Hosting/network outage", _AVAILABILITY, "Flag", ("0", "3", "5"), "P1", 4, "5 min", "http"),
    _auto(4, "Partial outage (homepage loads, inner pages fail)", _AVAILABILITY, "Flag",
          ("0", "3", "5"), "P2", 3, "5 min", "browser"),
    _auto(5, "Intermittent availability (flapping)", _AVAILABILITY, "Flag", ("0", "3", "5"), "P2", 2, "5 min", "http"),
    _auto(6, "Slow page load", _PERFORMANCE, "Sec", ("3", "5", "10"), "P2", 4, "15 min", "browser"),
    _auto(7, "Backend response time", _PERFORMANCE, "Sec", ("0.5", "1", "2"), "P2", 3, "15 min", "http"),
    _auto(8, "Heavy pages consuming excessive data", _PERFORMANCE, "MB", ("2", "3", "5"), "P2", 2, "Daily", "browser"),
    _auto(9, "Website not using HTTPS", _SECURITY, "Flag", ("0", "1", "1"), "P2", 5, "Daily", "http"),
    _auto(10, "SSL certificate expired", _SECURITY, "Flag", ("0", "0", "0"), "P2", 5, "Daily", "ssl"),
    _auto(11, "Browser security warning", _SECURITY, "Flag", ("0", "0", "0"), "P3", 4, "Daily", "browser"),
    _auto(12, "Mixed content warnings", _SECURITY, "Flag", ("0", "0", "0"), "P3", 3, "Daily", "browser"),
    _auto(13, "Suspicious redirects", _SECURITY, "Flag", ("0", "0", "0"), "P3", 4, "Daily", "browser"),
    _auto(14, "Privacy policy availability", _SECURITY, "Flag", ("0", "0", "0"), "P3", 2, "Daily", "browser"),
    _auto(15, "WCAG compliance score", _ACCESSIBILITY, "%", ("95%", "90%", "80%"), "P4", 4, "Daily", "accessibility"),
    _auto(16, "Missing form label", _ACCESSIBILITY, "%", ("1%", "3%", "5%"), "P4", 3, "Daily", "accessibility"),
    _auto(17, "Images missing alt text", _ACCESSIBILITY, "%", ("2%", "5%", "10%"), "P4", 2, "Daily", "accessibility"),
    _auto(18, "Poor color contrast", _ACCESSIBILITY, "%", ("1%", "3%", "5%"), "P4", 2, "Daily", "accessibility"),
    _auto(19, "Download success rate", _USER_EXPERIENCE, "Flag", ("0", "3", "5"), "P3", 4, "15 min", "browser"),
    _auto(20, "Download links broken", _USER_EXPERIENCE, "Flag", ("0", "3", "5"), "P3", 3, "15 min", "browser"),
    _auto(21, "Page loads but assets don't (broken CSS/JS)", _USER_EXPERIENCE, "Flag",
          ("0", "3", "5"), "P3", 3, "15 min", "browser"),
    _auto(22, "Search not available", _NAVIGATION, "Flag", ("0", "1", "3"), "P4", 4, "Daily", "browser"),
    _auto(23, "Broken internal links", _NAVIGATION, "%", ("0%", "5%", "10%"), "P4", 3, "Daily", "browser"),
    _auto(24, "Circular navigation", _NAVIGATION, "Flag", ("0", "1", "3"), "P4", 2, "Daily", "browser"),
    _manual(25, "Total visits"),
    _manual(26, "Unique visitors"),
    _manual(27, "Page views"),
    _manual(28, "Top accessed pages"),
    _manual(29, "Entry page distribution"),
    _manual(30, "Exit page distribution"),
    _manual(31, "Average session duration"),
    _manual(32, "Bounce rate"),
    _manual(33, "Peak usage windows"),
)
