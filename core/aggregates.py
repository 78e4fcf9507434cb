"""
aggregates.py -- Rolls per-asset indices and incidents up into dashboard summaries.

Every index mean here is taken only over assets whose stored value is
non-zero: 0 is the "no data yet" sentinel, and counting it would drag every
average toward zero as new assets are onboarded. non_zero_mean() returns None
when nothing contributes; the summary payloads render that as 0.0, which the
classifier in turn reports as UNKNOWN.

Inputs are in-memory snapshots supplied by the caller (AssetRollup per asset,
plus incident and ministry lists). No function here reads a clock unless the
caller omits `now`.
"""

from collections import Counter
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import DEFAULT_THRESHOLDS, Thresholds
from .models import Asset, AssetMetrics, Incident, KpiDefinition, Ministry, Observation
from .status import as_utc, is_asset_up
from .thresholds import compliance_label, health_label, performance_label

_CLOSED_STATUSES = frozenset({"closed", "resolved"})

# Checked in order: explicit codes win over severity words.
_SEVERITY_WORDS = (("critical", "P1"), ("high", "P2"), ("medium", "P3"), ("low", "P4"))
_SEVERITY_CODES = ("P1", "P2", "P3", "P4")


@dataclass(frozen=True)
class AssetRollup:
    """Everything the summaries need to know about one asset.

    metrics is the latest AssetMetrics row (None if the calculation job has not
    run yet). previous_metrics is the latest row at least 30 days old, used
    only for score-change comparisons.
    """

    asset_id: int
    ministry_id: Optional[int] = None
    metrics: Optional[AssetMetrics] = None
    latest_health: Optional[Observation] = None
    previous_metrics: Optional[AssetMetrics] = None

    @property
    def is_online(self) -> bool:
        return self.latest_health is not None and is_asset_up(self.latest_health)


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------


def non_zero_mean(values: Iterable[Optional[float]]) -> Optional[float]:
    """Mean over values that are present and non-zero; None if there are none.

    [0, 0, 80, 60] -> 70.0, never 35.0.
    """
    contributing = [v for v in values if v]
    if not contributing:
        return None
    return sum(contributing) / len(contributing)


def _rounded(value: Optional[float]) -> float:
    return round(value or 0.0, 2)


def _metric(rollup: AssetRollup, getter: Callable[[AssetMetrics], float]) -> Optional[float]:
    if rollup.metrics is None:
        return None
    return getter(rollup.metrics)


def percentage(part: int, whole: int) -> float:
    """part/whole*100 rounded to 2 dp; 0.0 when whole is 0."""
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 2)


# ---------------------------------------------------------------------------
# Incidents
# ---------------------------------------------------------------------------


def severity_code(severity: Optional[str]) -> Optional[str]:
    """Map a severity lookup name to P1..P4: "P1 - Critical" -> "P1", "High" -> "P2"."""
    if not severity:
        return None
    upper = severity.upper()
    for code in _SEVERITY_CODES:
        if code in upper:
            return code
    lowered = severity.lower()
    for word, code in _SEVERITY_WORDS:
        if word in lowered:
            return code
    return None


def is_critical(incident: Incident) -> bool:
    name = (incident.severity or "").lower()
    return "p1" in name or "critical" in name


def is_open(incident: Incident) -> bool:
    return (incident.status or "").strip().lower() not in _CLOSED_STATUSES


@dataclass
class IncidentCounts:
    total: int = 0
    open: int = 0
    critical_open: int = 0
    critical_open_percentage: float = 0.0
    by_severity: dict[str, int] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)


def aggregate_incident_counts(incidents: Iterable[Incident]) -> IncidentCounts:
    """Count incidents by open/critical state, severity code and status name.

    critical_open_percentage = critical open / open * 100, 0 with no open incidents.
    Severity names that map to no code are counted under "UNKNOWN".
    """
    incidents = list(incidents)
    open_incidents = [i for i in incidents if is_open(i)]
    critical_open = sum(1 for i in open_incidents if is_critical(i))

    by_severity = Counter(severity_code(i.severity) or "UNKNOWN" for i in incidents)
    by_status = Counter((i.status or "").strip() or "UNKNOWN" for i in incidents)

    return IncidentCounts(
        total=len(incidents),
        open=len(open_incidents),
        critical_open=critical_open,
        critical_open_percentage=percentage(critical_open, len(open_incidents)),
        by_severity=dict(sorted(by_severity.items())),
        by_status=dict(sorted(by_status.items())),
    )


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------


def high_risk_status(count: int, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> str:
    """LOW for none, MEDIUM up to high_risk_medium_max, HIGH above it."""
    if count == 0:
        return "LOW"
    if count <= thresholds.high_risk_medium_max:
        return "MEDIUM"
    return "HIGH"


@dataclass
class AssetMetricsSummary:
    total_assets: int
    assets_online: int
    assets_online_percentage: float
    health_index: float
    health_status: str
    performance_index: float
    performance_status: str
    compliance_index: float
    compliance_status: str
    high_risk_assets: int
    high_risk_assets_status: str


def aggregate_asset_metrics(
    rollups: Sequence[AssetRollup],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> AssetMetricsSummary:
    """Online percentage, non-zero index means and the high-risk bucket.

    The admin compliance index is the mean security index, not overall
    compliance. Statuses classify the int-truncated mean, so 70.9 is still
    MEDIUM.
    """
    total = len(rollups)
    online = sum(1 for r in rollups if r.is_online)

    health = non_zero_mean(_metric(r, lambda m: m.current_health) for r in rollups)
    performance = non_zero_mean(_metric(r, lambda m: m.performance_index) for r in rollups)
    compliance = non_zero_mean(_metric(r, lambda m: m.security_index) for r in rollups)

    high_risk = sum(
        1 for r in rollups if r.metrics is not None and r.metrics.digital_risk_exposure > thresholds.high_risk_index
    )

    return AssetMetricsSummary(
        total_assets=total,
        assets_online=online,
        assets_online_percentage=percentage(online, total),
        health_index=_rounded(health),
        health_status=health_label(int(health or 0), thresholds),
        performance_index=_rounded(performance),
        performance_status=performance_label(int(performance or 0), thresholds),
        compliance_index=_rounded(compliance),
        compliance_status=compliance_label(int(compliance or 0), thresholds),
        high_risk_assets=high_risk,
        high_risk_assets_status=high_risk_status(high_risk, thresholds),
    )


@dataclass
class DashboardSummary:
    total_digital_assets_monitored: int
    assets_online: int
    assets_online_percentage: float
    health_index: float
    health_status: str
    performance_index: float
    performance_status: str
    compliance_index: float
    compliance_status: str
    high_risk_assets: int
    high_risk_assets_status: str
    open_incidents: int
    critical_severity_open_incidents: int
    critical_severity_open_incidents_percentage: float


def dashboard_summary(
    rollups: Sequence[AssetRollup],
    incidents: Iterable[Incident],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> DashboardSummary:
    """The admin dashboard summary: asset rollup plus incident counts."""
    assets = aggregate_asset_metrics(rollups, thresholds)
    counts = aggregate_incident_counts(incidents)
    return DashboardSummary(
        total_digital_assets_monitored=assets.total_assets,
        assets_online=assets.assets_online,
        assets_online_percentage=assets.assets_online_percentage,
        health_index=assets.health_index,
        health_status=assets.health_status,
        performance_index=assets.performance_index,
        performance_status=assets.performance_status,
        compliance_index=assets.compliance_index,
        compliance_status=assets.compliance_status,
        high_risk_assets=assets.high_risk_assets,
        high_risk_assets_status=assets.high_risk_assets_status,
        open_incidents=counts.open,
        critical_severity_open_incidents=counts.critical_open,
        critical_severity_open_incidents_percentage=counts.critical_open_percentage,
    )


# ---------------------------------------------------------------------------
# PM dashboard
# ---------------------------------------------------------------------------


def _experience_score(metrics: Iterable[Optional[AssetMetrics]]) -> float:
    """Mean over assets with any data of (health + performance + compliance) / 3."""
    per_asset = [
        (m.current_health + m.performance_index + m.overall_compliance) / 3
        for m in metrics
        if m is not None and (m.current_health or m.performance_index or m.overall_compliance)
    ]
    if not per_asset:
        return 0.0
    return sum(per_asset) / len(per_asset)


def ministry_mean(
    ministry_id: Optional[int],
    rollups: Sequence[AssetRollup],
    getter: Callable[[AssetMetrics], float],
) -> Optional[float]:
    return non_zero_mean(_metric(r, getter) for r in rollups if r.ministry_id == ministry_id)


@dataclass
class PMDashboardHeader:
    digital_experience_score: float
    digital_experience_score_change: float
    total_assets_being_monitored: int
    total_ministries: int
    digital_assets_offline: int
    last_checked: Optional[datetime]
    ministries_meet_compliance_standards: int
    compliance_threshold: float
    active_incidents: int
    resolved_incidents_last_30_days: int
    assets_are_vulnerable: int
    security_threshold: float


def pm_dashboard_header(
    rollups: Sequence[AssetRollup],
    ministries: Sequence[Ministry],
    incidents: Iterable[Incident],
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    window_days: int = 30,
) -> PMDashboardHeader:
    """Government-wide headline figures.

    A ministry meets the compliance standard when the non-zero mean of its
    assets' overall compliance is at least compliance_standard; ministries
    with no assets never do. Vulnerable assets have a known (non-zero)
    security index below security_threshold.
    """
    if window_days < 1:
        raise ValueError(f"window_days must be at least 1, got {window_days}")
    now = now or datetime.now(timezone.utc)
    cutoff = as_utc(now) - timedelta(days=window_days)
    incidents = list(incidents)

    current = _experience_score(r.metrics for r in rollups)
    previous = _experience_score(r.previous_metrics for r in rollups)

    meeting = 0
    for ministry in ministries:
        score = ministry_mean(ministry.id, rollups, lambda m: m.overall_compliance)
        if score is not None and score >= thresholds.compliance_standard:
            meeting += 1

    resolved_recently = sum(
        1
        for i in incidents
        if not is_open(i) and i.updated_at is not None and as_utc(i.updated_at) >= cutoff
    )

    security = [r.metrics.security_index for r in rollups if r.metrics is not None]
    vulnerable = sum(1 for s in security if s and s < thresholds.security_threshold)

    checked = [r.latest_health.checked_at for r in rollups if r.latest_health is not None]
    checked = [c for c in checked if c is not None]

    return PMDashboardHeader(
        digital_experience_score=round(current, 2),
        digital_experience_score_change=round(current - previous, 2),
        total_assets_being_monitored=len(rollups),
        total_ministries=len(ministries),
        digital_assets_offline=len(rollups) - sum(1 for r in rollups if r.is_online),
        last_checked=max(checked, key=as_utc) if checked else None,
        ministries_meet_compliance_standards=meeting,
        compliance_threshold=thresholds.compliance_standard,
        active_incidents=sum(1 for i in incidents if is_open(i)),
        resolved_incidents_last_30_days=resolved_recently,
        assets_are_vulnerable=vulnerable,
        security_threshold=thresholds.security_threshold,
    )


@dataclass
class PMDashboardIndices:
    overall_compliance_index: float
    accessibility_index: float
    availability_index: float
    navigation_index: float
    performance_index: float
    security_index: float
    user_experience_index: float


def pm_dashboard_indices(rollups: Sequence[AssetRollup]) -> PMDashboardIndices:
    def mean(getter: Callable[[AssetMetrics], float]) -> float:
        return _rounded(non_zero_mean(_metric(r, getter) for r in rollups))

    return PMDashboardIndices(
        overall_compliance_index=mean(lambda m: m.overall_compliance),
        accessibility_index=mean(lambda m: m.accessibility_index),
        availability_index=mean(lambda m: m.availability_index),
        navigation_index=mean(lambda m: m.navigation_index),
        performance_index=mean(lambda m: m.performance_index),
        security_index=mean(lambda m: m.security_index),
        user_experience_index=mean(lambda m: m.user_experience_index),
    )


# ---------------------------------------------------------------------------
# Ministry rankings
# ---------------------------------------------------------------------------


@dataclass
class MinistryScore:
    ministry_id: Optional[int]
    ministry_name: str
    assets: int
    score: float


def _ministry_scores(
    ministries: Sequence[Ministry],
    rollups: Sequence[AssetRollup],
    getter: Callable[[AssetMetrics], float],
) -> list[MinistryScore]:
    scores = []
    for ministry in ministries:
        owned = sum(1 for r in rollups if r.ministry_id == ministry.id)
        if owned == 0:
            continue
        scores.append(
            MinistryScore(
                ministry_id=ministry.id,
                ministry_name=ministry.name,
                assets=owned,
                score=_rounded(ministry_mean(ministry.id, rollups, getter)),
            )
        )
    return scores


def _check_count(count: int) -> None:
    if count < 0:
        raise ValueError(f"count cannot be negative, got {count}")


def top_ministries_by_compliance(
    ministries: Sequence[Ministry],
    rollups: Sequence[AssetRollup],
    count: int = 5,
) -> list[MinistryScore]:
    """The count ministries with the highest mean overall compliance, best first."""
    _check_count(count)
    scores = _ministry_scores(ministries, rollups, lambda m: m.overall_compliance)
    return sorted(scores, key=lambda s: s.score, reverse=True)[:count]


def bottom_ministries_by_citizen_impact(
    ministries: Sequence[Ministry],
    rollups: Sequence[AssetRollup],
    count: int = 5,
) -> list[MinistryScore]:
    """The count ministries with the lowest mean citizen happiness, worst first."""
    _check_count(count)
    scores = _ministry_scores(ministries, rollups, lambda m: m.citizen_happiness)
    return sorted(scores, key=lambda s: s.score)[:count]


# ---------------------------------------------------------------------------
# Ministry level
# ---------------------------------------------------------------------------


def is_high_severity(incident: Incident) -> bool:
    """High severity at ministry level means a P2 severity name."""
    return "p2" in (incident.severity or "").lower()


def _owned(ministry: Ministry, assets: Iterable[Asset]) -> list[Asset]:
    return [a for a in assets if a.ministry_id == ministry.id]


def _incidents_of(assets: Sequence[Asset], incidents: Iterable[Incident]) -> list[Incident]:
    ids = {a.id for a in assets}
    return [i for i in incidents if i.asset_id in ids]


@dataclass
class MinistryAssetsSummary:
    ministry_id: Optional[int]
    ministry_name: str
    total_assets: int
    total_incidents: int
    open_incidents: int
    high_severity_open_incidents: int


def ministry_assets_summary(
    ministry: Ministry,
    assets: Iterable[Asset],
    incidents: Iterable[Incident],
) -> MinistryAssetsSummary:
    """Asset and incident totals for one ministry.

    assets and incidents may span every ministry; only the ministry's own
    assets and the incidents raised against them are counted.
    """
    owned = _owned(ministry, assets)
    related = _incidents_of(owned, incidents)
    open_incidents = [i for i in related if is_open(i)]
    return MinistryAssetsSummary(
        ministry_id=ministry.id,
        ministry_name=ministry.name,
        total_assets=len(owned),
        total_incidents=len(related),
        open_incidents=len(open_incidents),
        high_severity_open_incidents=sum(1 for i in open_incidents if is_high_severity(i)),
    )


@dataclass
class ReportIncidentRow:
    kpi_id: int
    kpi_name: str
    value_target_display: str
    created_at: Optional[datetime]
    status: str


@dataclass
class ReportAssetRow:
    asset_id: Optional[int]
    asset_name: str
    compliance_score: float
    open_incidents: int
    incident_details: list[ReportIncidentRow] = field(default_factory=list)


@dataclass
class MinistryReport:
    ministry_id: Optional[int]
    ministry_name: str
    generated_at: datetime
    assets_monitored: int
    total_incidents: int
    active_incidents: int
    resolution_performance: float
    assets: list[ReportAssetRow] = field(default_factory=list)


def report_target(kpi: Optional[KpiDefinition]) -> str:
    """First populated target of the KPI, high tier first; "" when none is set."""
    if kpi is None:
        return ""
    for target in (kpi.target_high, kpi.target_medium, kpi.target_low):
        if target and target.strip():
            return target.strip()
    return ""


def value_target_display(current: str, target: str) -> str:
    """Current value with its target in brackets, "3.2 sec (5 sec)".

    Either half may be missing; "-" when both are.
    """
    if not current and not target:
        return "-"
    if not target:
        return current
    if not current:
        return f"({target})"
    return f"{current} ({target})"


def _created_key(incident: Incident) -> tuple[int, float]:
    created = incident.created_at
    return (incident.kpi_id, as_utc(created).timestamp() if created is not None else 0.0)


def ministry_report(
    ministry: Ministry,
    assets: Iterable[Asset],
    incidents: Iterable[Incident],
    metrics: Mapping[int, AssetMetrics],
    latest_results: Mapping[tuple[int, int], str],
    kpis: Mapping[int, KpiDefinition],
    now: Optional[datetime] = None,
) -> MinistryReport:
    """The data behind the ministry report: totals plus one row per asset.

    metrics maps asset id to its latest AssetMetrics; latest_results maps
    (asset id, KPI id) to the latest stored Result. Assets are listed by name.
    Each open incident shows the current value of its KPI against the KPI's
    first populated target. resolution_performance is resolved / total * 100
    at 1 dp, 0.0 with no incidents.
    """
    owned = sorted(_owned(ministry, assets), key=lambda a: a.name)
    related = _incidents_of(owned, incidents)
    resolved = sum(1 for i in related if not is_open(i))

    rows = []
    for asset in owned:
        open_incidents = sorted(
            (i for i in related if i.asset_id == asset.id and is_open(i)),
            key=_created_key,
        )
        details = []
        for incident in open_incidents:
            kpi = kpis.get(incident.kpi_id)
            current = latest_results.get((asset.id, incident.kpi_id), "")
            details.append(
                ReportIncidentRow(
                    kpi_id=incident.kpi_id,
                    kpi_name=kpi.name if kpi is not None else incident.title,
                    value_target_display=value_target_display(current, report_target(kpi)),
                    created_at=incident.created_at,
                    status=incident.status,
                )
            )
        latest = metrics.get(asset.id)
        rows.append(
            ReportAssetRow(
                asset_id=asset.id,
                asset_name=asset.name,
                compliance_score=latest.overall_compliance if latest is not None else 0.0,
                open_incidents=len(open_incidents),
                incident_details=details,
            )
        )

    return MinistryReport(
        ministry_id=ministry.id,
        ministry_name=ministry.name,
        generated_at=now or datetime.now(timezone.utc),
        assets_monitored=len(owned),
        total_incidents=len(related),
        active_incidents=len(related) - resolved,
        resolution_performance=round(resolved / len(related) * 100, 1) if related else 0.0,
        assets=rows,
    )
