"""
panels.py -- Per-asset views: dashboard header, control panel and list card.

Each composer takes an already-loaded snapshot for one asset and returns a
plain dataclass. The registry loads the rows, the API turns the dataclasses
into response models; nothing here touches storage.

The two risk renderings differ: the card shows "HIGH RISK" (mean of health
and security), the header shows the bare tier word from the stored exposure
index.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from .aggregates import is_critical, is_open
from .catalog import kind_of
from .config import DEFAULT_THRESHOLDS, Thresholds
from .kpi_values import current_value_for, latest_observation, usable
from .models import (
    HEALTH_KPI_ID,
    NOT_AVAILABLE,
    Asset,
    AssetMetrics,
    Incident,
    KpiDefinition,
    KpiKind,
    Observation,
    SlaStatus,
)
from .sla import evaluate_sla
from .status import (
    as_utc,
    card_risk_label,
    current_status,
    header_risk_label,
    last_checked,
    last_outage,
    last_outage_at,
    time_ago,
)
from .targets import target_for
from .thresholds import classify_index, compliance_label, health_label, health_sort_rank, performance_label

UNASSIGNED_NAME = "Not Assigned"
UNASSIGNED_CONTACT = "NA"
UNKNOWN_MINISTRY = "UNKNOWN MINISTRY"
UNKNOWN_TIER = "UNKNOWN"


def _or_default(value: Optional[str], default: str) -> str:
    return value.strip() if value and value.strip() else default


def asset_host(url: str) -> str:
    """Host part of an absolute URL; anything unparseable is returned unchanged."""
    parsed = urlparse(url or "")
    if parsed.scheme and parsed.hostname:
        return parsed.hostname
    return url


def _open_counts(incidents: Iterable[Incident]) -> tuple[int, int]:
    open_incidents = [i for i in incidents if is_open(i)]
    return len(open_incidents), sum(1 for i in open_incidents if is_critical(i))


# ---------------------------------------------------------------------------
# Dashboard header
# ---------------------------------------------------------------------------


@dataclass
class AssetDashboardHeader:
    asset_url: str
    asset_name: str
    ministry_id: int
    ministry: str
    department: str
    citizen_impact_level: str
    current_health: str
    risk_exposure_index: str
    current_status: str
    last_outage: str
    owner_name: str
    owner_email: str
    owner_contact: str
    technical_owner_name: str
    technical_owner_email: str
    technical_owner_contact: str
    accessibility_inclusivity_status: str
    availability_reliability_status: str
    navigation_discoverability_status: str
    performance_efficiency_status: str
    security_trust_privacy_status: str
    user_experience_journey_quality_status: str
    citizen_happiness_metric: float
    overall_compliance_metric: float
    open_incidents: int
    high_severity_open_incidents: int


def dashboard_header(
    asset: Asset,
    metrics: Optional[AssetMetrics],
    latest_health: Optional[Observation],
    health_history: Iterable[Observation],
    incidents: Iterable[Incident],
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> AssetDashboardHeader:
    """Compose the per-asset header.

    Missing metrics behave as all-zero indices (every status UNKNOWN).
    last_outage is "N/A" when there is no health observation at all and
    "NO OUTAGES" when there is one but the history holds no miss.
    """
    metrics = metrics or AssetMetrics(asset_id=asset.id or 0)
    open_count, critical_count = _open_counts(incidents)

    if latest_health is None:
        outage = NOT_AVAILABLE
    else:
        outage = last_outage(health_history, now)

    def status(value: float) -> str:
        return classify_index(value, thresholds).value

    return AssetDashboardHeader(
        asset_url=asset_host(asset.url),
        asset_name=asset.name,
        ministry_id=asset.ministry_id,
        ministry=_or_default(asset.ministry_name, UNKNOWN_MINISTRY),
        department=asset.department or "",
        citizen_impact_level=_or_default(asset.criticality, UNKNOWN_TIER),
        current_health=status(metrics.current_health),
        risk_exposure_index=header_risk_label(metrics.digital_risk_exposure, thresholds),
        current_status=current_status(latest_health).value,
        last_outage=outage,
        owner_name=_or_default(asset.primary_contact_name, UNASSIGNED_NAME),
        owner_email=_or_default(asset.primary_contact_email, UNASSIGNED_CONTACT),
        owner_contact=_or_default(asset.primary_contact_phone, UNASSIGNED_CONTACT),
        technical_owner_name=_or_default(asset.technical_contact_name, UNASSIGNED_NAME),
        technical_owner_email=_or_default(asset.technical_contact_email, UNASSIGNED_CONTACT),
        technical_owner_contact=_or_default(asset.technical_contact_phone, UNASSIGNED_CONTACT),
        accessibility_inclusivity_status=status(metrics.accessibility_index),
        availability_reliability_status=status(metrics.availability_index),
        navigation_discoverability_status=status(metrics.navigation_index),
        performance_efficiency_status=status(metrics.performance_index),
        security_trust_privacy_status=status(metrics.security_index),
        user_experience_journey_quality_status=status(metrics.user_experience_index),
        citizen_happiness_metric=round(metrics.citizen_happiness, 2),
        overall_compliance_metric=round(metrics.overall_compliance, 2),
        open_incidents=open_count,
        high_severity_open_incidents=critical_count,
    )


# ---------------------------------------------------------------------------
# Control panel
# ---------------------------------------------------------------------------


@dataclass
class KpiItem:
    kpi_id: int
    kpi_name: str
    manual: str
    target: str
    current_value: str
    sla_status: str
    last_checked: str
    data_source: str


@dataclass
class KpiCategory:
    category_name: str
    kpis: list[KpiItem] = field(default_factory=list)


@dataclass
class AssetControlPanel:
    header: AssetDashboardHeader
    kpi_categories: list[KpiCategory]


def kpi_item(
    kpi: KpiDefinition,
    asset: Asset,
    history: Sequence[Observation],
    latest: Sequence[Observation],
    now: Optional[datetime] = None,
) -> KpiItem:
    """Evaluate one KPI for one asset.

    history and latest must already be restricted to this asset and KPI.
    Manual KPIs read the latest-value rows; every other kind aggregates the
    history window.
    """
    target = target_for(kpi, asset.tier)

    if kind_of(kpi) is KpiKind.MANUAL:
        rows = latest
        checked = last_checked(latest_observation(usable(rows)), now)
    else:
        rows = history
        stamps = [o.recorded_at for o in usable(rows) if o.recorded_at is not None]
        checked = time_ago(max(stamps, key=as_utc), now) if stamps else NOT_AVAILABLE

    current = current_value_for(kpi, rows, target)
    if current == NOT_AVAILABLE:
        sla = SlaStatus.UNKNOWN
    else:
        sla = evaluate_sla(current, target, kpi)

    return KpiItem(
        kpi_id=kpi.id,
        kpi_name=kpi.name,
        manual=kpi.manual,
        target=target,
        current_value=current,
        sla_status=sla.value,
        last_checked=checked,
        data_source="Manual" if kpi.is_manual else "Auto",
    )


def _by_kpi(observations: Iterable[Observation]) -> dict[int, list[Observation]]:
    grouped: dict[int, list[Observation]] = {}
    for observation in observations:
        grouped.setdefault(observation.kpi_id, []).append(observation)
    return grouped


def control_panel(
    header: AssetDashboardHeader,
    asset: Asset,
    catalog: Sequence[KpiDefinition],
    history: Iterable[Observation],
    latest: Iterable[Observation],
    now: Optional[datetime] = None,
) -> AssetControlPanel:
    """Header plus every catalog KPI evaluated, grouped by KPI group in catalog order.

    history is the asset's lookback window across all KPIs; latest is the
    asset's latest-value rows. Groups appear in order of first occurrence.
    """
    history_by_kpi = _by_kpi(history)
    latest_by_kpi = _by_kpi(latest)

    categories: dict[str, KpiCategory] = {}
    for kpi in sorted(catalog, key=lambda k: k.id):
        item = kpi_item(kpi, asset, history_by_kpi.get(kpi.id, []), latest_by_kpi.get(kpi.id, []), now)
        categories.setdefault(kpi.group, KpiCategory(category_name=kpi.group)).kpis.append(item)

    return AssetControlPanel(header=header, kpi_categories=list(categories.values()))


# ---------------------------------------------------------------------------
# Asset card (list view)
# ---------------------------------------------------------------------------


@dataclass
class AssetCard:
    id: Optional[int]
    ministry_id: int
    ministry_department: str
    department: str
    website_application: str
    asset_url: str
    citizen_impact_level: str
    current_status: str
    last_checked: Optional[datetime]
    last_outage: str
    last_outage_date: Optional[datetime]
    health_status: str
    health_index: int
    health_sort_rank: int
    performance_status: str
    performance_index: int
    compliance_status: str
    compliance_index: int
    risk_exposure_index: str
    open_incidents: int
    high_severity_incidents: int


def asset_card(
    asset: Asset,
    metrics: Optional[AssetMetrics],
    latest_health: Optional[Observation],
    health_history: Iterable[Observation],
    incidents: Iterable[Incident],
    now: Optional[datetime] = None,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> AssetCard:
    metrics = metrics or AssetMetrics(asset_id=asset.id or 0)
    health_history = list(health_history)
    open_count, critical_count = _open_counts(incidents)

    health = metrics.current_health
    performance = round(metrics.performance_index)
    compliance = round(metrics.overall_compliance)

    return AssetCard(
        id=asset.id,
        ministry_id=asset.ministry_id,
        ministry_department=_or_default(asset.ministry_name, UNKNOWN_MINISTRY),
        department=asset.department or "",
        website_application=_or_default(asset.name, "Ministry Website"),
        asset_url=asset.url,
        citizen_impact_level=_or_default(asset.criticality, UNKNOWN_TIER),
        current_status=current_status(latest_health).value,
        last_checked=latest_health.checked_at if latest_health is not None else None,
        last_outage=last_outage(health_history, now),
        last_outage_date=last_outage_at(health_history),
        health_status=health_label(health, thresholds),
        health_index=health,
        health_sort_rank=health_sort_rank(health, thresholds),
        performance_status=performance_label(performance, thresholds),
        performance_index=performance,
        compliance_status=compliance_label(compliance, thresholds),
        compliance_index=compliance,
        risk_exposure_index=card_risk_label(health, metrics.security_index, thresholds),
        open_incidents=open_count,
        high_severity_incidents=critical_count,
    )


def health_observations(observations: Iterable[Observation]) -> list[Observation]:
    """Rows belonging to the primary health KPI."""
    return [o for o in observations if o.kpi_id == HEALTH_KPI_ID]
