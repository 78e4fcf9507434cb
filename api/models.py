"""
API response models for assetwatch REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in core/, which own the
internal domain representation. Route handlers map between the two; most
models read straight off the engine's dataclasses via from_attributes.

Separation of concerns: core/ dataclasses = domain truth; api/ models = API contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Errors and health
# ---------------------------------------------------------------------------


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Per-asset views
# ---------------------------------------------------------------------------


class AssetCardRow(BaseModel):
    """One row of GET /api/v1/assets."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: Optional[int]
    ministry_id: int
    ministry_department: str
    department: str
    website_application: str
    asset_url: str
    citizen_impact_level: str
    current_status: str
    last_checked: Optional[datetime] = None
    last_outage: str
    last_outage_date: Optional[datetime] = None
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


class DashboardHeaderResponse(BaseModel):
    """Response for GET /api/v1/assets/{asset_id}/dashboard/header."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

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


class KpiItemRow(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    kpi_id: int
    kpi_name: str
    manual: str
    target: str
    current_value: str
    sla_status: str
    last_checked: str
    data_source: str


class KpiCategoryRow(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    category_name: str
    kpis: list[KpiItemRow]


class ControlPanelResponse(BaseModel):
    """Response for GET /api/v1/assets/{asset_id}/controlpanel."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    header: DashboardHeaderResponse
    kpi_categories: list[KpiCategoryRow]


# ---------------------------------------------------------------------------
# Admin dashboard
# ---------------------------------------------------------------------------


class DashboardSummaryResponse(BaseModel):
    """Response for GET /api/v1/admindashboard/summary."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

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


# ---------------------------------------------------------------------------
# PM dashboard
# ---------------------------------------------------------------------------


class PMHeaderResponse(BaseModel):
    """Response for GET /api/v1/pmdashboard/header."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    digital_experience_score: float
    digital_experience_score_change: float
    total_assets_being_monitored: int
    total_ministries: int
    digital_assets_offline: int
    last_checked: Optional[datetime] = None
    ministries_meet_compliance_standards: int
    compliance_threshold: float
    active_incidents: int
    resolved_incidents_last_30_days: int
    assets_are_vulnerable: int
    security_threshold: float


class PMIndicesResponse(BaseModel):
    """Response for GET /api/v1/pmdashboard/indices."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    overall_compliance_index: float
    accessibility_index: float
    availability_index: float
    navigation_index: float
    performance_index: float
    security_index: float
    user_experience_index: float


class MinistryComplianceRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    ministry_id: Optional[int]
    ministry_name: str
    assets: int
    compliance_index: float


class MinistryCitizenImpactRow(BaseModel):
    model_config = ConfigDict(frozen=True)

    ministry_id: Optional[int]
    ministry_name: str
    assets: int
    citizen_happiness_index: float


# ---------------------------------------------------------------------------
# Ministries
# ---------------------------------------------------------------------------


class MinistrySummaryResponse(BaseModel):
    """Response for GET /api/v1/ministries/{ministry_id}/summary."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    ministry_id: Optional[int]
    ministry_name: str
    total_assets: int
    total_incidents: int
    open_incidents: int
    high_severity_open_incidents: int


class ReportIncidentRowModel(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    kpi_id: int
    kpi_name: str
    value_target_display: str
    created_at: Optional[datetime] = None
    status: str


class ReportAssetRowModel(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    asset_id: Optional[int]
    asset_name: str
    compliance_score: float
    open_incidents: int
    incident_details: list[ReportIncidentRowModel]


class MinistryReportResponse(BaseModel):
    """Response for GET /api/v1/ministries/{ministry_id}/report."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    ministry_id: Optional[int]
    ministry_name: str
    generated_at: datetime
    assets_monitored: int
    total_incidents: int
    active_incidents: int
    resolution_performance: float
    assets: list[ReportAssetRowModel]
