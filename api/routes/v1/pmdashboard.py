"""
api/routes/v1/pmdashboard.py -- Government-wide (PM) dashboard endpoints.

Routes:
  GET /pmdashboard/header                               -- headline figures
  GET /pmdashboard/indices                              -- non-zero index means
  GET /pmdashboard/ministries/top-compliance            -- best ministries by compliance
  GET /pmdashboard/ministries/bottom-citizen-impact     -- worst ministries by citizen happiness

The ranking routes take ?count=N (1-50, default 5).
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Query, Request

from api.limiter import limiter
from api.models import MinistryCitizenImpactRow, MinistryComplianceRow, PMHeaderResponse, PMIndicesResponse
from core.aggregates import (
    bottom_ministries_by_citizen_impact,
    pm_dashboard_header,
    pm_dashboard_indices,
    top_ministries_by_compliance,
)
from core.config import get_settings
from registry.store import AssetRegistry

router = APIRouter()


@limiter.limit("60/minute")
@router.get("/pmdashboard/header", response_model=PMHeaderResponse)
def get_pm_header(request: Request) -> PMHeaderResponse:
    registry: AssetRegistry = request.app.state.registry
    settings = get_settings()
    now = datetime.now(timezone.utc)
    header = pm_dashboard_header(
        registry.rollups(now=now, comparison_days=settings.history_window_days),
        registry.list_ministries(),
        registry.list_incidents(),
        now=now,
        thresholds=settings.thresholds(),
        window_days=settings.history_window_days,
    )
    return PMHeaderResponse.model_validate(header)


@limiter.limit("60/minute")
@router.get("/pmdashboard/indices", response_model=PMIndicesResponse)
def get_pm_indices(request: Request) -> PMIndicesResponse:
    registry: AssetRegistry = request.app.state.registry
    return PMIndicesResponse.model_validate(pm_dashboard_indices(registry.rollups()))


@limiter.limit("60/minute")
@router.get("/pmdashboard/ministries/top-compliance", response_model=list[MinistryComplianceRow])
def get_top_ministries(request: Request, count: int = Query(5, ge=1, le=50)) -> list[MinistryComplianceRow]:
    """Ministries with the highest mean overall compliance, best first."""
    registry: AssetRegistry = request.app.state.registry
    ranked = top_ministries_by_compliance(registry.list_ministries(), registry.rollups(), count)
    return [
        MinistryComplianceRow(
            ministry_id=r.ministry_id,
            ministry_name=r.ministry_name,
            assets=r.assets,
            compliance_index=r.score,
        )
        for r in ranked
    ]


@limiter.limit("60/minute")
@router.get("/pmdashboard/ministries/bottom-citizen-impact", response_model=list[MinistryCitizenImpactRow])
def get_bottom_ministries(request: Request, count: int = Query(5, ge=1, le=50)) -> list[MinistryCitizenImpactRow]:
    """Ministries with the lowest mean citizen happiness, worst first."""
    registry: AssetRegistry = request.app.state.registry
    ranked = bottom_ministries_by_citizen_impact(registry.list_ministries(), registry.rollups(), count)
    return [
        MinistryCitizenImpactRow(
            ministry_id=r.ministry_id,
            ministry_name=r.ministry_name,
            assets=r.assets,
            citizen_happiness_index=r.score,
        )
        for r in ranked
    ]
