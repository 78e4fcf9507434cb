"""
api/routes/v1/dashboard.py -- Admin dashboard summary endpoint.

Returns a single payload suitable for driving the admin dashboard widgets:
  - Total assets monitored and the share currently online
  - Non-zero means of health, performance and compliance with their statuses
  - High-risk asset count and its LOW/MEDIUM/HIGH bucket
  - Open and critical open incident counts

This is a read-only aggregate route -- no mutations here.
"""

from fastapi import APIRouter, Request

from api.limiter import limiter
from api.models import DashboardSummaryResponse
from core.aggregates import dashboard_summary
from core.config import get_settings
from registry.store import AssetRegistry

router = APIRouter()


@limiter.limit("60/minute")
@router.get("/admindashboard/summary", response_model=DashboardSummaryResponse)
def get_dashboard_summary(request: Request) -> DashboardSummaryResponse:
    """Return aggregated health, compliance, risk and incident metrics across all assets."""
    registry: AssetRegistry = request.app.state.registry
    summary = dashboard_summary(
        registry.rollups(),
        registry.list_incidents(),
        thresholds=get_settings().thresholds(),
    )
    return DashboardSummaryResponse.model_validate(summary)
