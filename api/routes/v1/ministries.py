"""
api/routes/v1/ministries.py -- Ministry-level summary and report routes.

Routes:
  GET /ministries/{ministry_id}/summary   -- asset and incident totals
  GET /ministries/{ministry_id}/report    -- report data: totals plus one row per asset

The report route returns the data a ministry report is rendered from; no
document is produced here.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, HTTPException, Request

from api.limiter import limiter
from api.models import ErrorDetail, MinistryReportResponse, MinistrySummaryResponse
from core.aggregates import ministry_assets_summary, ministry_report
from registry.store import AssetRegistry, MinistrySnapshot

router = APIRouter()


def _snapshot_or_404(registry: AssetRegistry, ministry_id: int) -> MinistrySnapshot:
    snapshot = registry.ministry_snapshot(ministry_id)
    if snapshot is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message=f"Ministry {ministry_id} not found.").model_dump(),
        )
    return snapshot


@limiter.limit("60/minute")
@router.get("/ministries/{ministry_id}/summary", response_model=MinistrySummaryResponse)
def get_ministry_summary(request: Request, ministry_id: int) -> MinistrySummaryResponse:
    registry: AssetRegistry = request.app.state.registry
    snapshot = _snapshot_or_404(registry, ministry_id)
    summary = ministry_assets_summary(snapshot.ministry, snapshot.assets, snapshot.incidents)
    return MinistrySummaryResponse.model_validate(summary)


@limiter.limit("30/minute")
@router.get("/ministries/{ministry_id}/report", response_model=MinistryReportResponse)
def get_ministry_report(request: Request, ministry_id: int) -> MinistryReportResponse:
    """Return the per-asset compliance and open-incident breakdown for one ministry."""
    registry: AssetRegistry = request.app.state.registry
    snapshot = _snapshot_or_404(registry, ministry_id)
    report = ministry_report(
        snapshot.ministry,
        snapshot.assets,
        snapshot.incidents,
        snapshot.metrics,
        snapshot.latest_results,
        {kpi.id: kpi for kpi in registry.list_kpis()},
        now=datetime.now(timezone.utc),
    )
    return MinistryReportResponse.model_validate(report)
