"""
api/routes/v1/assets.py -- Per-asset dashboard routes.

Routes:
  GET /assets                                -- asset cards for the list view
  GET /assets/{asset_id}/dashboard/header    -- header for one asset
  GET /assets/{asset_id}/controlpanel        -- header plus every KPI evaluated

Handlers load a snapshot from the registry, hand it to the pure composers in
core/panels.py, and map the resulting dataclasses onto response models. No
metric logic lives here.
"""

from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, HTTPException, Request

from api.limiter import limiter
from api.models import AssetCardRow, ControlPanelResponse, DashboardHeaderResponse, ErrorDetail
from core.config import get_settings
from core.panels import asset_card, control_panel, dashboard_header
from registry.store import AssetRegistry, AssetSnapshot

router = APIRouter()


def _snapshot_or_404(registry: AssetRegistry, asset_id: int) -> AssetSnapshot:
    snapshot = registry.snapshot(asset_id)
    if snapshot is None:
        raise HTTPException(
            status_code=404,
            detail=ErrorDetail(code="not_found", message=f"Asset {asset_id} not found.").model_dump(),
        )
    return snapshot


def _header(snapshot: AssetSnapshot, now: datetime):
    return dashboard_header(
        snapshot.asset,
        snapshot.metrics,
        snapshot.latest_health,
        snapshot.health_history,
        snapshot.incidents,
        now=now,
        thresholds=get_settings().thresholds(),
    )


# ---------------------------------------------------------------------------
# GET /assets -- list view
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/assets", response_model=list[AssetCardRow])
def list_assets(request: Request) -> list[AssetCardRow]:
    """Return one card per registered asset, in registration order."""
    registry: AssetRegistry = request.app.state.registry
    thresholds = get_settings().thresholds()
    now = datetime.now(timezone.utc)

    rows = []
    for asset in registry.list_assets():
        snapshot = registry.snapshot(asset.id)
        card = asset_card(
            snapshot.asset,
            snapshot.metrics,
            snapshot.latest_health,
            snapshot.health_history,
            snapshot.incidents,
            now=now,
            thresholds=thresholds,
        )
        rows.append(AssetCardRow.model_validate(card))
    return rows


# ---------------------------------------------------------------------------
# GET /assets/{asset_id}/dashboard/header
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/assets/{asset_id}/dashboard/header", response_model=DashboardHeaderResponse)
def get_dashboard_header(request: Request, asset_id: int) -> DashboardHeaderResponse:
    """Return status, risk, category statuses, incident counts and ownership for one asset."""
    registry: AssetRegistry = request.app.state.registry
    snapshot = _snapshot_or_404(registry, asset_id)
    header = _header(snapshot, datetime.now(timezone.utc))
    return DashboardHeaderResponse.model_validate(header)


# ---------------------------------------------------------------------------
# GET /assets/{asset_id}/controlpanel
# ---------------------------------------------------------------------------


@limiter.limit("60/minute")
@router.get("/assets/{asset_id}/controlpanel", response_model=ControlPanelResponse)
def get_control_panel(request: Request, asset_id: int) -> ControlPanelResponse:
    """Return the header plus every active KPI with target, current value and SLA status.

    Aggregated KPIs read the history window (HISTORY_WINDOW_DAYS, default 30);
    manual KPIs read the latest stored value.
    """
    registry: AssetRegistry = request.app.state.registry
    snapshot = _snapshot_or_404(registry, asset_id)
    now = datetime.now(timezone.utc)
    since = now - timedelta(days=get_settings().history_window_days)

    panel = control_panel(
        _header(snapshot, now),
        snapshot.asset,
        registry.list_kpis(),
        registry.history(asset_id, since=since),
        registry.latest_results(asset_id),
        now=now,
    )
    return ControlPanelResponse.model_validate(panel)
