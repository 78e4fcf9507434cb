"""
tests/conftest.py -- Shared test fixtures for assetwatch integration tests.

This module provides:
  - _make_test_registry(): creates an isolated in-memory registry
  - _patch_lifespan(): wires the test registry into app.state, bypassing real startup
  - seed_dashboard(): loads a small ministry/asset/observation fixture set
  - api_client: TestClient over the seeded registry for API integration tests

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker
thread. The named URI format (file:name?mode=memory&cache=shared&uri=true)
shares one in-memory instance across all connections in the same process.
"""

from __future__ import annotations

from collections.abc import Generator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from core.models import Asset, AssetMetrics, Incident, Ministry, Observation
from registry.store import AssetRegistry

# ---------------------------------------------------------------------------
# Registry helpers
# ---------------------------------------------------------------------------


def _make_test_registry(db_suffix: str) -> AssetRegistry:
    """Create an isolated named shared-memory SQLite registry.

    Args:
        db_suffix: Unique string appended to the DB name so test modules
                   don't share state (e.g. 'api', 'health').
    """
    return AssetRegistry(db_url=f"sqlite:///file:test_registry_{db_suffix}?mode=memory&cache=shared&uri=true")


def _patch_lifespan(registry: AssetRegistry):
    """Return an async context manager that replaces the real lifespan.

    Wires the pre-created test registry into app.state so TestClient routes
    see the isolated test DB rather than the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.registry = registry
        yield

    return test_lifespan


def seed_dashboard(registry: AssetRegistry, now: datetime) -> dict[str, int]:
    """Load the shared fixture set and return the IDs tests refer to.

    Ministries: Health (two assets), Education (one asset), Culture (none).

    The health portal (MEDIUM tier) has 100 health observations over the last
    100 minutes: 93 hits, then 2 misses, then 5 skipped rows. Its KPI 1
    current value is therefore 93/95 = 97.89% against a 99.50% target.
    """
    registry.seed_catalog()

    health = registry.add_ministry(Ministry(name="Ministry of Health"))
    education = registry.add_ministry(Ministry(name="Ministry of Education"))
    registry.add_ministry(Ministry(name="Ministry of Culture"))

    portal = registry.add_asset(
        Asset(
            name="Health Portal",
            url="https://health.gov.example/portal",
            ministry_id=health,
            criticality="MEDIUM - Important Services",
            department="Digital Services",
            primary_contact_name="Amina Diallo",
            primary_contact_email="amina@health.gov.example",
        )
    )
    clinic = registry.add_asset(
        Asset(
            name="Clinic Finder",
            url="https://clinics.health.gov.example",
            ministry_id=health,
            criticality="HIGH - Critical Public Services",
        )
    )
    schools = registry.add_asset(
        Asset(
            name="School Admissions",
            url="https://admissions.edu.gov.example",
            ministry_id=education,
            criticality="LOW - Supporting Services",
        )
    )

    for i in range(100):
        if i < 93:
            target = "hit"
        elif i < 95:
            target = "miss"
        else:
            target = "skipped"
        registry.record_observation(
            Observation(
                asset_id=portal,
                kpi_id=1,
                result="true" if target == "hit" else "false",
                target=target,
                recorded_at=now - timedelta(minutes=100 - i),
            )
        )
    registry.record_observation(
        Observation(asset_id=portal, kpi_id=6, result="3", target="3", recorded_at=now - timedelta(hours=1))
    )
    registry.record_observation(
        Observation(asset_id=portal, kpi_id=6, result="4", target="4", recorded_at=now - timedelta(minutes=30))
    )
    registry.record_observation(
        Observation(asset_id=clinic, kpi_id=1, result="false", target="miss", recorded_at=now - timedelta(minutes=5))
    )

    registry.save_metrics(
        AssetMetrics(
            asset_id=portal,
            current_health=85,
            performance_index=64.0,
            security_index=90.0,
            accessibility_index=72.0,
            availability_index=97.0,
            navigation_index=55.0,
            user_experience_index=80.0,
            overall_compliance=82.0,
            citizen_happiness=74.5,
            digital_risk_exposure=22.0,
            calculated_at=now - timedelta(hours=2),
        )
    )
    registry.save_metrics(
        AssetMetrics(
            asset_id=clinic,
            current_health=40,
            performance_index=35.0,
            security_index=50.0,
            overall_compliance=60.0,
            citizen_happiness=41.0,
            digital_risk_exposure=75.0,
            calculated_at=now - timedelta(hours=2),
        )
    )
    registry.save_metrics(
        AssetMetrics(
            asset_id=schools,
            current_health=70,
            performance_index=70.0,
            security_index=80.0,
            overall_compliance=90.0,
            citizen_happiness=66.0,
            digital_risk_exposure=30.0,
            calculated_at=now - timedelta(hours=2),
        )
    )

    registry.add_incident(Incident(asset_id=portal, kpi_id=1, title="Portal down", severity="P1 - Critical"))
    registry.add_incident(Incident(asset_id=portal, kpi_id=6, title="Slow pages", severity="P3 - Medium"))
    registry.add_incident(
        Incident(
            asset_id=clinic,
            kpi_id=1,
            title="DNS outage",
            severity="P1 - Critical",
            status="Resolved",
            created_at=now - timedelta(days=3),
            updated_at=now - timedelta(days=2),
        )
    )

    return {
        "ministry_health": health,
        "ministry_education": education,
        "portal": portal,
        "clinic": clinic,
        "schools": schools,
    }


# ---------------------------------------------------------------------------
# Module-scoped fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client(request) -> Generator[tuple[TestClient, dict[str, int]], None, None]:
    """Yield (client, ids) for API integration tests.

    The TestClient uses the real FastAPI app with a patched lifespan so
    tests hit real route handlers but read an isolated, pre-seeded registry.
    """
    registry = _make_test_registry(request.module.__name__.rsplit(".", 1)[-1])
    ids = seed_dashboard(registry, datetime.now(timezone.utc))

    app.router.lifespan_context = _patch_lifespan(registry)
    limiter.reset()

    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, ids

    registry.close()
