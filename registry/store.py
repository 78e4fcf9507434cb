"""
registry/store.py -- SQLAlchemy-backed entity store that feeds the metrics engine.

Uses SQLAlchemy Core (not ORM) so the domain dataclasses in core/models.py
remain the authoritative domain representation. The engine never sees a row:
AssetRegistry loads snapshots, the _row_to_* mappers translate them, and the
pure functions in core/ do the rest.

The store is the read side for dashboards. Observations, metrics and incidents
are written by external processes (the probe scheduler, the metrics job, the
incident workflow); the writers here exist for seeding and tests.

Timestamps are stored as ISO 8601 UTC strings with fixed microsecond width so
that string comparison matches time order.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    registry = AssetRegistry()                               # SQLite default
    registry = AssetRegistry("postgresql://user:pw@host/db") # PostgreSQL
    registry.seed_catalog()
    ministry_id = registry.add_ministry(Ministry(name="Ministry of Health"))
    asset_id = registry.add_asset(Asset(name="Portal", url="https://moh.gov", ministry_id=ministry_id))
    registry.record_observation(Observation(asset_id=asset_id, kpi_id=1, result="true", target="hit"))
    registry.close()
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import (
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
    select,
    text,
)
from sqlalchemy.engine import Engine

from core.aggregates import AssetRollup
from core.catalog import DEFAULT_CATALOG
from core.config import get_settings
from core.models import (
    HEALTH_KPI_ID,
    Asset,
    AssetMetrics,
    Incident,
    KpiDefinition,
    KpiKind,
    Ministry,
    Observation,
)

logger = logging.getLogger("assetwatch.registry")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_ministries = Table(
    "ministries",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False, unique=True),
)

_assets = Table(
    "assets",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("ministry_id", Integer, nullable=False),
    Column("name", String(255), nullable=False),
    Column("url", String(500), nullable=False),
    Column("criticality", String(100), nullable=False, server_default=""),
    Column("department", String(255)),
    Column("primary_contact_name", String(255)),
    Column("primary_contact_email", String(255)),
    Column("primary_contact_phone", String(50)),
    Column("technical_contact_name", String(255)),
    Column("technical_contact_email", String(255)),
    Column("technical_contact_phone", String(50)),
    Column("created_at", String(32), nullable=False),
)

_kpis = Table(
    "kpis",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=False),
    Column("name", String(255), nullable=False),
    Column("kpi_group", String(255), nullable=False),
    Column("outcome", String(20)),
    Column("target_high", String(50)),
    Column("target_medium", String(50)),
    Column("target_low", String(50)),
    Column("manual", String(20), nullable=False, server_default="Auto"),
    Column("severity", String(5), nullable=False, server_default="P4"),
    Column("weight", Integer, nullable=False, server_default="0"),
    Column("frequency", String(30)),
    Column("probe_type", String(30)),
    Column("kind", String(20)),  # NULL = use the fixed id table
    Column("deleted_at", String(32)),
)

_latest_results = Table(
    "kpi_results",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asset_id", Integer, nullable=False),
    Column("kpi_id", Integer, nullable=False),
    Column("result", Text),
    Column("target", String(50)),
    Column("details", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
    UniqueConstraint("asset_id", "kpi_id", name="uq_result_asset_kpi"),
)

_result_history = Table(
    "kpi_result_history",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asset_id", Integer, nullable=False),
    Column("kpi_id", Integer, nullable=False),
    Column("result", Text),
    Column("target", String(50)),
    Column("details", Text),
    Column("created_at", String(32), nullable=False),
)

_asset_metrics = Table(
    "asset_metrics",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asset_id", Integer, nullable=False),
    Column("current_health", Integer, nullable=False, server_default="0"),
    Column("performance_index", Float, nullable=False, server_default="0"),
    Column("security_index", Float, nullable=False, server_default="0"),
    Column("accessibility_index", Float, nullable=False, server_default="0"),
    Column("availability_index", Float, nullable=False, server_default="0"),
    Column("navigation_index", Float, nullable=False, server_default="0"),
    Column("user_experience_index", Float, nullable=False, server_default="0"),
    Column("overall_compliance", Float, nullable=False, server_default="0"),
    Column("citizen_happiness", Float, nullable=False, server_default="0"),
    Column("digital_risk_exposure", Float, nullable=False, server_default="0"),
    Column("calculated_at", String(32), nullable=False),
)

_incidents = Table(
    "incidents",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("asset_id", Integer, nullable=False),
    Column("kpi_id", Integer),
    Column("title", String(500), nullable=False),
    Column("severity", String(50), nullable=False),
    Column("status", String(50), nullable=False, server_default="Open"),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32)),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _to_iso(moment: Optional[datetime]) -> Optional[str]:
    """Normalize to a fixed-width UTC ISO string. Naive datetimes are taken as UTC."""
    if moment is None:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat(timespec="microseconds")


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.warning("Ignoring malformed timestamp %r", value)
        return None


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so dashboard reads do not block probe writes.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


@dataclass
class AssetSnapshot:
    """Everything the per-asset views need, loaded in one pass."""

    asset: Asset
    metrics: Optional[AssetMetrics] = None
    latest_health: Optional[Observation] = None
    health_history: list[Observation] = field(default_factory=list)
    incidents: list[Incident] = field(default_factory=list)


@dataclass
class MinistrySnapshot:
    """A ministry with its assets and everything its summary and report read."""

    ministry: Ministry
    assets: list[Asset] = field(default_factory=list)
    incidents: list[Incident] = field(default_factory=list)
    metrics: dict[int, AssetMetrics] = field(default_factory=dict)
    latest_results: dict[tuple[int, int], str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class AssetRegistry:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            # FastAPI runs sync handlers in a thread pool, so one connection
            # may be used from several threads.
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        with self.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True

    # ------------------------------------------------------------------
    # Ministries
    # ------------------------------------------------------------------

    def add_ministry(self, ministry: Ministry) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(_ministries.insert().values(name=ministry.name))
            conn.commit()
            return result.inserted_primary_key[0]

    def list_ministries(self) -> list[Ministry]:
        with self.engine.connect() as conn:
            rows = conn.execute(_ministries.select().order_by(_ministries.c.id)).fetchall()
        return [Ministry(id=r.id, name=r.name) for r in rows]

    def get_ministry(self, ministry_id: int) -> Optional[Ministry]:
        with self.engine.connect() as conn:
            row = conn.execute(_ministries.select().where(_ministries.c.id == ministry_id)).fetchone()
        return Ministry(id=row.id, name=row.name) if row is not None else None

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    def add_asset(self, asset: Asset) -> int:
        """Insert a new asset and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _assets.insert().values(
                    ministry_id=asset.ministry_id,
                    name=asset.name,
                    url=asset.url,
                    criticality=asset.criticality,
                    department=asset.department,
                    primary_contact_name=asset.primary_contact_name,
                    primary_contact_email=asset.primary_contact_email,
                    primary_contact_phone=asset.primary_contact_phone,
                    technical_contact_name=asset.technical_contact_name,
                    technical_contact_email=asset.technical_contact_email,
                    technical_contact_phone=asset.technical_contact_phone,
                    created_at=_to_iso(_now()),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def _asset_select(self):
        return select(_assets, _ministries.c.name.label("ministry_name")).select_from(
            _assets.outerjoin(_ministries, _assets.c.ministry_id == _ministries.c.id)
        )

    def get_asset(self, asset_id: int) -> Optional[Asset]:
        """Fetch a single asset (with its ministry name) by ID. Returns None if not found."""
        with self.engine.connect() as conn:
            row = conn.execute(self._asset_select().where(_assets.c.id == asset_id)).fetchone()
        return _row_to_asset(row) if row is not None else None

    def list_assets(self) -> list[Asset]:
        with self.engine.connect() as conn:
            rows = conn.execute(self._asset_select().order_by(_assets.c.id)).fetchall()
        return [_row_to_asset(r) for r in rows]

    def assets_for_ministry(self, ministry_id: int) -> list[Asset]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                self._asset_select().where(_assets.c.ministry_id == ministry_id).order_by(_assets.c.id)
            ).fetchall()
        return [_row_to_asset(r) for r in rows]

    # ------------------------------------------------------------------
    # KPI catalog
    # ------------------------------------------------------------------

    def add_kpi(self, kpi: KpiDefinition) -> int:
        """Insert a catalog entry under its own id.

        Raises sqlalchemy.exc.IntegrityError if the id already exists.
        """
        with self.engine.connect() as conn:
            conn.execute(
                _kpis.insert().values(
                    id=kpi.id,
                    name=kpi.name,
                    kpi_group=kpi.group,
                    outcome=kpi.outcome,
                    target_high=kpi.target_high,
                    target_medium=kpi.target_medium,
                    target_low=kpi.target_low,
                    manual=kpi.manual,
                    severity=kpi.severity,
                    weight=kpi.weight,
                    frequency=kpi.frequency,
                    probe_type=kpi.probe_type,
                    kind=kpi.kind.value if kpi.kind is not None else None,
                )
            )
            conn.commit()
        return kpi.id

    def seed_catalog(self, catalog: Iterable[KpiDefinition] = DEFAULT_CATALOG) -> int:
        """Insert every catalog entry whose id is not present yet. Returns the number inserted."""
        with self.engine.connect() as conn:
            existing = {row.id for row in conn.execute(select(_kpis.c.id))}
        inserted = 0
        for kpi in catalog:
            if kpi.id in existing:
                continue
            self.add_kpi(kpi)
            inserted += 1
        logger.info("Seeded %d KPI definition(s); %d already present", inserted, len(existing))
        return inserted

    def retire_kpi(self, kpi_id: int) -> bool:
        """Soft-delete a catalog entry. Its observations stay readable.

        Returns True if an active entry was retired.
        """
        with self.engine.connect() as conn:
            result = conn.execute(
                _kpis.update()
                .where((_kpis.c.id == kpi_id) & _kpis.c.deleted_at.is_(None))
                .values(deleted_at=_to_iso(_now()))
            )
            conn.commit()
        return result.rowcount > 0

    def get_kpi(self, kpi_id: int) -> Optional[KpiDefinition]:
        with self.engine.connect() as conn:
            row = conn.execute(_kpis.select().where(_kpis.c.id == kpi_id)).fetchone()
        return _row_to_kpi(row) if row is not None else None

    def list_kpis(self) -> list[KpiDefinition]:
        """Active catalog entries in id order."""
        with self.engine.connect() as conn:
            rows = conn.execute(_kpis.select().where(_kpis.c.deleted_at.is_(None)).order_by(_kpis.c.id)).fetchall()
        return [_row_to_kpi(r) for r in rows]

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    def record_observation(self, observation: Observation) -> int:
        """Append to the history log and upsert the latest-value row.

        recorded_at defaults to now. Returns the history row ID.
        """
        stamp = _to_iso(observation.recorded_at or _now())
        values = {
            "result": observation.result,
            "target": observation.target,
            "details": observation.details,
        }
        with self.engine.connect() as conn:
            result = conn.execute(
                _result_history.insert().values(
                    asset_id=observation.asset_id,
                    kpi_id=observation.kpi_id,
                    created_at=stamp,
                    **values,
                )
            )
            existing = conn.execute(
                select(_latest_results.c.id).where(
                    (_latest_results.c.asset_id == observation.asset_id)
                    & (_latest_results.c.kpi_id == observation.kpi_id)
                )
            ).fetchone()
            if existing is None:
                conn.execute(
                    _latest_results.insert().values(
                        asset_id=observation.asset_id,
                        kpi_id=observation.kpi_id,
                        created_at=stamp,
                        **values,
                    )
                )
            else:
                conn.execute(
                    _latest_results.update()
                    .where(_latest_results.c.id == existing.id)
                    .values(updated_at=stamp, **values)
                )
            conn.commit()
            return result.inserted_primary_key[0]

    def latest_results(self, asset_id: int, kpi_id: Optional[int] = None) -> list[Observation]:
        """Latest-value rows for an asset, optionally for one KPI."""
        stmt = _latest_results.select().where(_latest_results.c.asset_id == asset_id)
        if kpi_id is not None:
            stmt = stmt.where(_latest_results.c.kpi_id == kpi_id)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(_latest_results.c.kpi_id)).fetchall()
        return [_row_to_observation(r) for r in rows]

    def latest_health_by_asset(self) -> dict[int, Observation]:
        """Latest health-KPI row per asset, keyed by asset ID."""
        with self.engine.connect() as conn:
            rows = conn.execute(_latest_results.select().where(_latest_results.c.kpi_id == HEALTH_KPI_ID)).fetchall()
        return {r.asset_id: _row_to_observation(r) for r in rows}

    def history(
        self,
        asset_id: int,
        kpi_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> list[Observation]:
        """History rows for an asset, oldest first, optionally for one KPI and from `since` on."""
        stmt = _result_history.select().where(_result_history.c.asset_id == asset_id)
        if kpi_id is not None:
            stmt = stmt.where(_result_history.c.kpi_id == kpi_id)
        if since is not None:
            stmt = stmt.where(_result_history.c.created_at >= _to_iso(since))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(_result_history.c.created_at, _result_history.c.id)).fetchall()
        return [_row_to_history(r) for r in rows]

    # ------------------------------------------------------------------
    # Precomputed metrics
    # ------------------------------------------------------------------

    def save_metrics(self, metrics: AssetMetrics) -> int:
        """Append a metrics row. calculated_at defaults to now."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _asset_metrics.insert().values(
                    asset_id=metrics.asset_id,
                    current_health=metrics.current_health,
                    performance_index=metrics.performance_index,
                    security_index=metrics.security_index,
                    accessibility_index=metrics.accessibility_index,
                    availability_index=metrics.availability_index,
                    navigation_index=metrics.navigation_index,
                    user_experience_index=metrics.user_experience_index,
                    overall_compliance=metrics.overall_compliance,
                    citizen_happiness=metrics.citizen_happiness,
                    digital_risk_exposure=metrics.digital_risk_exposure,
                    calculated_at=_to_iso(metrics.calculated_at or _now()),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def latest_metrics(self, asset_id: int) -> Optional[AssetMetrics]:
        with self.engine.connect() as conn:
            row = conn.execute(
                _asset_metrics.select()
                .where(_asset_metrics.c.asset_id == asset_id)
                .order_by(_asset_metrics.c.calculated_at.desc(), _asset_metrics.c.id.desc())
                .limit(1)
            ).fetchone()
        return _row_to_metrics(row) if row is not None else None

    def latest_metrics_by_asset(self, calculated_before: Optional[datetime] = None) -> dict[int, AssetMetrics]:
        """Most recent metrics row per asset, optionally only rows calculated at or before a cutoff."""
        stmt = _asset_metrics.select()
        if calculated_before is not None:
            stmt = stmt.where(_asset_metrics.c.calculated_at <= _to_iso(calculated_before))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt.order_by(_asset_metrics.c.calculated_at, _asset_metrics.c.id)).fetchall()
        # Ascending order: later rows overwrite earlier ones.
        return {r.asset_id: _row_to_metrics(r) for r in rows}

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    def add_incident(self, incident: Incident) -> int:
        created = incident.created_at or _now()
        with self.engine.connect() as conn:
            result = conn.execute(
                _incidents.insert().values(
                    asset_id=incident.asset_id,
                    kpi_id=incident.kpi_id,
                    title=incident.title,
                    severity=incident.severity,
                    status=incident.status,
                    created_at=_to_iso(created),
                    updated_at=_to_iso(incident.updated_at or created),
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def incidents_for_asset(self, asset_id: int) -> list[Incident]:
        with self.engine.connect() as conn:
            rows = conn.execute(
                _incidents.select().where(_incidents.c.asset_id == asset_id).order_by(_incidents.c.id)
            ).fetchall()
        return [_row_to_incident(r) for r in rows]

    def list_incidents(self) -> list[Incident]:
        """Incidents belonging to registered assets."""
        with self.engine.connect() as conn:
            rows = conn.execute(
                _incidents.select().where(_incidents.c.asset_id.in_(select(_assets.c.id))).order_by(_incidents.c.id)
            ).fetchall()
        return [_row_to_incident(r) for r in rows]

    # ------------------------------------------------------------------
    # Snapshots for the engine
    # ------------------------------------------------------------------

    def snapshot(self, asset_id: int) -> Optional[AssetSnapshot]:
        """Load one asset's header/card inputs. Returns None if the asset does not exist."""
        asset = self.get_asset(asset_id)
        if asset is None:
            return None
        latest = self.latest_results(asset_id, HEALTH_KPI_ID)
        return AssetSnapshot(
            asset=asset,
            metrics=self.latest_metrics(asset_id),
            latest_health=latest[0] if latest else None,
            health_history=self.history(asset_id, HEALTH_KPI_ID),
            incidents=self.incidents_for_asset(asset_id),
        )

    def ministry_snapshot(self, ministry_id: int) -> Optional[MinistrySnapshot]:
        """Load a ministry's summary and report inputs. Returns None if the ministry does not exist."""
        ministry = self.get_ministry(ministry_id)
        if ministry is None:
            return None
        assets = self.assets_for_ministry(ministry_id)
        snapshot = MinistrySnapshot(ministry=ministry, assets=assets)
        for asset in assets:
            snapshot.incidents.extend(self.incidents_for_asset(asset.id))
            metrics = self.latest_metrics(asset.id)
            if metrics is not None:
                snapshot.metrics[asset.id] = metrics
            for row in self.latest_results(asset.id):
                snapshot.latest_results[(asset.id, row.kpi_id)] = row.result
        return snapshot

    def rollups(self, now: Optional[datetime] = None, comparison_days: int = 30) -> list[AssetRollup]:
        """One AssetRollup per asset, with metrics at least comparison_days old as previous_metrics."""
        now = now or _now()
        current = self.latest_metrics_by_asset()
        previous = self.latest_metrics_by_asset(calculated_before=now - timedelta(days=comparison_days))
        health = self.latest_health_by_asset()
        return [
            AssetRollup(
                asset_id=asset.id,
                ministry_id=asset.ministry_id,
                metrics=current.get(asset.id),
                latest_health=health.get(asset.id),
                previous_metrics=previous.get(asset.id),
            )
            for asset in self.list_assets()
        ]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> domain dataclass)
# ---------------------------------------------------------------------------


def _row_to_asset(row) -> Asset:
    return Asset(
        id=row.id,
        name=row.name,
        url=row.url,
        ministry_id=row.ministry_id,
        criticality=row.criticality or "",
        department=row.department or "",
        primary_contact_name=row.primary_contact_name or "",
        primary_contact_email=row.primary_contact_email or "",
        primary_contact_phone=row.primary_contact_phone or "",
        technical_contact_name=row.technical_contact_name or "",
        technical_contact_email=row.technical_contact_email or "",
        technical_contact_phone=row.technical_contact_phone or "",
        ministry_name=getattr(row, "ministry_name", None) or "",
    )


def _row_to_kpi(row) -> KpiDefinition:
    return KpiDefinition(
        id=row.id,
        name=row.name,
        group=row.kpi_group,
        outcome=row.outcome or "",
        target_high=row.target_high or "",
        target_medium=row.target_medium or "",
        target_low=row.target_low or "",
        manual=row.manual or "Auto",
        severity=row.severity or "P4",
        weight=row.weight or 0,
        frequency=row.frequency or "",
        probe_type=row.probe_type or "",
        kind=KpiKind(row.kind) if row.kind else None,
    )


def _row_to_observation(row) -> Observation:
    return Observation(
        id=row.id,
        asset_id=row.asset_id,
        kpi_id=row.kpi_id,
        result=row.result or "",
        target=row.target or "",
        details=row.details or "",
        recorded_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
    )


def _row_to_history(row) -> Observation:
    return Observation(
        id=row.id,
        asset_id=row.asset_id,
        kpi_id=row.kpi_id,
        result=row.result or "",
        target=row.target or "",
        details=row.details or "",
        recorded_at=_from_iso(row.created_at),
    )


def _row_to_metrics(row) -> AssetMetrics:
    return AssetMetrics(
        id=row.id,
        asset_id=row.asset_id,
        current_health=row.current_health or 0,
        performance_index=row.performance_index or 0.0,
        security_index=row.security_index or 0.0,
        accessibility_index=row.accessibility_index or 0.0,
        availability_index=row.availability_index or 0.0,
        navigation_index=row.navigation_index or 0.0,
        user_experience_index=row.user_experience_index or 0.0,
        overall_compliance=row.overall_compliance or 0.0,
        citizen_happiness=row.citizen_happiness or 0.0,
        digital_risk_exposure=row.digital_risk_exposure or 0.0,
        calculated_at=_from_iso(row.calculated_at),
    )


def _row_to_incident(row) -> Incident:
    return Incident(
        id=row.id,
        asset_id=row.asset_id,
        kpi_id=row.kpi_id or 0,
        title=row.title,
        severity=row.severity,
        status=row.status,
        created_at=_from_iso(row.created_at),
        updated_at=_from_iso(row.updated_at),
    )
