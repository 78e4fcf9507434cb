from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .values import parse_numeric

# ---------------------------------------------------------------------------
# Domain constants
# ---------------------------------------------------------------------------

# Sentinel rendered wherever a value cannot be computed. Never a number.
NOT_AVAILABLE = "N/A"
NO_OUTAGES = "NO OUTAGES"

# The primary health KPI ("Website completely down"): drives UP/DOWN and outages.
HEALTH_KPI_ID = 1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class KpiKind(str, Enum):
    """How a KPI's window of observations collapses into one current value."""

    HIT_RATE = "hit_rate"
    MISS_RATE = "miss_rate"
    MISS_COUNT = "miss_count"
    TIMED = "timed"
    SIZED = "sized"
    SCORE = "score"
    MANUAL = "manual"


class Polarity(str, Enum):
    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"


class AssetCriticality(str, Enum):
    """Citizen-impact tier. Values are the lookup names stored for each asset."""

    HIGH = "HIGH - Critical Public Services"
    MEDIUM = "MEDIUM - Important Services"
    LOW = "LOW - Supporting Services"

    @classmethod
    def parse(cls, name: Optional[str]) -> Optional["AssetCriticality"]:
        """Map a stored tier name (full lookup name or bare word) to a tier.

        Returns None for blank or unrecognised names -- callers must not guess.
        """
        if not name or not name.strip():
            return None
        normalized = name.strip().upper()
        for tier in cls:
            if normalized == tier.value.upper() or normalized == tier.name:
                return tier
        return None


class IndexStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class SlaStatus(str, Enum):
    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON-COMPLIANT"
    UNKNOWN = "UNKNOWN"


class AssetStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"
    UNKNOWN = "UNKNOWN"


class OutcomeKind(str, Enum):
    HIT = "hit"
    MISS = "miss"
    SKIPPED = "skipped"
    NUMERIC = "numeric"
    TEXT = "text"


# ---------------------------------------------------------------------------
# Observations
# ---------------------------------------------------------------------------

_HIT_WORDS = frozenset({"hit", "pass"})
_MISS_WORDS = frozenset({"miss", "fail"})


@dataclass(frozen=True)
class Outcome:
    """Tagged reading of an observation's outcome field.

    value is set only for NUMERIC; raw keeps the original text for TEXT.
    """

    kind: OutcomeKind
    value: Optional[float] = None
    raw: str = ""

    @classmethod
    def parse(cls, text: Optional[str]) -> "Outcome":
        raw = (text or "").strip()
        word = raw.lower()
        if word in _HIT_WORDS:
            return cls(OutcomeKind.HIT, raw=raw)
        if word in _MISS_WORDS:
            return cls(OutcomeKind.MISS, raw=raw)
        if word == "skipped":
            return cls(OutcomeKind.SKIPPED, raw=raw)
        number = parse_numeric(raw)
        if number is not None:
            return cls(OutcomeKind.NUMERIC, value=number, raw=raw)
        return cls(OutcomeKind.TEXT, raw=raw)


@dataclass
class Observation:
    """One recorded measurement for an (asset, KPI) pair.

    result is the raw measured value; target is the outcome classifier
    ("hit", "miss", "pass", "fail", "skipped", or a copy of result).
    Both are parsed once here so aggregation never re-reads the strings.

    Rows from the latest-value table and the history log share this shape;
    updated_at is only ever set on latest-value rows.
    """

    asset_id: int
    kpi_id: int
    result: str = ""
    target: str = ""
    recorded_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    details: str = ""
    id: Optional[int] = None
    outcome: Outcome = field(init=False, repr=False, compare=False)
    result_value: Optional[float] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.result = (self.result or "").strip()
        self.target = (self.target or "").strip()
        self.outcome = Outcome.parse(self.target)
        self.result_value = parse_numeric(self.result)

    @property
    def is_skipped(self) -> bool:
        return self.outcome.kind is OutcomeKind.SKIPPED

    @property
    def checked_at(self) -> Optional[datetime]:
        """Last time this row was touched: updated_at, falling back to recorded_at."""
        return self.updated_at or self.recorded_at


# ---------------------------------------------------------------------------
# Catalog and assets
# ---------------------------------------------------------------------------


@dataclass
class KpiDefinition:
    """A catalog entry describing one monitored characteristic.

    target_high / target_medium / target_low are free-form strings, one per
    citizen-impact tier, with or without a unit. kind is optional: when None,
    the fixed id table in core/catalog.py supplies it.
    """

    id: int
    name: str
    group: str
    outcome: str = ""  # "Flag" | "Sec" | "MB" | "%" | ""
    target_high: str = ""
    target_medium: str = ""
    target_low: str = ""
    manual: str = "Auto"  # "Auto" | "Manual"
    severity: str = "P4"
    weight: int = 0
    frequency: str = ""
    probe_type: str = ""
    kind: Optional[KpiKind] = None

    @property
    def is_manual(self) -> bool:
        return bool(self.manual.strip()) and self.manual.strip().lower() != "auto"


@dataclass
class Ministry:
    name: str
    id: Optional[int] = None


@dataclass
class Asset:
    """A monitored digital asset (government website).

    criticality holds the stored citizen-impact tier name; use
    AssetCriticality.parse() to turn it into a tier.
    """

    name: str
    url: str
    ministry_id: int
    criticality: str = ""
    department: str = ""
    primary_contact_name: str = ""
    primary_contact_email: str = ""
    primary_contact_phone: str = ""
    technical_contact_name: str = ""
    technical_contact_email: str = ""
    technical_contact_phone: str = ""
    id: Optional[int] = None
    ministry_name: str = ""

    @property
    def tier(self) -> Optional[AssetCriticality]:
        return AssetCriticality.parse(self.criticality)


@dataclass
class AssetMetrics:
    """Precomputed indices for one asset, written by an external calculation job.

    Every index is 0-100. 0 means "no data yet", never "worst".
    """

    asset_id: int
    current_health: int = 0
    performance_index: float = 0.0
    security_index: float = 0.0
    accessibility_index: float = 0.0
    availability_index: float = 0.0
    navigation_index: float = 0.0
    user_experience_index: float = 0.0
    overall_compliance: float = 0.0
    citizen_happiness: float = 0.0
    digital_risk_exposure: float = 0.0
    calculated_at: Optional[datetime] = None
    id: Optional[int] = None


@dataclass
class Incident:
    """An incident derived from a KPI failure. Counted, never transitioned here."""

    asset_id: int
    kpi_id: int
    title: str
    severity: str  # lookup name, e.g. "P1"
    status: str = "Open"  # lookup name, e.g. "Open" | "Investigating" | "Resolved"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None
