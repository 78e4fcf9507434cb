"""
targets.py -- Resolves which KPI target applies to an asset, then normalizes its unit.

Resolution and normalization are two steps and run in that order:

    target = ensure_unit(kpi.id, resolve_target(kpi, tier))

resolve_target() picks one of the three tier fields with a fixed fallback
order; ensure_unit() appends the implicit unit when the chosen target is a
bare number. Numeric comparison downstream is unit-agnostic, but display
and unit inheritance in kpi_values rely on the unit being present.
"""

import logging
from typing import Optional

from .catalog import KpiRef, target_unit
from .models import NOT_AVAILABLE, AssetCriticality, KpiDefinition
from .values import parse_numeric, unit_of

logger = logging.getLogger("assetwatch.targets")

# Preferred field first; the rest are fallbacks for sparsely populated catalogs.
_FALLBACK_ORDER: dict[AssetCriticality, tuple[str, ...]] = {
    AssetCriticality.HIGH: ("target_high", "target_medium", "target_low"),
    AssetCriticality.MEDIUM: ("target_medium", "target_high", "target_low"),
    AssetCriticality.LOW: ("target_low", "target_medium", "target_high"),
}


def resolve_target(kpi: KpiDefinition, tier: Optional[AssetCriticality]) -> str:
    """Return the target string for kpi at the given citizen-impact tier.

    Unknown tier -> "N/A" (never guessed). Blank fields count as unpopulated;
    if no field is populated the result is "N/A".
    """
    if tier is None:
        return NOT_AVAILABLE

    for field_name in _FALLBACK_ORDER[tier]:
        value = (getattr(kpi, field_name) or "").strip()
        if value:
            return value

    if not kpi.is_manual:
        logger.warning("KPI %s (%s) has no targets configured for tier %s", kpi.id, kpi.name, tier.name)
    return NOT_AVAILABLE


def ensure_unit(kpi: KpiRef, target: Optional[str]) -> str:
    """Append the KPI's implicit unit to a bare numeric target.

    ensure_unit(6, "3") -> "3 sec"; ensure_unit(15, "95") -> "95%".
    Targets that already carry a unit, that are not numbers, or that are
    "N/A" are returned unchanged, so applying it twice is a no-op.
    """
    text = (target or "").strip()
    if not text or text == NOT_AVAILABLE:
        return text

    unit = target_unit(kpi)
    if unit is None:
        return text

    if unit_of(text) is not None or parse_numeric(text) is None:
        return text
    return f"{text}{unit}"


def target_for(kpi: KpiDefinition, tier: Optional[AssetCriticality]) -> str:
    """Resolve then normalize: the target string every view displays and compares against."""
    return ensure_unit(kpi, resolve_target(kpi, tier))
