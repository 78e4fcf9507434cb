"""
sla.py -- Decides whether a KPI's current value satisfies its resolved target.

Polarity is a static property of the KPI (catalog.polarity_of), never inferred
from the values being compared. Units are stripped before comparing, so
"97.89%" vs "99.5%" compares 97.89 with 99.5.

Zero edge cases:
  HIGHER_IS_BETTER -- a current value of 0 is always NON-COMPLIANT, even
                      against a 0 target (a 0% hit rate never satisfies an SLA).
  LOWER_IS_BETTER  -- 0 vs 0 is COMPLIANT (zero misses against a zero target).
"""

from typing import Optional

from .catalog import KpiRef, polarity_of
from .models import NOT_AVAILABLE, Polarity, SlaStatus
from .values import parse_numeric


def _comparable(raw: Optional[str]) -> Optional[float]:
    if raw is None:
        return None
    text = raw.strip()
    if not text or text == NOT_AVAILABLE:
        return None
    return parse_numeric(text)


def evaluate(current: Optional[str], target: Optional[str], polarity: Polarity) -> SlaStatus:
    """Return COMPLIANT / NON-COMPLIANT, or UNKNOWN when either side has no number."""
    current_value = _comparable(current)
    target_value = _comparable(target)
    if current_value is None or target_value is None:
        return SlaStatus.UNKNOWN

    if polarity is Polarity.HIGHER_IS_BETTER:
        if current_value == 0:
            return SlaStatus.NON_COMPLIANT
        return SlaStatus.COMPLIANT if current_value >= target_value else SlaStatus.NON_COMPLIANT

    if current_value == 0 and target_value == 0:
        return SlaStatus.COMPLIANT
    return SlaStatus.COMPLIANT if current_value <= target_value else SlaStatus.NON_COMPLIANT


def evaluate_sla(current: Optional[str], target: Optional[str], kpi: KpiRef) -> SlaStatus:
    """evaluate() with the polarity looked up from the KPI's kind."""
    return evaluate(current, target, polarity_of(kpi))
