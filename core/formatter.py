"""
formatter.py -- Renders engine outputs to terminal text or JSON.
"""

import json
import os
import re
import sys
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any, Optional

from .aggregates import DashboardSummary, MinistryAssetsSummary, MinistryReport, PMDashboardHeader, PMDashboardIndices
from .panels import AssetControlPanel, AssetDashboardHeader

W = 72  # output width

# ---------------------------------------------------------------------------
# ANSI color control
# ---------------------------------------------------------------------------

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape sequences from a string."""
    return _ANSI_RE.sub("", text)


def _use_color() -> bool:
    """Return True if stdout is a TTY and color has not been disabled.

    Respects NO_COLOR env var (https://no-color.org) and FORCE_COLOR.
    """
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("FORCE_COLOR"):
        return True
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


_color_enabled: Optional[bool] = None  # None = auto-detect


def disable_color() -> None:
    """Force-disable color output (called when --no-color flag is set)."""
    global _color_enabled
    _color_enabled = False


def _color_active() -> bool:
    if _color_enabled is not None:
        return _color_enabled
    return _use_color()


# ---------------------------------------------------------------------------
# ANSI code helpers -- return empty string when color is off
# ---------------------------------------------------------------------------

_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_RED = "\033[91m"

# Status words -> color. Risk words are inverted (HIGH risk is bad).
STATUS_COLORS = {
    "COMPLIANT": _GREEN,
    "NON-COMPLIANT": _RED,
    "UP": _GREEN,
    "DOWN": _RED,
    "HIGH": _GREEN,
    "HEALTHY": _GREEN,
    "GOOD": _GREEN,
    "MEDIUM": _YELLOW,
    "FAIR": _YELLOW,
    "AVERAGE": _YELLOW,
    "LOW": _RED,
    "POOR": _RED,
    "BELOW AVERAGE": _RED,
}

RISK_COLORS = {
    "HIGH": _RED,
    "MEDIUM": _YELLOW,
    "LOW": _GREEN,
}


def _reset() -> str:
    return "\033[0m" if _color_active() else ""


def _bold() -> str:
    return "\033[1m" if _color_active() else ""


def _dim() -> str:
    return "\033[2m" if _color_active() else ""


def _paint(word: str, palette: dict[str, str] = STATUS_COLORS) -> str:
    if not _color_active():
        return word
    color = palette.get(word.replace(" RISK", ""), "\033[2m")
    return f"{color}{word}{_reset()}"


# ---------------------------------------------------------------------------
# Layout helpers
# ---------------------------------------------------------------------------


def _bar(char: str = "═") -> str:
    return char * W


def _section(title: str) -> str:
    return f"\n  {_bold()}{title}{_reset()}\n  {'─' * (W - 2)}"


def _row(label: str, value: Any, width: int = 28) -> str:
    return f"    {label:<{width}}{value}"


def _banner(title: str) -> None:
    bold = _bold()
    reset = _reset()
    print(f"\n{bold}{_bar()}{reset}")
    print(f"  {bold}{title}{reset}")
    print(f"{bold}{_bar()}{reset}")


# ---------------------------------------------------------------------------
# Terminal renderers
# ---------------------------------------------------------------------------


def print_header(header: AssetDashboardHeader) -> None:
    _banner(f"{header.asset_name}  │  {header.asset_url}")
    print(_row("Ministry", header.ministry))
    if header.department:
        print(_row("Department", header.department))
    print(_row("Citizen impact", header.citizen_impact_level))
    print(_row("Current status", _paint(header.current_status)))
    print(_row("Last outage", header.last_outage))
    print(_row("Current health", _paint(header.current_health)))
    print(_row("Risk exposure", _paint(header.risk_exposure_index, RISK_COLORS)))

    print(_section("COMPLIANCE OVERVIEW"))
    for label, status in [
        ("Accessibility & Inclusivity", header.accessibility_inclusivity_status),
        ("Availability & Reliability", header.availability_reliability_status),
        ("Navigation & Discoverability", header.navigation_discoverability_status),
        ("Performance & Efficiency", header.performance_efficiency_status),
        ("Security, Trust & Privacy", header.security_trust_privacy_status),
        ("User Experience", header.user_experience_journey_quality_status),
    ]:
        print(_row(label, _paint(status), width=32))
    print(_row("Citizen happiness", header.citizen_happiness_metric, width=32))
    print(_row("Overall compliance", header.overall_compliance_metric, width=32))

    print(_section("INCIDENTS & OWNERSHIP"))
    print(_row("Open incidents", header.open_incidents))
    print(_row("High-severity open", header.high_severity_open_incidents))
    print(_row("Owner", f"{header.owner_name} <{header.owner_email}> {header.owner_contact}"))
    print(
        _row(
            "Technical owner",
            f"{header.technical_owner_name} <{header.technical_owner_email}> {header.technical_owner_contact}",
        )
    )
    print(f"\n{_bar()}\n")


def print_control_panel(panel: AssetControlPanel) -> None:
    print_header(panel.header)
    dim = _dim()
    reset = _reset()
    for category in panel.kpi_categories:
        print(_section(category.category_name.upper()))
        for item in category.kpis:
            name = item.kpi_name[:34]
            values = f"{item.current_value:>11} / {item.target:<10}"
            print(f"  {item.kpi_id:>3}  {name:<34} {values} {_paint(item.sla_status)}")
            print(f"       {dim}{item.data_source}, checked {item.last_checked}{reset}")
    print(f"\n{_bar()}\n")


def print_summary(summary: DashboardSummary) -> None:
    _banner(f"ADMIN DASHBOARD -- {summary.total_digital_assets_monitored} assets monitored")
    print(
        _row(
            "Assets online",
            f"{summary.assets_online} ({summary.assets_online_percentage}%)",
        )
    )
    print(_row("Health index", f"{summary.health_index}  {_paint(summary.health_status)}"))
    print(_row("Performance index", f"{summary.performance_index}  {_paint(summary.performance_status)}"))
    print(_row("Compliance index", f"{summary.compliance_index}  {_paint(summary.compliance_status)}"))
    print(
        _row(
            "High-risk assets",
            f"{summary.high_risk_assets}  {_paint(summary.high_risk_assets_status, RISK_COLORS)}",
        )
    )
    print(_row("Open incidents", summary.open_incidents))
    print(
        _row(
            "Critical open incidents",
            f"{summary.critical_severity_open_incidents} ({summary.critical_severity_open_incidents_percentage}%)",
        )
    )
    print(f"\n{_bar()}\n")


def print_pm_header(header: PMDashboardHeader) -> None:
    _banner("PM DASHBOARD")
    change = header.digital_experience_score_change
    sign = "+" if change > 0 else ""
    print(_row("Digital experience score", f"{header.digital_experience_score} ({sign}{change})"))
    print(_row("Assets monitored", header.total_assets_being_monitored))
    print(_row("Assets offline", header.digital_assets_offline))
    print(
        _row(
            "Ministries meeting standard",
            f"{header.ministries_meet_compliance_standards}/{header.total_ministries} "
            f"(>= {header.compliance_threshold:g})",
        )
    )
    print(_row("Active incidents", header.active_incidents))
    print(_row("Resolved (30 days)", header.resolved_incidents_last_30_days))
    print(_row("Vulnerable assets", f"{header.assets_are_vulnerable} (< {header.security_threshold:g})"))
    print(f"\n{_bar()}\n")


def print_indices(indices: PMDashboardIndices) -> None:
    _banner("GOVERNMENT-WIDE INDICES")
    for name, value in asdict(indices).items():
        label = name.replace("_index", "").replace("_", " ").capitalize()
        print(_row(label, value))
    print(f"\n{_bar()}\n")


def print_ministry_summary(summary: MinistryAssetsSummary) -> None:
    _banner(f"MINISTRY -- {summary.ministry_name}")
    print(_row("Assets", summary.total_assets))
    print(_row("Incidents", summary.total_incidents))
    print(_row("Open incidents", summary.open_incidents))
    print(_row("High-severity open", summary.high_severity_open_incidents))
    print(f"\n{_bar()}\n")


def print_ministry_report(report: MinistryReport) -> None:
    _banner(f"MINISTRY REPORT -- {report.ministry_name}")
    print(_row("Generated", report.generated_at.strftime("%Y-%m-%d %H:%M UTC")))
    print(_row("Assets monitored", report.assets_monitored))
    print(_row("Incidents", f"{report.total_incidents} ({report.active_incidents} active)"))
    print(_row("Resolution performance", f"{report.resolution_performance}%"))
    dim = _dim()
    reset = _reset()
    for asset in report.assets:
        print(_section(asset.asset_name))
        print(_row("Compliance score", asset.compliance_score))
        print(_row("Open incidents", asset.open_incidents))
        for row in asset.incident_details:
            print(f"      {row.kpi_name[:40]:<40} {row.value_target_display}")
            print(f"      {dim}{row.status}{reset}")
    print(f"\n{_bar()}\n")


# ---------------------------------------------------------------------------
# JSON export
# ---------------------------------------------------------------------------


def _default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(result: Any) -> str:
    """Serialize a dataclass (or list of dataclasses) with ISO-8601 timestamps."""
    if is_dataclass(result):
        data = asdict(result)
    elif isinstance(result, list):
        data = [asdict(r) if is_dataclass(r) else r for r in result]
    else:
        data = result
    return json.dumps(data, indent=2, default=_default)
