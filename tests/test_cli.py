"""Tests for main.py -- the command-line entry point against a file-backed registry."""

import json

import pytest

from core import formatter
from core.models import Asset, AssetMetrics, Ministry
from main import main
from registry.store import AssetRegistry


@pytest.fixture
def db_url(tmp_path, monkeypatch):
    monkeypatch.setattr(formatter, "_color_enabled", None)
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    registry = AssetRegistry(url)
    ministry = registry.add_ministry(Ministry(name="Ministry of Health"))
    asset_id = registry.add_asset(
        Asset(name="Health Portal", url="https://health.gov.example", ministry_id=ministry, criticality="HIGH")
    )
    registry.save_metrics(AssetMetrics(asset_id=asset_id, current_health=85, overall_compliance=90.0))
    registry.close()
    return url


def test_seed_catalog(db_url, capsys):
    assert main(["--db", db_url, "--no-color", "seed-catalog"]) == 0
    assert "33 KPI definition(s) added, 33 active." in capsys.readouterr().out


def test_summary_json(db_url, capsys):
    assert main(["--db", db_url, "--json", "summary"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["total_digital_assets_monitored"] == 1
    assert data["health_index"] == 85.0


def test_panel_json(db_url, capsys):
    main(["--db", db_url, "seed-catalog"])
    capsys.readouterr()
    assert main(["--db", db_url, "--json", "panel", "1"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["header"]["asset_name"] == "Health Portal"
    assert data["kpi_categories"][0]["kpis"][0]["target"] == "99.90%"


def test_header_terminal(db_url, capsys):
    assert main(["--db", db_url, "--no-color", "header", "1"]) == 0
    out = capsys.readouterr().out
    assert "Health Portal" in out
    assert "COMPLIANCE OVERVIEW" in out


def test_unknown_asset(db_url, capsys):
    assert main(["--db", db_url, "header", "99"]) == 1
    assert "Asset 99 not found" in capsys.readouterr().err


def test_pm_commands(db_url, capsys):
    assert main(["--db", db_url, "--json", "indices"]) == 0
    assert json.loads(capsys.readouterr().out)["overall_compliance_index"] == 90.0
    assert main(["--db", db_url, "--json", "pm-header"]) == 0
    assert json.loads(capsys.readouterr().out)["total_ministries"] == 1


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage:" in capsys.readouterr().out


def test_ministry_commands(db_url, capsys):
    assert main(["--db", db_url, "--json", "ministry", "1"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["total_assets"] == 1
    assert summary["open_incidents"] == 0

    assert main(["--db", db_url, "--json", "report", "1"]) == 0
    report = json.loads(capsys.readouterr().out)
    assert report["assets"][0]["compliance_score"] == 90.0
    assert report["resolution_performance"] == 0.0

    assert main(["--db", db_url, "--no-color", "report", "1"]) == 0
    assert "MINISTRY REPORT -- Ministry of Health" in capsys.readouterr().out


def test_unknown_ministry(db_url, capsys):
    assert main(["--db", db_url, "ministry", "99"]) == 1
    assert "Ministry 99 not found" in capsys.readouterr().err
