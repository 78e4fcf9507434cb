"""Unit tests for core/kpi_values.py -- collapsing observation windows into current values.

Covers:
- Hit rate and miss rate percentages, with skipped rows removed first
- Target as the authority on hit/miss outcome
- Timed, sized and score averages and their unit selection
- Manual values (latest row verbatim) and explicit MISS_COUNT definitions
- "N/A" whenever nothing usable remains
"""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from core.catalog import UnknownKpiError
from core.kpi_values import current_value_for, latest_observation, sniff_size_unit, usable
from core.models import KpiDefinition, KpiKind, Observation

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _obs(kpi_id: int, target: str, result: str = "", minutes_ago=None, updated_minutes_ago=None) -> Observation:
    return Observation(
        asset_id=1,
        kpi_id=kpi_id,
        result=result,
        target=target,
        recorded_at=NOW - timedelta(minutes=minutes_ago) if minutes_ago is not None else None,
        updated_at=NOW - timedelta(minutes=updated_minutes_ago) if updated_minutes_ago is not None else None,
    )


# ---------------------------------------------------------------------------
# Shared rules
# ---------------------------------------------------------------------------


class TestUsable:
    def test_drops_skipped_rows(self):
        rows = [_obs(1, "hit"), _obs(1, "skipped"), _obs(1, "SKIPPED"), _obs(1, "miss")]
        assert [o.target for o in usable(rows)] == ["hit", "miss"]

    @pytest.mark.parametrize("kpi_id", [1, 3, 6, 8, 15, 25])
    def test_empty_window_is_not_available(self, kpi_id):
        assert current_value_for(kpi_id, []) == "N/A"

    @pytest.mark.parametrize("kpi_id", [1, 3, 6, 8, 15])
    def test_all_skipped_is_not_available(self, kpi_id):
        rows = [_obs(kpi_id, "skipped", "3"), _obs(kpi_id, "skipped", "4")]
        assert current_value_for(kpi_id, rows) == "N/A"

    def test_unknown_kpi_raises(self):
        with pytest.raises(UnknownKpiError):
            current_value_for(99, [_obs(99, "hit")])


# ---------------------------------------------------------------------------
# Hit / miss rates
# ---------------------------------------------------------------------------


class TestHitRate:
    def test_two_of_three(self):
        rows = [_obs(1, "hit"), _obs(1, "hit"), _obs(1, "miss")]
        assert current_value_for(1, rows, "99.50%") == "66.67%"

    def test_skipped_rows_do_not_count(self):
        rows = [_obs(1, "hit"), _obs(1, "skipped"), _obs(1, "skipped")]
        assert current_value_for(1, rows) == "100%"

    def test_target_is_authoritative_over_result(self):
        rows = [_obs(1, "miss", result="true")]
        assert current_value_for(1, rows) == "0%"

    def test_pass_counts_as_hit_and_matching_ignores_case(self):
        rows = [_obs(2, "PASS"), _obs(2, " Hit "), _obs(2, "fail"), _obs(2, "miss")]
        assert current_value_for(2, rows) == "50%"

    def test_ninety_three_of_ninety_five(self):
        rows = [_obs(1, "hit")] * 93 + [_obs(1, "miss")] * 2 + [_obs(1, "skipped")] * 5
        assert current_value_for(1, rows, "99.50%") == "97.89%"


class TestMissRate:
    def test_non_hits_over_total(self):
        rows = [_obs(3, "hit"), _obs(3, "miss"), _obs(3, "miss")]
        assert current_value_for(3, rows, "0") == "66.67%"

    def test_no_misses(self):
        rows = [_obs(9, "hit"), _obs(9, "pass")]
        assert current_value_for(9, rows) == "0%"

    def test_uses_target_unit(self):
        rows = [_obs(16, "miss"), _obs(16, "hit"), _obs(16, "hit"), _obs(16, "hit")]
        assert current_value_for(16, rows, "3%") == "25%"


class TestMissCount:
    def test_explicit_kind_counts_misses(self):
        kpi = KpiDefinition(id=40, name="Failed logins", group="Custom", kind=KpiKind.MISS_COUNT)
        rows = [_obs(40, "miss"), _obs(40, "", result="false"), _obs(40, "hit"), _obs(40, "skipped")]
        assert current_value_for(kpi, rows) == "2"


# ---------------------------------------------------------------------------
# Averages
# ---------------------------------------------------------------------------


class TestTimedAverage:
    def test_mean_with_target_unit(self):
        rows = [_obs(6, "3", result="3"), _obs(6, "4", result="4")]
        assert current_value_for(6, rows, "5 sec") == "3.5 sec"

    def test_default_unit(self):
        rows = [_obs(7, "0.5", result="0.5"), _obs(7, "1", result="1.5 sec")]
        assert current_value_for(7, rows) == "1 sec"

    def test_non_numeric_results_are_excluded_not_zeroed(self, caplog):
        rows = [_obs(6, "x", result="3"), _obs(6, "x", result="timeout"), _obs(6, "x", result="4")]
        with caplog.at_level(logging.DEBUG, logger="assetwatch.kpi_values"):
            assert current_value_for(6, rows, "5 sec") == "3.5 sec"
        assert "non-numeric" in caplog.text

    def test_only_non_numeric_results(self):
        rows = [_obs(6, "x", result="timeout")]
        assert current_value_for(6, rows, "5 sec") == "N/A"


class TestSizedAverage:
    def test_sniffed_unit_wins_over_target(self):
        rows = [_obs(8, "x", result="2"), _obs(8, "x", result="4"), _obs(8, "x", result="1 GB")]
        assert current_value_for(8, rows, "2 MB") == "3 GB"

    def test_target_unit_when_results_are_bare(self):
        rows = [_obs(8, "x", result="2.5"), _obs(8, "x", result="3.5")]
        assert current_value_for(8, rows, "2 megabytes") == "3 megabytes"

    def test_unit_sniffed_from_results(self):
        rows = [_obs(8, "x", result="1"), _obs(8, "x", result="2 mb")]
        assert current_value_for(8, rows) == "1.5 MB"

    def test_default_unit(self):
        rows = [_obs(8, "x", result="2"), _obs(8, "x", result="4")]
        assert current_value_for(8, rows) == "3 MB"

    def test_sniff_order(self):
        assert sniff_size_unit([_obs(8, "x", result="1.2 GB")]) == "GB"
        assert sniff_size_unit([_obs(8, "x", result="800 kb")]) == "KB"
        assert sniff_size_unit([_obs(8, "x", result="12")]) is None


class TestScoreAverage:
    def test_mean_percent(self):
        rows = [_obs(15, "92", result="92"), _obs(15, "96", result="96%")]
        assert current_value_for(15, rows, "90%") == "94%"


# ---------------------------------------------------------------------------
# Manual values
# ---------------------------------------------------------------------------


class TestManualValue:
    def test_latest_result_verbatim(self):
        rows = [
            _obs(25, "1200", result="1200", minutes_ago=600),
            _obs(25, "1,500 visits", result="1,500 visits", minutes_ago=900, updated_minutes_ago=60),
        ]
        assert current_value_for(25, rows) == "1,500 visits"

    def test_blank_result(self):
        assert current_value_for(26, [_obs(26, "", result="", minutes_ago=5)]) == "N/A"


class TestLatestObservation:
    def test_updated_at_wins_over_recorded_at(self):
        older = _obs(25, "a", minutes_ago=10)
        touched = _obs(25, "b", minutes_ago=100, updated_minutes_ago=1)
        assert latest_observation([older, touched]) is touched

    def test_rows_without_timestamps_sort_oldest(self):
        undated = _obs(25, "a")
        dated = _obs(25, "b", minutes_ago=100)
        assert latest_observation([dated, undated]) is dated

    def test_empty(self):
        assert latest_observation([]) is None
