"""Unit tests for core/catalog.py -- kind, polarity and unit tables and the default catalog."""

import pytest

from core.catalog import DEFAULT_CATALOG, UnknownKpiError, kind_of, known_kpi_ids, polarity_of, target_unit
from core.models import KpiDefinition, KpiKind, Polarity


def _definition(kpi_id: int, kind=None) -> KpiDefinition:
    return KpiDefinition(id=kpi_id, name=f"KPI {kpi_id}", group="Custom", kind=kind)


class TestKindOf:
    @pytest.mark.parametrize(
        "kpi_id, kind",
        [
            (1, KpiKind.HIT_RATE),
            (2, KpiKind.HIT_RATE),
            (3, KpiKind.MISS_RATE),
            (6, KpiKind.TIMED),
            (7, KpiKind.TIMED),
            (8, KpiKind.SIZED),
            (15, KpiKind.SCORE),
            (16, KpiKind.MISS_RATE),
            (24, KpiKind.MISS_RATE),
            (25, KpiKind.MANUAL),
            (33, KpiKind.MANUAL),
        ],
    )
    def test_id_table(self, kpi_id, kind):
        assert kind_of(kpi_id) is kind

    def test_unknown_id_raises(self):
        with pytest.raises(UnknownKpiError) as excinfo:
            kind_of(99)
        assert excinfo.value.kpi_id == 99
        assert isinstance(excinfo.value, LookupError)

    def test_explicit_kind_wins_over_id_table(self):
        assert kind_of(_definition(3, KpiKind.MISS_COUNT)) is KpiKind.MISS_COUNT

    def test_explicit_kind_for_unlisted_id(self):
        assert kind_of(_definition(99, KpiKind.TIMED)) is KpiKind.TIMED

    def test_definition_without_kind_uses_id_table(self):
        assert kind_of(_definition(6)) is KpiKind.TIMED


class TestPolarity:
    @pytest.mark.parametrize("kpi_id", [1, 2, 15])
    def test_higher_is_better(self, kpi_id):
        assert polarity_of(kpi_id) is Polarity.HIGHER_IS_BETTER

    @pytest.mark.parametrize("kpi_id", [3, 6, 7, 8, 16, 23, 25])
    def test_lower_is_better(self, kpi_id):
        assert polarity_of(kpi_id) is Polarity.LOWER_IS_BETTER


class TestTargetUnit:
    def test_id_table(self):
        assert target_unit(6) == " sec"
        assert target_unit(8) == " MB"
        assert target_unit(15) == "%"
        assert target_unit(23) == "%"

    def test_flag_kpis_have_no_unit(self):
        assert target_unit(3) is None
        assert target_unit(19) is None

    def test_explicit_kind_fallback(self):
        assert target_unit(_definition(99, KpiKind.SCORE)) == "%"
        assert target_unit(_definition(99, KpiKind.MISS_RATE)) is None


class TestDefaultCatalog:
    def test_ids_are_one_to_thirty_three(self):
        assert [k.id for k in DEFAULT_CATALOG] == list(range(1, 34))

    def test_every_entry_has_a_kind(self):
        assert {k.id for k in DEFAULT_CATALOG} == known_kpi_ids()

    def test_manual_entries(self):
        manual = [k.id for k in DEFAULT_CATALOG if k.is_manual]
        assert manual == list(range(25, 34))

    def test_automatic_entries_have_all_three_targets(self):
        for kpi in DEFAULT_CATALOG:
            if kpi.is_manual:
                continue
            assert kpi.target_high and kpi.target_medium and kpi.target_low, kpi.id
