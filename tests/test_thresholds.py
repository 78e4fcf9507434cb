"""Unit tests for core/thresholds.py -- index tiers and the labels derived from them."""

import pytest

from core.config import Thresholds
from core.models import IndexStatus
from core.thresholds import (
    classify_index,
    compliance_label,
    health_label,
    health_sort_rank,
    performance_label,
    risk_label,
)


class TestClassifyIndex:
    @pytest.mark.parametrize(
        "value, status",
        [
            (None, IndexStatus.UNKNOWN),
            (0, IndexStatus.UNKNOWN),
            (0.0, IndexStatus.UNKNOWN),
            (1, IndexStatus.LOW),
            (29.99, IndexStatus.LOW),
            (30, IndexStatus.MEDIUM),
            (70, IndexStatus.MEDIUM),
            (70.01, IndexStatus.HIGH),
            (100, IndexStatus.HIGH),
        ],
    )
    def test_default_boundaries(self, value, status):
        assert classify_index(value) is status

    def test_custom_thresholds(self):
        strict = Thresholds(index_low=50, index_high=80)
        assert classify_index(45, strict) is IndexStatus.LOW
        assert classify_index(60, strict) is IndexStatus.MEDIUM
        assert classify_index(80, strict) is IndexStatus.MEDIUM
        assert classify_index(81, strict) is IndexStatus.HIGH


class TestLabels:
    def test_health(self):
        assert health_label(85) == "HEALTHY"
        assert health_label(50) == "FAIR"
        assert health_label(10) == "POOR"
        assert health_label(0) == "UNKNOWN"

    def test_performance(self):
        assert performance_label(85) == "GOOD"
        assert performance_label(50) == "AVERAGE"
        assert performance_label(10) == "BELOW AVERAGE"
        assert performance_label(None) == "UNKNOWN"

    def test_compliance_uses_tier_names(self):
        assert compliance_label(75) == "HIGH"
        assert compliance_label(30) == "MEDIUM"
        assert compliance_label(0) == "UNKNOWN"

    def test_risk_is_inverted(self):
        assert risk_label(85) == "LOW"
        assert risk_label(50) == "MEDIUM"
        assert risk_label(10) == "HIGH"
        assert risk_label(0) == "UNKNOWN"

    def test_labels_follow_custom_thresholds(self):
        strict = Thresholds(index_low=50, index_high=80)
        assert health_label(75) == "HEALTHY"
        assert health_label(75, strict) == "FAIR"


class TestHealthSortRank:
    def test_worst_first(self):
        ranks = [health_sort_rank(v) for v in (10, 50, 85, 0)]
        assert ranks == [0, 1, 2, 3]
