"""
Tests for the resource analytics module.

Covers metric summaries, history-driven trend detection, waste scoring and
threshold-based sizing recommendations.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from rightsizer.analytics.resource_analytics import ResourceAnalyzer
from rightsizer.core.exceptions import DataValidationException
from rightsizer.core.models import (
    Dimension,
    MetricSeries,
    Priority,
    RecommendationAction,
    TrendDirection,
)


def _find(recommendations, dimension, action=None):
    return [
        rec for rec in recommendations
        if rec.dimension == dimension and (action is None or rec.action == action)
    ]


# ──────────────────────────────────────────────────────────────────────────────
# Metric summaries
# ──────────────────────────────────────────────────────────────────────────────


class TestMetricSummaries:
    """Tests for per-dimension summaries."""

    async def test_summary_fields(self, resource_analyzer):
        """current is the last sample, average the mean, peak the max."""
        result = await resource_analyzer.analyze({"cpu": [10, 55.5]})
        cpu = result.metrics[Dimension.CPU]

        assert cpu.current == 55.5
        assert cpu.average == pytest.approx(32.75)
        assert cpu.peak == 55.5

    async def test_utilization_is_latest_sample_without_rescaling(self, resource_analyzer):
        """Samples are already percentages and are reported unchanged."""
        result = await resource_analyzer.analyze({"memory": [12.5, 40.0, 73.25]})
        assert result.metrics[Dimension.MEMORY].utilization_percent == 73.25

    async def test_empty_arrays_yield_zero_summaries(self, resource_analyzer):
        """Empty and missing dimensions are valid input."""
        result = await resource_analyzer.analyze({"cpu": [], "memory": None})

        for dim in Dimension:
            summary = result.metrics[dim]
            assert summary.current == 0
            assert summary.average == 0
            assert summary.peak == 0
            assert summary.utilization_percent == 0

    async def test_none_input_is_not_an_error(self, resource_analyzer):
        result = await resource_analyzer.analyze(None)
        assert set(result.metrics) == set(Dimension)

    async def test_non_numeric_samples_rejected(self, resource_analyzer):
        with pytest.raises(DataValidationException) as exc_info:
            await resource_analyzer.analyze({"cpu": ["abc"]})
        assert exc_info.value.field.startswith("resource_data.cpu")

    @pytest.mark.parametrize("samples", [[True], ["50"], [10, False]])
    async def test_samples_are_not_coerced(self, resource_analyzer, samples):
        """Booleans and numeric strings are not accepted as percentages."""
        with pytest.raises(DataValidationException):
            await resource_analyzer.analyze({"cpu": samples})

    async def test_out_of_range_samples_rejected(self, resource_analyzer):
        """Values above 100% are not silently clamped or rescaled."""
        with pytest.raises(DataValidationException):
            await resource_analyzer.analyze({"cpu": [150]})

    async def test_non_mapping_input_rejected(self, resource_analyzer):
        with pytest.raises(DataValidationException):
            await resource_analyzer.analyze([1, 2, 3])

    async def test_series_capacity_evicts_oldest_samples(self):
        analyzer = ResourceAnalyzer({"series_capacity": 3})
        result = await analyzer.analyze({"cpu": [90, 10, 20, 30]})
        cpu = result.metrics[Dimension.CPU]

        assert cpu.average == pytest.approx(20.0)
        assert cpu.peak == 30


class TestMetricSeries:
    """Tests for the bounded sample buffer."""

    def test_fifo_eviction(self):
        series = MetricSeries(capacity=3)
        series.extend([1, 2, 3, 4, 5])

        assert len(series) == 3
        assert series.values() == [3.0, 4.0, 5.0]
        assert series.latest == 5.0

    def test_empty_latest_is_zero(self):
        assert MetricSeries().latest == 0.0


# ──────────────────────────────────────────────────────────────────────────────
# Trends
# ──────────────────────────────────────────────────────────────────────────────


class TestTrendDetection:
    """Tests for history-based trend estimation."""

    async def test_insufficient_data_below_ten_points(self, resource_analyzer):
        """Fewer than 10 history points yields insufficient_data everywhere."""
        for _ in range(9):
            result = await resource_analyzer.analyze({"cpu": [50]})

        patterns = result.patterns
        assert patterns.data_points == 9
        assert patterns.overall.direction == TrendDirection.INSUFFICIENT_DATA
        assert patterns.overall.confidence == 0
        for dim in Dimension:
            assert patterns.dimensions[dim].direction == TrendDirection.INSUFFICIENT_DATA
            assert patterns.dimensions[dim].confidence == 0

    async def test_tenth_point_enables_trend(self, resource_analyzer):
        for _ in range(10):
            result = await resource_analyzer.analyze({"cpu": [50], "memory": [50]})

        assert result.patterns.dimensions[Dimension.CPU].direction == TrendDirection.STABLE
        assert result.patterns.overall.direction == TrendDirection.STABLE

    async def test_increasing_cpu_trend(self, resource_analyzer):
        """cpu average rising 5 points per run gives slope 5."""
        for i in range(12):
            result = await resource_analyzer.analyze({"cpu": [i * 5], "memory": [50]})

        cpu_trend = result.patterns.dimensions[Dimension.CPU]
        assert cpu_trend.direction == TrendDirection.INCREASING
        assert cpu_trend.slope == pytest.approx(5.0)
        assert cpu_trend.confidence == pytest.approx(0.5)

        memory_trend = result.patterns.dimensions[Dimension.MEMORY]
        assert memory_trend.direction == TrendDirection.STABLE
        assert memory_trend.slope == pytest.approx(0.0)

        overall = result.patterns.overall
        assert overall.slope == pytest.approx(1.25)
        assert overall.confidence == pytest.approx(0.125)
        assert overall.direction == TrendDirection.INCREASING

    async def test_decreasing_trend(self, resource_analyzer):
        for i in range(10):
            result = await resource_analyzer.analyze({"memory": [90 - i * 2]})

        memory_trend = result.patterns.dimensions[Dimension.MEMORY]
        assert memory_trend.direction == TrendDirection.DECREASING
        assert memory_trend.slope == pytest.approx(-2.0)

    async def test_trend_uses_most_recent_window(self, resource_analyzer):
        """Only the last 24 history points feed the regression."""
        for i in range(30):
            value = i * 3 if i < 6 else 50
            result = await resource_analyzer.analyze({"cpu": [value]})

        assert result.patterns.data_points == 24
        assert result.patterns.dimensions[Dimension.CPU].direction == TrendDirection.STABLE

    async def test_history_is_bounded(self):
        analyzer = ResourceAnalyzer({"metric_history_size": 5})
        for _ in range(8):
            await analyzer.analyze({"cpu": [40]})

        assert len(analyzer.history) == 5


# ──────────────────────────────────────────────────────────────────────────────
# Waste
# ──────────────────────────────────────────────────────────────────────────────


class TestWasteDetection:
    """Tests for threshold-based waste scoring."""

    async def test_waste_flags_and_score(self, resource_analyzer, sample_resource_data):
        """cpu, storage and network are under-utilized; memory is not."""
        waste = (await resource_analyzer.analyze(sample_resource_data)).waste

        assert waste.detected is True
        assert waste.flags == {
            Dimension.CPU: True,
            Dimension.MEMORY: False,
            Dimension.STORAGE: True,
            Dimension.NETWORK: True,
        }
        assert waste.score == pytest.approx(0.75)

    async def test_waste_recommendations(self, resource_analyzer, sample_resource_data):
        waste = (await resource_analyzer.analyze(sample_resource_data)).waste
        by_dimension = {rec.dimension: rec for rec in waste.recommendations}

        assert set(by_dimension) == {Dimension.CPU, Dimension.STORAGE, Dimension.NETWORK}
        assert by_dimension[Dimension.CPU].action == RecommendationAction.DOWNSIZE
        assert by_dimension[Dimension.STORAGE].action == RecommendationAction.OPTIMIZE
        assert by_dimension[Dimension.NETWORK].action == RecommendationAction.OPTIMIZE
        assert by_dimension[Dimension.NETWORK].savings_range == "5-15%"
        assert all(rec.source == "waste_detection" for rec in waste.recommendations)

    async def test_no_waste_when_well_utilized(self, resource_analyzer):
        waste = (await resource_analyzer.analyze(
            {"cpu": [60], "memory": [65], "storage": [50], "network": [40]}
        )).waste

        assert waste.detected is False
        assert waste.score == 0
        assert waste.recommendations == []


# ──────────────────────────────────────────────────────────────────────────────
# Sizing recommendations
# ──────────────────────────────────────────────────────────────────────────────


class TestSizingRecommendations:
    """Tests for upsize/downsize thresholds."""

    async def test_high_cpu_upsizes(self, resource_analyzer):
        """cpu average 85% -> upsize, high priority, target 70."""
        result = await resource_analyzer.analyze({"cpu": [85, 85, 85]})
        [rec] = _find(result.recommendations, Dimension.CPU)

        assert rec.action == RecommendationAction.UPSIZE
        assert rec.priority == Priority.HIGH
        assert rec.target_value == 70
        assert rec.current_value == pytest.approx(85.0)

    async def test_low_cpu_downsizes_and_flags_waste(self, resource_analyzer):
        """cpu average 20% -> downsize to 50 and waste detected."""
        result = await resource_analyzer.analyze({"cpu": [20, 20]})
        [rec] = _find(result.recommendations, Dimension.CPU)

        assert rec.action == RecommendationAction.DOWNSIZE
        assert rec.target_value == 50
        assert rec.priority == Priority.MEDIUM
        assert result.waste.detected is True

    async def test_memory_thresholds(self, resource_analyzer):
        high = await resource_analyzer.analyze({"memory": [86, 90]})
        [up] = _find(high.recommendations, Dimension.MEMORY)
        assert (up.action, up.target_value, up.priority) == (RecommendationAction.UPSIZE, 75, Priority.HIGH)

        low = await resource_analyzer.analyze({"memory": [20]})
        [down] = _find(low.recommendations, Dimension.MEMORY)
        assert (down.action, down.target_value) == (RecommendationAction.DOWNSIZE, 60)

    async def test_memory_between_thresholds_has_no_recommendation(self, resource_analyzer):
        result = await resource_analyzer.analyze({"memory": [82]})
        assert _find(result.recommendations, Dimension.MEMORY) == []

    async def test_storage_thresholds_use_current_utilization(self, resource_analyzer):
        """Storage is judged on the latest sample, not the average."""
        full = await resource_analyzer.analyze({"storage": [10, 95]})
        [up] = _find(full.recommendations, Dimension.STORAGE)
        assert (up.action, up.target_value, up.priority) == (RecommendationAction.UPSIZE, 80, Priority.HIGH)

        empty = await resource_analyzer.analyze({"storage": [95, 15]})
        [down] = _find(empty.recommendations, Dimension.STORAGE)
        assert (down.action, down.target_value, down.priority) == (RecommendationAction.DOWNSIZE, 40, Priority.LOW)

    async def test_network_has_no_sizing_rule(self, resource_analyzer):
        result = await resource_analyzer.analyze({"network": [99]})
        assert _find(result.recommendations, Dimension.NETWORK) == []

    async def test_recommendations_are_immutable(self, resource_analyzer):
        result = await resource_analyzer.analyze({"cpu": [90]})
        rec = _find(result.recommendations, Dimension.CPU)[0]

        with pytest.raises(ValidationError):
            rec.target_value = 10
