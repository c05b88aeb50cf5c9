"""Shared fixtures for the rightsizer test suite."""

from __future__ import annotations

import pytest

from rightsizer.analytics.cost_analytics import CostAnalyzer
from rightsizer.analytics.resource_analytics import ResourceAnalyzer
from rightsizer.core.models import (
    CostAnalysis,
    CostBreakdown,
    CostSavings,
    CostTrend,
    OptimizationPlan,
    PricingRate,
    PricingSchedule,
    ProjectedCost,
    ResourceAnalysis,
    ResourcePatterns,
    WasteAssessment,
)
from rightsizer.optimization.orchestrator import OptimizationOrchestrator


@pytest.fixture
def sample_resource_data():
    """Low cpu, hot memory, idle storage and network."""
    return {
        "cpu": [10, 12, 11, 9],
        "memory": [85, 86, 88, 90],
        "storage": [15],
        "network": [5],
    }


@pytest.fixture
def custom_pricing():
    return PricingSchedule(
        cpu=PricingRate(per_hour=0.1, per_unit_time=72.0),
        memory=PricingRate(per_hour=0.02, per_unit_time=14.4),
        storage=PricingRate(per_hour=0.0, per_unit_time=2.4),
        network=PricingRate(per_hour=0.05, per_unit_time=36.0),
    )


@pytest.fixture
def resource_analyzer():
    return ResourceAnalyzer()


@pytest.fixture
def cost_analyzer():
    return CostAnalyzer()


@pytest.fixture
def orchestrator():
    return OptimizationOrchestrator({"apply_timeout_seconds": 1.0})


@pytest.fixture
def make_plan():
    """Build a minimal pending plan without running the analyzers."""

    def _make(**overrides):
        fields = dict(
            resource_analysis=ResourceAnalysis(
                metrics={},
                patterns=ResourcePatterns(),
                waste=WasteAssessment(),
            ),
            cost_analysis=CostAnalysis(
                current=CostBreakdown(),
                projected=ProjectedCost(),
                trends=CostTrend(),
                savings=CostSavings(),
            ),
        )
        fields.update(overrides)
        return OptimizationPlan(**fields)

    return _make
