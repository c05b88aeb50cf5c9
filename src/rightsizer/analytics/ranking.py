# src/rightsizer/analytics/ranking.py
"""
Recommendation ranking - merges resource, cost and waste recommendations into
one deterministically ordered list.
"""

from typing import List, Optional

from rightsizer.core.models import (
    CostAnalysis,
    CostRecommendation,
    OptimizationSavings,
    HOURS_PER_MONTH,
    HOURS_PER_YEAR,
    Priority,
    Recommendation,
    ResourceAnalysis,
    ResourceRecommendation,
    WasteAssessment,
    WasteRecommendation,
)

# Hourly savings above which a recommendation is worth at least medium priority
MEDIUM_PRIORITY_SAVINGS = 1.0


def calculate_priority(recommendation: Recommendation) -> Priority:
    """First matching rule wins."""
    if isinstance(recommendation, WasteRecommendation):
        return Priority.HIGH
    if isinstance(recommendation, ResourceRecommendation):
        if recommendation.priority == Priority.HIGH:
            return Priority.HIGH
    elif not isinstance(recommendation, CostRecommendation):
        raise TypeError(f"Unknown recommendation type: {type(recommendation).__name__}")

    if recommendation.estimated_savings > MEDIUM_PRIORITY_SAVINGS:
        return Priority.MEDIUM
    return Priority.LOW


def rank(resource_analysis: ResourceAnalysis,
         cost_analysis: CostAnalysis,
         waste: Optional[WasteAssessment] = None) -> List[Recommendation]:
    """
    Assign final priorities and order recommendations.

    Order is priority descending, then estimated savings descending. Ties keep
    insertion order: resource recommendations, then cost, then waste. Inputs
    are not modified.
    """
    waste = waste if waste is not None else resource_analysis.waste

    merged: List[Recommendation] = [
        *resource_analysis.recommendations,
        *cost_analysis.recommendations,
        *waste.recommendations,
    ]
    prioritized = [rec.model_copy(update={"priority": calculate_priority(rec)}) for rec in merged]

    # sorted() is stable, which preserves insertion order among equal keys
    return sorted(prioritized, key=lambda rec: (-rec.priority.rank, -rec.estimated_savings))


def calculate_optimization_savings(recommendations: List[Recommendation],
                                   cost_analysis: CostAnalysis) -> OptimizationSavings:
    """Aggregate hourly savings and project them over a month and a year"""
    total = sum(rec.estimated_savings for rec in recommendations)
    current_total = cost_analysis.current.total
    return OptimizationSavings(
        total=total,
        percent=(total / current_total * 100) if current_total > 0 else 0.0,
        monthly=total * HOURS_PER_MONTH,
        yearly=total * HOURS_PER_YEAR,
        recommendations=len(recommendations)
    )
