# src/rightsizer/analytics/cost_analytics.py
"""
Cost Analytics Module - Current and projected cost, cost trends and savings
"""

from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Union
import structlog

from rightsizer.core.models import (
    COST_HISTORY_CAPACITY,
    CostAnalysis,
    CostBreakdown,
    CostHistoryEntry,
    CostRecommendation,
    CostSavings,
    CostTrend,
    Dimension,
    HOURS_PER_DAY,
    HOURS_PER_MONTH,
    HOURS_PER_YEAR,
    PricingSchedule,
    ProjectedCost,
    RecommendationAction,
    ResourceData,
    SAVINGS_EPSILON,
    SavingsItem,
    TrendDirection,
)
from rightsizer.core.utils import linear_trend, percent_change
from rightsizer.core.validation import validate_pricing, validate_quantities

logger = structlog.get_logger(__name__)

MIN_COST_TREND_POINTS = 7
COST_TREND_WINDOW = 7

# Share of the current quantity kept after optimization
RETENTION_RATIOS = {
    Dimension.CPU: 0.8,
    Dimension.MEMORY: 0.85,
    Dimension.STORAGE: 0.9,
}


class CostAnalyzer:
    """Cost projection and cost-driven optimization recommendations"""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 default_pricing: Optional[PricingSchedule] = None):
        self.config = config or {}
        self.logger = logger.bind(module="cost_analytics")
        self.default_pricing = default_pricing or PricingSchedule()

        self.history: Deque[CostHistoryEntry] = deque(
            maxlen=self.config.get('cost_history_size', COST_HISTORY_CAPACITY)
        )

    async def analyze(self, consumption: Union[ResourceData, Mapping[Any, Any], None],
                      pricing: Union[PricingSchedule, Mapping[str, Any], None] = None) -> CostAnalysis:
        """
        Price the current consumption and look for savings.

        `consumption` is either a mapping of dimension to current quantity or a
        ResourceData window, in which case the latest sample of each dimension
        is taken as the quantity.
        """
        schedule = validate_pricing(pricing, self.default_pricing)
        quantities = self._quantities(consumption)

        current = self.calculate_current_cost(quantities, schedule)
        self.update_cost_history(current)

        projected = self.calculate_projected_costs(current)
        trends = self.analyze_cost_trends()
        recommendations = self.generate_cost_recommendations(quantities, schedule)
        savings = self.calculate_potential_savings(recommendations, current)

        self.logger.info(
            "Cost analysis completed",
            hourly_cost=current.total,
            monthly_cost=projected.monthly,
            cost_trend=trends.direction.value,
            potential_savings=savings.total
        )

        return CostAnalysis(
            current=current,
            projected=projected,
            trends=trends,
            recommendations=recommendations,
            savings=savings
        )

    @staticmethod
    def _quantities(consumption: Union[ResourceData, Mapping[Any, Any], None]) -> Dict[Dimension, float]:
        if consumption is None:
            return validate_quantities({})
        if isinstance(consumption, ResourceData):
            return consumption.latest()
        return validate_quantities(consumption)

    @staticmethod
    def calculate_current_cost(quantities: Dict[Dimension, float], pricing: PricingSchedule) -> CostBreakdown:
        """Instant cost: quantity times the applicable hourly rate"""
        costs = {dim.value: quantities.get(dim, 0.0) * pricing.hourly_rate(dim) for dim in Dimension}
        return CostBreakdown(**costs, total=sum(costs.values()))

    @staticmethod
    def calculate_projected_costs(current: CostBreakdown) -> ProjectedCost:
        return ProjectedCost(
            daily=current.total * HOURS_PER_DAY,
            monthly=current.total * HOURS_PER_MONTH,
            yearly=current.total * HOURS_PER_YEAR,
            breakdown={dim: current.for_dimension(dim) * HOURS_PER_MONTH for dim in Dimension}
        )

    def analyze_cost_trends(self) -> CostTrend:
        """Regression over the most recent cost window, with percent change"""

        if len(self.history) < MIN_COST_TREND_POINTS:
            return CostTrend(direction=TrendDirection.INSUFFICIENT_DATA, slope=0.0, confidence=0.0)

        recent = [entry.cost.total for entry in list(self.history)[-COST_TREND_WINDOW:]]
        direction, slope, confidence = linear_trend(recent)

        return CostTrend(
            direction=TrendDirection(direction),
            slope=slope,
            confidence=confidence,
            change_percent=percent_change(recent[0], recent[-1])
        )

    @staticmethod
    def generate_cost_recommendations(quantities: Dict[Dimension, float],
                                      pricing: PricingSchedule) -> List[CostRecommendation]:
        """Recommend trimming each dimension to its retention ratio when it pays off"""

        recommendations = []
        for dim, ratio in RETENTION_RATIOS.items():
            quantity = quantities.get(dim, 0.0)
            if quantity <= 0:
                continue

            rate = pricing.hourly_rate(dim)
            current_cost = quantity * rate
            optimized_cost = quantity * ratio * rate
            savings = current_cost - optimized_cost

            if savings > SAVINGS_EPSILON:
                recommendations.append(CostRecommendation(
                    dimension=dim,
                    action=RecommendationAction.OPTIMIZE,
                    description=f"Optimize {'CPU' if dim == Dimension.CPU else dim.value} allocation for cost savings",
                    current_value=current_cost,
                    target_value=optimized_cost,
                    estimated_savings=savings,
                    savings_percent=savings / current_cost * 100
                ))

        return recommendations

    @staticmethod
    def calculate_potential_savings(recommendations: List[CostRecommendation],
                                    current: CostBreakdown) -> CostSavings:
        total = sum(rec.estimated_savings for rec in recommendations)
        return CostSavings(
            total=total,
            percent=(total / current.total * 100) if current.total > 0 else 0.0,
            breakdown=[
                SavingsItem(dimension=rec.dimension, savings=rec.estimated_savings, percent=rec.savings_percent)
                for rec in recommendations
            ]
        )

    def update_cost_history(self, cost: CostBreakdown) -> None:
        self.history.append(CostHistoryEntry(cost=cost))

    def reset(self) -> None:
        self.history.clear()
