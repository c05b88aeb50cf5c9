# src/rightsizer/analytics/resource_analytics.py
"""
Resource Analytics Module - Utilization summaries, trends, waste and sizing signals
"""

from collections import deque
from typing import Any, Deque, Dict, List, Mapping, Optional, Union
import numpy as np
import structlog

from rightsizer.core.models import (
    Dimension,
    MetricHistoryEntry,
    MetricSeries,
    MetricSummary,
    METRIC_HISTORY_CAPACITY,
    Priority,
    RecommendationAction,
    ResourceAnalysis,
    ResourceData,
    ResourcePatterns,
    ResourceRecommendation,
    SERIES_CAPACITY,
    TrendDirection,
    TrendResult,
    WasteAssessment,
    WasteRecommendation,
)
from rightsizer.core.utils import linear_trend, trend_direction
from rightsizer.core.validation import validate_resource_data

logger = structlog.get_logger(__name__)

MIN_TREND_POINTS = 10
TREND_WINDOW = 24

# Under-utilization thresholds (%). Storage is judged on current utilization,
# the rest on the window average.
WASTE_THRESHOLDS = {
    Dimension.CPU: 30.0,
    Dimension.MEMORY: 40.0,
    Dimension.STORAGE: 20.0,
    Dimension.NETWORK: 10.0,
}

WASTE_ADVICE = {
    Dimension.CPU: (RecommendationAction.DOWNSIZE,
                    "CPU utilization is low, consider reducing CPU allocation", "20-40%"),
    Dimension.MEMORY: (RecommendationAction.DOWNSIZE,
                       "Memory utilization is low, consider reducing memory allocation", "15-30%"),
    Dimension.STORAGE: (RecommendationAction.OPTIMIZE,
                        "Storage utilization is low, consider using smaller storage tiers", "10-25%"),
    Dimension.NETWORK: (RecommendationAction.OPTIMIZE,
                        "Network utilization is low, consider reducing bandwidth allocation", "5-15%"),
}

# (upsize above, upsize target, downsize below, downsize target, downsize priority)
SIZING_RULES = {
    Dimension.CPU: (80.0, 70.0, 30.0, 50.0, Priority.MEDIUM),
    Dimension.MEMORY: (85.0, 75.0, 40.0, 60.0, Priority.MEDIUM),
    Dimension.STORAGE: (90.0, 80.0, 20.0, 40.0, Priority.LOW),
}


class ResourceAnalyzer:
    """Turns raw utilization samples into metrics, trends and sizing recommendations"""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        self.config = config or {}
        self.logger = logger.bind(module="resource_analytics")

        self.series_capacity = self.config.get('series_capacity', SERIES_CAPACITY)
        self.history: Deque[MetricHistoryEntry] = deque(
            maxlen=self.config.get('metric_history_size', METRIC_HISTORY_CAPACITY)
        )

    async def analyze(self, resource_data: Union[ResourceData, Mapping[str, Any], None]) -> ResourceAnalysis:
        """Summarize the observation window and derive trend, waste and sizing signals"""

        data = validate_resource_data(resource_data)

        metrics = {
            dim: self.summarize(data.series(dim, self.series_capacity))
            for dim in Dimension
        }
        self.history.append(MetricHistoryEntry(metrics=metrics))

        patterns = self.analyze_patterns()
        waste = self.detect_waste(metrics)
        recommendations = self.generate_recommendations(metrics)

        self.logger.info(
            "Resource analysis completed",
            history_points=len(self.history),
            overall_trend=patterns.overall.direction.value,
            waste_detected=waste.detected,
            waste_score=waste.score,
            recommendations=len(recommendations)
        )

        return ResourceAnalysis(
            metrics=metrics,
            patterns=patterns,
            waste=waste,
            recommendations=recommendations
        )

    @staticmethod
    def summarize(series: MetricSeries) -> MetricSummary:
        """Samples are already percentages; utilization is the latest sample as-is."""
        if not len(series):
            return MetricSummary()

        values = np.asarray(series.values(), dtype=float)
        current = series.latest
        return MetricSummary(
            current=current,
            average=float(values.mean()),
            peak=float(values.max()),
            utilization_percent=current
        )

    def analyze_patterns(self) -> ResourcePatterns:
        """Per-dimension least-squares trends over the most recent history window"""

        if len(self.history) < MIN_TREND_POINTS:
            return ResourcePatterns(
                dimensions={dim: TrendResult.insufficient() for dim in Dimension},
                overall=TrendResult.insufficient(),
                data_points=len(self.history)
            )

        recent = list(self.history)[-TREND_WINDOW:]
        trends = {}
        for dim in Dimension:
            direction, slope, confidence = linear_trend([entry.metrics[dim].average for entry in recent])
            trends[dim] = TrendResult(direction=TrendDirection(direction), slope=slope, confidence=confidence)

        return ResourcePatterns(
            dimensions=trends,
            overall=self._combine_trends(list(trends.values())),
            data_points=len(recent)
        )

    @staticmethod
    def _combine_trends(trends: List[TrendResult]) -> TrendResult:
        avg_slope = sum(t.slope for t in trends) / len(trends)
        avg_confidence = sum(t.confidence for t in trends) / len(trends)
        return TrendResult(
            direction=TrendDirection(trend_direction(avg_slope)),
            slope=avg_slope,
            confidence=avg_confidence
        )

    def detect_waste(self, metrics: Dict[Dimension, MetricSummary]) -> WasteAssessment:
        """Flag dimensions running below their fixed utilization thresholds"""

        flags = {
            dim: utilization_signal(dim, metrics[dim]) < threshold
            for dim, threshold in WASTE_THRESHOLDS.items()
        }

        recommendations = []
        for dim, flagged in flags.items():
            if not flagged:
                continue
            action, description, savings_range = WASTE_ADVICE[dim]
            recommendations.append(WasteRecommendation(
                dimension=dim,
                action=action,
                priority=Priority.HIGH,
                description=description,
                current_value=utilization_signal(dim, metrics[dim]),
                savings_range=savings_range
            ))

        return WasteAssessment(
            detected=any(flags.values()),
            score=sum(flags.values()) / len(flags),
            flags=flags,
            recommendations=recommendations
        )

    def generate_recommendations(self, metrics: Dict[Dimension, MetricSummary]) -> List[ResourceRecommendation]:
        """Threshold-based upsize/downsize recommendations"""

        recommendations = []
        for dim, (upper, upper_target, lower, lower_target, lower_priority) in SIZING_RULES.items():
            value = utilization_signal(dim, metrics[dim])
            label = "CPU" if dim == Dimension.CPU else dim.value.capitalize()
            noun = "CPU" if dim == Dimension.CPU else dim.value

            if value > upper:
                recommendations.append(ResourceRecommendation(
                    dimension=dim,
                    action=RecommendationAction.UPSIZE,
                    priority=Priority.HIGH,
                    description=f"{label} utilization is high, consider increasing {noun} allocation",
                    current_value=value,
                    target_value=upper_target
                ))
            elif value < lower:
                recommendations.append(ResourceRecommendation(
                    dimension=dim,
                    action=RecommendationAction.DOWNSIZE,
                    priority=lower_priority,
                    description=f"{label} utilization is low, consider reducing {noun} allocation",
                    current_value=value,
                    target_value=lower_target
                ))

        return recommendations

    def reset(self) -> None:
        self.history.clear()


def utilization_signal(dim: Dimension, summary: MetricSummary) -> float:
    """Storage is judged on current utilization, other dimensions on the window average."""
    return summary.utilization_percent if dim == Dimension.STORAGE else summary.average
