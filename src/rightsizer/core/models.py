"""
Rightsizing Data Models
Metric summaries, cost breakdowns, recommendations and optimization plans
"""

from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Iterable, Iterator, List, Literal, Optional, Tuple, Union
import uuid

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StrictFloat

# Ring buffer capacities
SERIES_CAPACITY = 1000
METRIC_HISTORY_CAPACITY = 1000
COST_HISTORY_CAPACITY = 720  # 30 days of hourly samples

# Calendar constants for cost projection
HOURS_PER_DAY = 24
HOURS_PER_MONTH = 24 * 30
HOURS_PER_YEAR = 24 * 365

# Savings at or below this hourly amount are not worth recommending
SAVINGS_EPSILON = 0.01


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Dimension(str, Enum):
    """Resource axis tracked independently."""
    CPU = "cpu"
    MEMORY = "memory"
    STORAGE = "storage"
    NETWORK = "network"


class TrendDirection(str, Enum):
    """Trend direction enumeration."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT_DATA = "insufficient_data"


class RecommendationAction(str, Enum):
    UPSIZE = "upsize"
    DOWNSIZE = "downsize"
    OPTIMIZE = "optimize"


class Priority(str, Enum):
    """Recommendation priority; `rank` orders high above low."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class RecommendationSource(str, Enum):
    RESOURCE_ANALYSIS = "resource_analysis"
    COST_ANALYSIS = "cost_analysis"
    WASTE_DETECTION = "waste_detection"


class PlanStatus(str, Enum):
    """Optimization plan lifecycle status."""
    PENDING = "pending"
    APPLIED = "applied"
    FAILED = "failed"


class ResultStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class MetricSeries:
    """Bounded, insertion-ordered sample sequence with FIFO eviction."""

    def __init__(self, samples: Iterable[float] = (), capacity: int = SERIES_CAPACITY):
        self.capacity = capacity
        self._samples = deque(maxlen=capacity)
        self.extend(samples)

    def append(self, value: float) -> None:
        self._samples.append(float(value))

    def extend(self, values: Iterable[float]) -> None:
        for value in values:
            self.append(value)

    @property
    def latest(self) -> float:
        return self._samples[-1] if self._samples else 0.0

    def values(self) -> List[float]:
        return list(self._samples)

    def __len__(self) -> int:
        return len(self._samples)

    def __iter__(self) -> Iterator[float]:
        return iter(self._samples)

    def __repr__(self) -> str:
        return f"MetricSeries(len={len(self)}, capacity={self.capacity})"


def _reject_bool(value: Any) -> Any:
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    return value


# Strict: strings and booleans are rejected, ints are accepted
Number = Annotated[StrictFloat, BeforeValidator(_reject_bool)]
Percentage = Annotated[Number, Field(ge=0, le=100)]
Quantity = Annotated[Number, Field(ge=0)]


class ResourceData(BaseModel):
    """Per-dimension utilization samples for the current observation window."""

    model_config = ConfigDict(extra="ignore")

    cpu: List[Percentage] = Field(default_factory=list)
    memory: List[Percentage] = Field(default_factory=list)
    storage: List[Percentage] = Field(default_factory=list)
    network: List[Percentage] = Field(default_factory=list)

    def series(self, dimension: Dimension, capacity: int = SERIES_CAPACITY) -> MetricSeries:
        return MetricSeries(getattr(self, dimension.value), capacity=capacity)

    def latest(self) -> Dict[Dimension, float]:
        """Most recent sample per dimension, 0 when empty."""
        return {dim: self.series(dim).latest for dim in Dimension}


class MetricSummary(BaseModel):
    current: float = 0.0
    average: float = 0.0
    peak: float = 0.0
    utilization_percent: float = Field(0.0, ge=0, le=100)


class TrendResult(BaseModel):
    direction: TrendDirection = TrendDirection.INSUFFICIENT_DATA
    slope: float = 0.0
    confidence: float = Field(0.0, ge=0, le=1)

    @classmethod
    def insufficient(cls) -> "TrendResult":
        return cls(direction=TrendDirection.INSUFFICIENT_DATA, slope=0.0, confidence=0.0)


class ResourcePatterns(BaseModel):
    """Per-dimension trends plus the combined overall trend."""
    dimensions: Dict[Dimension, TrendResult] = Field(default_factory=dict)
    overall: TrendResult = Field(default_factory=TrendResult.insufficient)
    data_points: int = 0


class _RecommendationBase(BaseModel):
    """Common recommendation fields. Instances are immutable."""

    model_config = ConfigDict(frozen=True)

    dimension: Dimension
    action: RecommendationAction
    priority: Priority = Priority.LOW
    description: str
    current_value: float = 0.0
    target_value: Optional[float] = None
    estimated_savings: float = Field(0.0, ge=0, description="USD per hour")


class ResourceRecommendation(_RecommendationBase):
    source: Literal["resource_analysis"] = "resource_analysis"


class CostRecommendation(_RecommendationBase):
    source: Literal["cost_analysis"] = "cost_analysis"
    savings_percent: float = 0.0


class WasteRecommendation(_RecommendationBase):
    source: Literal["waste_detection"] = "waste_detection"
    savings_range: str = ""


Recommendation = Annotated[
    Union[ResourceRecommendation, CostRecommendation, WasteRecommendation],
    Field(discriminator="source")
]


class WasteAssessment(BaseModel):
    detected: bool = False
    score: float = Field(0.0, ge=0, le=1)
    flags: Dict[Dimension, bool] = Field(default_factory=dict)
    recommendations: List[WasteRecommendation] = Field(default_factory=list)


class ResourceAnalysis(BaseModel):
    """Output of a single resource analysis pass."""
    metrics: Dict[Dimension, MetricSummary]
    patterns: ResourcePatterns
    waste: WasteAssessment
    recommendations: List[ResourceRecommendation] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utc_now)


class MetricHistoryEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)
    metrics: Dict[Dimension, MetricSummary]


class PricingRate(BaseModel):
    """Rates for one dimension."""

    model_config = ConfigDict(frozen=True)

    per_hour: float = Field(0.0, ge=0, description="USD per unit-hour")
    per_unit_time: float = Field(0.0, ge=0, description="USD per unit-month")


class PricingSchedule(BaseModel):
    """Per-dimension pricing, immutable for the duration of a call."""

    model_config = ConfigDict(frozen=True)

    cpu: PricingRate = PricingRate(per_hour=0.05, per_unit_time=36.0)
    memory: PricingRate = PricingRate(per_hour=0.01, per_unit_time=7.2)
    storage: PricingRate = PricingRate(per_hour=0.1 / HOURS_PER_MONTH, per_unit_time=0.1)
    network: PricingRate = PricingRate(per_hour=0.09, per_unit_time=0.09 * HOURS_PER_MONTH)

    def rate(self, dimension: Dimension) -> PricingRate:
        return getattr(self, dimension.value)

    def hourly_rate(self, dimension: Dimension) -> float:
        """Applicable hourly rate; storage is billed monthly."""
        rate = self.rate(dimension)
        if dimension == Dimension.STORAGE:
            return rate.per_unit_time / HOURS_PER_DAY
        return rate.per_hour


class CostData(BaseModel):
    """Cost inputs for an optimization run."""

    model_config = ConfigDict(extra="ignore")

    pricing: Optional[PricingSchedule] = None
    quantities: Optional[Dict[Dimension, Quantity]] = None


class CostBreakdown(BaseModel):
    """Instant (hourly) cost per dimension."""
    cpu: float = 0.0
    memory: float = 0.0
    storage: float = 0.0
    network: float = 0.0
    total: float = 0.0

    def for_dimension(self, dimension: Dimension) -> float:
        return getattr(self, dimension.value)


class ProjectedCost(BaseModel):
    daily: float = 0.0
    monthly: float = 0.0
    yearly: float = 0.0
    breakdown: Dict[Dimension, float] = Field(default_factory=dict)


class CostTrend(TrendResult):
    change_percent: float = 0.0


class SavingsItem(BaseModel):
    dimension: Dimension
    savings: float
    percent: float


class CostSavings(BaseModel):
    total: float = 0.0
    percent: float = 0.0
    breakdown: List[SavingsItem] = Field(default_factory=list)


class CostAnalysis(BaseModel):
    """Output of a single cost analysis pass."""
    current: CostBreakdown
    projected: ProjectedCost
    trends: CostTrend
    recommendations: List[CostRecommendation] = Field(default_factory=list)
    savings: CostSavings
    timestamp: datetime = Field(default_factory=utc_now)


class CostHistoryEntry(BaseModel):
    timestamp: datetime = Field(default_factory=utc_now)
    cost: CostBreakdown


class OptimizationSavings(BaseModel):
    """Aggregate savings of a plan's recommendations."""
    total: float = 0.0
    percent: float = 0.0
    monthly: float = 0.0
    yearly: float = 0.0
    recommendations: int = 0


class ApplyResult(BaseModel):
    applied: bool = True
    timestamp: datetime = Field(default_factory=utc_now)
    changes: Dict[str, Any] = Field(default_factory=dict)


class RecommendationResult(BaseModel):
    recommendation: Recommendation
    status: ResultStatus
    result: Optional[ApplyResult] = None
    error: Optional[str] = None


def new_plan_id() -> str:
    return f"opt-{uuid.uuid4().hex[:12]}"


class OptimizationPlan(BaseModel):
    """
    A ranked set of recommendations built by one optimization run.

    Only `status`, `applied_at`, `results` and `error` ever change, and only
    through the orchestrator's apply workflow.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str = Field(default_factory=new_plan_id)
    created_at: datetime = Field(default_factory=utc_now)
    resource_analysis: ResourceAnalysis
    cost_analysis: CostAnalysis
    recommendations: Tuple[Recommendation, ...] = ()
    savings: OptimizationSavings = Field(default_factory=OptimizationSavings)
    options: Dict[str, Any] = Field(default_factory=dict)
    status: PlanStatus = PlanStatus.PENDING
    applied_at: Optional[datetime] = None
    results: Optional[List[RecommendationResult]] = None
    error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != PlanStatus.PENDING


class ApplyOutcome(BaseModel):
    plan_id: str
    status: PlanStatus
    results: List[RecommendationResult] = Field(default_factory=list)
    succeeded: int = 0
    failed: int = 0
    timestamp: datetime = Field(default_factory=utc_now)
