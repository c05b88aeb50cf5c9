# src/rightsizer/optimization/orchestrator.py
"""Optimization orchestrator: builds, records and applies optimization plans."""

import asyncio
import threading
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Set, Union

import structlog

from rightsizer.analytics.cost_analytics import CostAnalyzer
from rightsizer.analytics.ranking import calculate_optimization_savings, rank
from rightsizer.analytics.resource_analytics import ResourceAnalyzer
from rightsizer.core.exceptions import (
    ApplierException,
    ConcurrencyException,
    ConfigurationException,
    InvalidPlanStateException,
    PlanNotFoundException,
)
from rightsizer.core.models import (
    ApplyOutcome,
    ApplyResult,
    CostData,
    OptimizationPlan,
    PlanStatus,
    PricingSchedule,
    Recommendation,
    RecommendationResult,
    ResourceData,
    ResultStatus,
    utc_now,
)
from rightsizer.core.utils import retry_with_backoff
from rightsizer.core.validation import validate_cost_data, validate_resource_data
from rightsizer.optimization.appliers import Applier, DryRunApplier
from rightsizer.optimization.ledger import DEFAULT_MAX_PLANS, JsonLinesPlanArchive, PlanLedger

logger = structlog.get_logger(__name__)


class OrchestratorState(str, Enum):
    IDLE = "idle"
    OPTIMIZING = "optimizing"


class OptimizationOrchestrator:
    """
    Composes the resource analyzer, cost analyzer and ranker into plans.

    `optimize` is single-flight per instance: a second call while one is
    running fails immediately with ConcurrencyException. `apply_optimization`
    is not serialized against `optimize`; it applies a plan's recommendations
    one at a time in ranked order and tolerates individual failures.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 applier: Optional[Applier] = None,
                 pricing: Optional[PricingSchedule] = None,
                 ledger: Optional[PlanLedger] = None):
        self.config = config or {}
        self.logger = logger.bind(orchestrator="optimization")

        self.resource_analyzer = ResourceAnalyzer(self.config)
        self.cost_analyzer = CostAnalyzer(self.config, default_pricing=pricing)
        if applier is None and not self.config.get('apply_dry_run', True):
            raise ConfigurationException(
                "apply_dry_run is disabled but no applier was provided",
                {"setting": "APPLY_DRY_RUN"}
            )
        self.applier = applier or DryRunApplier()

        if ledger is None:
            archive_path = self.config.get('ledger_archive_path')
            ledger = PlanLedger(
                max_plans=self.config.get('ledger_max_plans', DEFAULT_MAX_PLANS),
                archive=JsonLinesPlanArchive(archive_path) if archive_path else None
            )
        self.ledger = ledger

        self.apply_timeout = self.config.get('apply_timeout_seconds', 30.0)
        self.apply_max_attempts = self.config.get('apply_max_attempts', 1)
        self.apply_backoff_factor = self.config.get('apply_backoff_factor', 1.5)
        self.apply_max_wait = self.config.get('apply_max_wait_seconds', 10.0)

        self._state = OrchestratorState.IDLE
        self._guard = threading.Lock()
        self._claims_lock = threading.Lock()
        self._applying: Set[str] = set()

    @classmethod
    def from_settings(cls, settings, applier: Optional[Applier] = None) -> "OptimizationOrchestrator":
        return cls(settings.to_config(), applier=applier, pricing=settings.pricing.to_schedule())

    @property
    def state(self) -> OrchestratorState:
        return self._state

    async def optimize(self, resource_data: Union[ResourceData, Mapping[str, Any], None],
                       cost_data: Union[CostData, Mapping[str, Any], None] = None,
                       options: Optional[Dict[str, Any]] = None) -> OptimizationPlan:
        """Analyze, rank and record a new pending optimization plan"""

        if not self._guard.acquire(blocking=False):
            self.logger.warning("Optimization rejected, another run is in progress")
            raise ConcurrencyException("optimize")

        self._state = OrchestratorState.OPTIMIZING
        try:
            data = validate_resource_data(resource_data)
            costs = validate_cost_data(cost_data)

            self.logger.info("Starting resource optimization")

            resource_analysis = await self.resource_analyzer.analyze(data)
            consumption = costs.quantities if costs.quantities is not None else data
            cost_analysis = await self.cost_analyzer.analyze(consumption, costs.pricing)

            recommendations = rank(resource_analysis, cost_analysis, resource_analysis.waste)

            plan = OptimizationPlan(
                resource_analysis=resource_analysis,
                cost_analysis=cost_analysis,
                recommendations=tuple(recommendations),
                savings=calculate_optimization_savings(recommendations, cost_analysis),
                options=dict(options or {})
            )
            self.ledger.append(plan)

            self.logger.info(
                "Resource optimization completed",
                plan_id=plan.id,
                recommendations=len(plan.recommendations),
                hourly_savings=plan.savings.total,
                monthly_savings=plan.savings.monthly
            )
            return plan

        except Exception as e:
            self.logger.error("Resource optimization failed", error=str(e))
            raise
        finally:
            self._state = OrchestratorState.IDLE
            self._guard.release()

    async def apply_optimization(self, plan_id: str, options: Optional[Dict[str, Any]] = None) -> ApplyOutcome:
        """
        Apply every recommendation of a pending plan, in ranked order.

        A failing recommendation is recorded and the rest still run; the plan
        ends up `applied` once the iteration completes. If the iteration
        itself is interrupted the plan is marked `failed` and the error is
        re-raised.
        """
        options = dict(options or {})
        plan = self._claim(plan_id)

        self.logger.info("Applying optimization", plan_id=plan_id, recommendations=len(plan.recommendations))
        try:
            results = []
            for recommendation in plan.recommendations:
                results.append(await self._apply_recommendation(recommendation, options))

            self.ledger.update(plan_id, status=PlanStatus.APPLIED, applied_at=utc_now(), results=results)

        except (Exception, asyncio.CancelledError) as e:
            self.logger.error("Failed to apply optimization", plan_id=plan_id, error=str(e) or type(e).__name__)
            self.ledger.update(plan_id, status=PlanStatus.FAILED, error=str(e) or type(e).__name__)
            raise
        finally:
            with self._claims_lock:
                self._applying.discard(plan_id)
            self.ledger.unpin(plan_id)

        succeeded = sum(1 for r in results if r.status == ResultStatus.SUCCESS)
        self.logger.info(
            "Optimization applied",
            plan_id=plan_id,
            succeeded=succeeded,
            failed=len(results) - succeeded
        )

        return ApplyOutcome(
            plan_id=plan_id,
            status=PlanStatus.APPLIED,
            results=results,
            succeeded=succeeded,
            failed=len(results) - succeeded
        )

    def _claim(self, plan_id: str) -> OptimizationPlan:
        """Check the plan is pending and reserve it for a single apply call"""
        with self._claims_lock:
            plan = self.ledger.get(plan_id)
            if plan is None:
                raise PlanNotFoundException(plan_id)
            if plan.status != PlanStatus.PENDING:
                raise InvalidPlanStateException(plan_id, plan.status.value)
            if plan_id in self._applying:
                raise InvalidPlanStateException(plan_id, "applying")
            # Pinned plans stay in memory until the terminal status is written
            if not self.ledger.pin(plan_id):
                raise InvalidPlanStateException(plan_id, "archived")
            self._applying.add(plan_id)
            return plan

    async def _apply_recommendation(self, recommendation: Recommendation,
                                    options: Dict[str, Any]) -> RecommendationResult:
        try:
            result = await self._call_applier(recommendation, options)
            return RecommendationResult(recommendation=recommendation, status=ResultStatus.SUCCESS, result=result)
        except Exception as e:
            error = e if isinstance(e, ApplierException) else ApplierException(
                recommendation.dimension.value, str(e) or type(e).__name__
            )
            self.logger.error(
                "Failed to apply recommendation",
                dimension=recommendation.dimension.value,
                action=recommendation.action.value,
                error=error.message
            )
            return RecommendationResult(recommendation=recommendation, status=ResultStatus.FAILED, error=error.message)

    async def _call_applier(self, recommendation: Recommendation, options: Dict[str, Any]) -> ApplyResult:
        dimension = recommendation.dimension.value

        @retry_with_backoff(
            max_attempts=self.apply_max_attempts,
            backoff_factor=self.apply_backoff_factor,
            max_wait=self.apply_max_wait
        )
        async def attempt() -> Any:
            try:
                return await asyncio.wait_for(
                    self.applier.apply(recommendation, options),
                    timeout=self.apply_timeout
                )
            except asyncio.TimeoutError:
                raise ApplierException(dimension, f"timed out after {self.apply_timeout}s")

        result = await attempt()
        if isinstance(result, ApplyResult):
            return result
        return ApplyResult.model_validate(result or {})

    def get_optimization_history(self) -> List[OptimizationPlan]:
        return self.ledger.history()

    def get_optimization_status(self, plan_id: str) -> Optional[OptimizationPlan]:
        return self.ledger.get(plan_id)

    def get_latest_recommendations(self) -> List[Recommendation]:
        """Recommendations of the most recently created plan, if any"""
        latest = self.ledger.latest()
        return list(latest.recommendations) if latest else []
