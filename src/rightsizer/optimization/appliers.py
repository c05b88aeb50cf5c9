"""Appliers perform the infrastructure change a recommendation describes."""

import asyncio
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import structlog

from rightsizer.core.models import ApplyResult, Recommendation

logger = structlog.get_logger(__name__)


@runtime_checkable
class Applier(Protocol):
    """External collaborator that mutates a resource allocation."""

    async def apply(self, recommendation: Recommendation, options: Dict[str, Any]) -> ApplyResult:
        ...


class DryRunApplier:
    """Simulates applying recommendations without touching infrastructure."""

    def __init__(self, delay_seconds: float = 0.0):
        self.delay_seconds = delay_seconds
        self.logger = logger.bind(applier="dry_run")

    async def apply(self, recommendation: Recommendation, options: Optional[Dict[str, Any]] = None) -> ApplyResult:
        self.logger.info(
            "Simulating recommendation",
            dimension=recommendation.dimension.value,
            action=recommendation.action.value,
            source=recommendation.source
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)

        return ApplyResult(
            applied=True,
            changes={
                "dimension": recommendation.dimension.value,
                "action": recommendation.action.value,
                "before": recommendation.current_value,
                "after": recommendation.target_value,
                "dry_run": True,
            }
        )
