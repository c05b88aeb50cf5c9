"""Append-only ledger of optimization plans."""

import threading
from collections import OrderedDict
from pathlib import Path
from typing import Any, Iterator, List, Optional, Set, Union

import structlog

from rightsizer.core.exceptions import PlanNotFoundException, StorageException
from rightsizer.core.models import OptimizationPlan

logger = structlog.get_logger(__name__)

DEFAULT_MAX_PLANS = 500


class JsonLinesPlanArchive:
    """Plans evicted from memory, one JSON document per line."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self.logger = logger.bind(archive=str(self.path))

    def append(self, plan: OptimizationPlan) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, 'a', encoding='utf-8') as f:
                f.write(plan.model_dump_json() + "\n")
        except OSError as e:
            self.logger.error("Failed to archive plan", plan_id=plan.id, error=str(e))
            raise StorageException(f"Failed to archive plan {plan.id}: {e}")

    def __iter__(self) -> Iterator[OptimizationPlan]:
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                for line in f:
                    if line.strip():
                        yield OptimizationPlan.model_validate_json(line)
        except OSError as e:
            self.logger.error("Failed to read plan archive", error=str(e))
            raise StorageException(f"Failed to read plan archive: {e}")

    def get(self, plan_id: str) -> Optional[OptimizationPlan]:
        for plan in self:
            if plan.id == plan_id:
                return plan
        return None


class PlanLedger:
    """
    Append-only record of every plan created.

    At most `max_plans` plans stay in memory; older ones are evicted FIFO into
    the archive when one is configured, otherwise they are dropped. A pinned
    plan (one being applied) is never evicted: eviction waits until it is
    unpinned, so the terminal status is what reaches the archive. Callers
    only ever receive deep copies, so reads are stable until the next write.
    """

    def __init__(self, max_plans: int = DEFAULT_MAX_PLANS, archive: Optional[JsonLinesPlanArchive] = None):
        self.max_plans = max_plans
        self.archive = archive
        self._plans: "OrderedDict[str, OptimizationPlan]" = OrderedDict()
        self._pinned: Set[str] = set()
        self._lock = threading.RLock()
        self.logger = logger.bind(component="plan_ledger")

    def append(self, plan: OptimizationPlan) -> None:
        with self._lock:
            if plan.id in self._plans:
                raise ValueError(f"Plan {plan.id} already recorded")
            self._plans[plan.id] = plan.model_copy(deep=True)
            self._evict()

    def _evict(self) -> None:
        # Strict FIFO: a pinned head blocks eviction rather than being skipped
        while len(self._plans) > self.max_plans:
            oldest = next(iter(self._plans))
            if oldest in self._pinned:
                self.logger.debug("Eviction deferred for pinned plan", plan_id=oldest, live=len(self._plans))
                return
            evicted = self._plans.pop(oldest)
            if self.archive is not None:
                self.archive.append(evicted)
                self.logger.info("Plan archived", plan_id=evicted.id, status=evicted.status.value)
            else:
                self.logger.warning("Plan evicted without archive", plan_id=evicted.id)

    def pin(self, plan_id: str) -> bool:
        """Keep a live plan in memory until `unpin`. False if it is not live."""
        with self._lock:
            if plan_id not in self._plans:
                return False
            self._pinned.add(plan_id)
            return True

    def unpin(self, plan_id: str) -> None:
        with self._lock:
            self._pinned.discard(plan_id)
            self._evict()

    def update(self, plan_id: str, **fields: Any) -> OptimizationPlan:
        """
        Replace the live plan with a validated copy carrying `fields`.

        All fields are applied or none are. Only the orchestrator calls this.
        """
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is None:
                raise PlanNotFoundException(plan_id)
            candidate = plan.model_copy(deep=True)
            for name, value in fields.items():
                setattr(candidate, name, value)
            self._plans[plan_id] = candidate
            return candidate.model_copy(deep=True)

    def is_live(self, plan_id: str) -> bool:
        with self._lock:
            return plan_id in self._plans

    def get(self, plan_id: str) -> Optional[OptimizationPlan]:
        with self._lock:
            plan = self._plans.get(plan_id)
            if plan is not None:
                return plan.model_copy(deep=True)
        if self.archive is not None:
            return self.archive.get(plan_id)
        return None

    def history(self) -> List[OptimizationPlan]:
        """All recorded plans in insertion order, archived ones first."""
        with self._lock:
            archived = list(self.archive) if self.archive is not None else []
            live = [plan.model_copy(deep=True) for plan in self._plans.values()]
        return archived + live

    def latest(self) -> Optional[OptimizationPlan]:
        with self._lock:
            if not self._plans:
                return None
            return next(reversed(self._plans.values())).model_copy(deep=True)

    def __len__(self) -> int:
        with self._lock:
            return len(self._plans)
