from .appliers import Applier, DryRunApplier
from .ledger import JsonLinesPlanArchive, PlanLedger
from .orchestrator import OptimizationOrchestrator, OrchestratorState

__all__ = [
    "Applier",
    "DryRunApplier",
    "JsonLinesPlanArchive",
    "PlanLedger",
    "OptimizationOrchestrator",
    "OrchestratorState",
]
