from .exceptions import *
from .utils import *

__all__ = [
    "OptimizerException",
    "DataValidationException",
    "ConcurrencyException",
    "PlanNotFoundException",
    "InvalidPlanStateException",
    "ApplierException",
    "ConfigurationException",
    "StorageException",
    "retry_with_backoff",
    "setup_logging",
]
