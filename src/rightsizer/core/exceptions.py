"""Custom exceptions for the rightsizing optimizer."""

from typing import Optional, Dict, Any


class OptimizerException(Exception):
    """Base exception for the rightsizing optimizer."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class DataValidationException(OptimizerException):
    """Raised when input data is malformed or missing required values."""

    def __init__(self, field: str, value: Any, message: str):
        self.field = field
        self.value = value
        super().__init__(f"Validation failed for {field}: {message}", {"field": field})


class ConcurrencyException(OptimizerException):
    """Raised when an optimization is requested while another is in flight."""

    def __init__(self, operation: str = "optimize"):
        self.operation = operation
        super().__init__(f"{operation} already in progress", {"operation": operation})


class PlanNotFoundException(OptimizerException):
    """Raised when an optimization plan id is unknown."""

    def __init__(self, plan_id: str):
        self.plan_id = plan_id
        super().__init__(f"Optimization plan not found: {plan_id}", {"plan_id": plan_id})


class InvalidPlanStateException(OptimizerException):
    """Raised when applying a plan that is no longer pending."""

    def __init__(self, plan_id: str, status: str):
        self.plan_id = plan_id
        self.status = status
        super().__init__(
            f"Optimization plan {plan_id} is {status}, expected pending",
            {"plan_id": plan_id, "status": status}
        )


class ApplierException(OptimizerException):
    """Raised when applying a single recommendation fails."""

    def __init__(self, dimension: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.dimension = dimension
        super().__init__(f"Apply failed for {dimension}: {message}", details)


class ConfigurationException(OptimizerException):
    """Raised when configuration is invalid."""
    pass


class StorageException(OptimizerException):
    """Raised when plan archive operations fail."""
    pass
