"""Validation utilities turning raw caller input into typed models."""

from typing import Any, Dict, Mapping, NoReturn, Optional, Union

import structlog
from pydantic import ValidationError

from rightsizer.core.exceptions import DataValidationException
from rightsizer.core.models import CostData, Dimension, PricingSchedule, ResourceData

logger = structlog.get_logger(__name__)


def _raise_from(exc: ValidationError, prefix: str) -> NoReturn:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ()))
    field = f"{prefix}.{location}" if location else prefix
    logger.warning("Input validation failed", field=field, error=error.get("msg"))
    raise DataValidationException(field, error.get("input"), error.get("msg", "invalid value")) from exc


def validate_resource_data(data: Union[ResourceData, Mapping[str, Any], None]) -> ResourceData:
    """Validate per-dimension sample arrays. Missing dimensions become empty series."""
    if isinstance(data, ResourceData):
        return data
    if data is None:
        return ResourceData()
    if not isinstance(data, Mapping):
        raise DataValidationException("resource_data", data, "expected a mapping of dimension to samples")

    cleaned = {key: ([] if value is None else value) for key, value in data.items()}
    try:
        return ResourceData.model_validate(cleaned)
    except ValidationError as e:
        _raise_from(e, "resource_data")


def validate_pricing(pricing: Union[PricingSchedule, Mapping[str, Any], None],
                     default: Optional[PricingSchedule] = None) -> PricingSchedule:
    """Validate a pricing schedule, falling back to `default` when absent."""
    if isinstance(pricing, PricingSchedule):
        return pricing
    if pricing is None:
        return default or PricingSchedule()
    if not isinstance(pricing, Mapping):
        raise DataValidationException("pricing", pricing, "expected a mapping of dimension to rates")
    try:
        return PricingSchedule.model_validate(pricing)
    except ValidationError as e:
        _raise_from(e, "pricing")


def validate_cost_data(cost_data: Union[CostData, Mapping[str, Any], None]) -> CostData:
    """Validate cost inputs (pricing and optional provisioned quantities)."""
    if isinstance(cost_data, CostData):
        return cost_data
    if cost_data is None:
        return CostData()
    if not isinstance(cost_data, Mapping):
        raise DataValidationException("cost_data", cost_data, "expected a mapping")
    try:
        return CostData.model_validate(cost_data)
    except ValidationError as e:
        _raise_from(e, "cost_data")


def validate_quantities(quantities: Mapping[Any, Any]) -> Dict[Dimension, float]:
    """Coerce a consumption mapping to non-negative floats per dimension."""
    result = {dim: 0.0 for dim in Dimension}
    for key, value in quantities.items():
        try:
            dimension = Dimension(key)
        except ValueError:
            continue
        if value is None:
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise DataValidationException(f"quantities.{dimension.value}", value, "must be a number")
        if value < 0:
            raise DataValidationException(f"quantities.{dimension.value}", value, "must not be negative")
        result[dimension] = float(value)
    return result
