"""Shared helpers: retries, logging setup and small numeric utilities."""

import logging.config
from pathlib import Path
from typing import Optional, Sequence, Tuple, Type, Union

import numpy as np
import structlog
import yaml
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = structlog.get_logger(__name__)

# Slope magnitude below which a series is considered flat
TREND_SLOPE_THRESHOLD = 0.1


def _log_retry(retry_state) -> None:
    logger.warning(
        "Retrying after failure",
        function=getattr(retry_state.fn, "__name__", "call"),
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception())
    )


def retry_with_backoff(
    max_attempts: int = 3,
    backoff_factor: float = 1.5,
    max_wait: float = 60.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
):
    """Retry with exponential backoff, re-raising the last error once attempts run out."""
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=backoff_factor, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
        reraise=True
    )


def setup_logging(config_path: Optional[Union[str, Path]] = None,
                  log_level: str = "INFO",
                  log_format: str = "text") -> None:
    """
    Configure stdlib logging and structlog.

    A YAML dictConfig file takes precedence over `log_level`. Events render as
    JSON when a config file is given or `log_format` is "json".
    """
    if config_path and Path(config_path).exists():
        with open(config_path, 'r') as f:
            logging.config.dictConfig(yaml.safe_load(f))
    else:
        logging.basicConfig(level=getattr(logging, log_level.upper()), format='%(message)s')

    json_output = bool(config_path) or log_format.lower() == "json"
    renderer = structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def linear_trend(values: Sequence[float]) -> Tuple[str, float, float]:
    """
    Fit a least-squares line over evenly spaced values.

    Returns (direction, slope, confidence) where confidence grows with
    |slope| and is capped at 1.0.
    """
    if len(values) < 2:
        return "stable", 0.0, 0.0

    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    x_centered = x - x.mean()
    slope = float(np.sum(x_centered * (y - y.mean())) / np.sum(x_centered ** 2))

    return trend_direction(slope), slope, min(abs(slope) * 0.1, 1.0)


def trend_direction(slope: float) -> str:
    """Classify a slope as increasing, decreasing or stable."""
    if slope > TREND_SLOPE_THRESHOLD:
        return "increasing"
    if slope < -TREND_SLOPE_THRESHOLD:
        return "decreasing"
    return "stable"


def percent_change(first: float, last: float) -> float:
    """Percentage change from first to last; 0 when first is 0."""
    if first == 0:
        return 0.0
    return (last - first) / first * 100


def format_currency(amount: float) -> str:
    """Format a USD amount for display."""
    return f"${amount:,.2f}"
