# src/rightsizer/config/settings.py
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Any, Dict, Literal, Optional
from enum import Enum
from dotenv import load_dotenv

from rightsizer.core.models import (
    COST_HISTORY_CAPACITY,
    HOURS_PER_MONTH,
    METRIC_HISTORY_CAPACITY,
    PricingRate,
    PricingSchedule,
    SERIES_CAPACITY,
)

# .env values become process env vars before any settings class reads them
load_dotenv()


class LogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class AnalysisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="ANALYSIS_")

    series_capacity: int = Field(SERIES_CAPACITY, gt=0, description="Max samples kept per dimension")
    metric_history_size: int = Field(METRIC_HISTORY_CAPACITY, gt=0, description="Metric snapshots retained")
    cost_history_size: int = Field(COST_HISTORY_CAPACITY, gt=0, description="Cost snapshots retained")


class ApplySettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="APPLY_")

    timeout_seconds: float = Field(30.0, gt=0, description="Timeout for a single recommendation")
    max_attempts: int = Field(1, ge=1, description="Attempts per recommendation")
    backoff_factor: float = Field(1.5, ge=0, description="Backoff factor between attempts")
    max_wait_seconds: float = Field(10.0, ge=0, description="Upper bound for a single backoff wait")
    dry_run: bool = Field(True, description="Simulate changes instead of mutating infrastructure")


class LedgerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LEDGER_")

    max_plans: int = Field(500, gt=0, description="Plans kept in memory before archiving")
    archive_path: Optional[str] = Field(None, description="JSON-lines file receiving evicted plans")


class PricingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PRICING_")

    cpu_per_hour: float = Field(0.05, ge=0)
    cpu_per_month: float = Field(36.0, ge=0)
    memory_per_hour: float = Field(0.01, ge=0)
    memory_per_month: float = Field(7.2, ge=0)
    storage_per_gb_month: float = Field(0.1, ge=0)
    network_per_gb: float = Field(0.09, ge=0)

    def to_schedule(self) -> PricingSchedule:
        return PricingSchedule(
            cpu=PricingRate(per_hour=self.cpu_per_hour, per_unit_time=self.cpu_per_month),
            memory=PricingRate(per_hour=self.memory_per_hour, per_unit_time=self.memory_per_month),
            storage=PricingRate(
                per_hour=self.storage_per_gb_month / HOURS_PER_MONTH,
                per_unit_time=self.storage_per_gb_month
            ),
            network=PricingRate(per_hour=self.network_per_gb, per_unit_time=self.network_per_gb * HOURS_PER_MONTH),
        )


class Settings(BaseSettings):
    """Process-wide settings; nested groups read their own env prefixes."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    environment: Environment = Field(Environment.DEVELOPMENT, description="Deployment environment")
    debug: bool = Field(False, description="Debug mode")
    log_level: LogLevel = Field(LogLevel.INFO, description="Root log level")
    log_format: Literal["text", "json"] = Field("text", description="Console or JSON log rendering")
    log_config_path: Optional[str] = Field(None, description="YAML logging dictConfig file")

    analysis: AnalysisSettings = Field(default_factory=lambda: AnalysisSettings())
    apply: ApplySettings = Field(default_factory=lambda: ApplySettings())
    ledger: LedgerSettings = Field(default_factory=lambda: LedgerSettings())
    pricing: PricingSettings = Field(default_factory=lambda: PricingSettings())

    @field_validator('environment', 'log_format', mode='before')
    @classmethod
    def lowercase_choice(cls, v):
        return v.lower() if isinstance(v, str) else v

    @field_validator('log_level', mode='before')
    @classmethod
    def uppercase_level(cls, v):
        return v.upper() if isinstance(v, str) else v

    @classmethod
    def create_from_env(cls) -> "Settings":
        """Read the process environment and an optional .env file."""
        return cls()

    def to_config(self) -> Dict[str, Any]:
        """Flatten into the plain config dict the analyzers and orchestrator take."""
        return {
            **self.analysis.model_dump(),
            "apply_timeout_seconds": self.apply.timeout_seconds,
            "apply_max_attempts": self.apply.max_attempts,
            "apply_backoff_factor": self.apply.backoff_factor,
            "apply_max_wait_seconds": self.apply.max_wait_seconds,
            "apply_dry_run": self.apply.dry_run,
            "ledger_max_plans": self.ledger.max_plans,
            "ledger_archive_path": self.ledger.archive_path,
        }
