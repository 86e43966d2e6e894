"""ParamConfig: Expert defaults for the isodash engine.

This module defines the complete default configuration. ALL engine
parameters must have defaults here. No runtime code should define
fallback values - this is the single source of truth for defaults.

Runtime code NEVER reads from ParamConfig directly - it only receives InternalConfig.
"""

from typing import Annotated, Literal, Optional
from zoneinfo import available_timezones

from pydantic import AfterValidator, Field, field_validator
from isodash.schemas.base import IsodashBaseModel


# =============================================================================
# Nested Configuration Models
# =============================================================================

class StoreConfig(IsodashBaseModel):
    """SQLite record store configuration."""
    db_filename: str = "isotope_analyses.db"
    timeout_sec: float = Field(30.0, gt=0, description="SQLite busy timeout in seconds")
    journal_mode: Literal["wal", "delete"] = "wal"


class SummaryConfig(IsodashBaseModel):
    """Session summary configuration.

    ``isotope_source`` is the one definition of "the isotopes of a session".
    It drives unique_parent_isotopes in summaries and every cross-session
    statistic (frequency, daily rollup, overview).
    """
    isotope_source: Literal["mass_estimates", "detections"] = "mass_estimates"

    @field_validator("isotope_source", mode="before")
    @classmethod
    def normalize_source(cls, v):
        """Normalize source names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


def check_timezone_name(v: str) -> str:
    """Reject unknown IANA zone names."""
    if v != "UTC" and v not in available_timezones():
        raise ValueError(f"Unknown timezone: {v}")
    return v


TimezoneName = Annotated[str, AfterValidator(check_timezone_name)]


class AggregationConfig(IsodashBaseModel):
    """Cross-session statistics configuration."""
    timezone: TimezoneName = Field("UTC", description="Canonical zone for daily rollups")
    completed_status: str = "completed"


class ViewsConfig(IsodashBaseModel):
    """Dashboard view limits."""
    recent_limit: int = Field(5, ge=1, description="Sessions shown in the overview")
    latest_limit: int = Field(50, ge=1, description="Rows in the latest-sessions view")


class ExportConfig(IsodashBaseModel):
    """View export configuration."""
    format: Literal["parquet", "csv"] = "parquet"
    compression: Literal["snappy", "gzip", "none"] = "snappy"


class LoggingConfig(IsodashBaseModel):
    """Logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


# =============================================================================
# Main ParamConfig
# =============================================================================

class ParamConfig(IsodashBaseModel):
    """Complete expert configuration with all defaults.

    This is the single source of truth for all engine parameters.
    Every tunable parameter MUST have a default here.

    Usage
    -----
    This config is NOT used directly by runtime code. It serves as the
    base layer in config resolution:

        internal_cfg = resolve_config(param_cfg, user_cfg, cli_cfg)

    Runtime code only sees InternalConfig.
    """

    base_dir: str = "./isodash_output"
    db_path: Optional[str] = None
    store: StoreConfig = Field(default_factory=StoreConfig)
    summary: SummaryConfig = Field(default_factory=SummaryConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    views: ViewsConfig = Field(default_factory=ViewsConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
