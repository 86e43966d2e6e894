"""InternalConfig: Authoritative runtime configuration.

This is the ONLY config schema that runtime code sees. It is fully validated,
normalized, and contains NO optional fields that engine code depends on.

All .get() calls, fallback defaults, and validation logic are FORBIDDEN in
runtime code - everything is explicit here.
"""

from pathlib import Path
from typing import Literal, Optional
from pydantic import Field, ConfigDict
from isodash.schemas.base import IsodashBaseModel
from isodash.schemas.param import TimezoneName


# =============================================================================
# Nested Configuration Models (Runtime)
# =============================================================================

class InternalStoreConfig(IsodashBaseModel):
    """Runtime store configuration."""
    db_filename: str
    timeout_sec: float = Field(gt=0)
    journal_mode: Literal["wal", "delete"]


class InternalSummaryConfig(IsodashBaseModel):
    """Runtime summary configuration."""
    isotope_source: Literal["mass_estimates", "detections"]


class InternalAggregationConfig(IsodashBaseModel):
    """Runtime aggregation configuration."""
    timezone: TimezoneName
    completed_status: str


class InternalViewsConfig(IsodashBaseModel):
    """Runtime view limits."""
    recent_limit: int = Field(ge=1)
    latest_limit: int = Field(ge=1)


class InternalExportConfig(IsodashBaseModel):
    """Runtime export configuration."""
    format: Literal["parquet", "csv"]
    compression: Literal["snappy", "gzip", "none"]


class InternalLoggingConfig(IsodashBaseModel):
    """Runtime logging configuration."""
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


# =============================================================================
# Main InternalConfig
# =============================================================================

class InternalConfig(IsodashBaseModel):
    """Authoritative runtime configuration.

    This is the ONLY configuration schema that engine code sees.
    It is fully validated, immutable, and contains explicit values for
    all parameters.

    Usage
    -----
    Runtime modules receive InternalConfig and access fields directly:

        def __init__(self, config: InternalConfig):
            self.isotope_source = config.summary.isotope_source  # NOT .get()
            self.timezone = config.aggregation.timezone

    Rules
    -----
    - NO .get() calls
    - NO fallback defaults
    - NO validation

    All of that happens during config resolution, not in runtime code.
    """

    base_dir: str
    db_path: Optional[str]
    store: InternalStoreConfig
    summary: InternalSummaryConfig
    aggregation: InternalAggregationConfig
    views: InternalViewsConfig
    export: InternalExportConfig
    logging: InternalLoggingConfig

    model_config = ConfigDict(
        extra='forbid',
        validate_assignment=True,
        use_enum_values=True,
        str_strip_whitespace=True,
        frozen=True,  # Immutable after construction
    )

    @property
    def database_path(self) -> Path:
        """Resolved SQLite path: explicit db_path, else base_dir/db/<db_filename>."""
        if self.db_path:
            return Path(self.db_path).expanduser()
        return Path(self.base_dir).expanduser() / "db" / self.store.db_filename
