"""UserConfig: Forgiving, minimal user-facing configuration.

This schema accepts user inputs in a variety of formats, with aliases
for common naming patterns (e.g., DB_PATH → db_path, TIMEZONE → timezone).

UserConfig is intentionally minimal - users only specify what they want
to override from the expert defaults. Validation is lenient to accept
both uppercase and lowercase keys and to ignore unknown legacy keys.
"""

from typing import Literal, Optional
from pydantic import Field, field_validator
from isodash.schemas.base import IsodashBaseModel


class UserStoreConfig(IsodashBaseModel):
    """User-facing store config."""
    db_filename: Optional[str] = None
    timeout_sec: Optional[float] = None
    journal_mode: Optional[str] = None

    @field_validator("journal_mode", mode="before")
    @classmethod
    def normalize_journal_mode(cls, v):
        """Normalize journal mode to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class UserAggregationConfig(IsodashBaseModel):
    """User-facing aggregation config."""
    timezone: Optional[str] = None
    completed_status: Optional[str] = None


class UserViewsConfig(IsodashBaseModel):
    """User-facing view limits."""
    recent_limit: Optional[int] = None
    latest_limit: Optional[int] = None


class UserExportConfig(IsodashBaseModel):
    """User-facing export config."""
    format: Optional[str] = None
    compression: Optional[str] = None


class UserConfig(IsodashBaseModel):
    """User-facing configuration schema.

    Minimal, forgiving, and uses common aliases. Users only specify
    what they want to override from ParamConfig defaults.

    This config is converted to internal overrides during resolution.

    Usage
    -----
        user_cfg = UserConfig(
            base_dir="/data/isodash",
            timezone="Europe/Vienna",
            isotope_source="detections",
        )

        internal = resolve_config(param_cfg, user_cfg, cli_cfg)
    """

    # Top-level operational settings
    base_dir: Optional[str] = Field(None, alias="BASE_DIR")
    db_path: Optional[str] = Field(None, alias="DB_PATH")

    # Flat aliases
    timezone: Optional[str] = Field(None, alias="TIMEZONE")
    isotope_source: Optional[str] = Field(None, alias="ISOTOPE_SOURCE")
    recent_limit: Optional[int] = Field(None, alias="RECENT_LIMIT")
    export_format: Optional[str] = Field(None, alias="EXPORT_FORMAT")
    log_level: Optional[Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]] = Field(None, alias="LOG_LEVEL")

    # Nested overrides (advanced users)
    store: Optional[UserStoreConfig] = None
    aggregation: Optional[UserAggregationConfig] = None
    views: Optional[UserViewsConfig] = None
    export: Optional[UserExportConfig] = None

    model_config = IsodashBaseModel.model_config.copy()
    # Allow forgiving input dictionaries (ignore unknown legacy keys)
    model_config.update({"populate_by_name": True, "extra": "ignore"})

    @field_validator("isotope_source", "export_format", mode="before")
    @classmethod
    def normalize_names(cls, v):
        """Normalize enumerated names to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v):
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.upper().strip()
        return v

    def to_internal_overrides(self) -> dict:
        """Convert flat UserConfig to nested InternalConfig structure.

        Returns
        -------
        dict
            Nested dictionary matching InternalConfig structure
        """
        overrides = {}

        if self.base_dir is not None:
            overrides["base_dir"] = str(self.base_dir)
        if self.db_path is not None:
            overrides["db_path"] = str(self.db_path)

        if self.store is not None:
            store = self.store.model_dump(exclude_none=True)
            if store:
                overrides["store"] = store

        if self.isotope_source is not None:
            overrides["summary"] = {"isotope_source": self.isotope_source}

        # Aggregation section
        aggregation = {}
        if self.timezone is not None:
            aggregation["timezone"] = self.timezone
        if self.aggregation is not None:
            aggregation.update(self.aggregation.model_dump(exclude_none=True))
        if aggregation:
            overrides["aggregation"] = aggregation

        # Views section
        views = {}
        if self.recent_limit is not None:
            views["recent_limit"] = self.recent_limit
        if self.views is not None:
            views.update(self.views.model_dump(exclude_none=True))
        if views:
            overrides["views"] = views

        # Export section
        export = {}
        if self.export_format is not None:
            export["format"] = self.export_format
        if self.export is not None:
            export.update(self.export.model_dump(exclude_none=True))
        if export:
            overrides["export"] = export

        if self.log_level is not None:
            overrides["logging"] = {"level": self.log_level}

        return overrides
