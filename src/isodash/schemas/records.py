"""Inbound record schemas for the external analysis producer.

These models define field invariants only. Natural-key uniqueness
(per-session peaks and per-session parent isotopes) is enforced by the
store, which sees existing records. Derived fields (relative
uncertainties, summaries) are never accepted from the producer.
"""

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import Field, field_validator, model_validator
from isodash.schemas.base import IsodashBaseModel

PLOT_TYPES = ("overview", "mass-distribution", "uncertainty", "region-of-interest")
SESSION_STATUSES = ("pending", "completed", "failed")

# Accepted spellings for plot types
_PLOT_TYPE_ALIASES = {
    "overview": "overview",
    "mass_distribution": "mass-distribution",
    "mass-distribution": "mass-distribution",
    "uncertainty": "uncertainty",
    "uncertainties": "uncertainty",
    "roi": "region-of-interest",
    "region_of_interest": "region-of-interest",
    "region-of-interest": "region-of-interest",
}


class RecordBaseModel(IsodashBaseModel):
    """Base for producer records: immutable, finite numbers, unknown keys dropped."""

    model_config = IsodashBaseModel.model_config.copy()
    model_config.update({"extra": "ignore", "frozen": True, "allow_inf_nan": False})


class SessionInput(RecordBaseModel):
    """One completed analysis run."""
    analysis_id: Optional[str] = Field(None, min_length=1)
    sample_name: str = Field(min_length=1)
    background_name: Optional[str] = None
    confidence_threshold: float = Field(gt=0, le=1)
    timestamp: datetime
    status: Literal["pending", "completed", "failed"] = "completed"
    total_peaks_found: int = Field(0, ge=0)
    background_peaks: int = Field(0, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("timestamp")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v):
        """Normalize status to lowercase."""
        if isinstance(v, str):
            return v.lower().strip()
        return v


class DetectionInput(RecordBaseModel):
    """One identified gamma peak."""
    parent_isotope: str = Field(min_length=1)
    daughter_isotope: str = Field(min_length=1)
    energy_kev: float = Field(gt=0)
    counts: float = Field(ge=0)
    count_uncertainty: float = Field(ge=0)

    @property
    def key(self) -> tuple:
        return (self.parent_isotope, self.daughter_isotope, self.energy_kev)


class MassEstimateInput(RecordBaseModel):
    """One parent-isotope mass estimate, in grams."""
    parent_isotope: str = Field(min_length=1)
    estimated_mass_g: float = Field(ge=0)
    mass_uncertainty_g: float = Field(ge=0)


class PlotInput(RecordBaseModel):
    """Opaque plot artifact.

    Region-of-interest plots must name the isotope and energy window in
    ``metadata``; the plot catalog orders on them.
    """
    plot_type: Literal["overview", "mass-distribution", "uncertainty", "region-of-interest"]
    title: str = ""
    payload: bytes = b""
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("plot_type", mode="before")
    @classmethod
    def normalize_plot_type(cls, v):
        """Map common spellings onto the canonical plot type names."""
        if isinstance(v, str):
            key = v.lower().strip()
            return _PLOT_TYPE_ALIASES.get(key, key)
        return v

    @model_validator(mode="after")
    def require_roi_metadata(self):
        if self.plot_type != "region-of-interest":
            return self
        isotope = self.metadata.get("isotope")
        energy = self.metadata.get("energy")
        if not isinstance(isotope, str) or not isotope.strip():
            raise ValueError("region-of-interest plot requires metadata['isotope']")
        if isinstance(energy, bool) or not isinstance(energy, (int, float)) or not energy > 0:
            raise ValueError("region-of-interest plot requires a positive metadata['energy']")
        return self
