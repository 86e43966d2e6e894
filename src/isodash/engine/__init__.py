"""Engine: derivation rules, session summarizer, cross-session aggregator.

All functions are pure; persistence and transactions belong to the store.
"""

from isodash.engine.derivation import relative_uncertainty, derive_detection, derive_mass_estimate
from isodash.engine.summarizer import SessionSummary, summarize_session, session_isotopes
from isodash.engine.aggregator import (
    NO_DATA,
    FrequencyReport,
    isotope_frequency,
    mass_ranking,
    daily_rollup,
    dashboard_overview,
)

__all__ = [
    "relative_uncertainty",
    "derive_detection",
    "derive_mass_estimate",
    "SessionSummary",
    "summarize_session",
    "session_isotopes",
    "NO_DATA",
    "FrequencyReport",
    "isotope_frequency",
    "mass_ranking",
    "daily_rollup",
    "dashboard_overview",
]
