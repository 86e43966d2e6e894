"""Per-session aggregate figures.

Computes one AnalysisSummary from the full set of a session's detection
and mass-estimate records. The function is pure: the store decides when to
call it (every write touching the session's detections or estimates) and
replaces the stored summary in the same transaction.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

import pandas as pd

from isodash.contracts import ValidationError

__all__ = ['SessionSummary', 'summarize_session', 'session_isotopes', 'ISOTOPE_SOURCES']

logger = logging.getLogger(__name__)

ISOTOPE_SOURCES = ("mass_estimates", "detections")

Records = Union[pd.DataFrame, List[dict], None]


@dataclass(frozen=True)
class SessionSummary:
    """Aggregate record for one analysis session.

    ``mass_distribution`` maps isotope → fraction of total mass; every
    fraction is None when the total mass is zero.
    """
    total_estimated_mass_g: float
    total_detections: int
    unique_parent_isotopes: int
    dominant_isotope: Optional[str]
    mass_distribution: Dict[str, Optional[float]] = field(default_factory=dict)
    session_id: Optional[str] = None

    def to_row(self) -> dict:
        """Flatten for storage; mass_distribution becomes sorted-key JSON."""
        return {
            "session_id": self.session_id,
            "total_estimated_mass_g": self.total_estimated_mass_g,
            "total_detections": self.total_detections,
            "unique_parent_isotopes": self.unique_parent_isotopes,
            "dominant_isotope": self.dominant_isotope,
            "mass_distribution": json.dumps(self.mass_distribution, sort_keys=True),
        }

    @classmethod
    def from_row(cls, row) -> "SessionSummary":
        return cls(
            session_id=row["session_id"],
            total_estimated_mass_g=float(row["total_estimated_mass_g"]),
            total_detections=int(row["total_detections"]),
            unique_parent_isotopes=int(row["unique_parent_isotopes"]),
            dominant_isotope=row["dominant_isotope"],
            mass_distribution=json.loads(row["mass_distribution"]),
        )


def _frame(records: Records, columns: List[str]) -> pd.DataFrame:
    if records is None:
        return pd.DataFrame(columns=columns)
    df = records if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
    if df.empty:
        return pd.DataFrame(columns=columns)
    return df


def session_isotopes(detections: Records, mass_estimates: Records,
                     isotope_source: str = "mass_estimates") -> List[str]:
    """Distinct parent isotopes of one session, sorted by name.

    ``isotope_source`` selects which record kind defines the set. The same
    choice must be used everywhere a session's isotopes are counted.
    """
    if isotope_source not in ISOTOPE_SOURCES:
        raise ValueError(f"Invalid isotope_source: {isotope_source}. Must be one of {ISOTOPE_SOURCES}")
    records = mass_estimates if isotope_source == "mass_estimates" else detections
    df = _frame(records, ["parent_isotope"])
    return sorted(df["parent_isotope"].dropna().unique().tolist())


def summarize_session(detections: Records, mass_estimates: Records,
                      isotope_source: str = "mass_estimates",
                      session_id: Optional[str] = None) -> SessionSummary:
    """Compute the summary for one session.

    Parameters
    ----------
    detections : DataFrame or list of dict
        The session's detection records (``parent_isotope`` column required
        when ``isotope_source == "detections"``).
    mass_estimates : DataFrame or list of dict
        The session's mass estimates, with ``parent_isotope`` and
        ``estimated_mass_g``.
    isotope_source : {"mass_estimates", "detections"}
        Which records define ``unique_parent_isotopes``.
    session_id : str, optional
        Carried through to the result.

    Returns
    -------
    SessionSummary
        - total_estimated_mass_g: exact sum (math.fsum), 0.0 with no estimates
        - dominant_isotope: largest mass; ties go to the smallest name;
          None with no estimates
        - mass_distribution: mass / total, or None per isotope when total is 0

    Raises
    ------
    ValidationError
        If the masses sum past the float range.
    """
    det = _frame(detections, ["parent_isotope"])
    masses = _frame(mass_estimates, ["parent_isotope", "estimated_mass_g"])

    values = masses["estimated_mass_g"].astype(float).tolist()
    try:
        total = math.fsum(values)
    except OverflowError as exc:
        raise ValidationError("total estimated mass is not finite") from exc

    dominant = None
    distribution: Dict[str, Optional[float]] = {}
    if len(masses) > 0:
        ordered = masses.assign(estimated_mass_g=masses["estimated_mass_g"].astype(float))
        ordered = ordered.sort_values(
            ["estimated_mass_g", "parent_isotope"], ascending=[False, True], kind="mergesort"
        )
        dominant = str(ordered["parent_isotope"].iloc[0])

        for isotope, mass in zip(masses["parent_isotope"], values):
            distribution[str(isotope)] = (mass / total) if total > 0 else None
        distribution = dict(sorted(distribution.items()))

    summary = SessionSummary(
        session_id=session_id,
        total_estimated_mass_g=total,
        total_detections=int(len(det)),
        unique_parent_isotopes=len(session_isotopes(det, masses, isotope_source)),
        dominant_isotope=dominant,
        mass_distribution=distribution,
    )
    logger.debug(
        "Summary %s: total=%.6g g, detections=%d, isotopes=%d, dominant=%s",
        session_id, total, summary.total_detections,
        summary.unique_parent_isotopes, dominant,
    )
    return summary
