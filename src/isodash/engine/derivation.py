"""Derivation rules for relative uncertainties.

One pure function, ``relative_uncertainty``, computes every derived ratio
in the engine. The store calls ``derive_detection`` / ``derive_mass_estimate``
on every insert and on every update that touches a numerator or
denominator, before commit. Reapplying a rule to an already-derived row
returns the same value bit-for-bit because it only reads the source fields.

Undefined results are ``None`` (stored as SQL NULL), never 0 and never NaN.
"""

import logging
import math
from typing import Optional

__all__ = ['relative_uncertainty', 'derive_detection', 'derive_mass_estimate']

logger = logging.getLogger(__name__)


def relative_uncertainty(uncertainty: float, magnitude: float) -> Optional[float]:
    """Return ``uncertainty / magnitude``, or None when the ratio is undefined.

    Parameters
    ----------
    uncertainty : float
        Absolute uncertainty (numerator), >= 0.
    magnitude : float
        Measured magnitude (denominator): counts or grams.

    Returns
    -------
    float or None
        The ratio when ``magnitude > 0``, both inputs are finite and the
        quotient is finite, otherwise None.

    Examples
    --------
    >>> relative_uncertainty(5.0, 100.0)
    0.05
    >>> relative_uncertainty(3.0, 0.0) is None
    True
    """
    if uncertainty is None or magnitude is None:
        return None
    uncertainty = float(uncertainty)
    magnitude = float(magnitude)
    if not (math.isfinite(uncertainty) and math.isfinite(magnitude)):
        return None
    if magnitude <= 0:
        return None
    ratio = uncertainty / magnitude
    # Tiny magnitudes can overflow the quotient
    return ratio if math.isfinite(ratio) else None


def derive_detection(row: dict) -> dict:
    """Return a copy of a detection row with ``relative_uncertainty`` set."""
    derived = dict(row)
    derived["relative_uncertainty"] = relative_uncertainty(
        row["count_uncertainty"], row["counts"]
    )
    if derived["relative_uncertainty"] is None:
        logger.debug(
            "Relative uncertainty undefined for %s -> %s @ %s keV (counts=%s)",
            row.get("parent_isotope"), row.get("daughter_isotope"),
            row.get("energy_kev"), row["counts"],
        )
    return derived


def derive_mass_estimate(row: dict) -> dict:
    """Return a copy of a mass-estimate row with ``relative_mass_uncertainty`` set."""
    derived = dict(row)
    derived["relative_mass_uncertainty"] = relative_uncertainty(
        row["mass_uncertainty_g"], row["estimated_mass_g"]
    )
    return derived
