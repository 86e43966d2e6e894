"""Session summary contract.

Enforces the guarantee that a freshly computed summary agrees with the
records it was computed from, before it replaces the stored summary.
"""

import math

from isodash.contracts.base import require

DISTRIBUTION_TOLERANCE = 1e-9


def assert_summary_consistent(summary, masses, n_detections: int) -> None:
    """Enforce summary contract.

    We do NOT re-derive the summary; we only check the invariants that
    must hold between it and its inputs.

    Parameters
    ----------
    summary : SessionSummary
        Output of summarize_session().
    masses : sequence of float
        Estimated masses of the session's mass estimates.
    n_detections : int
        Number of detection records in the session.

    Raises
    ------
    ContractViolation
        If any invariant is violated
    """
    masses = list(masses)
    total = math.fsum(masses)

    require(
        math.isclose(summary.total_estimated_mass_g, total, rel_tol=1e-12, abs_tol=0.0),
        f"Summary contract violated: total mass {summary.total_estimated_mass_g!r} != sum {total!r}"
    )
    require(
        summary.total_detections == n_detections,
        f"Summary contract violated: {summary.total_detections} detections, expected {n_detections}"
    )

    fractions = list(summary.mass_distribution.values())
    if total > 0:
        require(
            all(f is not None for f in fractions),
            "Summary contract violated: undefined fraction with positive total mass"
        )
        require(
            abs(math.fsum(fractions) - 1.0) <= DISTRIBUTION_TOLERANCE * max(1, len(fractions)),
            f"Summary contract violated: mass fractions sum to {math.fsum(fractions)!r}"
        )
    else:
        require(
            all(f is None for f in fractions),
            "Summary contract violated: fractions must be undefined when total mass is 0"
        )

    if summary.dominant_isotope is not None:
        require(
            summary.dominant_isotope in summary.mass_distribution,
            f"Summary contract violated: dominant isotope {summary.dominant_isotope!r} has no estimate"
        )
