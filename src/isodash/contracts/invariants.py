"""Formal engine invariants.

This file documents what each component MUST guarantee. Use it as a
reviewer anchor and system reference.
"""

ENGINE_INVARIANTS = {
    "session": [
        "confidence_threshold in (0, 1]",
        "total_peaks_found >= 0 and background_peaks >= 0",
        "Immutable after creation except status, metadata and updated_at",
    ],

    "detection": [
        "energy_kev > 0, counts >= 0, count_uncertainty >= 0",
        "relative_uncertainty = count_uncertainty / counts when counts > 0, else NULL",
        "Unique on (session_id, parent_isotope, daughter_isotope, energy_kev)",
    ],

    "mass_estimate": [
        "estimated_mass_g >= 0, mass_uncertainty_g >= 0",
        "relative_mass_uncertainty = mass_uncertainty_g / estimated_mass_g when mass > 0, else NULL",
        "Unique on (session_id, parent_isotope)",
    ],

    "summary": [
        "Exactly one row per session, replaced atomically with its inputs",
        "total_estimated_mass_g equals the sum of the session's mass estimates",
        "dominant_isotope is the largest mass, ties broken by smallest name",
        "mass_distribution fractions sum to 1 when total mass > 0, else all NULL",
    ],

    "plot": [
        "plot_type in {overview, mass-distribution, uncertainty, region-of-interest}",
        "region-of-interest metadata carries isotope and energy",
    ],

    "ownership": [
        "Deleting a session deletes its detections, mass estimates, plots and summary",
        "Cross-session statistics are computed at query time, never stored",
    ],
}
