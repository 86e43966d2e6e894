"""Tests for relative uncertainty derivation."""

import math

import pytest

from isodash.engine.derivation import derive_detection, derive_mass_estimate, relative_uncertainty

pytestmark = pytest.mark.unit


class TestRelativeUncertainty:

    def test_ratio(self):
        assert relative_uncertainty(5.0, 100.0) == 0.05

    def test_zero_magnitude_is_undefined(self):
        assert relative_uncertainty(3.0, 0.0) is None

    def test_zero_uncertainty_is_zero(self):
        assert relative_uncertainty(0.0, 10.0) == 0.0

    def test_non_finite_inputs_are_undefined(self):
        assert relative_uncertainty(math.inf, 10.0) is None
        assert relative_uncertainty(1.0, math.nan) is None

    def test_missing_inputs_are_undefined(self):
        assert relative_uncertainty(None, 10.0) is None
        assert relative_uncertainty(1.0, None) is None

    def test_overflowing_quotient_is_undefined(self):
        assert relative_uncertainty(1.0, 5e-324) is None
        assert relative_uncertainty(1e308, 1e-10) is None

    def test_accepts_integers(self):
        assert relative_uncertainty(1, 4) == 0.25


class TestDeriveRows:

    def test_detection_gets_relative_uncertainty(self):
        row = {"parent_isotope": "Cs-137", "daughter_isotope": "Ba-137m",
               "energy_kev": 661.7, "counts": 100.0, "count_uncertainty": 5.0}
        derived = derive_detection(row)

        assert derived["relative_uncertainty"] == 0.05
        assert "relative_uncertainty" not in row

    def test_detection_with_zero_counts_is_null(self):
        row = {"parent_isotope": "K-40", "daughter_isotope": "Ar-40",
               "energy_kev": 1460.8, "counts": 0.0, "count_uncertainty": 3.0}
        assert derive_detection(row)["relative_uncertainty"] is None

    def test_rederivation_is_stable(self):
        row = {"estimated_mass_g": 0.003, "mass_uncertainty_g": 0.0007}
        once = derive_mass_estimate(row)
        twice = derive_mass_estimate(once)

        assert once["relative_mass_uncertainty"] == twice["relative_mass_uncertainty"]
        assert once["relative_mass_uncertainty"] == 0.0007 / 0.003

    def test_mass_estimate_zero_mass_is_null(self):
        derived = derive_mass_estimate({"estimated_mass_g": 0.0, "mass_uncertainty_g": 0.0})
        assert derived["relative_mass_uncertainty"] is None
