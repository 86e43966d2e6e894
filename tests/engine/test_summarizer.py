"""Tests for per-session summary computation."""

import math

import pandas as pd
import pytest

from isodash.contracts import ValidationError
from isodash.engine.summarizer import SessionSummary, session_isotopes, summarize_session

pytestmark = pytest.mark.unit


def _mass(isotope, grams, unc=0.0):
    return {"parent_isotope": isotope, "estimated_mass_g": grams, "mass_uncertainty_g": unc}


class TestSummarizeSession:

    def test_two_isotope_session(self, cs_co_detections, cs_co_masses):
        summary = summarize_session(cs_co_detections, cs_co_masses)

        assert summary.total_estimated_mass_g == pytest.approx(0.003)
        assert summary.total_detections == 3
        assert summary.unique_parent_isotopes == 2
        assert summary.dominant_isotope == "Cs-137"
        assert summary.mass_distribution["Cs-137"] == pytest.approx(2 / 3)
        assert summary.mass_distribution["Co-60"] == pytest.approx(1 / 3)

    def test_fractions_sum_to_one(self):
        masses = [_mass("A", 0.1), _mass("B", 0.2), _mass("C", 0.7)]
        summary = summarize_session([], masses)

        assert math.fsum(summary.mass_distribution.values()) == pytest.approx(1.0, abs=1e-12)

    def test_empty_session(self):
        summary = summarize_session([], [])

        assert summary.total_estimated_mass_g == 0.0
        assert summary.total_detections == 0
        assert summary.unique_parent_isotopes == 0
        assert summary.dominant_isotope is None
        assert summary.mass_distribution == {}

    def test_zero_total_mass_leaves_fractions_undefined(self):
        summary = summarize_session([], [_mass("Cs-137", 0.0), _mass("Co-60", 0.0)])

        assert summary.total_estimated_mass_g == 0.0
        assert summary.mass_distribution == {"Co-60": None, "Cs-137": None}
        # Tie at zero goes to the smallest name
        assert summary.dominant_isotope == "Co-60"

    def test_dominant_tie_goes_to_smallest_name(self):
        summary = summarize_session([], [_mass("Eu-152", 0.5), _mass("Am-241", 0.5)])
        assert summary.dominant_isotope == "Am-241"

    def test_detections_only_session(self, cs_co_detections):
        summary = summarize_session(cs_co_detections, [])

        assert summary.total_detections == 3
        assert summary.unique_parent_isotopes == 0
        assert summary.dominant_isotope is None

    def test_isotope_source_detections(self, cs_co_detections):
        summary = summarize_session(cs_co_detections, [], isotope_source="detections")
        assert summary.unique_parent_isotopes == 2

    def test_accepts_dataframes(self, cs_co_detections, cs_co_masses):
        summary = summarize_session(pd.DataFrame(cs_co_detections), pd.DataFrame(cs_co_masses),
                                    session_id="abc")
        assert summary.session_id == "abc"
        assert summary.dominant_isotope == "Cs-137"

    def test_exact_total(self):
        masses = [_mass(f"X-{i}", 0.1) for i in range(10)]
        assert summarize_session([], masses).total_estimated_mass_g == 1.0


class TestSessionIsotopes:

    def test_sorted_distinct(self, cs_co_detections):
        assert session_isotopes(cs_co_detections, [], "detections") == ["Co-60", "Cs-137"]

    def test_invalid_source(self):
        with pytest.raises(ValueError, match="Invalid isotope_source"):
            session_isotopes([], [], "plots")


class TestSummaryRow:

    def test_row_roundtrip(self, cs_co_masses):
        summary = summarize_session([], cs_co_masses, session_id="s1")
        restored = SessionSummary.from_row(summary.to_row())

        assert restored == summary

    def test_distribution_json_is_key_sorted(self, cs_co_masses):
        row = summarize_session([], cs_co_masses).to_row()
        assert row["mass_distribution"].index("Co-60") < row["mass_distribution"].index("Cs-137")


def test_overflowing_total_mass_rejected():
    with pytest.raises(ValidationError, match="not finite"):
        summarize_session([], [_mass("A", 1e308), _mass("B", 1e308)])
