"""Tests for engine contracts.

These tests verify that contracts reject bad input and inconsistent
derived records directly, without going through the store.
"""

import pytest

pytestmark = pytest.mark.unit

from isodash.contracts import (
    ContractViolation,
    NotFoundError,
    ValidationError,
    assert_summary_consistent,
    assert_unique_keys,
    require,
    validate_record,
    validate_records,
)
from isodash.engine.summarizer import SessionSummary, summarize_session
from isodash.schemas import DetectionInput, MassEstimateInput


class TestRequire:

    def test_passes(self):
        require(True, "never raised")

    def test_fails(self):
        with pytest.raises(ContractViolation, match="boom"):
            require(False, "boom")


class TestErrorTaxonomy:

    def test_validation_error_is_value_error(self):
        err = ValidationError("bad batch", ["a", "b"])
        assert isinstance(err, ValueError)
        assert err.errors == ["a", "b"]

    def test_validation_error_defaults_errors_to_message(self):
        assert ValidationError("bad").errors == ["bad"]

    def test_not_found_is_lookup_error(self):
        assert issubclass(NotFoundError, LookupError)


class TestRecordValidation:

    def test_validate_record_returns_model(self):
        m = validate_record(MassEstimateInput, {"parent_isotope": "Cs-137",
                                                "estimated_mass_g": 0.1,
                                                "mass_uncertainty_g": 0.01})
        assert m.parent_isotope == "Cs-137"

    def test_validate_record_passes_instances_through(self):
        m = MassEstimateInput(parent_isotope="Cs-137", estimated_mass_g=0.1, mass_uncertainty_g=0.0)
        assert validate_record(MassEstimateInput, m) is m

    def test_non_finite_rejected(self):
        with pytest.raises(ValidationError):
            validate_record(MassEstimateInput, {"parent_isotope": "Cs-137",
                                                "estimated_mass_g": float("nan"),
                                                "mass_uncertainty_g": 0.0})

    def test_batch_collects_all_errors(self):
        rows = [
            {"parent_isotope": "", "daughter_isotope": "Ba-137m",
             "energy_kev": 661.7, "counts": 1.0, "count_uncertainty": 0.0},
            {"parent_isotope": "Cs-137", "daughter_isotope": "Ba-137m",
             "energy_kev": 661.7, "counts": 1.0, "count_uncertainty": 0.0},
            {"parent_isotope": "Cs-137", "daughter_isotope": "Ba-137m",
             "energy_kev": -5.0, "counts": 1.0, "count_uncertainty": 0.0},
        ]
        with pytest.raises(ValidationError) as exc_info:
            validate_records(DetectionInput, rows, "detection")

        errors = exc_info.value.errors
        assert len(errors) == 2
        assert errors[0].startswith("detection[0]")
        assert errors[1].startswith("detection[2]")

    def test_empty_batch(self):
        assert validate_records(DetectionInput, [], "detection") == []


class TestUniqueKeys:

    def test_unique_batch_passes(self):
        assert_unique_keys([("a",), ("b",)], "mass estimate")

    def test_repeat_within_batch(self):
        with pytest.raises(ValidationError, match="duplicate key"):
            assert_unique_keys([("a",), ("a",)], "mass estimate")

    def test_repeat_against_existing(self):
        with pytest.raises(ValidationError, match="already recorded"):
            assert_unique_keys([("a",)], "mass estimate", existing=[("a",)])


class TestSummaryContract:

    def test_consistent_summary_passes(self, cs_co_masses):
        summary = summarize_session([], cs_co_masses)
        assert_summary_consistent(summary, [0.002, 0.001], 0)

    def test_wrong_total_fails(self):
        summary = SessionSummary(1.0, 0, 1, "Cs-137", {"Cs-137": 1.0})
        with pytest.raises(ContractViolation, match="total mass"):
            assert_summary_consistent(summary, [2.0], 0)

    def test_wrong_detection_count_fails(self):
        summary = SessionSummary(0.0, 2, 0, None, {})
        with pytest.raises(ContractViolation, match="detections"):
            assert_summary_consistent(summary, [], 3)

    def test_defined_fraction_with_zero_total_fails(self):
        summary = SessionSummary(0.0, 0, 1, "Cs-137", {"Cs-137": 0.0})
        with pytest.raises(ContractViolation, match="undefined"):
            assert_summary_consistent(summary, [0.0], 0)

    def test_fractions_not_summing_to_one_fail(self):
        summary = SessionSummary(2.0, 0, 2, "A", {"A": 0.5, "B": 0.4})
        with pytest.raises(ContractViolation, match="sum to"):
            assert_summary_consistent(summary, [1.0, 1.0], 0)

    def test_dominant_must_have_estimate(self):
        summary = SessionSummary(1.0, 0, 1, "Co-60", {"Cs-137": 1.0})
        with pytest.raises(ContractViolation, match="dominant"):
            assert_summary_consistent(summary, [1.0], 0)


def test_invariant_table_covers_every_record_kind():
    from isodash.contracts import ENGINE_INVARIANTS

    assert set(ENGINE_INVARIANTS) == {
        "session", "detection", "mass_estimate", "summary", "plot", "ownership",
    }
    assert all(ENGINE_INVARIANTS.values())
