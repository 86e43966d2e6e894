"""Tests for view export to Parquet and CSV."""

import pandas as pd
import pytest

from isodash.views import AnalysisQueries

pytestmark = [pytest.mark.unit, pytest.mark.store]


@pytest.fixture
def recorded(store, make_session, cs_co_detections, cs_co_masses, sample_plots):
    return store.record_session(make_session(), detections=cs_co_detections,
                                mass_estimates=cs_co_masses, plots=sample_plots)


def test_export_latest_parquet_default_path(queries, recorded, temp_dir):
    path = queries.export("latest")

    assert path == temp_dir.resolve() / "exports" / "latest.parquet"
    df = pd.read_parquet(path)
    assert list(df["session_id"]) == [recorded]
    assert '"Cs-137"' in df["mass_distribution"].iloc[0]


def test_export_csv(make_store, make_session, cs_co_masses, temp_dir):
    store, config = make_store(export_format="csv")
    store.record_session(make_session(), mass_estimates=cs_co_masses)

    path = AnalysisQueries(store, config).export("ranking", isotope="Cs-137")

    assert path.name == "ranking_Cs-137.csv"
    df = pd.read_csv(path)
    assert list(df["rank"]) == [1]


def test_export_explicit_path(queries, recorded, temp_dir):
    target = temp_dir / "out" / "plots.parquet"
    path = queries.export("plots", filepath=target)

    assert path == target
    assert len(pd.read_parquet(target)) == 3


def test_export_empty_view_returns_none(queries):
    assert queries.export("daily") is None


def test_export_unknown_view(queries):
    with pytest.raises(ValueError, match="Invalid view"):
        queries.export("summaries")


def test_ranking_export_needs_isotope(queries, recorded):
    with pytest.raises(ValueError, match="isotope"):
        queries.export("ranking")
