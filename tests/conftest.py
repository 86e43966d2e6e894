"""Root-level pytest fixtures for isodash test suite.

Provides shared configuration fixtures following Pydantic-based architecture,
plus a temporary record store and producer-shaped sample records.
"""

import pytest
from pathlib import Path
import tempfile
import shutil

from isodash.schemas import ParamConfig, UserConfig, resolve_config
from isodash.store import AnalysisStore
from isodash.views import AnalysisQueries


# =============================================================================
# Configuration Fixtures (Pydantic-based)
# =============================================================================

@pytest.fixture
def param_config():
    """Expert configuration with all defaults."""
    return ParamConfig()


@pytest.fixture
def internal_config(param_config, temp_dir):
    """Fully validated runtime configuration writing under temp_dir."""
    return resolve_config(param_config, UserConfig(base_dir=str(temp_dir)), None)


@pytest.fixture
def make_config(param_config, temp_dir):
    """Factory fixture for creating custom test configs.

    Returns a callable that accepts UserConfig-compatible kwargs. The base
    directory defaults to temp_dir.

    Examples
    --------
    >>> def test_vienna_days(make_config):
    ...     config = make_config(timezone="Europe/Vienna")
    ...     assert config.aggregation.timezone == "Europe/Vienna"
    """
    def _make(**user_overrides):
        """Create InternalConfig with user overrides."""
        user_overrides.setdefault("base_dir", str(temp_dir))
        return resolve_config(param_config, UserConfig(**user_overrides), None)

    return _make


# =============================================================================
# Directory Fixtures
# =============================================================================

@pytest.fixture
def temp_dir():
    """Temporary directory that is cleaned up after test."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


# =============================================================================
# Store Fixtures
# =============================================================================

@pytest.fixture
def store(internal_config):
    """Empty record store built from the default test config."""
    s = AnalysisStore.from_config(internal_config)
    yield s
    s.close()


@pytest.fixture
def make_store(make_config):
    """Factory for stores with config overrides (closed on teardown)."""
    opened = []

    def _make(**user_overrides):
        config = make_config(**user_overrides)
        s = AnalysisStore.from_config(config)
        opened.append(s)
        return s, config

    yield _make
    for s in opened:
        s.close()


@pytest.fixture
def queries(store, internal_config):
    return AnalysisQueries(store, internal_config)


# =============================================================================
# Sample Records
# =============================================================================

@pytest.fixture
def make_session():
    """Factory for producer session dicts."""
    def _make(sample_name="soil_07.spe", timestamp="2025-03-05T12:00:00Z", **fields):
        session = {
            "sample_name": sample_name,
            "background_name": "bkg_2025_03.spe",
            "confidence_threshold": 0.95,
            "timestamp": timestamp,
            "total_peaks_found": 12,
            "background_peaks": 3,
        }
        session.update(fields)
        return session

    return _make


@pytest.fixture
def cs_co_detections():
    """Cs-137 and Co-60 peaks (Co-60 has its two lines)."""
    return [
        {"parent_isotope": "Cs-137", "daughter_isotope": "Ba-137m",
         "energy_kev": 661.7, "counts": 100.0, "count_uncertainty": 5.0},
        {"parent_isotope": "Co-60", "daughter_isotope": "Ni-60",
         "energy_kev": 1173.2, "counts": 40.0, "count_uncertainty": 4.0},
        {"parent_isotope": "Co-60", "daughter_isotope": "Ni-60",
         "energy_kev": 1332.5, "counts": 36.0, "count_uncertainty": 6.0},
    ]


@pytest.fixture
def cs_co_masses():
    """Cs-137 0.002 g and Co-60 0.001 g."""
    return [
        {"parent_isotope": "Cs-137", "estimated_mass_g": 0.002, "mass_uncertainty_g": 0.0001},
        {"parent_isotope": "Co-60", "estimated_mass_g": 0.001, "mass_uncertainty_g": 0.0002},
    ]


@pytest.fixture
def png_bytes():
    """Minimal PNG signature; the store treats payloads as opaque."""
    return b"\x89PNG\r\n\x1a\n" + b"\x00" * 24


@pytest.fixture
def sample_plots(png_bytes):
    return [
        {"plot_type": "region-of-interest", "title": "Cs-137 ROI", "payload": png_bytes,
         "metadata": {"isotope": "Cs-137", "energy": 661.7}},
        {"plot_type": "overview", "title": "Spectrum", "payload": png_bytes},
        {"plot_type": "mass-distribution", "title": "Masses", "payload": png_bytes},
    ]
