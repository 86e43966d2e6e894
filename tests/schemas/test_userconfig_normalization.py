"""UserConfig accepts uppercase aliases, mixed case values and unknown keys."""

import pytest

from isodash.schemas import ParamConfig, UserConfig
from isodash.schemas.resolve import resolve_config

pytestmark = pytest.mark.unit


def test_uppercase_aliases():
    user = UserConfig.model_validate({
        "BASE_DIR": "/data/isodash",
        "TIMEZONE": "Europe/Vienna",
        "ISOTOPE_SOURCE": "Detections",
        "RECENT_LIMIT": 3,
        "EXPORT_FORMAT": "CSV",
        "LOG_LEVEL": "debug",
    })
    config = resolve_config(ParamConfig(), user, None)

    assert config.base_dir == "/data/isodash"
    assert config.aggregation.timezone == "Europe/Vienna"
    assert config.summary.isotope_source == "detections"
    assert config.views.recent_limit == 3
    assert config.export.format == "csv"
    assert config.logging.level == "DEBUG"


def test_unknown_legacy_keys_ignored():
    user = UserConfig.model_validate({"PLOT_DPI": 150, "TIMEZONE": "UTC"})
    assert user.timezone == "UTC"


def test_nested_overrides():
    user = UserConfig.model_validate({
        "store": {"journal_mode": "DELETE", "timeout_sec": 5},
        "views": {"latest_limit": 20},
        "export": {"compression": "gzip"},
    })
    config = resolve_config(ParamConfig(), user, None)

    assert config.store.journal_mode == "delete"
    assert config.store.timeout_sec == 5.0
    assert config.views.latest_limit == 20
    assert config.views.recent_limit == 5
    assert config.export.compression == "gzip"


def test_flat_alias_and_nested_section_merge():
    user = UserConfig.model_validate({
        "TIMEZONE": "Asia/Tokyo",
        "aggregation": {"completed_status": "pending"},
    })
    config = resolve_config(ParamConfig(), user, None)

    assert config.aggregation.timezone == "Asia/Tokyo"
    assert config.aggregation.completed_status == "pending"


def test_empty_user_config_changes_nothing():
    assert resolve_config(ParamConfig(), UserConfig(), None) == resolve_config(ParamConfig(), None, None)
