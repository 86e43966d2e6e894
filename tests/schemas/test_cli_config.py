import pytest
from pydantic import ValidationError as PydanticValidationError

from isodash.schemas.user import UserConfig
from isodash.schemas.cli import CLIConfig
from isodash.schemas.param import ParamConfig
from isodash.schemas.resolve import resolve_config

pytestmark = pytest.mark.unit


def test_cli_overrides_do_not_mutate_user():
    user = UserConfig.model_validate({"TIMEZONE": "Europe/Vienna", "BASE_DIR": "/tmp"})
    cli = CLIConfig.model_validate({"timezone": "Asia/Tokyo"})

    internal = resolve_config(ParamConfig(), user, cli)

    assert internal.aggregation.timezone == "Asia/Tokyo"
    assert user.timezone == "Europe/Vienna"


def test_cli_db_path_and_base_dir():
    cli = CLIConfig(base_dir="/scratch/isodash", db_path="/scratch/other.db")
    config = resolve_config(ParamConfig(), UserConfig(base_dir="/data"), cli)

    assert config.base_dir == "/scratch/isodash"
    assert str(config.database_path) == "/scratch/other.db"


def test_cli_log_level():
    config = resolve_config(ParamConfig(), None, CLIConfig(log_level="DEBUG"))
    assert config.logging.level == "DEBUG"


def test_empty_cli_has_no_overrides():
    assert CLIConfig().to_internal_overrides() == {}


def test_cli_rejects_unknown_fields():
    with pytest.raises(PydanticValidationError):
        CLIConfig(isotope_source="detections")
