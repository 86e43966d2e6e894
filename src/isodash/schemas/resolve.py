"""Configuration resolution and merging logic.

This module provides the single entrypoint for configuration resolution:
resolve_config(). It merges ParamConfig, UserConfig, and CLIConfig in
the correct precedence order and returns a validated InternalConfig.

Precedence (highest to lowest):
1. CLIConfig (command-line overrides)
2. UserConfig (user file)
3. ParamConfig (expert defaults)
"""

from typing import Union, Optional
from isodash.schemas.param import ParamConfig
from isodash.schemas.user import UserConfig
from isodash.schemas.cli import CLIConfig
from isodash.schemas.internal import InternalConfig


def deep_merge(base: dict, *overrides: dict) -> dict:
    """Merge config layers, later layers winning.

    Nested sections are merged key by key, so an override touching
    ``aggregation.timezone`` leaves the rest of ``aggregation`` alone.
    Any non-dict value, lists included, replaces the earlier one whole.
    Inputs are not mutated.

    Parameters
    ----------
    base : dict
        Lowest-priority layer, usually the ``ParamConfig`` dump.
    *overrides : dict
        Higher-priority layers, applied left to right (user, then CLI).

    Returns
    -------
    dict
        A new merged dictionary.

    Examples
    --------
    >>> param = {"aggregation": {"timezone": "UTC", "completed_status": "completed"}, "views": {"latest_limit": 50}}
    >>> user = {"aggregation": {"timezone": "Europe/Berlin"}}
    >>> cli = {"views": {"latest_limit": 10}}
    >>> deep_merge(param, user, cli)
    {'aggregation': {'timezone': 'Europe/Berlin', 'completed_status': 'completed'}, 'views': {'latest_limit': 10}}
    """
    result = base.copy()

    for override in overrides:
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = deep_merge(result[key], value)
            else:
                result[key] = value

    return result


def _coerce(value, model):
    """Validate a dict (or None) into the given schema; pass instances through."""
    if value is None or (isinstance(value, dict) and not value):
        return model()
    if isinstance(value, model):
        return value
    return model.model_validate(value)


def resolve_config(
    param_cfg: Union[dict, ParamConfig, None] = None,
    user_cfg: Optional[Union[dict, UserConfig]] = None,
    cli_cfg: Optional[Union[dict, CLIConfig]] = None,
) -> InternalConfig:
    """Resolve final runtime configuration from param, user, and CLI configs.

    This is the SINGLE ENTRYPOINT for configuration resolution. It validates
    and merges configs in the correct precedence order, then returns an
    immutable InternalConfig for runtime use.

    Parameters
    ----------
    param_cfg : dict or ParamConfig, optional
        Expert configuration with complete defaults. ParamConfig() if None.
    user_cfg : dict or UserConfig, optional
        User configuration with overrides.
    cli_cfg : dict or CLIConfig, optional
        Command-line overrides.

    Returns
    -------
    InternalConfig
        Fully validated, immutable runtime configuration

    Raises
    ------
    pydantic.ValidationError
        If any config fails validation

    Examples
    --------
    >>> config = resolve_config(ParamConfig(), UserConfig(TIMEZONE="Europe/Vienna"))
    >>> config.aggregation.timezone
    'Europe/Vienna'
    """
    param = _coerce(param_cfg, ParamConfig)
    user = _coerce(user_cfg, UserConfig)
    cli = _coerce(cli_cfg, CLIConfig)

    merged = deep_merge(
        param.model_dump(),
        user.to_internal_overrides(),
        cli.to_internal_overrides(),
    )

    return InternalConfig.model_validate(merged)
