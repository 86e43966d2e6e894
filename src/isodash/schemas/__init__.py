"""Pydantic schemas for isodash.

Configuration models are strictly typed; all validation, coercion and
normalization happens at schema validation time. Record schemas describe
what the external analysis producer may submit.

Exports
-------
resolve_config : function
    Single entrypoint for configuration resolution
InternalConfig : class
    Fully validated, authoritative runtime configuration
ParamConfig : class
    Expert defaults (complete)
UserConfig : class
    User-facing configuration (forgiving, minimal)
CLIConfig : class
    Command-line operational overrides
SessionInput, DetectionInput, MassEstimateInput, PlotInput : class
    Inbound record schemas
"""

from isodash.schemas.resolve import resolve_config
from isodash.schemas.internal import InternalConfig
from isodash.schemas.param import ParamConfig
from isodash.schemas.user import UserConfig
from isodash.schemas.cli import CLIConfig
from isodash.schemas.records import (
    PLOT_TYPES,
    SESSION_STATUSES,
    SessionInput,
    DetectionInput,
    MassEstimateInput,
    PlotInput,
)

__all__ = [
    'resolve_config',
    'InternalConfig',
    'ParamConfig',
    'UserConfig',
    'CLIConfig',
    'PLOT_TYPES',
    'SESSION_STATUSES',
    'SessionInput',
    'DetectionInput',
    'MassEstimateInput',
    'PlotInput',
]
