"""Base Pydantic model with strict defaults for isodash schemas.

All isodash schemas inherit from this base to ensure consistent
validation behavior across parameter, user, CLI, internal and record schemas.
"""

from pydantic import BaseModel, ConfigDict


class IsodashBaseModel(BaseModel):
    """Base model for all isodash schemas.

    Enforces strict validation:
    - No extra fields allowed
    - Validates assignments after initialization
    - Uses Python mode (not JSON mode)
    - Strips whitespace from strings
    """

    model_config = ConfigDict(
        extra='forbid',           # Reject unknown fields
        validate_assignment=True, # Validate on field mutation
        use_enum_values=True,     # Convert enums to values
        str_strip_whitespace=True,# Strip whitespace from strings
    )
