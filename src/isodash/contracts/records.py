"""Write-time record contracts.

Turns producer input into validated record schemas, or rejects the whole
batch with a single ValidationError listing every problem found.
"""

from collections import Counter
from typing import Iterable, Sequence, Type, TypeVar

import pydantic

from isodash.contracts.failure import ValidationError

M = TypeVar("M", bound=pydantic.BaseModel)


def _format_pydantic_errors(label: str, exc: pydantic.ValidationError) -> list:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err["loc"]) or "record"
        messages.append(f"{label}: {loc}: {err['msg']}")
    return messages


def validate_record(model: Type[M], data, label: str = "record") -> M:
    """Validate one record; ValidationError on failure."""
    if isinstance(data, model):
        return data
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as exc:
        errors = _format_pydantic_errors(label, exc)
        raise ValidationError(f"Invalid {label}: {errors[0]}", errors) from exc


def validate_records(model: Type[M], rows: Iterable, label: str = "record") -> list:
    """Validate a batch of records.

    Every row is checked before anything is raised, so the error lists all
    offending rows.

    Parameters
    ----------
    model : pydantic model class
        Record schema (e.g. DetectionInput).
    rows : iterable of dict or model
        Producer records, in submission order.
    label : str
        Name used in error messages (e.g. "detection").

    Returns
    -------
    list
        Validated model instances, same order as input.

    Raises
    ------
    ValidationError
        If any row is invalid. Nothing is returned for partial batches.
    """
    validated = []
    errors = []
    for i, row in enumerate(rows):
        if isinstance(row, model):
            validated.append(row)
            continue
        try:
            validated.append(model.model_validate(row))
        except pydantic.ValidationError as exc:
            errors.extend(_format_pydantic_errors(f"{label}[{i}]", exc))

    if errors:
        raise ValidationError(
            f"Rejected {label} batch: {len(errors)} invalid field(s); first: {errors[0]}",
            errors,
        )
    return validated


def assert_unique_keys(keys: Sequence[tuple], label: str, existing: Iterable[tuple] = ()) -> None:
    """Reject a batch whose natural keys repeat, within itself or against stored keys.

    Raises
    ------
    ValidationError
        Naming every duplicated key.
    """
    counts = Counter(keys)
    errors = [f"{label}: duplicate key {key!r} in batch" for key, n in counts.items() if n > 1]

    stored = set(existing)
    errors.extend(f"{label}: key {key!r} already recorded" for key in counts if key in stored)

    if errors:
        raise ValidationError(f"Rejected {label} batch: {errors[0]}", errors)
