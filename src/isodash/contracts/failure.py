"""Error taxonomy for the isodash engine.

Write paths fail fast and batch-atomically. Read paths never raise for
missing data except on direct lookups by identifier.
"""


class ValidationError(ValueError):
    """Raised when an inbound record violates a field invariant or natural key.

    The whole write call is rejected; nothing from the batch is committed.

    Attributes
    ----------
    errors : list of str
        One message per offending record/field.
    """

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors) if errors else [message]


class NotFoundError(LookupError):
    """Raised when a direct lookup by identifier matches nothing.

    Aggregate queries never raise this; they return empty results.
    """
    pass


class ContractViolation(RuntimeError):
    """Raised when an engine invariant is violated.

    This indicates a bug in engine logic, not bad producer input. It means
    a derived record (relative uncertainty, session summary) does not agree
    with the source records it was computed from.

    Key distinction:
    - ValidationError: Producer input rejected at write time
    - NotFoundError: Direct lookup by identifier matched nothing
    - ContractViolation: Engine bug (programmer error)
    """
    pass
