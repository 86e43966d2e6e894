"""Engine contracts: error taxonomy and fail-fast invariant checks.

Key principle:
- Pydantic validates config and producer field invariants
- The store enforces natural keys and ownership
- Contracts verify that derived records agree with their sources
"""

from isodash.contracts.failure import ContractViolation, NotFoundError, ValidationError
from isodash.contracts.base import require
from isodash.contracts.records import assert_unique_keys, validate_record, validate_records
from isodash.contracts.summary import assert_summary_consistent
from isodash.contracts.invariants import ENGINE_INVARIANTS

__all__ = [
    "ContractViolation",
    "NotFoundError",
    "ValidationError",
    "require",
    "assert_unique_keys",
    "validate_record",
    "validate_records",
    "assert_summary_consistent",
    "ENGINE_INVARIANTS",
]
