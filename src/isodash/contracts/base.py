"""Base contract enforcement utilities.

The require() function is the single enforcement mechanism for engine
invariants.
"""

from isodash.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce an engine contract.

    Called after derivation and summarization to verify the result agrees
    with its inputs. It is fail-fast: no recovery, no fallback, no silence.

    Raises
    ------
    ContractViolation
        If condition is False. This indicates a bug in engine logic.

    Examples
    --------
    >>> require(summary.total_detections == len(detections), "Summary contract: count mismatch")
    """
    if not condition:
        raise ContractViolation(message)
