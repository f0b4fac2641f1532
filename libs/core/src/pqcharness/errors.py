"""Typed failures raised by the harness and its providers.

Every class carries a stable ``kind`` string so reports can record which
failure aborted a workflow without keeping the exception object around.
"""

from __future__ import annotations

from typing import List, Sequence


class HarnessError(RuntimeError):
    kind = "harness_error"


class AlgorithmUnavailable(HarnessError):
    """Unknown or disabled algorithm name."""
    kind = "algorithm_unavailable"

    def __init__(self, name: str, alternatives: Sequence[str] = (), reason: str = "unknown") -> None:
        self.name = name
        self.alternatives: List[str] = list(alternatives)
        self.reason = reason
        msg = f"Algorithm '{name}' is {reason}"
        if self.alternatives:
            msg += f"; available: {', '.join(self.alternatives)}"
        super().__init__(msg)


class AllocationFailure(HarnessError):
    kind = "allocation_failure"


class OperationFailed(HarnessError):
    """Raised by providers when a native operation reports failure."""
    kind = "operation_failed"


class KeygenFailure(HarnessError):
    kind = "keygen_failure"


class SignFailure(HarnessError):
    kind = "sign_failure"


class VerifyFailure(HarnessError):
    kind = "verify_failure"


class EncapsulationFailure(HarnessError):
    kind = "encapsulation_failure"


class DecapsulationFailure(HarnessError):
    kind = "decapsulation_failure"


class InvariantViolation(HarnessError):
    """Returned data disagrees with the sizes the descriptor declares."""
    kind = "invariant_violation"


class InvalidStage(HarnessError):
    kind = "invalid_stage"


class SharedSecretMismatch(HarnessError):
    kind = "shared_secret_mismatch"


class TamperAcceptedAnomaly(HarnessError):
    kind = "tamper_accepted_anomaly"
