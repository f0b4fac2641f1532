"""Data records shared by the registry, harnesses and reporting layers."""

from __future__ import annotations

import statistics
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .buffers import SecretBuffer
from .errors import InvariantViolation, SharedSecretMismatch, TamperAcceptedAnomaly


class Kind(str, Enum):
    SIGNATURE = "signature"
    KEM = "kem"


_SIZE_FIELDS = {
    Kind.SIGNATURE: ("public_key_len", "secret_key_len", "signature_len"),
    Kind.KEM: ("public_key_len", "secret_key_len", "ciphertext_len", "shared_secret_len"),
}


@dataclass(frozen=True)
class AlgorithmDescriptor:
    name: str
    kind: Kind
    public_key_len: int = 0
    secret_key_len: int = 0
    signature_len: int = 0      # upper bound; some schemes emit shorter signatures
    ciphertext_len: int = 0
    shared_secret_len: int = 0
    family: Optional[str] = None
    nist_level: Optional[int] = None
    version: Optional[str] = None
    enabled: bool = True
    supports_context: bool = False
    provider: Optional[str] = None

    def sizes(self) -> Dict[str, int]:
        return {f: getattr(self, f) for f in _SIZE_FIELDS[self.kind]}

    def validate(self) -> "AlgorithmDescriptor":
        if not self.enabled:
            return self
        bad = {k: v for k, v in self.sizes().items() if not isinstance(v, int) or v <= 0}
        if bad:
            raise InvariantViolation(f"{self.name}: descriptor lengths must be positive, got {bad}")
        return self

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["kind"] = self.kind.value
        return d


@dataclass
class KeyPair:
    public_key: bytes
    secret_key: SecretBuffer

    def wipe(self) -> None:
        self.secret_key.wipe()


class Stage(str, Enum):
    KEYGEN = "keygen"
    OPERATION = "operation"
    VERIFY = "verify"


class Verdict(str, Enum):
    ACCEPTED = "accepted"
    REJECTED = "verification_rejected"
    TAMPER_REJECTED = "tamper_rejected"
    TAMPER_ACCEPTED = "tamper_accepted_anomaly"
    AGREED = "agreed"
    MISMATCH = "shared_secret_mismatch"

    @property
    def is_failure(self) -> bool:
        return self in (Verdict.REJECTED, Verdict.TAMPER_ACCEPTED, Verdict.MISMATCH)


@dataclass
class StageResult:
    step: str
    ok: bool
    verdict: Optional[Verdict] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    detail: Dict[str, Any] = field(default_factory=dict)
    elapsed_ms: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "ok": self.ok,
            "verdict": self.verdict.value if self.verdict else None,
            "error_kind": self.error_kind,
            "error": self.error,
            "detail": dict(self.detail),
            "elapsed_ms": self.elapsed_ms,
        }


@dataclass
class WorkflowReport:
    algorithm: str
    descriptor: Optional[AlgorithmDescriptor] = None
    steps: List[StageResult] = field(default_factory=list)
    error_kind: Optional[str] = None
    error: Optional[str] = None

    def add(self, step: StageResult) -> StageResult:
        self.steps.append(step)
        return step

    @property
    def findings(self) -> List[Verdict]:
        return [s.verdict for s in self.steps if s.verdict is not None and s.verdict.is_failure]

    @property
    def failed(self) -> bool:
        """True on an aborting error or on any unexpected verdict.

        A rejected tamper check is the expected outcome and does not count.
        """
        return self.error_kind is not None or bool(self.findings)

    def raise_for_findings(self) -> None:
        for verdict in self.findings:
            if verdict is Verdict.TAMPER_ACCEPTED:
                raise TamperAcceptedAnomaly(f"{self.algorithm}: tampered message was accepted")
            if verdict is Verdict.MISMATCH:
                raise SharedSecretMismatch(f"{self.algorithm}: shared secrets differ")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "descriptor": self.descriptor.to_dict() if self.descriptor else None,
            "steps": [s.to_dict() for s in self.steps],
            "error_kind": self.error_kind,
            "error": self.error,
            "failed": self.failed,
        }


@dataclass
class BenchmarkResult:
    algorithm: str
    stage: Stage
    operation: str
    elapsed: float                       # seconds of the first run
    samples: List[float] = field(default_factory=list)
    mem_delta_kb: Optional[float] = None

    @property
    def elapsed_ms(self) -> float:
        return self.elapsed * 1000.0

    @property
    def runs(self) -> int:
        return len(self.samples) or 1

    def _ms(self) -> List[float]:
        return [s * 1000.0 for s in (self.samples or [self.elapsed])]

    @property
    def mean_ms(self) -> float:
        return statistics.fmean(self._ms())

    @property
    def median_ms(self) -> float:
        return statistics.median(self._ms())

    @property
    def min_ms(self) -> float:
        return min(self._ms())

    @property
    def max_ms(self) -> float:
        return max(self._ms())

    @property
    def stddev_ms(self) -> float:
        ms = self._ms()
        return statistics.pstdev(ms) if len(ms) > 1 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "stage": self.stage.value,
            "operation": self.operation,
            "runs": self.runs,
            "elapsed_ms": self.elapsed_ms,
            "mean_ms": self.mean_ms,
            "median_ms": self.median_ms,
            "min_ms": self.min_ms,
            "max_ms": self.max_ms,
            "stddev_ms": self.stddev_ms,
            "series_ms": self._ms(),
            "mem_delta_kb": self.mem_delta_kb,
        }


@dataclass
class BenchmarkReport:
    algorithm: str
    kind: Optional[Kind] = None
    results: List[BenchmarkResult] = field(default_factory=list)
    error_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error_kind is not None

    def result(self, stage: Stage) -> Optional[BenchmarkResult]:
        for r in self.results:
            if r.stage is stage:
                return r
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "algorithm": self.algorithm,
            "kind": self.kind.value if self.kind else None,
            "results": [r.to_dict() for r in self.results],
            "error_kind": self.error_kind,
            "error": self.error,
            "failed": self.failed,
        }
