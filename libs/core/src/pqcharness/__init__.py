
from .interfaces import KEM, Signature, Provider
from .models import (
    AlgorithmDescriptor,
    BenchmarkReport,
    BenchmarkResult,
    KeyPair,
    Kind,
    Stage,
    StageResult,
    Verdict,
    WorkflowReport,
)
from .errors import (
    AlgorithmUnavailable,
    AllocationFailure,
    DecapsulationFailure,
    EncapsulationFailure,
    HarnessError,
    InvalidStage,
    InvariantViolation,
    KeygenFailure,
    OperationFailed,
    SharedSecretMismatch,
    SignFailure,
    TamperAcceptedAnomaly,
    VerifyFailure,
)
from .registry import AlgorithmRegistry, default_registry, load_providers, providers
from .signature import SignatureHarness
from .kem import KemHarness
from .benchmark import BenchmarkRunner
from .workflow import CollectingSink, WorkflowOptions, run_all, run_workflow

__all__ = [
    "KEM",
    "Signature",
    "Provider",
    "AlgorithmDescriptor",
    "BenchmarkReport",
    "BenchmarkResult",
    "KeyPair",
    "Kind",
    "Stage",
    "StageResult",
    "Verdict",
    "WorkflowReport",
    "AlgorithmUnavailable",
    "AllocationFailure",
    "DecapsulationFailure",
    "EncapsulationFailure",
    "HarnessError",
    "InvalidStage",
    "InvariantViolation",
    "KeygenFailure",
    "OperationFailed",
    "SharedSecretMismatch",
    "SignFailure",
    "TamperAcceptedAnomaly",
    "VerifyFailure",
    "AlgorithmRegistry",
    "default_registry",
    "load_providers",
    "providers",
    "SignatureHarness",
    "KemHarness",
    "BenchmarkRunner",
    "CollectingSink",
    "WorkflowOptions",
    "run_all",
    "run_workflow",
]
