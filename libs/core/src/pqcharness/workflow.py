"""Staged workflows that turn harness calls into ``WorkflowReport`` records.

Each algorithm runs in isolation: a ``HarnessError`` aborts that algorithm's
workflow and is recorded on its report, then the next algorithm starts.
Verdicts (rejections, tamper findings, mismatches) never abort anything; the
report decides whether they count as failures.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

from .buffers import DEFAULT_PREVIEW_BYTES, hex_preview
from .errors import HarnessError
from .kem import KemHarness
from .models import Kind, StageResult, Verdict, WorkflowReport
from .registry import AlgorithmRegistry
from .signature import SignatureHarness

log = logging.getLogger(__name__)

DEFAULT_MESSAGE = b"This is an important document that requires post-quantum signatures!"
DEFAULT_TAMPERED_MESSAGE = b"This is a tampered document that requires post-quantum signatures!"


@dataclass
class WorkflowOptions:
    messages: List[bytes] = field(default_factory=lambda: [DEFAULT_MESSAGE])
    tampered_message: bytes = DEFAULT_TAMPERED_MESSAGE
    context: Optional[bytes] = None
    preview_bytes: int = DEFAULT_PREVIEW_BYTES


class ReportSink(Protocol):
    def emit(self, report: WorkflowReport) -> None: ...


class CollectingSink:
    def __init__(self) -> None:
        self.reports: List[WorkflowReport] = []

    def emit(self, report: WorkflowReport) -> None:
        self.reports.append(report)


def _timed(fn: Callable[..., Any], *args: Any) -> Tuple[Any, float]:
    t0 = time.perf_counter()
    out = fn(*args)
    return out, (time.perf_counter() - t0) * 1000.0


def _step(
    report: WorkflowReport,
    step: str,
    verdict: Optional[Verdict] = None,
    elapsed_ms: Optional[float] = None,
    **detail,
) -> StageResult:
    ok = verdict is None or not verdict.is_failure
    return report.add(StageResult(step=step, ok=ok, verdict=verdict, detail=detail, elapsed_ms=elapsed_ms))


def run_signature_workflow(
    harness: SignatureHarness,
    options: WorkflowOptions,
    report: Optional[WorkflowReport] = None,
) -> WorkflowReport:
    """keygen, sign+verify per message, cross-message and tamper checks."""
    report = report or WorkflowReport(algorithm=harness.name, descriptor=harness.descriptor)
    preview = options.preview_bytes
    messages = [bytes(m) for m in options.messages]
    if not messages:
        raise ValueError("at least one message is required")
    tampered = bytes(options.tampered_message)
    if tampered in messages:
        raise ValueError("tampered message must differ from every signed message")

    keys, ms = _timed(harness.generate_keys)
    _step(
        report, "keygen", elapsed_ms=ms,
        public_key_len=len(keys.public_key),
        secret_key_len=len(keys.secret_key),
        public_key_preview=hex_preview(keys.public_key, preview),
    )

    signatures: List[bytes] = []
    for idx, message in enumerate(messages, start=1):
        sig, ms = _timed(harness.sign, message, options.context)
        signatures.append(sig)
        _step(
            report, f"sign[{idx}]", elapsed_ms=ms,
            message_len=len(message),
            signature_len=len(sig),
            max_signature_len=harness.descriptor.signature_len,
            signature_preview=hex_preview(sig, preview),
        )
        verdict, ms = _timed(harness.verify, message, sig, options.context)
        _step(report, f"verify[{idx}]", verdict, ms)

    if len(messages) > 1:
        for idx, (message, sig) in enumerate(zip(messages, signatures), start=1):
            other = messages[idx % len(messages)]
            if other == message:
                continue
            verdict, ms = _timed(harness.verify_tamper_rejected, other, sig, options.context)
            _step(report, f"cross_check[{idx}]", verdict, ms)

    verdict, ms = _timed(harness.verify_tamper_rejected, tampered, signatures[-1], options.context)
    _step(report, "tamper_check", verdict, ms, tampered_message_len=len(tampered))
    return report


def run_kem_workflow(
    harness: KemHarness,
    options: WorkflowOptions,
    report: Optional[WorkflowReport] = None,
) -> WorkflowReport:
    """keygen, encapsulate, decapsulate, shared-secret agreement."""
    report = report or WorkflowReport(algorithm=harness.name, descriptor=harness.descriptor)
    preview = options.preview_bytes
    keys, ms = _timed(harness.generate_keys)
    _step(
        report, "keygen", elapsed_ms=ms,
        public_key_len=len(keys.public_key),
        secret_key_len=len(keys.secret_key),
        public_key_preview=hex_preview(keys.public_key, preview),
    )
    ct, ms = _timed(harness.encapsulate)
    _step(
        report, "encapsulate", elapsed_ms=ms,
        ciphertext_len=len(ct),
        shared_secret_len=harness.descriptor.shared_secret_len,
        ciphertext_preview=hex_preview(ct, preview),
    )
    ss_len, ms = _timed(harness.decapsulate)
    _step(report, "decapsulate", elapsed_ms=ms, shared_secret_len=ss_len)
    verdict, ms = _timed(harness.verify_agreement)
    _step(report, "agreement", verdict, ms)
    return report


WORKFLOWS: Dict[Kind, Callable[..., WorkflowReport]] = {
    Kind.SIGNATURE: run_signature_workflow,
    Kind.KEM: run_kem_workflow,
}


def run_workflow(
    registry: AlgorithmRegistry,
    name: str,
    options: Optional[WorkflowOptions] = None,
) -> WorkflowReport:
    options = options or WorkflowOptions()
    report = WorkflowReport(algorithm=name)
    try:
        # describe() rejects unknown/disabled names before any crypto call
        report.descriptor = registry.describe(name)
        with registry.open(name) as harness:
            WORKFLOWS[report.descriptor.kind](harness, options, report)
    except HarnessError as exc:
        report.error_kind = exc.kind
        report.error = str(exc)
        report.add(StageResult(step="aborted", ok=False, error_kind=exc.kind, error=str(exc)))
        log_fn = log.error if exc.kind == "invariant_violation" else log.warning
        log_fn("%s: workflow aborted (%s): %s", name, exc.kind, exc)
    else:
        if report.failed:
            log.error("%s: workflow finished with findings %s", name, [v.value for v in report.findings])
        else:
            log.info("%s: workflow passed", name)
    return report


def run_all(
    registry: AlgorithmRegistry,
    names: Iterable[str],
    options: Optional[WorkflowOptions] = None,
    sink: Optional[ReportSink] = None,
) -> List[WorkflowReport]:
    reports: List[WorkflowReport] = []
    for name in names:
        report = run_workflow(registry, name, options)
        reports.append(report)
        if sink is not None:
            sink.emit(report)
    return reports


def exit_code(reports: Sequence[WorkflowReport]) -> int:
    return 1 if any(r.failed for r in reports) else 0
