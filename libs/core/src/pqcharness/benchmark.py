"""Stage timing for keygen / operation / verification.

Each run drives a fresh harness through the three stages with a monotonic
clock around every provider call. A failing stage aborts the remaining stages
(and runs) for that algorithm only; ``run_many`` carries on with the next
algorithm.
"""

from __future__ import annotations

import gc
import logging
import os
import time
from typing import Callable, Dict, Iterable, List, Optional, Tuple, TypeVar

import psutil

from .errors import HarnessError
from .models import BenchmarkReport, BenchmarkResult, Kind, Stage, Verdict
from .registry import AlgorithmRegistry
from .workflow import DEFAULT_MESSAGE

log = logging.getLogger(__name__)

T = TypeVar("T")

_OPERATIONS: Dict[Kind, Tuple[str, str, str]] = {
    Kind.SIGNATURE: ("keygen", "sign", "verify"),
    Kind.KEM: ("keygen", "encapsulate", "decapsulate"),
}


class BenchmarkFailure(HarnessError):
    """Verification stage produced a failing verdict under benchmark."""
    kind = "benchmark_verification_failed"

    def __init__(self, verdict: Verdict, message: str) -> None:
        super().__init__(message)
        self.verdict = verdict
        self.kind = verdict.value


class BenchmarkRunner:

    def __init__(
        self,
        registry: AlgorithmRegistry,
        runs: int = 1,
        message: bytes = DEFAULT_MESSAGE,
        *,
        clock: Callable[[], float] = time.perf_counter,
        capture_memory: bool = False,
    ) -> None:
        if runs < 1:
            raise ValueError("runs must be >= 1")
        self.registry = registry
        self.runs = int(runs)
        self.message = bytes(message)
        self.clock = clock
        self.capture_memory = capture_memory
        self._proc = psutil.Process(os.getpid()) if capture_memory else None

    def _timed(self, fn: Callable[[], T]) -> Tuple[T, float, Optional[float]]:
        before = self._rss() if self._proc is not None else None
        t0 = self.clock()
        out = fn()
        dt = self.clock() - t0
        mem_kb = None
        if before is not None:
            mem_kb = max(0.0, (self._rss() - before) / 1024.0)
        return out, dt, mem_kb

    def _rss(self) -> int:
        return int(self._proc.memory_info().rss)

    def run(self, name: str) -> BenchmarkReport:
        report = BenchmarkReport(algorithm=name)
        samples: Dict[Stage, List[float]] = {s: [] for s in Stage}
        memory: Dict[Stage, List[float]] = {s: [] for s in Stage}
        try:
            desc = self.registry.describe(name)
            report.kind = desc.kind
            for i in range(self.runs):
                if self.capture_memory:
                    gc.collect()
                self._one_run(name, desc.kind, samples, memory)
                log.debug("%s: benchmark run %d/%d done", name, i + 1, self.runs)
        except HarnessError as exc:
            report.error_kind = exc.kind
            report.error = str(exc)
            log.warning("%s: benchmark aborted (%s): %s", name, exc.kind, exc)
        if report.kind is not None:
            labels = _OPERATIONS[report.kind]
            for stage, op in zip(Stage, labels):
                if samples[stage]:
                    mem = memory[stage]
                    report.results.append(
                        BenchmarkResult(
                            algorithm=name,
                            stage=stage,
                            operation=op,
                            elapsed=samples[stage][0],
                            samples=list(samples[stage]),
                            mem_delta_kb=max(mem) if mem else None,
                        )
                    )
        return report

    def _one_run(self, name: str, kind: Kind, samples, memory) -> None:
        def record(stage: Stage, dt: float, mem: Optional[float]) -> None:
            samples[stage].append(dt)
            if mem is not None:
                memory[stage].append(mem)

        with self.registry.open(name) as harness:
            _, dt, mem = self._timed(harness.generate_keys)
            record(Stage.KEYGEN, dt, mem)
            if kind is Kind.SIGNATURE:
                sig, dt, mem = self._timed(lambda: harness.sign(self.message))
                record(Stage.OPERATION, dt, mem)
                verdict, dt, mem = self._timed(lambda: harness.verify(self.message, sig))
            else:
                _, dt, mem = self._timed(harness.encapsulate)
                record(Stage.OPERATION, dt, mem)
                _, dt, mem = self._timed(harness.decapsulate)
                verdict = harness.verify_agreement()
            record(Stage.VERIFY, dt, mem)
            if verdict.is_failure:
                raise BenchmarkFailure(verdict, f"{name}: verification stage returned {verdict.value}")

    def run_many(self, names: Iterable[str]) -> List[BenchmarkReport]:
        return [self.run(name) for name in names]
