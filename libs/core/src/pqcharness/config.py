"""Runtime configuration: defaults, PQCHARNESS_* overrides and YAML run matrices."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from .workflow import DEFAULT_MESSAGE, DEFAULT_TAMPERED_MESSAGE, WorkflowOptions

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

DEFAULT_SIGNATURES = (
    "ML-DSA-44",
    "ML-DSA-65",
    "ML-DSA-87",
    "Dilithium2",
    "SLH-DSA-SHA2-128f",
    "SPHINCS+-SHA2-128f-simple",
    "Falcon-512",
)
DEFAULT_KEMS = ("ML-KEM-768", "ML-KEM-512", "ML-KEM-1024", "Kyber768")


@dataclass
class HarnessConfig:
    message: bytes = DEFAULT_MESSAGE
    second_message: Optional[bytes] = None
    tampered_message: bytes = DEFAULT_TAMPERED_MESSAGE
    context: Optional[bytes] = None
    preview_bytes: int = 16
    bench_runs: int = 1
    bench_message: bytes = b"Benchmark message"
    preferred_signatures: List[str] = field(default_factory=lambda: list(DEFAULT_SIGNATURES))
    preferred_kems: List[str] = field(default_factory=lambda: list(DEFAULT_KEMS))
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "HarnessConfig":
        env = os.environ if env is None else env
        cfg = cls()
        changes: Dict[str, Any] = {}
        if env.get("PQCHARNESS_MESSAGE"):
            changes["message"] = env["PQCHARNESS_MESSAGE"].encode("utf-8")
        if env.get("PQCHARNESS_SECOND_MESSAGE"):
            changes["second_message"] = env["PQCHARNESS_SECOND_MESSAGE"].encode("utf-8")
        if env.get("PQCHARNESS_TAMPERED_MESSAGE"):
            changes["tampered_message"] = env["PQCHARNESS_TAMPERED_MESSAGE"].encode("utf-8")
        if env.get("PQCHARNESS_CONTEXT"):
            changes["context"] = env["PQCHARNESS_CONTEXT"].encode("utf-8")
        for var, attr, minimum in (
            ("PQCHARNESS_PREVIEW_BYTES", "preview_bytes", 0),
            ("PQCHARNESS_BENCH_RUNS", "bench_runs", 1),
        ):
            raw = env.get(var)
            if raw:
                changes[attr] = _int_env(var, raw, minimum)
        # A pinned algorithm goes to the front of the preferred order.
        if env.get("PQCHARNESS_SIG_ALG"):
            changes["preferred_signatures"] = [env["PQCHARNESS_SIG_ALG"], *cfg.preferred_signatures]
        if env.get("PQCHARNESS_KEM_ALG"):
            changes["preferred_kems"] = [env["PQCHARNESS_KEM_ALG"], *cfg.preferred_kems]
        if env.get("PQCHARNESS_LOG_LEVEL"):
            changes["log_level"] = env["PQCHARNESS_LOG_LEVEL"].upper()
        return replace(cfg, **changes)

    def workflow_options(
        self,
        message: Optional[bytes] = None,
        tampered_message: Optional[bytes] = None,
        context: Optional[bytes] = None,
    ) -> WorkflowOptions:
        messages = [message if message is not None else self.message]
        if self.second_message and self.second_message not in messages:
            messages.append(self.second_message)
        return WorkflowOptions(
            messages=messages,
            tampered_message=tampered_message if tampered_message is not None else self.tampered_message,
            context=context if context is not None else self.context,
            preview_bytes=self.preview_bytes,
        )


def _int_env(var: str, raw: str, minimum: int) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{var} must be an integer") from exc
    if value < minimum:
        raise ValueError(f"{var} must be >= {minimum}")
    return value


@dataclass
class RunMatrix:
    algorithms: List[str]
    runs: Optional[int] = None
    message: Optional[bytes] = None
    tampered_message: Optional[bytes] = None
    context: Optional[bytes] = None

    def apply(self, cfg: HarnessConfig) -> HarnessConfig:
        changes: Dict[str, Any] = {}
        if self.runs is not None:
            changes["bench_runs"] = self.runs
        if self.message is not None:
            changes["message"] = self.message
            changes["bench_message"] = self.message
        if self.tampered_message is not None:
            changes["tampered_message"] = self.tampered_message
        if self.context is not None:
            changes["context"] = self.context
        return replace(cfg, **changes)


def load_matrix(path: str | Path) -> RunMatrix:
    """Read a YAML run matrix.

    Example::

        algorithms: [ML-DSA-44, ML-KEM-768, SLH-DSA-SHA2-128f]
        runs: 5
        message: "hello"
    """
    p = Path(path)
    with p.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{p}: run matrix must be a mapping")
    algos = data.get("algorithms")
    if not isinstance(algos, list) or not algos or not all(isinstance(a, str) and a for a in algos):
        raise ValueError(f"{p}: 'algorithms' must be a non-empty list of names")
    runs = data.get("runs")
    if runs is not None and (isinstance(runs, bool) or not isinstance(runs, int) or runs < 1):
        raise ValueError(f"{p}: 'runs' must be a positive integer")

    def _text(key: str) -> Optional[bytes]:
        val = data.get(key)
        if val is None:
            return None
        if not isinstance(val, str):
            raise ValueError(f"{p}: '{key}' must be a string")
        return val.encode("utf-8")

    return RunMatrix(
        algorithms=list(algos),
        runs=runs,
        message=_text("message"),
        tampered_message=_text("tampered_message"),
        context=_text("context"),
    )


def configure_logging(level: str | int = "WARNING") -> None:
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            raise ValueError("unknown log level")
    logging.basicConfig(level=level, format=LOG_FORMAT)
