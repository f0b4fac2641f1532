"""Text and JSON rendering of harness reports for the CLI."""

from __future__ import annotations

import json
import pathlib
from typing import Any, Dict, Iterable, List, Sequence

import typer

from pqcharness import AlgorithmDescriptor, BenchmarkReport, Kind, WorkflowReport


def describe_lines(desc: AlgorithmDescriptor) -> List[str]:
    status = "enabled" if desc.enabled else "disabled"
    lines = [f"{desc.name} [{desc.kind.value}] ({status})"]
    if desc.family:
        lines.append(f"  family:        {desc.family}")
    if desc.provider:
        lines.append(f"  provider:      {desc.provider}")
    if desc.nist_level is not None:
        lines.append(f"  NIST level:    {desc.nist_level}")
    if desc.version:
        lines.append(f"  version:       {desc.version}")
    if desc.enabled:
        for field, size in desc.sizes().items():
            label = field.replace("_len", "").replace("_", " ")
            if field == "signature_len":
                label = "max signature"
            lines.append(f"  {label + ':':<14} {size} bytes")
        if desc.kind is Kind.SIGNATURE:
            lines.append(f"  context:       {'yes' if desc.supports_context else 'no'}")
    return lines


def workflow_lines(report: WorkflowReport) -> List[str]:
    lines = [f"== {report.algorithm} =="]
    for step in report.steps:
        if step.verdict is not None:
            mark = "ok" if step.ok else "FAIL"
            lines.append(f"  {step.step:<16} {mark:<4} {step.verdict.value}")
        elif step.error_kind is not None:
            lines.append(f"  {step.step:<16} FAIL {step.error_kind}: {step.error}")
        else:
            extra = ", ".join(f"{k}={v}" for k, v in step.detail.items() if v is not None)
            lines.append(f"  {step.step:<16} ok   {extra}")
    lines.append(f"  result: {'FAILED' if report.failed else 'passed'}")
    return lines


def benchmark_lines(report: BenchmarkReport) -> List[str]:
    lines = [f"== {report.algorithm} =="]
    for r in report.results:
        line = (
            f"  {r.operation:<12} runs={r.runs:<4} mean={r.mean_ms:.3f}ms "
            f"median={r.median_ms:.3f}ms min={r.min_ms:.3f}ms max={r.max_ms:.3f}ms "
            f"stddev={r.stddev_ms:.3f}ms"
        )
        if r.mem_delta_kb is not None:
            line += f" mem={r.mem_delta_kb:.1f}KB"
        lines.append(line)
    if report.failed:
        lines.append(f"  aborted: {report.error_kind}: {report.error}")
    return lines


class EchoSink:
    """Prints each workflow report as soon as it completes."""

    def __init__(self, err: bool = False) -> None:
        self.err = err

    def emit(self, report: WorkflowReport) -> None:
        for line in workflow_lines(report):
            typer.echo(line, err=self.err)


def summary_line(reports: Sequence[Any]) -> str:
    failed = [r.algorithm for r in reports if r.failed]
    text = f"{len(reports) - len(failed)}/{len(reports)} passed"
    if failed:
        text += f"; failed: {', '.join(failed)}"
    return text


def export_json(reports: Iterable[Any], export_path: str | None, **meta: Any) -> pathlib.Path | None:
    """Write ``{"meta": ..., "reports": [...]}``; relative paths resolve against cwd."""
    if not export_path:
        return None
    # Normalize Windows-style separators on POSIX if users pass e.g. "results\file.json"
    if "\\" in export_path and ":" not in export_path:
        export_path = export_path.replace("\\", "/")
    path = pathlib.Path(export_path)
    if not path.is_absolute():
        path = pathlib.Path.cwd() / path
    path.parent.mkdir(parents=True, exist_ok=True)
    payload: Dict[str, Any] = {"meta": meta, "reports": [r.to_dict() for r in reports]}
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
    return path
