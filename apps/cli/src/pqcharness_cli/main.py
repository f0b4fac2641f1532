from __future__ import annotations
import logging
from typing import List, Optional

import typer

from pqcharness import AlgorithmRegistry, AlgorithmUnavailable, BenchmarkRunner, Kind, default_registry, run_all
from pqcharness.config import HarnessConfig, RunMatrix, configure_logging, load_matrix

from .reporting import EchoSink, benchmark_lines, describe_lines, export_json, summary_line

log = logging.getLogger(__name__)

app = typer.Typer(add_completion=False, help="Post-quantum signature and KEM validation harness")


def _build_registry() -> AlgorithmRegistry:
    return default_registry()


def _config() -> HarnessConfig:
    try:
        return HarnessConfig.from_env()
    except ValueError as exc:
        typer.echo(f"Invalid environment: {exc}", err=True)
        raise typer.Exit(code=2)


def _matrix(path: Optional[str]) -> Optional[RunMatrix]:
    if not path:
        return None
    try:
        return load_matrix(path)
    except (OSError, ValueError) as exc:
        typer.echo(f"Cannot read run matrix: {exc}", err=True)
        raise typer.Exit(code=2)


def _select(
    registry: AlgorithmRegistry,
    names: Optional[List[str]],
    matrix: Optional[RunMatrix],
    kind: Optional[Kind],
    family: Optional[str],
) -> List[str]:
    if names:
        return list(names)
    if matrix is not None:
        return list(matrix.algorithms)
    return registry.names(kind, family)


def _encode(text: Optional[str]) -> Optional[bytes]:
    return text.encode("utf-8") if text is not None else None


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (defaults to PQCHARNESS_LOG_LEVEL or WARNING)."
    ),
) -> None:
    level = log_level or _config().log_level
    try:
        configure_logging(level)
    except ValueError:
        raise typer.BadParameter(f"unknown log level {level!r}", param_hint="--log-level")


@app.command("list-algos")
def list_algos(
    kind: Optional[Kind] = typer.Option(None, "--kind", case_sensitive=False, help="signature or kem"),
    family: Optional[str] = typer.Option(None, "--family", help="e.g. ML-DSA, SLH-DSA, ML-KEM"),
    show_all: bool = typer.Option(False, "--all", help="Include mechanisms compiled out of the provider."),
) -> None:
    """List algorithms exposed by the loaded providers."""
    registry = _build_registry()
    everything = registry.list(kind=kind, family=family)
    enabled = [d for d in everything if d.enabled]
    for desc in everything if show_all else enabled:
        if not desc.enabled:
            typer.echo(f"- {desc.name} [{desc.kind.value}] (disabled)")
            continue
        sizes = " ".join(f"{k.replace('_len', '')}={v}" for k, v in desc.sizes().items())
        typer.echo(f"- {desc.name} [{desc.kind.value}] {sizes}")
    typer.echo(f"{len(enabled)} of {len(everything)} algorithms enabled")


@app.command()
def describe(name: str = typer.Argument(..., help="Algorithm name, e.g. ML-DSA-44")) -> None:
    """Show sizes and metadata for one algorithm."""
    registry = _build_registry()
    try:
        desc = registry.describe(name)
    except AlgorithmUnavailable as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    for line in describe_lines(desc):
        typer.echo(line)


@app.command()
def demo(
    name: Optional[str] = typer.Argument(None, help="Algorithm name; defaults to the first preferred signature."),
    message: Optional[str] = typer.Option(None, "--message", help="Message to sign."),
    tampered: Optional[str] = typer.Option(None, "--tampered", help="Tampered message that must be rejected."),
    context: Optional[str] = typer.Option(None, "--context", help="Context string (ML-DSA / SLH-DSA)."),
    export: Optional[str] = typer.Option(None, "--export", help="Write the report as JSON."),
) -> None:
    """Run the full workflow for one algorithm."""
    cfg = _config()
    registry = _build_registry()
    if name is None:
        name = (
            registry.pick(cfg.preferred_signatures, Kind.SIGNATURE)
            or registry.pick(registry.names(Kind.SIGNATURE))
            or registry.pick(cfg.preferred_kems, Kind.KEM)
            or registry.pick(registry.names(Kind.KEM))
        )
        if name is None:
            typer.echo("No algorithm is enabled in the loaded providers.", err=True)
            raise typer.Exit(code=2)
        typer.echo(f"Using {name}")
    try:
        desc = registry.describe(name)
    except AlgorithmUnavailable as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    for line in describe_lines(desc):
        typer.echo(line)
    options = cfg.workflow_options(_encode(message), _encode(tampered), _encode(context))
    try:
        reports = run_all(registry, [name], options, EchoSink())
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    export_json(reports, export, command="demo")
    if reports[0].failed:
        raise typer.Exit(code=1)


@app.command()
def check(
    names: Optional[List[str]] = typer.Argument(None, help="Algorithms to check (default: every enabled one)."),
    kind: Optional[Kind] = typer.Option(None, "--kind", case_sensitive=False),
    family: Optional[str] = typer.Option(None, "--family"),
    matrix: Optional[str] = typer.Option(None, "--matrix", help="YAML run matrix."),
    export: Optional[str] = typer.Option(None, "--export", help="Write all reports as JSON."),
) -> None:
    """Run the workflow over many algorithms; exits 1 if any failed."""
    cfg = _config()
    run_matrix = _matrix(matrix)
    if run_matrix is not None:
        cfg = run_matrix.apply(cfg)
    registry = _build_registry()
    selected = _select(registry, names, run_matrix, kind, family)
    if not selected:
        typer.echo("No algorithms selected.", err=True)
        raise typer.Exit(code=2)
    try:
        reports = run_all(registry, selected, cfg.workflow_options(), EchoSink())
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=2)
    typer.echo(summary_line(reports))
    export_json(reports, export, command="check")
    if any(r.failed for r in reports):
        raise typer.Exit(code=1)


@app.command()
def bench(
    names: Optional[List[str]] = typer.Argument(None, help="Algorithms to time (default: every enabled one)."),
    runs: Optional[int] = typer.Option(None, "--runs", min=1, help="Runs per algorithm."),
    memory: bool = typer.Option(False, "--memory", help="Record resident-set deltas per stage."),
    kind: Optional[Kind] = typer.Option(None, "--kind", case_sensitive=False),
    family: Optional[str] = typer.Option(None, "--family"),
    matrix: Optional[str] = typer.Option(None, "--matrix", help="YAML run matrix."),
    export: Optional[str] = typer.Option(None, "--export", help="Write all reports as JSON."),
) -> None:
    """Time keygen, operation and verification per algorithm."""
    cfg = _config()
    run_matrix = _matrix(matrix)
    if run_matrix is not None:
        cfg = run_matrix.apply(cfg)
    registry = _build_registry()
    selected = _select(registry, names, run_matrix, kind, family)
    if not selected:
        typer.echo("No algorithms selected.", err=True)
        raise typer.Exit(code=2)
    runner = BenchmarkRunner(
        registry, runs or cfg.bench_runs, cfg.bench_message, capture_memory=memory
    )
    reports = []
    for name in selected:
        report = runner.run(name)
        reports.append(report)
        for line in benchmark_lines(report):
            typer.echo(line)
    typer.echo(summary_line(reports))
    export_json(reports, export, command="bench", runs=runner.runs)
    if any(r.failed for r in reports):
        raise typer.Exit(code=1)


@app.command()
def status() -> None:
    """Summarise which providers loaded and how many mechanisms each kind exposes."""
    registry = _build_registry()
    if not registry.provider_names:
        typer.echo("No providers loaded (is liboqs-python installed?)", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Providers: {', '.join(registry.provider_names)}")
    for kind in Kind:
        enabled = len(registry.names(kind, enabled_only=True))
        known = len(registry.names(kind, enabled_only=False))
        typer.echo(f"{kind.value}: {enabled} enabled / {known} supported")


def app_main():
    app()


if __name__ == "__main__":
    app_main()
