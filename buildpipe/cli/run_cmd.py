"""Pipeline commands: run, validate, presets."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.markup import escape
from rich.table import Table

from buildpipe.cli._helpers import (
    EXIT_USAGE,
    console,
    display_report,
    display_steps,
    resolve_pipeline_or_exit,
)

if TYPE_CHECKING:
    from buildpipe.pipeline.executor import ExecutionReport, Pipeline, Step, StepResult


def _maybe_export_report(report: ExecutionReport, pipeline: Pipeline, output_path: Path) -> None:
    """Try to export a report; warn on failure, never crash."""
    try:
        from buildpipe.report import export_report

        path = export_report(report, pipeline, output_path)
        console.print(f"[green]Report exported:[/green] {escape(str(path))}")
    except Exception as e:
        console.print(f"[yellow]Warning:[/yellow] Report export failed: {escape(str(e))}")


def run(
    pipeline_file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Pipeline YAML (default: ./buildpipe.yaml)"),
    ] = None,
    preset: Annotated[
        str | None, typer.Option("--preset", help="Run a built-in pipeline instead of a file")
    ] = None,
    check: Annotated[
        bool, typer.Option("--check", help="Verify formatting instead of rewriting it")
    ] = False,
    fix: Annotated[
        bool, typer.Option("--fix", help="Rewrite formatting even if the pipeline says check")
    ] = False,
    env_file: Annotated[
        Path | None, typer.Option("--env-file", help="Extra environment for every step")
    ] = None,
    capture: Annotated[
        bool, typer.Option("--capture", help="Capture step output; show it only on failure")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", help="List the steps without executing them")
    ] = False,
    report_path: Annotated[
        Path | None, typer.Option("--report", help="Write a Markdown report to this path")
    ] = None,
) -> None:
    """Run the pipeline, stopping at the first failing step."""
    from buildpipe._subprocess import SubprocessExecutor, format_command
    from buildpipe.pipeline.context import EnvironmentContext
    from buildpipe.pipeline.executor import run_pipeline

    if check and fix:
        console.print("[red]Error:[/red] --check and --fix are mutually exclusive")
        raise typer.Exit(EXIT_USAGE)
    format_mode = "check" if check else "fix" if fix else None
    pipe = resolve_pipeline_or_exit(pipeline_file, preset, format_mode, env_file)

    if dry_run:
        display_steps(pipe)
        console.print("\n[green]Pipeline definition is valid.[/green]")
        return

    def _on_start(index: int, step: Step) -> None:
        console.print(f"[bold]+ {escape(format_command(step.command))}[/bold]", highlight=False)

    def _on_end(index: int, result: StepResult) -> None:
        if not result.success:
            console.print(f"[red]x[/red] step {index} ({escape(result.name)}) failed")

    report = run_pipeline(
        pipe,
        executor=SubprocessExecutor(capture_output=capture),
        context=EnvironmentContext.from_process(),
        on_step_start=_on_start,
        on_step_end=_on_end,
    )
    display_report(report, len(pipe))

    if report_path is not None:
        _maybe_export_report(report, pipe, report_path)

    if not report.success:
        raise typer.Exit(report.exit_code)


def validate(
    pipeline_file: Annotated[
        Path | None,
        typer.Option("--file", "-f", help="Pipeline YAML (default: ./buildpipe.yaml)"),
    ] = None,
) -> None:
    """Validate a pipeline file and show its steps."""
    from buildpipe.config import find_pipeline_file
    from buildpipe.pipeline.errors import PipelineError
    from buildpipe.pipeline.loader import load_pipeline

    if pipeline_file is None:
        pipeline_file = find_pipeline_file()
        if pipeline_file is None:
            console.print("[red]Error:[/red] No pipeline file found (buildpipe.yaml)")
            raise typer.Exit(1)

    try:
        pipe = load_pipeline(pipeline_file).to_pipeline()
    except PipelineError as e:
        console.print(f"[red]Invalid:[/red] {escape(str(e))}")
        raise typer.Exit(1) from None

    display_steps(pipe)
    console.print("[green]Valid[/green]")


def presets() -> None:
    """List built-in pipelines."""
    from buildpipe.pipeline.presets import PRESETS

    table = Table(title="Presets")
    table.add_column("Name", style="cyan")
    table.add_column("Steps", justify="right")
    table.add_column("Description")

    for name, builder in sorted(PRESETS.items()):
        doc = (builder.__doc__ or "").strip().splitlines()
        table.add_row(name, str(len(builder())), doc[0] if doc else "")

    console.print(table)
