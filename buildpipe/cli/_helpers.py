"""Shared CLI helpers: console, pipeline resolution, and display."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import TYPE_CHECKING

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

if TYPE_CHECKING:
    from buildpipe.pipeline.executor import ExecutionReport, Pipeline
    from buildpipe.pipeline.schema import FormatMode

console = Console()

# Exit code for invalid input (bad pipeline file, unknown preset, missing env file)
EXIT_USAGE = 2


def resolve_pipeline_or_exit(
    pipeline_file: Path | None,
    preset: str | None,
    format_mode: FormatMode | None,
    env_file: Path | None,
) -> Pipeline:
    """Pick the pipeline to run, or print the error and exit.

    Resolution order: ``--file``, ``--preset``, a ``buildpipe.yaml`` in the
    current directory, then the ``rust`` preset. Steps always start in the
    caller's working directory, wherever the file lives.
    """
    from buildpipe.config import find_pipeline_file, load_env_file
    from buildpipe.pipeline.errors import PipelineError
    from buildpipe.pipeline.loader import load_pipeline
    from buildpipe.pipeline.presets import build_preset

    if pipeline_file is not None and preset is not None:
        console.print("[red]Error:[/red] --file and --preset are mutually exclusive")
        raise typer.Exit(EXIT_USAGE)

    if pipeline_file is None and preset is None:
        pipeline_file = find_pipeline_file()

    try:
        env = load_env_file(env_file) if env_file is not None else {}
        if pipeline_file is not None:
            definition = load_pipeline(pipeline_file)
            return definition.to_pipeline(format_mode, env=env)
        pipeline = build_preset(preset or "rust", format_mode or "fix")
    except PipelineError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(EXIT_USAGE) from None

    if env:
        pipeline = dataclasses.replace(pipeline, env={**pipeline.env, **env})
    return pipeline


def display_steps(pipeline: Pipeline) -> None:
    """Print the pipeline's steps as a table, masking secret env values."""
    from buildpipe._subprocess import format_command, mask_env

    table = Table(title=f"Pipeline: {pipeline.name}")
    table.add_column("#", justify="right")
    table.add_column("Step", style="cyan")
    table.add_column("Command")
    table.add_column("Env")
    table.add_column("Cwd")

    for i, step in enumerate(pipeline.steps):
        env_str = ", ".join(f"{k}={v}" for k, v in mask_env(dict(step.env)).items())
        table.add_row(
            str(i),
            escape(step.description or "-"),
            escape(format_command(step.command)),
            escape(env_str) or "-",
            escape(str(step.cwd)) if step.cwd is not None else "-",
        )

    console.print(table)
    if pipeline.env:
        console.print("\n[bold]Pipeline env:[/bold]")
        for k, v in mask_env(dict(pipeline.env)).items():
            console.print(f"  {escape(k)} = {escape(v)}")


def display_report(report: ExecutionReport, total_steps: int) -> None:
    """Print the run summary."""
    from buildpipe._subprocess import format_subprocess_output

    if report.success:
        console.print(
            f"[green]Pipeline '{escape(report.pipeline_name)}' succeeded[/green] "
            f"({report.steps_run}/{total_steps} steps, {report.duration_ms}ms)"
        )
        return

    console.print(
        f"[red]Pipeline '{escape(report.pipeline_name)}' failed[/red] "
        f"({report.steps_run}/{total_steps} steps succeeded, {report.duration_ms}ms)"
    )
    console.print(f"[red]Error:[/red] {escape(str(report.failure))}")

    failed = report.step_results[-1] if report.step_results else None
    if failed is not None and (failed.stdout or failed.stderr):
        console.print(
            escape(format_subprocess_output(failed.stdout, failed.stderr)),
            highlight=False,
        )
