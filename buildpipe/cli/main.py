"""Typer CLI for buildpipe."""

from __future__ import annotations

from typing import Annotated

import typer

from buildpipe.cli._helpers import console

app = typer.Typer(
    name="buildpipe",
    help="Provision, build, test and format a project as one fail-fast pipeline.",
    no_args_is_help=False,
)


def version_callback(value: bool) -> None:
    if value:
        from buildpipe import __version__

        console.print(f"buildpipe {__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """buildpipe: run a provisioning-then-verification pipeline."""
    from buildpipe._log import setup_logging

    setup_logging(verbose=verbose)

    if ctx.invoked_subcommand is not None:
        return

    # No subcommand: run the default pipeline
    run()


from buildpipe.cli.run_cmd import presets, run, validate  # noqa: E402

app.command()(run)
app.command()(validate)
app.command()(presets)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
