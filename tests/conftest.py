"""Shared test fixtures and helpers."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import pytest

from buildpipe.pipeline.context import EnvironmentContext
from buildpipe.pipeline.errors import ExecutionEnvironmentError
from buildpipe.pipeline.executor import ExecutionResult, Pipeline, Step, configure


class FakeExecutor:
    """Scripted executor: exit codes keyed by executable, calls recorded.

    ``"true"`` exits 0 and ``"false"`` exits 1 unless overridden. Executables
    listed in *missing* raise :class:`ExecutionEnvironmentError`.
    """

    def __init__(
        self,
        exit_codes: dict[str, int] | None = None,
        *,
        missing: Sequence[str] = (),
        stdout: str | None = None,
        stderr: str | None = None,
    ) -> None:
        self.exit_codes = {"true": 0, "false": 1, **(exit_codes or {})}
        self.missing = set(missing)
        self.stdout = stdout
        self.stderr = stderr
        self.calls: list[tuple[str, tuple[str, ...], EnvironmentContext]] = []

    def execute(
        self,
        command: str,
        args: Sequence[str],
        context: EnvironmentContext,
    ) -> ExecutionResult:
        self.calls.append((command, tuple(args), context))
        if command in self.missing:
            raise ExecutionEnvironmentError([command, *args], "command not found")
        return ExecutionResult(
            exit_code=self.exit_codes.get(command, 0),
            stdout=self.stdout,
            stderr=self.stderr,
        )

    @property
    def commands(self) -> list[tuple[str, ...]]:
        return [(cmd, *args) for cmd, args, _ in self.calls]


def make_pipeline(*command_lines: str, name: str = "test-pipeline") -> Pipeline:
    """Build a pipeline from shell-style command lines."""
    return configure([Step.of(line) for line in command_lines], name=name)


@pytest.fixture()
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def context(tmp_path: Path) -> EnvironmentContext:
    return EnvironmentContext(cwd=tmp_path, env={"PATH": "/usr/bin:/bin", "HOME": str(tmp_path)})
