"""Sequential, fail-fast execution engine for pipelines."""

from __future__ import annotations

import logging
import shlex
import time
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

from buildpipe.pipeline.context import EnvironmentContext
from buildpipe.pipeline.errors import (
    ConfigurationError,
    ExecutionEnvironmentError,
    StepFailure,
)

if TYPE_CHECKING:
    from buildpipe._subprocess import CommandExecutor

logger = logging.getLogger(__name__)

# Exit code reported when the failing step's own code is unavailable
_FALLBACK_EXIT_CODE = 1


# ---------------------------------------------------------------------------
# Steps and pipelines
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Step:
    command: tuple[str, ...]
    description: str = ""
    env: Mapping[str, str] = field(default_factory=dict, hash=False)
    cwd: str | Path | None = None

    def __post_init__(self) -> None:
        if isinstance(self.command, str):
            raise ConfigurationError(
                f"Step command must be a sequence of arguments, got string {self.command!r};"
                " use Step.of() to parse a command line"
            )
        try:
            command = tuple(self.command or ())
        except TypeError:
            raise ConfigurationError(
                f"Step command must be a sequence of arguments, got {type(self.command).__name__}"
            ) from None
        if not command:
            raise ConfigurationError("Step is missing a command")
        for i, arg in enumerate(command):
            if not isinstance(arg, str):
                raise ConfigurationError(
                    f"Step command argument {i} must be a string, got {type(arg).__name__}"
                )
        if not command[0].strip():
            raise ConfigurationError("Step is missing a command")
        object.__setattr__(self, "command", command)
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    @classmethod
    def of(
        cls,
        command_line: str,
        description: str = "",
        *,
        env: Mapping[str, str] | None = None,
        cwd: str | Path | None = None,
    ) -> Step:
        """Build a step from a shell-style command line (split with :mod:`shlex`)."""
        try:
            argv = shlex.split(command_line)
        except ValueError as e:
            raise ConfigurationError(f"Invalid command line {command_line!r}: {e}") from e
        return cls(command=tuple(argv), description=description, env=env or {}, cwd=cwd)

    @property
    def executable(self) -> str:
        return self.command[0]

    @property
    def args(self) -> tuple[str, ...]:
        return self.command[1:]

    @property
    def name(self) -> str:
        return self.description or shlex.join(self.command)


@dataclass(frozen=True)
class Pipeline:
    steps: tuple[Step, ...]
    name: str = "pipeline"
    env: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "steps", tuple(self.steps))
        object.__setattr__(self, "env", MappingProxyType(dict(self.env)))

    def __len__(self) -> int:
        return len(self.steps)


def configure(
    steps: Iterable[Step],
    *,
    name: str = "pipeline",
    env: Mapping[str, str] | None = None,
) -> Pipeline:
    """Build an immutable pipeline from an ordered sequence of steps.

    Raises:
        ConfigurationError: If *steps* is empty or holds something other than a Step.
    """
    steps = tuple(steps)
    if not steps:
        raise ConfigurationError("Pipeline must contain at least one step")
    for i, step in enumerate(steps):
        if not isinstance(step, Step):
            raise ConfigurationError(
                f"Pipeline step {i} must be a Step, got {type(step).__name__}"
            )
    return Pipeline(steps=steps, name=name, env=env or {})


# ---------------------------------------------------------------------------
# Results and state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionResult:
    exit_code: int
    stdout: str | None = None
    stderr: str | None = None
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


@dataclass(frozen=True)
class Ok:
    result: ExecutionResult


@dataclass(frozen=True)
class Failed:
    cause: StepFailure | ExecutionEnvironmentError
    result: ExecutionResult | None = None


StepOutcome = Ok | Failed


@dataclass
class StepResult:
    index: int
    name: str
    command: tuple[str, ...]
    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    duration_ms: int = 0
    success: bool = True
    error: str | None = None


class PipelineStatus(StrEnum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = {
    PipelineStatus.NOT_STARTED: frozenset({PipelineStatus.RUNNING}),
    PipelineStatus.RUNNING: frozenset({PipelineStatus.SUCCEEDED, PipelineStatus.FAILED}),
    PipelineStatus.SUCCEEDED: frozenset(),
    PipelineStatus.FAILED: frozenset(),
}


@dataclass
class PipelineState:
    current_step_index: int = 0
    status: PipelineStatus = PipelineStatus.NOT_STARTED
    terminated: bool = False
    failure_cause: StepFailure | ExecutionEnvironmentError | None = None

    def transition(self, new_status: PipelineStatus) -> None:
        if new_status not in _TRANSITIONS[self.status]:
            raise RuntimeError(f"Invalid pipeline transition: {self.status} -> {new_status}")
        self.status = new_status

    def fail(self, cause: StepFailure | ExecutionEnvironmentError) -> None:
        self.transition(PipelineStatus.FAILED)
        self.terminated = True
        self.failure_cause = cause


@dataclass
class ExecutionReport:
    pipeline_name: str
    run_id: str
    success: bool = True
    steps_run: int = 0
    step_results: list[StepResult] = field(default_factory=list)
    failure: StepFailure | ExecutionEnvironmentError | None = None
    duration_ms: int = 0
    state: PipelineState = field(default_factory=PipelineState)

    @property
    def failed_index(self) -> int | None:
        return self.failure.index if self.failure is not None else None

    @property
    def exit_code(self) -> int:
        """Process exit code for this run.

        ``0`` on success, the failing step's own code when it fits in
        ``1..255``, ``128 + N`` for a step killed by signal N, else ``1``.
        """
        if self.success:
            return 0
        if isinstance(self.failure, StepFailure):
            code = self.failure.exit_code
            if 0 < code < 256:
                return code
            if -128 < code < 0:
                return 128 - code
        return _FALLBACK_EXIT_CODE

    def raise_for_failure(self) -> None:
        """Raise the recorded failure cause, if any."""
        if self.failure is not None:
            raise self.failure


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


def _execute_step(
    index: int,
    step: Step,
    executor: CommandExecutor,
    context: EnvironmentContext,
) -> StepOutcome:
    """Run one step and classify the outcome."""
    try:
        result = executor.execute(step.executable, step.args, context.for_step(step))
    except ExecutionEnvironmentError as e:
        return Failed(cause=e.at_index(index))
    if result.ok:
        return Ok(result)
    return Failed(cause=StepFailure(index, step.command, result.exit_code), result=result)


def _to_step_result(index: int, step: Step, outcome: StepOutcome, elapsed_ms: int) -> StepResult:
    sr = StepResult(index=index, name=step.name, command=step.command)
    result = outcome.result
    if result is not None:
        sr.exit_code = result.exit_code
        sr.stdout = result.stdout
        sr.stderr = result.stderr
        sr.duration_ms = result.duration_ms or elapsed_ms
    else:
        sr.duration_ms = elapsed_ms
    if isinstance(outcome, Failed):
        sr.success = False
        sr.error = str(outcome.cause)
    return sr


def run_pipeline(
    pipeline: Pipeline,
    *,
    executor: CommandExecutor | None = None,
    context: EnvironmentContext | None = None,
    on_step_start: Callable[[int, Step], None] | None = None,
    on_step_end: Callable[[int, StepResult], None] | None = None,
) -> ExecutionReport:
    """Execute the pipeline's steps in order, stopping at the first failure.

    Each call starts from a fresh :class:`PipelineState`; nothing carries over
    between runs of the same pipeline.
    """
    if executor is None:
        from buildpipe._subprocess import SubprocessExecutor

        executor = SubprocessExecutor()
    if context is None:
        context = EnvironmentContext.from_process()
    if pipeline.env:
        context = context.with_overrides(env=pipeline.env)

    report = ExecutionReport(pipeline_name=pipeline.name, run_id=uuid.uuid4().hex[:12])
    state = report.state
    state.transition(PipelineStatus.RUNNING)
    start = time.monotonic()

    for index, step in enumerate(pipeline.steps):
        state.current_step_index = index
        logger.debug("Step %d/%d: %s", index + 1, len(pipeline), step.name)
        if on_step_start is not None:
            on_step_start(index, step)

        step_start = time.monotonic()
        outcome = _execute_step(index, step, executor, context)
        sr = _to_step_result(index, step, outcome, int((time.monotonic() - step_start) * 1000))
        report.step_results.append(sr)
        if on_step_end is not None:
            on_step_end(index, sr)

        if isinstance(outcome, Failed):
            logger.warning("%s", outcome.cause)
            state.fail(outcome.cause)
            report.failure = outcome.cause
            report.success = False
            break
        report.steps_run += 1
    else:
        state.transition(PipelineStatus.SUCCEEDED)

    report.duration_ms = int((time.monotonic() - start) * 1000)
    return report
