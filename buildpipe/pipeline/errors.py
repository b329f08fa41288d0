"""Error taxonomy for pipeline configuration and execution."""

from __future__ import annotations

import shlex
from collections.abc import Sequence


class PipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(PipelineError):
    """Raised when a pipeline or step is defined incorrectly.

    Always raised before any step runs.
    """


class StepFailure(PipelineError):
    """A step's command ran and exited with a non-zero status."""

    def __init__(self, index: int, command: Sequence[str], exit_code: int) -> None:
        self.index = index
        self.command = tuple(command)
        self.exit_code = exit_code
        super().__init__(
            f"Step {index} failed with exit code {exit_code}: {shlex.join(self.command)}"
        )


class ExecutionEnvironmentError(PipelineError):
    """A step's command could not be located or started at all."""

    def __init__(
        self,
        command: Sequence[str],
        reason: str,
        *,
        index: int | None = None,
    ) -> None:
        self.command = tuple(command)
        self.reason = reason
        self.index = index
        where = f"Step {index}" if index is not None else "Command"
        super().__init__(f"{where} could not be executed ({reason}): {shlex.join(self.command)}")

    def at_index(self, index: int) -> ExecutionEnvironmentError:
        """Return a copy of this error bound to the step at *index*."""
        return ExecutionEnvironmentError(self.command, self.reason, index=index)
