"""Command execution: the executor protocol and its subprocess implementation."""

from __future__ import annotations

import logging
import shlex
import subprocess
import time
from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol

from buildpipe.pipeline.errors import ExecutionEnvironmentError

if TYPE_CHECKING:
    from buildpipe.pipeline.context import EnvironmentContext
    from buildpipe.pipeline.executor import ExecutionResult

logger = logging.getLogger(__name__)

SENSITIVE_ENV_PREFIXES = (
    "AWS_SECRET",
    "AWS_SESSION_TOKEN",
    "GITHUB_TOKEN",
    "GH_TOKEN",
    "GITLAB_TOKEN",
    "CARGO_REGISTRY_TOKEN",
    "CARGO_REGISTRIES_",
    "NPM_TOKEN",
    "DOCKER_PASSWORD",
    "VAULT_TOKEN",
)

SENSITIVE_ENV_SUFFIXES = (
    "_KEY",
    "_SECRET",
    "_TOKEN",
    "_PASSWORD",
    "_CREDENTIAL",
    "_CREDENTIALS",
)

_MASK = "****"


def is_sensitive_key(name: str) -> bool:
    """Return True if an env var name looks like it holds a secret."""
    upper = name.upper()
    return upper.startswith(SENSITIVE_ENV_PREFIXES) or upper.endswith(SENSITIVE_ENV_SUFFIXES)


def mask_env(env: dict[str, str] | None) -> dict[str, str]:
    """Copy *env* with secret-looking values replaced for display."""
    return {k: (_MASK if is_sensitive_key(k) else v) for k, v in (env or {}).items()}


def format_command(command: Sequence[str]) -> str:
    """Render an argv as a copy-pasteable shell line."""
    return shlex.join(command)


def format_subprocess_output(
    stdout: str | None,
    stderr: str | None,
    returncode: int | None = None,
) -> str:
    """Assemble stdout/stderr/returncode into a single diagnostic string."""
    parts: list[str] = []
    if returncode is not None and returncode != 0:
        parts.append(f"Exit code: {returncode}")
    if stdout:
        parts.append(f"STDOUT:\n{stdout}")
    if stderr:
        parts.append(f"STDERR:\n{stderr}")
    return "\n".join(parts) if parts else "(no output)"


class CommandExecutor(Protocol):
    def execute(
        self,
        command: str,
        args: Sequence[str],
        context: EnvironmentContext,
    ) -> ExecutionResult: ...


class SubprocessExecutor:
    """Run commands as child processes (no shell).

    With ``capture_output=False`` the child writes straight to the parent's
    stdout/stderr so long builds stream their output.
    """

    def __init__(self, *, capture_output: bool = False) -> None:
        self.capture_output = capture_output

    def execute(
        self,
        command: str,
        args: Sequence[str],
        context: EnvironmentContext,
    ) -> ExecutionResult:
        from buildpipe.pipeline.executor import ExecutionResult

        argv = [command, *args]
        logger.debug("Executing %s (cwd=%s)", format_command(argv), context.cwd)
        start = time.monotonic()
        try:
            proc = subprocess.run(
                argv,
                capture_output=self.capture_output,
                cwd=context.cwd,
                env=context.to_env_dict(),
            )
        except FileNotFoundError:
            if not context.cwd.is_dir():
                raise ExecutionEnvironmentError(
                    argv, f"working directory not found: {context.cwd}"
                ) from None
            raise ExecutionEnvironmentError(argv, "command not found") from None
        except PermissionError:
            raise ExecutionEnvironmentError(argv, "permission denied") from None
        except OSError as e:
            raise ExecutionEnvironmentError(argv, str(e)) from e
        duration_ms = int((time.monotonic() - start) * 1000)

        if self.capture_output:
            return ExecutionResult(
                exit_code=proc.returncode,
                stdout=proc.stdout.decode("utf-8", errors="replace"),
                stderr=proc.stderr.decode("utf-8", errors="replace"),
                duration_ms=duration_ms,
            )
        return ExecutionResult(exit_code=proc.returncode, duration_ms=duration_ms)
