"""Immutable execution environment handed to every step invocation."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from buildpipe.pipeline.executor import Step


def _freeze(env: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType(dict(env or {}))


@dataclass(frozen=True)
class EnvironmentContext:
    """Working directory and environment variables for a command.

    Built from the calling process once, then derived per step with
    :meth:`for_step`. The runner never touches ``os.environ`` or the process
    working directory; everything a step sees comes from this value.
    """

    cwd: Path
    env: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "cwd", Path(self.cwd))
        object.__setattr__(self, "env", _freeze(self.env))

    @classmethod
    def from_process(cls) -> EnvironmentContext:
        """Snapshot the current process environment and working directory."""
        return cls(cwd=Path.cwd(), env=dict(os.environ))

    def with_overrides(
        self,
        env: Mapping[str, str] | None = None,
        cwd: str | Path | None = None,
    ) -> EnvironmentContext:
        """Return a new context with *env* merged on top and *cwd* applied.

        A relative *cwd* resolves against the current context's directory.
        """
        merged = dict(self.env)
        if env:
            merged.update(env)
        new_cwd = self.cwd
        if cwd is not None:
            new_cwd = Path(cwd)
            if not new_cwd.is_absolute():
                new_cwd = self.cwd / new_cwd
        return EnvironmentContext(cwd=new_cwd, env=merged)

    def for_step(self, step: Step) -> EnvironmentContext:
        """Apply a step's own overrides."""
        if not step.env and step.cwd is None:
            return self
        return self.with_overrides(env=step.env, cwd=step.cwd)

    def to_env_dict(self) -> dict[str, str]:
        """Plain mutable copy suitable for ``subprocess`` calls."""
        return dict(self.env)
