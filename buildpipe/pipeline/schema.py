"""Pydantic models for pipeline YAML definitions."""

from __future__ import annotations

import shlex
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from buildpipe.pipeline.executor import Pipeline, Step, configure

FormatMode = Literal["fix", "check"]


class ApiVersion(StrEnum):
    V1 = "buildpipe/v1"


def _split_command(value: object) -> object:
    if isinstance(value, str):
        try:
            return shlex.split(value)
        except ValueError as e:
            raise ValueError(f"invalid command line {value!r}: {e}") from None
    return value


class PipelineStep(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    run: list[str]
    check: list[str] | None = None
    description: str = ""
    env: dict[str, str] = {}
    cwd: str | None = None

    @field_validator("run", "check", mode="before")
    @classmethod
    def _parse_command(cls, v: object) -> object:
        return _split_command(v)

    @field_validator("run", "check")
    @classmethod
    def _non_empty(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and (not v or not v[0].strip()):
            raise ValueError("command must not be empty")
        return v

    def to_step(self, format_mode: FormatMode = "fix") -> Step:
        command = self.check if format_mode == "check" and self.check else self.run
        return Step(
            command=tuple(command),
            description=self.description,
            env=self.env,
            cwd=self.cwd,
        )


class PipelineMetadata(BaseModel):
    name: Annotated[str, Field(pattern=r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")]
    description: str = ""


class PipelineSpec(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    steps: list[PipelineStep] = Field(min_length=1)
    format_mode: FormatMode = "fix"
    env: dict[str, str] = {}


class PipelineDefinition(BaseModel):
    apiVersion: ApiVersion
    kind: Literal["Pipeline"]
    metadata: PipelineMetadata
    spec: PipelineSpec

    def to_pipeline(
        self,
        format_mode: FormatMode | None = None,
        env: dict[str, str] | None = None,
    ) -> Pipeline:
        """Build the runtime pipeline.

        *format_mode* overrides ``spec.format_mode``; *env* is layered on top
        of ``spec.env``.
        """
        mode = format_mode or self.spec.format_mode
        merged_env = {**self.spec.env, **(env or {})}
        return configure(
            [s.to_step(mode) for s in self.spec.steps],
            name=self.metadata.name,
            env=merged_env,
        )
