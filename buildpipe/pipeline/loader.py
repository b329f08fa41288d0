"""Load and validate pipeline YAML definitions."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from buildpipe.pipeline.errors import PipelineError
from buildpipe.pipeline.schema import PipelineDefinition


class PipelineLoadError(PipelineError):
    """Raised when a pipeline definition cannot be loaded or validated."""


def _format_location(loc: tuple[int | str, ...]) -> str:
    """Render a pydantic error location as ``spec.steps[1].run``."""
    out = ""
    for part in loc:
        if isinstance(part, int):
            out += f"[{part}]"
        else:
            out += f".{part}" if out else str(part)
    return out or "(root)"


def _format_validation_error(e: ValidationError) -> str:
    lines = []
    for err in e.errors():
        lines.append(f"  {_format_location(err['loc'])}: {err['msg']}")
    return "\n".join(lines)


def load_pipeline(path: Path) -> PipelineDefinition:
    """Read a YAML file and validate it as a PipelineDefinition.

    Validation errors name the offending field, including the index of the
    failing step (``spec.steps[2].run: ...``).
    """
    try:
        raw = path.read_text()
    except OSError as e:
        raise PipelineLoadError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise PipelineLoadError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise PipelineLoadError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        return PipelineDefinition.model_validate(data)
    except ValidationError as e:
        raise PipelineLoadError(
            f"Validation failed for {path}:\n{_format_validation_error(e)}"
        ) from e
