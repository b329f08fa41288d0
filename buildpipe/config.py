"""Pipeline file discovery and ``.env`` loading.

buildpipe defines no environment variables of its own; tools invoked by steps
read whatever they need (proxies, registry tokens) from the inherited
environment, optionally extended by an explicit ``--env-file``.
"""

from __future__ import annotations

import logging
from pathlib import Path

from buildpipe.pipeline.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_PIPELINE_FILES = ("buildpipe.yaml", "buildpipe.yml")


def find_pipeline_file(start: Path | None = None) -> Path | None:
    """Return the first default pipeline file found in *start* (default: cwd)."""
    base = start or Path.cwd()
    for name in DEFAULT_PIPELINE_FILES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_env_file(path: Path) -> dict[str, str]:
    """Read a dotenv file into a dict without touching ``os.environ``.

    Keys declared without a value are dropped.
    """
    from dotenv import dotenv_values

    if not path.is_file():
        raise ConfigurationError(f"Env file not found: {path}")
    values = {k: v for k, v in dotenv_values(path).items() if v is not None}
    logger.debug("Loaded %d variable(s) from %s", len(values), path)
    return values
