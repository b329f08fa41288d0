"""Built-in pipelines."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from buildpipe.pipeline.errors import ConfigurationError
from buildpipe.pipeline.executor import Pipeline, Step, configure
from buildpipe.pipeline.schema import FormatMode

DEFAULT_NATIVE_PACKAGES = ("pkg-config", "libssl-dev", "protobuf-compiler")

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


def rust_pipeline(
    *,
    format_mode: FormatMode = "fix",
    packages: Sequence[str] = DEFAULT_NATIVE_PACKAGES,
) -> Pipeline:
    """Provision a Debian-based host and build, test and format a Cargo workspace."""
    fmt = ["cargo", "fmt", "--all"]
    if format_mode == "check":
        fmt += ["--", "--check"]

    steps = [
        Step(("apt", "update", "-qq"), "Update package index", env=_APT_ENV),
        Step(
            ("apt-get", "-qq", "install", *packages),
            "Install native build dependencies",
            env=_APT_ENV,
        ),
        Step(("apt-get", "-qq", "install", "git"), "Install git", env=_APT_ENV),
        Step(("rustup", "component", "add", "rustfmt"), "Add rustfmt component"),
        Step(("cargo", "build", "--verbose"), "Build"),
        Step(("cargo", "test", "--verbose"), "Test"),
        Step(tuple(fmt), "Check formatting" if format_mode == "check" else "Format"),
    ]
    return configure(steps, name="rust")


PRESETS: dict[str, Callable[..., Pipeline]] = {
    "rust": rust_pipeline,
}


def build_preset(name: str, format_mode: FormatMode = "fix") -> Pipeline:
    """Return the named built-in pipeline.

    Raises:
        ConfigurationError: If *name* is not a known preset.
    """
    builder = PRESETS.get(name)
    if builder is None:
        raise ConfigurationError(
            f"Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}"
        )
    return builder(format_mode=format_mode)
