"""Tests for the subprocess executor and command display helpers."""

from __future__ import annotations

import shutil
import sys

import pytest

from buildpipe._subprocess import (
    SubprocessExecutor,
    format_command,
    format_subprocess_output,
    is_sensitive_key,
    mask_env,
)
from buildpipe.pipeline.context import EnvironmentContext
from buildpipe.pipeline.errors import ExecutionEnvironmentError
from buildpipe.pipeline.executor import Step, configure, run_pipeline


@pytest.fixture()
def process_context(tmp_path) -> EnvironmentContext:
    return EnvironmentContext.from_process().with_overrides(cwd=tmp_path)


class TestSubprocessExecutor:
    def test_exit_code_returned(self, process_context):
        executor = SubprocessExecutor()
        result = executor.execute(
            sys.executable, ["-c", "import sys; sys.exit(3)"], process_context
        )
        assert result.exit_code == 3
        assert result.ok is False
        assert result.stdout is None

    def test_capture_output(self, process_context):
        executor = SubprocessExecutor(capture_output=True)
        result = executor.execute(
            sys.executable,
            ["-c", "import sys; print('hello'); print('oops', file=sys.stderr)"],
            process_context,
        )
        assert result.ok is True
        assert result.stdout.strip() == "hello"
        assert result.stderr.strip() == "oops"

    def test_env_and_cwd_from_context(self, process_context, tmp_path):
        ctx = process_context.with_overrides(env={"BUILDPIPE_PROBE": "42"})
        executor = SubprocessExecutor(capture_output=True)
        result = executor.execute(
            sys.executable,
            ["-c", "import os; print(os.environ['BUILDPIPE_PROBE']); print(os.getcwd())"],
            ctx,
        )
        lines = result.stdout.splitlines()
        assert lines[0] == "42"
        assert lines[1] == str(tmp_path.resolve())

    def test_missing_command_raises(self, process_context):
        executor = SubprocessExecutor()
        with pytest.raises(ExecutionEnvironmentError, match="command not found") as exc_info:
            executor.execute("buildpipe-no-such-command-xyz", ["--help"], process_context)
        assert exc_info.value.command == ("buildpipe-no-such-command-xyz", "--help")
        assert exc_info.value.index is None

    def test_missing_cwd_raises(self, process_context, tmp_path):
        ctx = process_context.with_overrides(cwd=tmp_path / "does-not-exist")
        with pytest.raises(ExecutionEnvironmentError, match="working directory not found"):
            SubprocessExecutor().execute(sys.executable, ["-c", "pass"], ctx)


@pytest.mark.skipif(
    shutil.which("true") is None or shutil.which("false") is None,
    reason="requires POSIX true/false",
)
class TestRealPipeline:
    def test_all_true(self, process_context):
        pipe = configure([Step.of("true"), Step.of("true"), Step.of("true")])
        report = run_pipeline(pipe, context=process_context)
        assert report.success is True
        assert report.steps_run == 3
        assert report.exit_code == 0

    def test_false_stops_pipeline(self, process_context, tmp_path):
        marker = tmp_path / "ran"
        pipe = configure(
            [
                Step.of("true"),
                Step.of("false"),
                Step((sys.executable, "-c", f"open({str(marker)!r}, 'w').close()")),
            ]
        )
        report = run_pipeline(pipe, context=process_context)
        assert report.success is False
        assert report.steps_run == 1
        assert report.exit_code != 0
        assert not marker.exists()


class TestFormatting:
    def test_format_command_quotes(self):
        assert format_command(["echo", "a b"]) == "echo 'a b'"

    def test_format_output(self):
        out = format_subprocess_output("o", "e", returncode=2)
        assert out == "Exit code: 2\nSTDOUT:\no\nSTDERR:\ne"

    def test_format_output_empty(self):
        assert format_subprocess_output(None, None) == "(no output)"


class TestSensitiveEnv:
    @pytest.mark.parametrize(
        "name", ["GITHUB_TOKEN", "CARGO_REGISTRY_TOKEN", "my_api_key", "DB_PASSWORD"]
    )
    def test_sensitive(self, name):
        assert is_sensitive_key(name) is True

    @pytest.mark.parametrize("name", ["PATH", "DEBIAN_FRONTEND", "RUST_BACKTRACE", "HTTPS_PROXY"])
    def test_not_sensitive(self, name):
        assert is_sensitive_key(name) is False

    def test_mask_env(self):
        masked = mask_env({"NPM_TOKEN": "abc", "CI": "true"})
        assert masked == {"NPM_TOKEN": "****", "CI": "true"}
