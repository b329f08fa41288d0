"""Tests for buildpipe.report: context building, rendering, and export."""

from __future__ import annotations

import pytest

from buildpipe.pipeline.executor import run_pipeline
from buildpipe.report import (
    BUILT_IN_TEMPLATES,
    build_report_context,
    export_report,
    render_report,
)
from tests.conftest import FakeExecutor, make_pipeline


def _run(*lines, executor=None, context=None):
    pipe = make_pipeline(*lines, name="ci")
    report = run_pipeline(pipe, executor=executor or FakeExecutor(), context=context)
    return pipe, report


class TestBuildReportContext:
    def test_success(self, context):
        pipe, report = _run("true", "true", context=context)
        ctx = build_report_context(report, pipe)

        assert ctx.pipeline_name == "ci"
        assert ctx.success is True
        assert ctx.steps_run == 2
        assert ctx.total_steps == 2
        assert ctx.exit_code == 0
        assert ctx.error is None
        assert ctx.not_run == []
        assert [s["command"] for s in ctx.steps] == ["true", "true"]

    def test_failure_lists_unrun_steps(self, context):
        executor = FakeExecutor({"cargo": 101}, stderr="error[E0308]: mismatched types")
        pipe, report = _run("true", "cargo build", "cargo test", executor=executor, context=context)
        ctx = build_report_context(report, pipe)

        assert ctx.success is False
        assert ctx.exit_code == 101
        assert ctx.not_run == ["cargo test"]
        assert "exit code 101" in ctx.error
        assert "mismatched types" in ctx.failure_output


class TestRenderReport:
    def test_render_success(self, context):
        pipe, report = _run("true", context=context)
        text = render_report(build_report_context(report, pipe))
        assert "# Pipeline report: ci" in text
        assert "Succeeded" in text
        assert "## Failure" not in text

    def test_render_failure(self, context):
        pipe, report = _run("true", "false", "true", context=context)
        text = render_report(build_report_context(report, pipe))
        assert "Failed" in text
        assert "## Failure" in text
        assert "Step 1 failed with exit code 1" in text
        assert "Not run: true" in text

    def test_unknown_template(self, context):
        pipe, report = _run("true", context=context)
        with pytest.raises(ValueError, match="Unknown report template"):
            render_report(build_report_context(report, pipe), "fancy")

    def test_builtin_templates(self):
        assert "default" in BUILT_IN_TEMPLATES


class TestExportReport:
    def test_writes_file(self, context, tmp_path):
        pipe, report = _run("true", context=context)
        out = export_report(report, pipe, tmp_path / "report.md")
        assert out.exists()
        assert "Pipeline report: ci" in out.read_text()
