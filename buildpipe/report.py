"""Markdown report generation from pipeline runs."""

from __future__ import annotations

import importlib.resources
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Template

from buildpipe._subprocess import format_command, format_subprocess_output

if TYPE_CHECKING:
    from buildpipe.pipeline.executor import ExecutionReport, Pipeline

BUILT_IN_TEMPLATES = ("default",)


@dataclass
class ReportContext:
    pipeline_name: str
    run_id: str
    success: bool
    steps_run: int
    total_steps: int
    duration_ms: int
    exit_code: int
    timestamp: str
    error: str | None
    failure_output: str | None
    steps: list[dict] = field(default_factory=list)
    not_run: list[str] = field(default_factory=list)


def build_report_context(report: ExecutionReport, pipeline: Pipeline) -> ReportContext:
    """Build a ReportContext from a finished run and the pipeline it ran."""
    failure_output = None
    for sr in report.step_results:
        if not sr.success and (sr.stdout or sr.stderr):
            failure_output = format_subprocess_output(sr.stdout, sr.stderr)

    executed = len(report.step_results)
    return ReportContext(
        pipeline_name=report.pipeline_name,
        run_id=report.run_id,
        success=report.success,
        steps_run=report.steps_run,
        total_steps=len(pipeline),
        duration_ms=report.duration_ms,
        exit_code=report.exit_code,
        timestamp=datetime.now(UTC).isoformat(),
        error=str(report.failure) if report.failure is not None else None,
        failure_output=failure_output,
        steps=[
            {
                "index": sr.index,
                "name": sr.name,
                "command": format_command(sr.command),
                "exit_code": sr.exit_code,
                "duration_ms": sr.duration_ms,
                "success": sr.success,
            }
            for sr in report.step_results
        ],
        not_run=[step.name for step in pipeline.steps[executed:]],
    )


def render_report(context: ReportContext, template_name: str = "default") -> str:
    """Render a report using the named template.

    Raises ValueError if the template name is not recognised.
    """
    if template_name not in BUILT_IN_TEMPLATES:
        raise ValueError(
            f"Unknown report template '{template_name}'. Available: {', '.join(BUILT_IN_TEMPLATES)}"
        )

    filename = f"{template_name}.md.j2"
    pkg_files = importlib.resources.files("buildpipe._report_templates")
    template_text = (pkg_files / filename).read_text(encoding="utf-8")
    return Template(template_text).render(**asdict(context))


def export_report(
    report: ExecutionReport,
    pipeline: Pipeline,
    output_path: Path,
    *,
    template_name: str = "default",
) -> Path:
    """Build context, render template, and write the report to disk."""
    content = render_report(build_report_context(report, pipeline), template_name)
    output_path = Path(output_path)
    output_path.write_text(content, encoding="utf-8")
    return output_path
