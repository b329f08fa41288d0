"""Pipeline module: ordered, fail-fast command sequences."""

from buildpipe.pipeline.context import EnvironmentContext
from buildpipe.pipeline.errors import (
    ConfigurationError,
    ExecutionEnvironmentError,
    PipelineError,
    StepFailure,
)
from buildpipe.pipeline.executor import (
    ExecutionReport,
    ExecutionResult,
    Pipeline,
    PipelineState,
    PipelineStatus,
    Step,
    StepResult,
    configure,
    run_pipeline,
)
from buildpipe.pipeline.loader import PipelineLoadError, load_pipeline
from buildpipe.pipeline.schema import PipelineDefinition, PipelineSpec, PipelineStep

__all__ = [
    "ConfigurationError",
    "EnvironmentContext",
    "ExecutionEnvironmentError",
    "ExecutionReport",
    "ExecutionResult",
    "Pipeline",
    "PipelineDefinition",
    "PipelineError",
    "PipelineLoadError",
    "PipelineSpec",
    "PipelineState",
    "PipelineStatus",
    "PipelineStep",
    "Step",
    "StepFailure",
    "StepResult",
    "configure",
    "load_pipeline",
    "run_pipeline",
]
