"""buildpipe: sequential provision, build and verify pipelines."""

__version__ = "0.1.0"
