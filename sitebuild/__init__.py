"""Sitebuild package assembling the united download page."""

from .assemble import BuildResult, build, render_template, render_timestamp

__all__ = ["BuildResult", "build", "render_template", "render_timestamp"]
