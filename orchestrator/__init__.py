"""Pipeline orchestration: stage runner and its assembly from settings."""

from .factory import STAGE_BUILDERS, StageDeps, build_pipeline, resolve_stage_names
from .service import AnalysisOrchestrator

__all__ = [
    "AnalysisOrchestrator",
    "STAGE_BUILDERS",
    "StageDeps",
    "build_pipeline",
    "resolve_stage_names",
]
