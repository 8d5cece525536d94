"""Core contracts and shared pipeline types."""

from .contracts import (
    ContextUpdate,
    Failure,
    Partial,
    PipelineContext,
    PipelineRunResult,
    Stage,
    StageResult,
    Success,
)

__all__ = [
    "ContextUpdate",
    "Failure",
    "Partial",
    "PipelineContext",
    "PipelineRunResult",
    "Stage",
    "StageResult",
    "Success",
]
