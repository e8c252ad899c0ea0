"""Extraction pipeline: progress state, application context and orchestrator."""

from carcatalog.pipeline.context import AppContext, ProgressListener, UnsavedRun
from carcatalog.pipeline.orchestrator import PipelineOrchestrator, PipelineResult
from carcatalog.pipeline.progress import (
    EXTRACTION_STAGES,
    RUN_STAGES,
    ProgressState,
    Stage,
)

__all__ = [
    "AppContext",
    "EXTRACTION_STAGES",
    "PipelineOrchestrator",
    "PipelineResult",
    "ProgressListener",
    "ProgressState",
    "RUN_STAGES",
    "Stage",
    "UnsavedRun",
]
