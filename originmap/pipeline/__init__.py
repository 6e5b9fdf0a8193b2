"""Resolution orchestration components for originmap."""

from originmap.pipeline.orchestrator import OriginResolutionPipeline, ResolutionSessionManager
from originmap.pipeline.progress_tracker import ProgressTracker

__all__ = [
    "OriginResolutionPipeline",
    "ProgressTracker",
    "ResolutionSessionManager",
]
