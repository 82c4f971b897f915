"""Upload services - orchestration and session maintenance."""

from .upload_orchestrator import UploadOrchestrator
from .cleanup_service import UploadSessionSweeper, SweepReport

__all__ = [
    "UploadOrchestrator",
    "UploadSessionSweeper",
    "SweepReport",
]
