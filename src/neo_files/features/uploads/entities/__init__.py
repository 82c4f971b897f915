"""Upload entities - session state machine, part planning and collaborator contracts."""

from .upload_session import (
    UploadSession,
    UploadStatus,
    ALLOWED_TRANSITIONS,
    TERMINAL_STATUSES,
    ACTIVE_STATUSES,
)
from .part_plan import PartPlan, plan_parts
from .results import UploadStarted, PartUploadUrl, PartCompleted, UploadStatusView
from .protocols import (
    FileRegistration,
    FileVersionRegistration,
    FileRecord,
    VersionRecord,
    FileRegistrar,
    UploadSessionStore,
    UploadProgressEvent,
    UploadProgressSink,
    NullProgressSink,
)

__all__ = [
    # Session
    "UploadSession",
    "UploadStatus",
    "ALLOWED_TRANSITIONS",
    "TERMINAL_STATUSES",
    "ACTIVE_STATUSES",
    
    # Planning
    "PartPlan",
    "plan_parts",
    
    # Results
    "UploadStarted",
    "PartUploadUrl",
    "PartCompleted",
    "UploadStatusView",
    
    # Collaborators
    "FileRegistration",
    "FileVersionRegistration",
    "FileRecord",
    "VersionRecord",
    "FileRegistrar",
    "UploadSessionStore",
    "UploadProgressEvent",
    "UploadProgressSink",
    "NullProgressSink",
]
