"""Uploads feature for neo-files.

Multipart upload orchestration on top of the storage feature:
- entities/: upload session state machine, part planning, results and
  collaborator protocols (file registrar, session store, progress sink)
- adapters/: in-memory and Redis session stores, progress sinks
- services/: upload orchestrator and idle-session sweeper
"""

from .entities import (
    UploadSession,
    UploadStatus,
    PartPlan,
    plan_parts,
    UploadStarted,
    PartUploadUrl,
    PartCompleted,
    UploadStatusView,
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
from .adapters import (
    InMemoryUploadSessionStore,
    RedisUploadSessionStore,
    RedisProgressPublisher,
    LoggingProgressSink,
)
from .services import UploadOrchestrator, UploadSessionSweeper, SweepReport

__all__ = [
    # Entities
    "UploadSession",
    "UploadStatus",
    "PartPlan",
    "plan_parts",
    "UploadStarted",
    "PartUploadUrl",
    "PartCompleted",
    "UploadStatusView",
    
    # Protocols
    "FileRegistration",
    "FileVersionRegistration",
    "FileRecord",
    "VersionRecord",
    "FileRegistrar",
    "UploadSessionStore",
    "UploadProgressEvent",
    "UploadProgressSink",
    "NullProgressSink",
    
    # Adapters
    "InMemoryUploadSessionStore",
    "RedisUploadSessionStore",
    "RedisProgressPublisher",
    "LoggingProgressSink",
    
    # Services
    "UploadOrchestrator",
    "UploadSessionSweeper",
    "SweepReport",
]
