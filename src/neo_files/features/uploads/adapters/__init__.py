"""Upload adapters - session stores and progress sinks."""

from .memory_session_store import InMemoryUploadSessionStore
from .redis_session_store import RedisUploadSessionStore, RELEASE_LOCK_SCRIPT, EXTEND_LOCK_SCRIPT
from .progress_sinks import RedisProgressPublisher, LoggingProgressSink

__all__ = [
    "InMemoryUploadSessionStore",
    "RedisUploadSessionStore",
    "RELEASE_LOCK_SCRIPT",
    "EXTEND_LOCK_SCRIPT",
    "RedisProgressPublisher",
    "LoggingProgressSink",
]
