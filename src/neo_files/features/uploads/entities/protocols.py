"""Upload collaborator protocols.

Contracts the upload orchestrator depends on: the file metadata registrar,
the session store and the progress sink. Concrete stores and sinks live in
``features.uploads.adapters``; the registrar belongs to the host service.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, AsyncContextManager, Dict, List, Optional

from typing_extensions import Protocol, runtime_checkable

from ....utils import utc_now, to_iso, from_iso
from .upload_session import UploadSession


@dataclass
class FileRegistration:
    """Everything the registrar needs to create the file record."""
    name: str
    mime_type: str
    size: int
    room_id: str
    uploaded_by_id: str
    storage_id: str
    storage_key: str
    file_id: str
    parent_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FileVersionRegistration:
    """A new version of an existing file."""
    file_id: str
    size: int
    storage_key: str
    uploaded_by_id: str
    mime_type: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FileRecord:
    """File record materialized by the registrar."""
    id: str
    name: str
    mime_type: str
    size: int
    room_id: str
    storage_id: str
    storage_key: str
    parent_id: Optional[str] = None
    uploaded_by_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utc_now)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "mime_type": self.mime_type,
            "size": self.size,
            "room_id": self.room_id,
            "storage_id": self.storage_id,
            "storage_key": self.storage_key,
            "parent_id": self.parent_id,
            "uploaded_by_id": self.uploaded_by_id,
            "metadata": self.metadata,
            "created_at": to_iso(self.created_at),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FileRecord':
        return cls(
            id=data["id"],
            name=data["name"],
            mime_type=data["mime_type"],
            size=int(data["size"]),
            room_id=data["room_id"],
            storage_id=data["storage_id"],
            storage_key=data["storage_key"],
            parent_id=data.get("parent_id"),
            uploaded_by_id=data.get("uploaded_by_id"),
            metadata=data.get("metadata") or {},
            created_at=from_iso(data.get("created_at")) or utc_now(),
        )


@dataclass
class VersionRecord:
    """File version record materialized by the registrar."""
    id: str
    file_id: str
    version_number: int
    size: int
    storage_key: str
    uploaded_by_id: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_id": self.file_id,
            "version_number": self.version_number,
            "size": self.size,
            "storage_key": self.storage_key,
            "uploaded_by_id": self.uploaded_by_id,
            "created_at": to_iso(self.created_at),
        }


@runtime_checkable
class FileRegistrar(Protocol):
    """Persists file metadata once the bytes are in storage."""
    
    async def create(self, registration: FileRegistration) -> FileRecord:
        ...
    
    async def create_version(self, registration: FileVersionRegistration) -> VersionRecord:
        ...


@runtime_checkable
class UploadSessionStore(Protocol):
    """Persistence for in-flight upload sessions.
    
    ``lock`` gives exclusive access to one session for a read-modify-write
    cycle; it must be held around any ``get`` followed by ``save``.
    """
    
    async def create(self, session: UploadSession) -> None:
        """Persist a new session; fails if the id already exists."""
        ...
    
    async def get(self, upload_id: str) -> Optional[UploadSession]:
        ...
    
    async def save(self, session: UploadSession) -> None:
        ...
    
    async def delete(self, upload_id: str) -> bool:
        ...
    
    def lock(self, upload_id: str) -> AsyncContextManager[None]:
        ...
    
    async def list_upload_ids(self) -> List[str]:
        ...


@dataclass(frozen=True)
class UploadProgressEvent:
    """Progress notification for room subscribers."""
    upload_id: str
    file_id: str
    room_id: str
    status: str
    progress: float
    bytes_transferred: int
    total_bytes: int
    type: str = "upload"
    timestamp: datetime = field(default_factory=utc_now)
    
    @classmethod
    def from_session(cls, session: UploadSession) -> 'UploadProgressEvent':
        return cls(
            upload_id=session.upload_id,
            file_id=session.file_id,
            room_id=session.room_id,
            status=session.status.value,
            progress=session.progress,
            bytes_transferred=session.bytes_transferred,
            total_bytes=session.total_size,
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "file_id": self.file_id,
            "room_id": self.room_id,
            "type": self.type,
            "status": self.status,
            "progress": self.progress,
            "bytes_transferred": self.bytes_transferred,
            "total_bytes": self.total_bytes,
            "timestamp": to_iso(self.timestamp),
        }


@runtime_checkable
class UploadProgressSink(Protocol):
    """Receives progress events; delivery to clients is out of scope."""
    
    async def publish(self, event: UploadProgressEvent) -> None:
        ...


class NullProgressSink:
    """Progress sink that discards every event."""
    
    async def publish(self, event: UploadProgressEvent) -> None:
        return None
