"""Results returned by the upload orchestrator."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from ....utils import to_iso


@dataclass(frozen=True)
class UploadStarted:
    """Returned by ``begin``. The provider handle is never exposed."""
    upload_id: str
    file_id: str
    part_size: int
    total_parts: int
    storage_key: str
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "file_id": self.file_id,
            "part_size": self.part_size,
            "total_parts": self.total_parts,
            "storage_key": self.storage_key,
        }


@dataclass(frozen=True)
class PartUploadUrl:
    url: str
    part_number: int
    expires_in: int
    
    def to_dict(self) -> Dict[str, Any]:
        return {"url": self.url, "part_number": self.part_number, "expires_in": self.expires_in}


@dataclass(frozen=True)
class PartCompleted:
    upload_id: str
    part_number: int
    completed_parts: int
    total_parts: int
    is_complete: bool
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "upload_id": self.upload_id,
            "part_number": self.part_number,
            "completed_parts": self.completed_parts,
            "total_parts": self.total_parts,
            "is_complete": self.is_complete,
        }


@dataclass(frozen=True)
class UploadStatusView:
    """Client-safe snapshot of an upload session."""
    upload_id: str
    file_id: str
    file_name: str
    total_size: int
    total_parts: int
    completed_parts: int
    status: str
    progress: float
    started_at: datetime
    updated_at: datetime
    failure_reason: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        data = {
            "upload_id": self.upload_id,
            "file_id": self.file_id,
            "file_name": self.file_name,
            "total_size": self.total_size,
            "total_parts": self.total_parts,
            "completed_parts": self.completed_parts,
            "status": self.status,
            "progress": self.progress,
            "started_at": to_iso(self.started_at),
            "updated_at": to_iso(self.updated_at),
        }
        if self.failure_reason:
            data["failure_reason"] = self.failure_reason
        return data
