"""Upload session entity.

Represents one multipart upload from ``begin`` to a terminal status, with
part tracking, progress reporting and a forward-only status machine.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Set

from ....core.exceptions import InvalidPartNumberError, InvalidUploadStateError, ValidationError
from ....utils import utc_now, to_iso, from_iso, seconds_since
from ...storage.entities import UploadPart
from .results import UploadStatusView


class UploadStatus(Enum):
    """Upload session status."""
    INITIALIZED = "initialized"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


ALLOWED_TRANSITIONS: Dict[UploadStatus, FrozenSet[UploadStatus]] = {
    UploadStatus.INITIALIZED: frozenset({UploadStatus.IN_PROGRESS, UploadStatus.ABORTED}),
    UploadStatus.IN_PROGRESS: frozenset({
        UploadStatus.IN_PROGRESS,
        UploadStatus.COMPLETED,
        UploadStatus.FAILED,
        UploadStatus.ABORTED,
    }),
    UploadStatus.COMPLETED: frozenset(),
    UploadStatus.FAILED: frozenset(),
    UploadStatus.ABORTED: frozenset(),
}

TERMINAL_STATUSES = frozenset({UploadStatus.COMPLETED, UploadStatus.FAILED, UploadStatus.ABORTED})
ACTIVE_STATUSES = frozenset({UploadStatus.INITIALIZED, UploadStatus.IN_PROGRESS})


@dataclass
class UploadSession:
    """Upload session entity.
    
    Tracks a multipart upload against one storage provider. The provider
    handle stays server-side; clients only ever see ``upload_id``.
    
    Part bookkeeping:
    - ``parts_completed`` is the set of acknowledged part numbers
    - ``parts_info`` maps part number to the etag reported by the client;
      resubmitting a part replaces its etag
    """
    
    # Identification
    upload_id: str
    provider_upload_handle: str
    file_id: str
    
    # File and room
    file_name: str
    mime_type: str
    total_size: int
    storage_account_id: str
    storage_key: str
    room_id: str
    user_id: str
    
    # Part plan
    part_size: int
    total_parts: int
    
    parent_id: Optional[str] = None
    
    # Progress tracking
    parts_completed: Set[int] = field(default_factory=set)
    parts_info: Dict[int, str] = field(default_factory=dict)
    
    # Lifecycle
    status: UploadStatus = UploadStatus.INITIALIZED
    started_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    
    metadata: Dict[str, Any] = field(default_factory=dict)
    result: Optional[Dict[str, Any]] = None
    
    def __post_init__(self):
        """Validate entity state after initialization."""
        if not self.file_name.strip():
            raise ValueError("File name cannot be empty")
        
        if self.total_size <= 0:
            raise ValueError("Total size must be positive")
        
        if self.part_size <= 0:
            raise ValueError("Part size must be positive")
        
        if self.total_parts < 1:
            raise ValueError("Total parts must be at least 1")
    
    # Status machine
    
    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
    
    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES
    
    def can_transition_to(self, status: UploadStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self.status]
    
    def transition_to(self, status: UploadStatus) -> None:
        """Move to ``status``; backward moves and moves out of a terminal status are rejected."""
        if not self.can_transition_to(status):
            raise InvalidUploadStateError(
                f"Cannot move upload from {self.status.value} to {status.value}",
                current_status=self.status.value,
                upload_id=self.upload_id,
            )
        
        self.status = status
        self.touch()
    
    def touch(self) -> None:
        self.updated_at = utc_now()
    
    def mark_in_progress(self) -> None:
        if self.status == UploadStatus.IN_PROGRESS:
            return
        self.transition_to(UploadStatus.IN_PROGRESS)
    
    def mark_completed(self, result: Optional[Dict[str, Any]] = None) -> None:
        self.transition_to(UploadStatus.COMPLETED)
        self.completed_at = self.updated_at
        self.result = result
    
    def mark_failed(self, reason: str) -> None:
        self.transition_to(UploadStatus.FAILED)
        self.failure_reason = reason
    
    def mark_aborted(self) -> None:
        self.transition_to(UploadStatus.ABORTED)
    
    # Part tracking
    
    def validate_part_number(self, part_number: int) -> None:
        if not isinstance(part_number, int) or isinstance(part_number, bool):
            raise InvalidPartNumberError(part_number, self.total_parts, self.upload_id)
        if part_number < 1 or part_number > self.total_parts:
            raise InvalidPartNumberError(part_number, self.total_parts, self.upload_id)
    
    def record_part(self, part_number: int, etag: str) -> None:
        """Record a completed part. A resubmitted part replaces the earlier etag."""
        if self.status != UploadStatus.IN_PROGRESS:
            raise InvalidUploadStateError(
                f"Upload is in {self.status.value} state",
                current_status=self.status.value,
                upload_id=self.upload_id,
            )
        
        self.validate_part_number(part_number)
        
        if not etag or not etag.strip():
            raise ValidationError(
                "Part etag cannot be empty",
                error_code="INVALID_ETAG",
                details={"upload_id": self.upload_id, "part_number": part_number},
            )
        
        self.parts_completed.add(part_number)
        self.parts_info[part_number] = etag
        self.touch()
    
    def missing_parts(self) -> List[int]:
        return sorted(set(range(1, self.total_parts + 1)) - self.parts_completed)
    
    def has_all_parts(self) -> bool:
        return self.parts_completed == set(range(1, self.total_parts + 1))
    
    def sorted_parts(self) -> List[UploadPart]:
        return [
            UploadPart(part_number=number, etag=self.parts_info[number])
            for number in sorted(self.parts_info)
        ]
    
    def part_length(self, part_number: int) -> int:
        """Byte length of a part; only the last part may be short."""
        self.validate_part_number(part_number)
        if part_number < self.total_parts:
            return self.part_size
        return self.total_size - self.part_size * (self.total_parts - 1)
    
    @property
    def completed_count(self) -> int:
        return len(self.parts_completed)
    
    @property
    def bytes_transferred(self) -> int:
        return sum(self.part_length(number) for number in self.parts_completed)
    
    @property
    def progress(self) -> float:
        """Upload progress as percentage (0.0 to 100.0)."""
        if self.status == UploadStatus.COMPLETED:
            return 100.0
        return min((self.completed_count / self.total_parts) * 100.0, 100.0)
    
    def idle_seconds(self, now: Optional[datetime] = None) -> float:
        return seconds_since(self.updated_at, now)
    
    # Views and serialization
    
    def to_status_view(self) -> UploadStatusView:
        return UploadStatusView(
            upload_id=self.upload_id,
            file_id=self.file_id,
            file_name=self.file_name,
            total_size=self.total_size,
            total_parts=self.total_parts,
            completed_parts=self.completed_count,
            status=self.status.value,
            progress=self.progress,
            started_at=self.started_at,
            updated_at=self.updated_at,
            failure_reason=self.failure_reason,
        )
    
    def to_dict(self) -> Dict[str, Any]:
        """JSON-serializable form used by session stores."""
        return {
            "upload_id": self.upload_id,
            "provider_upload_handle": self.provider_upload_handle,
            "file_id": self.file_id,
            "file_name": self.file_name,
            "mime_type": self.mime_type,
            "total_size": self.total_size,
            "storage_account_id": self.storage_account_id,
            "storage_key": self.storage_key,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "parent_id": self.parent_id,
            "part_size": self.part_size,
            "total_parts": self.total_parts,
            "parts_completed": sorted(self.parts_completed),
            # JSON object keys are strings
            "parts_info": {str(number): etag for number, etag in self.parts_info.items()},
            "status": self.status.value,
            "started_at": to_iso(self.started_at),
            "updated_at": to_iso(self.updated_at),
            "completed_at": to_iso(self.completed_at),
            "failure_reason": self.failure_reason,
            "metadata": self.metadata,
            "result": self.result,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'UploadSession':
        return cls(
            upload_id=data["upload_id"],
            provider_upload_handle=data["provider_upload_handle"],
            file_id=data["file_id"],
            file_name=data["file_name"],
            mime_type=data["mime_type"],
            total_size=int(data["total_size"]),
            storage_account_id=data["storage_account_id"],
            storage_key=data["storage_key"],
            room_id=data["room_id"],
            user_id=data["user_id"],
            parent_id=data.get("parent_id"),
            part_size=int(data["part_size"]),
            total_parts=int(data["total_parts"]),
            parts_completed={int(number) for number in data.get("parts_completed", [])},
            parts_info={int(number): etag for number, etag in data.get("parts_info", {}).items()},
            status=UploadStatus(data["status"]),
            started_at=from_iso(data["started_at"]),
            updated_at=from_iso(data["updated_at"]),
            completed_at=from_iso(data.get("completed_at")),
            failure_reason=data.get("failure_reason"),
            metadata=data.get("metadata") or {},
            result=data.get("result"),
        )
    
    def __str__(self) -> str:
        return f"{self.file_name} ({self.progress:.1f}%)"
    
    def __repr__(self) -> str:
        return f"UploadSession(upload_id='{self.upload_id}', file_name='{self.file_name}', status='{self.status.value}')"
