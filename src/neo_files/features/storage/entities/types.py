"""Storage value types shared by every provider adapter."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from ....utils import utc_now, to_iso


class SignedUrlOperation(Enum):
    """Operation a single-shot signed URL grants."""
    READ = "read"
    WRITE = "write"
    DELETE = "delete"


@dataclass(frozen=True)
class SignedUrlOptions:
    """Options for generating single-shot signed URLs."""
    operation: SignedUrlOperation = SignedUrlOperation.READ
    expires_in: int = 3600  # seconds
    content_type: Optional[str] = None
    content_disposition: Optional[str] = None
    metadata: Optional[Dict[str, str]] = None
    
    def __post_init__(self):
        if self.expires_in <= 0:
            raise ValueError("expires_in must be positive")


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte range for partial reads."""
    start: int
    end: int
    
    def __post_init__(self):
        if self.start < 0:
            raise ValueError("Range start cannot be negative")
        if self.end < self.start:
            raise ValueError("Range end cannot be before range start")
    
    @property
    def length(self) -> int:
        return self.end - self.start + 1
    
    def to_header(self) -> str:
        """Render as an HTTP ``Range`` header value."""
        return f"bytes={self.start}-{self.end}"


@dataclass(frozen=True)
class ListOptions:
    """Options for listing files."""
    recursive: bool = False
    max_results: int = 100
    page_token: Optional[str] = None
    delimiter: str = "/"


@dataclass
class StorageFileMetadata:
    """Metadata for a stored object as reported by its backend."""
    key: str
    name: str
    size: int = 0
    last_modified: Optional[datetime] = None
    content_type: Optional[str] = None
    is_directory: bool = False
    etag: Optional[str] = None
    url: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=dict)
    
    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["last_modified"] = to_iso(self.last_modified)
        return data


@dataclass
class FileListing:
    """One page of a directory listing."""
    files: List[StorageFileMetadata] = field(default_factory=list)
    next_page_token: Optional[str] = None


@dataclass
class StorageStats:
    """Storage usage statistics (0 means unknown / unlimited)."""
    total_bytes: int = 0
    used_bytes: int = 0
    available_bytes: int = 0
    file_count: int = 0
    last_updated: datetime = field(default_factory=utc_now)


@dataclass
class StorageOperationResult:
    """Outcome of a multipart-plane provider operation.
    
    Adapters raise ``StorageProviderError`` when a call fails; a result with
    ``success=False`` is only produced by adapters that want to report a
    handled refusal without an exception.
    """
    success: bool
    message: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    
    @classmethod
    def ok(cls, message: Optional[str] = None, **data: Any) -> 'StorageOperationResult':
        return cls(success=True, message=message, data=data)
    
    @classmethod
    def failed(cls, message: str, **data: Any) -> 'StorageOperationResult':
        return cls(success=False, message=message, data=data)


@dataclass(frozen=True, order=True)
class UploadPart:
    """Provider proof that one part of a multipart upload was stored."""
    part_number: int
    etag: str
    
    def __post_init__(self):
        if not isinstance(self.part_number, int) or self.part_number < 1:
            raise ValueError("part_number must be a positive integer")
        if not self.etag:
            raise ValueError("etag cannot be empty")
    
    def to_dict(self) -> Dict[str, Any]:
        return {"part_number": self.part_number, "etag": self.etag}
