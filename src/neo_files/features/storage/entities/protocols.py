"""Storage provider protocols.

ONLY storage backend contract - the uniform operation set every backend
family implements, plus the storage account resolver the upload
orchestrator depends on.

Two backend families sit behind the same contract: explicit-multipart
backends (S3 and compatibles) negotiate every call with the service, while
session-style backends (OneDrive / Microsoft Graph) expose one upload
session URL and have nothing to do at completion time.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence
from typing_extensions import Protocol, runtime_checkable

from .capabilities import ProviderCapabilities
from .types import (
    ByteRange,
    FileListing,
    ListOptions,
    SignedUrlOptions,
    StorageFileMetadata,
    StorageOperationResult,
    StorageStats,
    UploadPart,
)


@runtime_checkable
class StorageProvider(Protocol):
    """Storage provider protocol.
    
    Failures are raised as ``StorageProviderError``; missing objects as
    ``StorageObjectNotFoundError``.
    """
    
    @property
    def provider_type(self) -> str:
        """Short backend family name (``s3``, ``onedrive``...)."""
        ...
    
    def get_capabilities(self) -> ProviderCapabilities:
        """Return the backend's capability envelope. Pure, no I/O."""
        ...
    
    # Multipart plane
    async def create_multipart_upload(
        self,
        key: str,
        content_type: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None
    ) -> StorageOperationResult:
        """Open a backend-native upload context.
        
        Returns:
            Result whose ``data["upload_handle"]`` is the opaque provider
            session handle (an S3 UploadId, a OneDrive session URL)
        """
        ...
    
    async def get_signed_url_for_part(
        self,
        key: str,
        upload_handle: str,
        part_number: int,
        content_length: int
    ) -> StorageOperationResult:
        """Return in ``data["url"]`` the URL to PUT ``content_length`` bytes of a part."""
        ...
    
    async def complete_multipart_upload(
        self,
        key: str,
        upload_handle: str,
        parts: Sequence[UploadPart]
    ) -> StorageOperationResult:
        """Finalize the upload from parts given in ascending part-number order."""
        ...
    
    async def abort_multipart_upload(self, key: str, upload_handle: str) -> StorageOperationResult:
        """Release backend-held resources for an unfinished upload."""
        ...
    
    # Single-shot and read plane
    async def get_signed_url(self, key: str, options: SignedUrlOptions) -> str:
        """Generate a single-shot signed URL (small-file fast path)."""
        ...
    
    async def get_file_content(self, key: str, byte_range: Optional[ByteRange] = None) -> bytes:
        """Read an object, optionally only an inclusive byte range."""
        ...
    
    # Metadata plane
    async def get_file_metadata(self, key: str) -> StorageFileMetadata:
        ...
    
    async def list_files(self, path: str, options: Optional[ListOptions] = None) -> FileListing:
        ...
    
    async def delete_file(self, key: str) -> bool:
        ...
    
    async def file_exists(self, key: str) -> bool:
        ...
    
    async def get_storage_stats(self) -> StorageStats:
        ...
    
    async def test_connection(self) -> bool:
        ...


@dataclass
class StorageAccount:
    """A configured storage account a room can upload into.
    
    ``credentials`` are handed to the provider factory and must never be
    logged or returned to callers.
    """
    id: str
    provider_type: str
    name: str = ""
    room_ids: List[str] = field(default_factory=list)
    is_default: bool = False
    credentials: Dict[str, Any] = field(default_factory=dict, repr=False)
    settings: Dict[str, Any] = field(default_factory=dict)
    
    def serves_room(self, room_id: str) -> bool:
        return room_id in self.room_ids
    
    def to_public_dict(self) -> Dict[str, Any]:
        """Dictionary without credentials."""
        return {
            "id": self.id,
            "provider_type": self.provider_type,
            "name": self.name,
            "room_ids": list(self.room_ids),
            "is_default": self.is_default,
        }


@dataclass(frozen=True)
class ResolvedStorage:
    """Provider instance and account configuration for one upload target."""
    provider: StorageProvider
    account: StorageAccount


@runtime_checkable
class StorageAccountResolver(Protocol):
    """Resolve which provider and account serve a room."""
    
    async def resolve(self, room_id: str, storage_account_id: Optional[str] = None) -> ResolvedStorage:
        """Resolve the explicit account, or the room's default when none is given.
        
        Raises:
            StorageAccountNotFoundError: explicit account id is unknown
            ValidationError: room has no default storage account
        """
        ...
    
    async def get_provider(self, storage_account_id: str) -> StorageProvider:
        """Return the provider of an already known account."""
        ...
