"""Storage feature for neo-files.

Feature-First layout for the storage-provider abstraction:
- entities/: capability envelope, value types and provider/resolver protocols
- adapters/: S3 (explicit multipart) and OneDrive (upload session) providers
- services/: storage account registry resolving rooms to providers
"""

from .entities import (
    ProviderCapabilities,
    SignedUrlOperation,
    SignedUrlOptions,
    ByteRange,
    ListOptions,
    StorageFileMetadata,
    FileListing,
    StorageStats,
    StorageOperationResult,
    UploadPart,
    StorageProvider,
    StorageAccount,
    ResolvedStorage,
    StorageAccountResolver,
)
from .adapters import S3StorageProvider, OneDriveStorageProvider
from .services import StorageProviderRegistry

__all__ = [
    # Entities
    "ProviderCapabilities",
    "SignedUrlOperation",
    "SignedUrlOptions",
    "ByteRange",
    "ListOptions",
    "StorageFileMetadata",
    "FileListing",
    "StorageStats",
    "StorageOperationResult",
    "UploadPart",
    
    # Protocols
    "StorageProvider",
    "StorageAccount",
    "ResolvedStorage",
    "StorageAccountResolver",
    
    # Adapters
    "S3StorageProvider",
    "OneDriveStorageProvider",
    
    # Services
    "StorageProviderRegistry",
]
