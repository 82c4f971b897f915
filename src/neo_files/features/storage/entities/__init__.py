"""Storage entities - capability envelope, value types and protocols."""

from .capabilities import ProviderCapabilities, KIB, MIB, GIB, TIB
from .types import (
    SignedUrlOperation,
    SignedUrlOptions,
    ByteRange,
    ListOptions,
    StorageFileMetadata,
    FileListing,
    StorageStats,
    StorageOperationResult,
    UploadPart,
)
from .protocols import (
    StorageProvider,
    StorageAccount,
    ResolvedStorage,
    StorageAccountResolver,
)

__all__ = [
    "ProviderCapabilities",
    "KIB",
    "MIB",
    "GIB",
    "TIB",
    "SignedUrlOperation",
    "SignedUrlOptions",
    "ByteRange",
    "ListOptions",
    "StorageFileMetadata",
    "FileListing",
    "StorageStats",
    "StorageOperationResult",
    "UploadPart",
    "StorageProvider",
    "StorageAccount",
    "ResolvedStorage",
    "StorageAccountResolver",
]
