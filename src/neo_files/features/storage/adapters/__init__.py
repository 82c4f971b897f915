"""Storage provider adapters.

- s3_provider: explicit-multipart backends (AWS S3 and S3-compatible)
- onedrive_provider: session-style backend (Microsoft Graph upload sessions)
"""

from .s3_provider import S3StorageProvider, validate_part_order
from .onedrive_provider import OneDriveStorageProvider

__all__ = [
    "S3StorageProvider",
    "OneDriveStorageProvider",
    "validate_part_order",
]
