"""Neo-Files - multipart upload orchestration for room file storage.

Coordinates direct-to-storage uploads of large files across storage
backends (AWS S3, S3-compatible vendors, OneDrive) behind one provider
contract, with resumable session state in memory or Redis.
"""

# Initialize logging configuration on import
from .config.logging_config import setup_logging
setup_logging()

from .__version__ import __version__

from .config import UploadSettings, get_upload_settings

from .core.exceptions import (
    # Base Exception
    NeoFilesError,
    
    # Common Exceptions
    ConfigurationError,
    ValidationError,
    ResourceNotFoundError,
    ConflictError,
    StorageError,
    StorageProviderError,
    
    # Utility Functions
    get_http_status_code,
    create_error_response,
)

from .features.storage import (
    ProviderCapabilities,
    StorageProvider,
    StorageAccount,
    StorageAccountResolver,
    StorageProviderRegistry,
    S3StorageProvider,
    OneDriveStorageProvider,
)

from .features.uploads import (
    UploadOrchestrator,
    UploadSessionSweeper,
    UploadSession,
    UploadStatus,
    FileRegistrar,
    FileRecord,
    InMemoryUploadSessionStore,
    RedisUploadSessionStore,
    RedisProgressPublisher,
)

__all__ = [
    "__version__",
    
    # Configuration
    "UploadSettings",
    "get_upload_settings",
    
    # Exceptions
    "NeoFilesError",
    "ConfigurationError",
    "ValidationError",
    "ResourceNotFoundError",
    "ConflictError",
    "StorageError",
    "StorageProviderError",
    "get_http_status_code",
    "create_error_response",
    
    # Storage
    "ProviderCapabilities",
    "StorageProvider",
    "StorageAccount",
    "StorageAccountResolver",
    "StorageProviderRegistry",
    "S3StorageProvider",
    "OneDriveStorageProvider",
    
    # Uploads
    "UploadOrchestrator",
    "UploadSessionSweeper",
    "UploadSession",
    "UploadStatus",
    "FileRegistrar",
    "FileRecord",
    "InMemoryUploadSessionStore",
    "RedisUploadSessionStore",
    "RedisProgressPublisher",
]
