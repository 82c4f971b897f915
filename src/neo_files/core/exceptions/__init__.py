"""Exceptions module for neo-files.

This module provides the complete exception hierarchy for neo-files,
organized by domain concerns and storage backend concerns.
"""

from .base import (
    NeoFilesError,
    get_http_status_code,
    create_error_response,
)

from .domain import (
    # Configuration Errors
    ConfigurationError,
    
    # Validation Errors
    ValidationError,
    InvalidUploadStateError,
    InvalidPartNumberError,
    PartPlanningError,
    IncompleteUploadError,
    
    # Lookup Errors
    ResourceNotFoundError,
    UploadSessionNotFoundError,
    StorageAccountNotFoundError,
    
    # Conflict Errors
    ConflictError,
    UploadSessionLockError,
)

from .storage import (
    StorageError,
    StorageProviderError,
    StorageObjectNotFoundError,
)

from .http_mapping import HTTP_STATUS_MAP

__all__ = [
    # Base
    "NeoFilesError",
    "get_http_status_code",
    "create_error_response",
    "HTTP_STATUS_MAP",
    
    # Configuration
    "ConfigurationError",
    
    # Validation
    "ValidationError",
    "InvalidUploadStateError",
    "InvalidPartNumberError",
    "PartPlanningError",
    "IncompleteUploadError",
    
    # Lookup
    "ResourceNotFoundError",
    "UploadSessionNotFoundError",
    "StorageAccountNotFoundError",
    
    # Conflict
    "ConflictError",
    "UploadSessionLockError",
    
    # Storage
    "StorageError",
    "StorageProviderError",
    "StorageObjectNotFoundError",
]
