"""Storage backend exceptions for neo-files.

Wraps backend-specific failures so the orchestrator only has to know
whether a provider call succeeded.
"""

from typing import Any, Dict, Optional

from .base import NeoFilesError
from .domain import ResourceNotFoundError


class StorageError(NeoFilesError):
    """Base class for storage backend errors."""
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code=error_code or "STORAGE_ERROR", details=details)


class StorageProviderError(StorageError):
    """Raised when a storage provider call does not succeed.
    
    Carries the provider name, the operation and, when the backend reports
    one, its error code. The original exception is kept as ``__cause__``.
    """
    
    def __init__(
        self,
        provider: str,
        operation: str,
        message: Optional[str] = None,
        backend_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        enhanced_details = details or {}
        enhanced_details["provider"] = provider
        enhanced_details["operation"] = operation
        if backend_code:
            enhanced_details["backend_code"] = backend_code
        super().__init__(
            message or f"Error with {provider} during {operation}",
            error_code="STORAGE_PROVIDER_ERROR",
            details=enhanced_details
        )
        self.provider = provider
        self.operation = operation
        self.backend_code = backend_code


class StorageObjectNotFoundError(ResourceNotFoundError):
    """Raised when an object key does not exist in the backend."""
    
    def __init__(self, key: str, provider: Optional[str] = None):
        details: Dict[str, Any] = {"key": key}
        if provider:
            details["provider"] = provider
        super().__init__(
            f"Object not found: {key}",
            error_code="STORAGE_NOT_FOUND",
            details=details
        )
        self.key = key
