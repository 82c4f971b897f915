"""Domain-specific exceptions for neo-files.

Validation, lookup and conflict errors raised by the upload orchestrator
and the storage account registry.
"""

from typing import Any, Dict, Iterable, Optional

from .base import NeoFilesError


# Configuration Errors
class ConfigurationError(NeoFilesError):
    """Raised when there's a configuration issue."""
    pass


# Validation Errors
class ValidationError(NeoFilesError):
    """Raised when input or a requested state transition is invalid.
    
    Always recoverable by the caller correcting its request; never retried
    by the orchestrator.
    """
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code=error_code or "VALIDATION_ERROR", details=details)


class InvalidUploadStateError(ValidationError):
    """Raised when an operation is not allowed in the session's current status."""
    
    def __init__(
        self,
        message: str,
        current_status: Optional[str] = None,
        upload_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        enhanced_details = details or {}
        if upload_id:
            enhanced_details["upload_id"] = upload_id
        if current_status:
            enhanced_details["status"] = current_status
        super().__init__(message, error_code="INVALID_UPLOAD_STATE", details=enhanced_details)
        self.current_status = current_status
        self.upload_id = upload_id


class InvalidPartNumberError(ValidationError):
    """Raised when a part number is outside ``[1, total_parts]``."""
    
    def __init__(self, part_number: int, total_parts: int, upload_id: Optional[str] = None):
        details = {"part_number": part_number, "total_parts": total_parts}
        if upload_id:
            details["upload_id"] = upload_id
        super().__init__(
            f"Invalid part number {part_number}. Must be between 1 and {total_parts}",
            error_code="INVALID_PART_NUMBER",
            details=details
        )
        self.part_number = part_number
        self.total_parts = total_parts


class PartPlanningError(ValidationError):
    """Raised when no part size satisfies the provider's multipart limits."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="PART_PLANNING_ERROR", details=details)


class IncompleteUploadError(ValidationError):
    """Raised when finalize is requested before every part was completed."""
    
    def __init__(self, upload_id: str, missing_parts: Iterable[int], total_parts: int):
        missing = sorted(missing_parts)
        preview = missing[:20]
        super().__init__(
            f"Not all parts are uploaded. Completed: {total_parts - len(missing)}/{total_parts}",
            error_code="INCOMPLETE_UPLOAD",
            details={
                "upload_id": upload_id,
                "missing_parts": preview,
                "missing_count": len(missing),
                "total_parts": total_parts,
            }
        )
        self.missing_parts = missing


# Lookup Errors
class ResourceNotFoundError(NeoFilesError):
    """Raised when required resource is not found."""
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, error_code=error_code or "NOT_FOUND", details=details)


class UploadSessionNotFoundError(ResourceNotFoundError):
    """Raised when an upload id is unknown or its session was already purged."""
    
    def __init__(self, upload_id: str):
        super().__init__(
            f"Upload not found: {upload_id}",
            error_code="UPLOAD_NOT_FOUND",
            details={"upload_id": upload_id}
        )
        self.upload_id = upload_id


class StorageAccountNotFoundError(ResourceNotFoundError):
    """Raised when a storage account id does not resolve to a configured account."""
    
    def __init__(self, storage_account_id: str):
        super().__init__(
            f"Storage account not found: {storage_account_id}",
            error_code="STORAGE_ACCOUNT_NOT_FOUND",
            details={"storage_account_id": storage_account_id}
        )
        self.storage_account_id = storage_account_id


# Conflict Errors
class ConflictError(NeoFilesError):
    """Raised when operation conflicts with concurrent work on the same resource."""
    pass


class UploadSessionLockError(ConflictError):
    """Raised when the per-session lock cannot be acquired in time."""
    
    def __init__(self, upload_id: str, timeout_seconds: float):
        super().__init__(
            f"Upload {upload_id} is busy; try again",
            error_code="UPLOAD_BUSY",
            details={"upload_id": upload_id, "timeout_seconds": timeout_seconds}
        )
        self.upload_id = upload_id
