"""HTTP status code mapping for exceptions.

The most specific class in an exception's MRO wins, so subclasses can
override the status of their parents.
"""

from typing import Dict, Type

from .base import NeoFilesError
from .domain import (
    ConfigurationError,
    ValidationError,
    InvalidUploadStateError,
    InvalidPartNumberError,
    PartPlanningError,
    IncompleteUploadError,
    ResourceNotFoundError,
    UploadSessionNotFoundError,
    StorageAccountNotFoundError,
    ConflictError,
    UploadSessionLockError,
)
from .storage import StorageError, StorageProviderError, StorageObjectNotFoundError


HTTP_STATUS_MAP: Dict[Type[Exception], int] = {
    # 400 Bad Request
    ValidationError: 400,
    InvalidUploadStateError: 400,
    InvalidPartNumberError: 400,
    PartPlanningError: 400,
    IncompleteUploadError: 400,
    
    # 404 Not Found
    ResourceNotFoundError: 404,
    UploadSessionNotFoundError: 404,
    StorageAccountNotFoundError: 404,
    StorageObjectNotFoundError: 404,
    
    # 409 Conflict
    ConflictError: 409,
    UploadSessionLockError: 409,
    
    # 500 Internal Server Error
    ConfigurationError: 500,
    StorageError: 500,
    
    # 502 Bad Gateway
    StorageProviderError: 502,
    
    # Default for NeoFilesError
    NeoFilesError: 500,
}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception.
    
    Args:
        exception: The exception instance
        
    Returns:
        HTTP status code (500 for anything unmapped)
    """
    for exception_type in type(exception).__mro__:
        if exception_type in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[exception_type]
    return 500
