"""Base exceptions for neo-files.

This module defines the base exception hierarchy for the neo-files library.
All exceptions inherit from NeoFilesError and include error codes, details,
and HTTP status code mappings for API responses.
"""

from typing import Any, Dict, Optional


class NeoFilesError(Exception):
    """Base exception for all neo-files errors.
    
    ``details`` is caller-visible context (upload id, part number, provider
    name). Session internals such as provider upload handles, store keys or
    credentials never go into it.
    """
    
    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for exception.
    
    Args:
        exception: The exception instance
        
    Returns:
        HTTP status code
    """
    from .http_mapping import get_http_status_code as _get_status_code
    return _get_status_code(exception)


def create_error_response(exception: Exception) -> Dict[str, Any]:
    """Create standardized ``{code, message}`` error response from exception.
    
    Exceptions that are not part of the neo-files hierarchy are reported
    as a generic internal error so their text cannot leak internal state.
    
    Args:
        exception: The raised exception
        
    Returns:
        Error response dictionary
    """
    if not isinstance(exception, NeoFilesError):
        return {
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An internal error occurred",
            }
        }
    
    response: Dict[str, Any] = {
        "code": exception.error_code,
        "message": exception.message,
    }
    if exception.details:
        response["details"] = exception.details
    return {"error": response}
