"""Utilities module for neo-files.

Small helpers shared by the storage and upload features.
"""

from .datetime import (
    utc_now,
    ensure_utc,
    to_iso,
    from_iso,
    seconds_since,
    expires_at,
)
from .uuid import generate_uuid_v7, is_valid_uuid

__all__ = [
    # UUID Generation
    "generate_uuid_v7",
    "is_valid_uuid",
    # Datetime Utilities
    "utc_now",
    "ensure_utc",
    "to_iso",
    "from_iso",
    "seconds_since",
    "expires_at",
]
