"""Storage key helpers shared by provider adapters."""

import mimetypes
import posixpath
import re
from typing import Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"

_UNSAFE_NAME_CHARS = re.compile(r"[\x00-\x1f\\:*?\"<>|]")


def normalize_prefix(path: Optional[str]) -> str:
    """Strip leading/trailing slashes and end non-empty prefixes with one slash."""
    normalized = (path or "").strip().strip("/")
    return f"{normalized}/" if normalized else ""


def join_key(path: Optional[str], file_name: str) -> str:
    """Join a directory path and a file name into a storage key."""
    return normalize_prefix(path) + file_name.lstrip("/")


def file_name_from_key(key: str) -> str:
    """Last path segment of a storage key."""
    return posixpath.basename(key.rstrip("/")) or key


def sanitize_file_name(file_name: str) -> str:
    """Make a client-supplied file name safe to embed in a storage key.
    
    Path separators and control characters are replaced so a name can never
    climb out of its room/file prefix.
    """
    name = file_name.replace("/", "_")
    name = _UNSAFE_NAME_CHARS.sub("_", name).strip()
    if name in {"", ".", ".."}:
        return "file"
    return name


def guess_content_type(key: str) -> str:
    """Determine MIME type from a key's file extension."""
    content_type, _ = mimetypes.guess_type(file_name_from_key(key))
    return content_type or DEFAULT_CONTENT_TYPE
