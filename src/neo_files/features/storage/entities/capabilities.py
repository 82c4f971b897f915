"""Provider capabilities value object.

ONLY capability envelope - the numeric and boolean limits a storage backend
imposes on uploads, declared once per provider and read without I/O.
"""

from dataclasses import dataclass, asdict, replace
from typing import Any, Dict

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB
TIB = 1024 * GIB


@dataclass(frozen=True)
class ProviderCapabilities:
    """Capability envelope of a storage backend.
    
    Sizes are in bytes. ``maximum_file_size`` of 0 means the backend does
    not declare a limit beyond what multipart part limits imply.
    """
    
    supports_multipart_upload: bool = False
    minimum_part_size: int = 0
    maximum_part_size: int = 0
    maximum_part_count: int = 1
    supports_range_requests: bool = False
    maximum_file_size: int = 0
    supports_server_side_encryption: bool = False
    supports_versioning: bool = False
    supports_metadata: bool = False
    supports_folder_creation: bool = False
    
    def __post_init__(self):
        """Validate capability limits."""
        for name in ("minimum_part_size", "maximum_part_size", "maximum_file_size"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} cannot be negative")
        
        if self.minimum_part_size > self.maximum_part_size:
            raise ValueError(
                f"minimum_part_size ({self.minimum_part_size}) cannot exceed "
                f"maximum_part_size ({self.maximum_part_size})"
            )
        
        if self.maximum_part_count < 1:
            raise ValueError("maximum_part_count must be at least 1")
        
        if self.supports_multipart_upload and self.minimum_part_size == 0:
            raise ValueError("Multipart-capable providers must declare a positive minimum_part_size")
    
    @classmethod
    def none(cls) -> 'ProviderCapabilities':
        """Capabilities of a backend without multipart support."""
        return cls()
    
    @classmethod
    def s3(cls) -> 'ProviderCapabilities':
        """AWS S3 limits: 5 MiB to 5 GiB parts, 10,000 parts, 5 TiB objects."""
        return cls(
            supports_multipart_upload=True,
            minimum_part_size=5 * MIB,
            maximum_part_size=5 * GIB,
            maximum_part_count=10000,
            supports_range_requests=True,
            maximum_file_size=5 * TIB,
            supports_server_side_encryption=True,
            supports_versioning=True,
            supports_metadata=True,
            supports_folder_creation=True,
        )
    
    @classmethod
    def s3_compatible(cls) -> 'ProviderCapabilities':
        """Conservative limits for S3-compatible vendors (Wasabi, Storj, R2)."""
        return cls(
            supports_multipart_upload=True,
            minimum_part_size=5 * MIB,
            maximum_part_size=5 * GIB,
            maximum_part_count=10000,
            supports_range_requests=True,
            maximum_file_size=5 * GIB * 10000,
            supports_metadata=True,
            supports_folder_creation=True,
        )
    
    @classmethod
    def onedrive(cls) -> 'ProviderCapabilities':
        """OneDrive upload-session limits: 320 KiB to 320 MiB chunks, 1,000 chunks."""
        return cls(
            supports_multipart_upload=True,
            minimum_part_size=320 * KIB,
            maximum_part_size=320 * MIB,
            maximum_part_count=1000,
            supports_range_requests=True,
            maximum_file_size=100 * GIB,
            supports_versioning=True,
            supports_metadata=True,
            supports_folder_creation=True,
        )
    
    @property
    def maximum_multipart_size(self) -> int:
        """Largest total size any part plan can cover."""
        return self.maximum_part_size * self.maximum_part_count
    
    def with_overrides(self, **overrides: Any) -> 'ProviderCapabilities':
        """Return a copy with some limits replaced (validated again)."""
        return replace(self, **overrides)
    
    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return asdict(self)
