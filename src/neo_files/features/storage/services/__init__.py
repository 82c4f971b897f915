"""Storage services - account resolution and provider construction."""

from .provider_registry import (
    StorageProviderRegistry,
    ProviderFactory,
    DEFAULT_FACTORIES,
    build_s3_provider,
    build_s3_compatible_provider,
    build_onedrive_provider,
)

__all__ = [
    "StorageProviderRegistry",
    "ProviderFactory",
    "DEFAULT_FACTORIES",
    "build_s3_provider",
    "build_s3_compatible_provider",
    "build_onedrive_provider",
]
