"""Tests for the storage provider registry."""

import pytest
from unittest.mock import MagicMock

from neo_files.core.exceptions import (
    ConfigurationError,
    StorageAccountNotFoundError,
    ValidationError,
)
from neo_files.features.storage.adapters import OneDriveStorageProvider, S3StorageProvider
from neo_files.features.storage.entities import StorageAccount, StorageAccountResolver
from neo_files.features.storage.services import StorageProviderRegistry, build_s3_compatible_provider


def account(account_id="storage-1", provider_type="s3", room_ids=("room-1",), is_default=True, **kwargs):
    return StorageAccount(
        id=account_id,
        provider_type=provider_type,
        name=f"{provider_type} account",
        room_ids=list(room_ids),
        is_default=is_default,
        **kwargs
    )


class TestStorageProviderRegistry:
    """Test account resolution and provider caching."""
    
    @pytest.fixture
    def factory(self):
        return MagicMock(side_effect=lambda acc: MagicMock(name=f"provider-{acc.id}"))
    
    @pytest.fixture
    def registry(self, factory):
        return StorageProviderRegistry(factories={"s3": factory})
    
    def test_implements_resolver_protocol(self, registry):
        assert isinstance(registry, StorageAccountResolver)
    
    @pytest.mark.asyncio
    async def test_resolve_room_default(self, registry):
        await registry.add_account(account("secondary", is_default=False))
        await registry.add_account(account("primary"))
        
        resolved = await registry.resolve("room-1")
        
        assert resolved.account.id == "primary"
    
    @pytest.mark.asyncio
    async def test_resolve_explicit_account(self, registry):
        await registry.add_account(account("primary"))
        await registry.add_account(account("archive", is_default=False, room_ids=()))
        
        resolved = await registry.resolve("room-1", "archive")
        
        assert resolved.account.id == "archive"
    
    @pytest.mark.asyncio
    async def test_unknown_explicit_account(self, registry):
        with pytest.raises(StorageAccountNotFoundError):
            await registry.resolve("room-1", "missing")
    
    @pytest.mark.asyncio
    async def test_room_without_default(self, registry):
        await registry.add_account(account(room_ids=("room-2",)))
        
        with pytest.raises(ValidationError):
            await registry.resolve("room-1")
    
    @pytest.mark.asyncio
    async def test_provider_is_built_once(self, registry, factory):
        await registry.add_account(account())
        
        first = await registry.get_provider("storage-1")
        second = await registry.get_provider("storage-1")
        
        assert first is second
        factory.assert_called_once()
    
    @pytest.mark.asyncio
    async def test_replacing_account_rebuilds_provider(self, registry, factory):
        await registry.add_account(account())
        first = await registry.get_provider("storage-1")
        
        await registry.add_account(account(credentials={"bucket": "new"}))
        second = await registry.get_provider("storage-1")
        
        assert first is not second
        assert factory.call_count == 2
    
    @pytest.mark.asyncio
    async def test_remove_account(self, registry):
        await registry.add_account(account())
        
        assert await registry.remove_account("storage-1") is True
        assert await registry.remove_account("storage-1") is False
        with pytest.raises(StorageAccountNotFoundError):
            await registry.get_provider("storage-1")
    
    @pytest.mark.asyncio
    async def test_unsupported_provider_type(self, registry):
        with pytest.raises(ValidationError):
            await registry.add_account(account(provider_type="dropbox"))
    
    def test_register_factory(self, registry):
        registry.register_factory("dropbox", MagicMock())
        
        assert registry.available_provider_types() == ["dropbox", "s3"]


class TestBuiltInFactories:
    """Test providers built from account credentials."""
    
    @pytest.mark.asyncio
    async def test_default_factories(self):
        registry = StorageProviderRegistry()
        
        assert {"s3", "aws_s3", "wasabi", "s3_compatible", "onedrive"} <= set(registry.available_provider_types())
    
    @pytest.mark.asyncio
    async def test_builds_s3_provider(self, mocker):
        mocker.patch("neo_files.features.storage.adapters.s3_provider.boto3.client")
        registry = StorageProviderRegistry()
        await registry.add_account(account(credentials={"bucket": "files", "region": "us-east-1"}))
        
        provider = await registry.get_provider("storage-1")
        
        assert isinstance(provider, S3StorageProvider)
        assert provider.bucket == "files"
        assert provider.provider_type == "s3"
    
    @pytest.mark.asyncio
    async def test_builds_onedrive_provider(self):
        registry = StorageProviderRegistry()
        await registry.add_account(account(
            provider_type="onedrive",
            credentials={"tenant_id": "t", "client_id": "c", "client_secret": "s", "drive_id": "d"},
        ))
        
        provider = await registry.get_provider("storage-1")
        
        assert isinstance(provider, OneDriveStorageProvider)
        assert provider.get_capabilities().maximum_part_count == 1000
        await provider.close()
    
    def test_s3_compatible_requires_endpoint(self):
        with pytest.raises(ConfigurationError):
            build_s3_compatible_provider(account(provider_type="wasabi", credentials={"bucket": "files"}))
    
    def test_s3_compatible_capability_overrides(self, mocker):
        mocker.patch("neo_files.features.storage.adapters.s3_provider.boto3.client")
        
        provider = build_s3_compatible_provider(account(
            provider_type="wasabi",
            credentials={"bucket": "files", "endpoint": "https://s3.wasabisys.com"},
            settings={"capabilities": {"maximum_part_count": 1000}},
        ))
        
        assert provider.provider_type == "wasabi"
        assert provider.get_capabilities().maximum_part_count == 1000
