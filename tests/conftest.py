"""Pytest configuration and fixtures for neo-files tests."""

from typing import Any, List, Optional, Sequence

import pytest
from unittest.mock import AsyncMock

from neo_files.config.settings import UploadSettings
from neo_files.features.storage.entities import (
    ProviderCapabilities,
    StorageAccount,
    StorageOperationResult,
    UploadPart,
)
from neo_files.features.storage.services import StorageProviderRegistry
from neo_files.features.uploads.adapters import InMemoryUploadSessionStore
from neo_files.features.uploads.entities import FileRecord, FileRegistration
from neo_files.features.uploads.services import UploadOrchestrator


class FakeMultipartProvider:
    """Storage provider double that records multipart calls."""
    
    def __init__(
        self,
        capabilities: Optional[ProviderCapabilities] = None,
        provider_type: str = "s3",
        session_style: bool = False
    ):
        self._capabilities = capabilities or ProviderCapabilities.s3()
        self._provider_type = provider_type
        self.session_style = session_style
        self.calls: List[tuple] = []
        self.completed_parts: Optional[List[UploadPart]] = None
        self.fail_complete = False
        self.fail_abort = False
        self._handles = 0
    
    @property
    def provider_type(self) -> str:
        return self._provider_type
    
    def get_capabilities(self) -> ProviderCapabilities:
        return self._capabilities
    
    def count(self, operation: str) -> int:
        return sum(1 for call in self.calls if call[0] == operation)
    
    async def create_multipart_upload(self, key, content_type=None, metadata=None):
        self.calls.append(("create_multipart_upload", key, content_type, metadata))
        self._handles += 1
        if self.session_style:
            handle = f"https://upload.example.com/session/{self._handles}"
        else:
            handle = f"upload-handle-{self._handles}"
        return StorageOperationResult.ok(upload_handle=handle)
    
    async def get_signed_url_for_part(self, key, upload_handle, part_number, content_length):
        self.calls.append(("get_signed_url_for_part", key, upload_handle, part_number, content_length))
        if self.session_style:
            return StorageOperationResult.ok(url=upload_handle)
        return StorageOperationResult.ok(
            url=f"https://bucket.example.com/{key}?uploadId={upload_handle}&partNumber={part_number}",
            expires_in=3600,
        )
    
    async def complete_multipart_upload(self, key, upload_handle, parts: Sequence[UploadPart]):
        self.calls.append(("complete_multipart_upload", key, upload_handle, list(parts)))
        if self.fail_complete:
            return StorageOperationResult.failed("InvalidPart")
        self.completed_parts = list(parts)
        return StorageOperationResult.ok()
    
    async def abort_multipart_upload(self, key, upload_handle):
        self.calls.append(("abort_multipart_upload", key, upload_handle))
        if self.fail_abort:
            raise RuntimeError("connection reset")
        return StorageOperationResult.ok()


class FakeFileRegistrar:
    """File registrar double keeping created records in a list."""
    
    def __init__(self):
        self.registrations: List[FileRegistration] = []
        self.fail_with: Optional[Exception] = None
    
    async def create(self, registration: FileRegistration) -> FileRecord:
        if self.fail_with is not None:
            raise self.fail_with
        self.registrations.append(registration)
        return FileRecord(
            id=registration.file_id,
            name=registration.name,
            mime_type=registration.mime_type,
            size=registration.size,
            room_id=registration.room_id,
            storage_id=registration.storage_id,
            storage_key=registration.storage_key,
            parent_id=registration.parent_id,
            uploaded_by_id=registration.uploaded_by_id,
            metadata=registration.metadata,
        )
    
    async def create_version(self, registration):
        raise NotImplementedError


@pytest.fixture
def upload_settings() -> UploadSettings:
    """Settings with short timeouts for tests."""
    return UploadSettings(
        provider_call_timeout_seconds=0.2,
        provider_retry_attempts=1,
        terminal_retention_seconds=3600,
        idle_session_timeout_seconds=86400,
        sweep_interval_seconds=900,
        lock_timeout_seconds=0.2,
        lock_ttl_seconds=30,
    )


@pytest.fixture
def s3_provider() -> FakeMultipartProvider:
    return FakeMultipartProvider()


@pytest.fixture
def session_provider() -> FakeMultipartProvider:
    """OneDrive-like provider: the upload handle is the part URL."""
    return FakeMultipartProvider(
        capabilities=ProviderCapabilities.onedrive(),
        provider_type="onedrive",
        session_style=True,
    )


@pytest.fixture
def registrar() -> FakeFileRegistrar:
    return FakeFileRegistrar()


@pytest.fixture
def session_store() -> InMemoryUploadSessionStore:
    return InMemoryUploadSessionStore()


@pytest.fixture
def sample_account() -> StorageAccount:
    return StorageAccount(
        id="storage-1",
        provider_type="s3",
        name="Primary bucket",
        room_ids=["room-1"],
        is_default=True,
        credentials={"bucket": "files", "region": "us-east-1"},
    )


async def build_registry(provider: FakeMultipartProvider, account: StorageAccount) -> StorageProviderRegistry:
    """Registry whose only factory returns ``provider``."""
    registry = StorageProviderRegistry(factories={account.provider_type: lambda _account: provider})
    await registry.add_account(account)
    return registry


@pytest.fixture
def make_orchestrator(registrar, session_store, upload_settings, sample_account):
    """Factory building an orchestrator around a given provider."""
    
    async def _make(provider: FakeMultipartProvider, account: Optional[StorageAccount] = None, **kwargs: Any):
        account = account or sample_account
        if account.provider_type != provider.provider_type:
            account = StorageAccount(
                id=account.id,
                provider_type=provider.provider_type,
                name=account.name,
                room_ids=account.room_ids,
                is_default=account.is_default,
            )
        registry = await build_registry(provider, account)
        return UploadOrchestrator(
            resolver=registry,
            registrar=registrar,
            store=session_store,
            progress_sink=kwargs.pop("progress_sink", None),
            settings=upload_settings,
        )
    
    return _make


@pytest.fixture
def mock_progress_sink() -> AsyncMock:
    sink = AsyncMock()
    sink.publish = AsyncMock()
    return sink



@pytest.fixture
def provider_factory():
    """Build FakeMultipartProvider instances with custom capabilities."""
    return FakeMultipartProvider
