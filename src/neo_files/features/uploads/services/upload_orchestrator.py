"""Upload orchestrator.

Coordinates direct-to-storage multipart uploads: plans parts against the
provider's limits, hands out per-part URLs, records acknowledged parts and
finalizes the upload into a file record. File bytes never pass through here.

Per-session state changes run under the store's session lock, so part
acknowledgements from parallel uploaders and repeated finalize calls
serialize per upload.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

from ....config.settings import UploadSettings, get_upload_settings
from ....core.exceptions import (
    IncompleteUploadError,
    InvalidUploadStateError,
    NeoFilesError,
    StorageProviderError,
    UploadSessionNotFoundError,
    ValidationError,
)
from ....utils import generate_uuid_v7
from ...storage.adapters.keys import guess_content_type, sanitize_file_name
from ...storage.entities import StorageAccountResolver, StorageOperationResult, StorageProvider
from ..adapters.memory_session_store import InMemoryUploadSessionStore
from ..entities import (
    FileRecord,
    FileRegistrar,
    FileRegistration,
    NullProgressSink,
    PartCompleted,
    PartUploadUrl,
    UploadProgressEvent,
    UploadProgressSink,
    UploadSession,
    UploadSessionStore,
    UploadStarted,
    UploadStatus,
    UploadStatusView,
    plan_parts,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class UploadOrchestrator:
    """Drives the lifecycle of multipart upload sessions."""
    
    def __init__(
        self,
        resolver: StorageAccountResolver,
        registrar: FileRegistrar,
        store: Optional[UploadSessionStore] = None,
        progress_sink: Optional[UploadProgressSink] = None,
        settings: Optional[UploadSettings] = None
    ):
        self._resolver = resolver
        self._registrar = registrar
        self._store = store if store is not None else InMemoryUploadSessionStore()
        self._progress_sink = progress_sink or NullProgressSink()
        self._settings = settings or get_upload_settings()
    
    @property
    def store(self) -> UploadSessionStore:
        return self._store
    
    # Provider calls
    
    async def _call_provider(
        self,
        provider: StorageProvider,
        operation: str,
        call: Callable[[], Awaitable[T]],
        retries: int = 0
    ) -> T:
        """Run one provider call with the configured timeout.
        
        Only idempotent calls may pass ``retries``; each retry is a fresh
        call with its own timeout.
        """
        timeout = self._settings.provider_call_timeout_seconds
        attempts = retries + 1
        last_error: Optional[StorageProviderError] = None
        
        for attempt in range(1, attempts + 1):
            try:
                return await asyncio.wait_for(call(), timeout=timeout)
            except asyncio.TimeoutError as e:
                last_error = StorageProviderError(
                    provider.provider_type,
                    operation,
                    message=f"{operation} timed out after {timeout}s",
                    details={"timeout_seconds": timeout},
                )
                last_error.__cause__ = e
            except StorageProviderError as e:
                last_error = e
            except NeoFilesError:
                raise
            except Exception as e:
                last_error = StorageProviderError(provider.provider_type, operation, message=str(e))
                last_error.__cause__ = e
            
            if attempt < attempts:
                logger.warning(
                    f"Provider {provider.provider_type} {operation} failed "
                    f"(attempt {attempt}/{attempts}), retrying: {last_error.message}"
                )
        
        raise last_error
    
    @staticmethod
    def _require_success(provider: StorageProvider, operation: str, result: StorageOperationResult) -> StorageOperationResult:
        if not result.success:
            raise StorageProviderError(provider.provider_type, operation, message=result.message)
        return result
    
    # Session helpers
    
    async def _load(self, upload_id: str) -> UploadSession:
        session = await self._store.get(upload_id)
        if session is None:
            raise UploadSessionNotFoundError(upload_id)
        return session
    
    @staticmethod
    def _require_active(session: UploadSession) -> None:
        if not session.is_active:
            raise InvalidUploadStateError(
                f"Upload is in {session.status.value} state",
                current_status=session.status.value,
                upload_id=session.upload_id,
            )
    
    async def _emit(self, session: UploadSession) -> None:
        try:
            await self._progress_sink.publish(UploadProgressEvent.from_session(session))
        except Exception as e:
            logger.error(f"Failed to publish progress for upload {session.upload_id}: {e}")
    
    # Operations
    
    async def begin(
        self,
        file_name: str,
        mime_type: Optional[str],
        total_size: int,
        room_id: str,
        user_id: str,
        storage_account_id: Optional[str] = None,
        parent_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> UploadStarted:
        """Open a multipart upload and persist its session.
        
        Raises:
            ValidationError: Invalid input, no multipart support or no
                feasible part plan (before any provider call)
            ResourceNotFoundError: Unknown storage account
            StorageProviderError: The provider refused to open the upload
        """
        if not file_name or not file_name.strip():
            raise ValidationError("File name is required")
        if not room_id:
            raise ValidationError("Room id is required")
        if not user_id:
            raise ValidationError("User id is required")
        if isinstance(total_size, bool) or not isinstance(total_size, int) or total_size <= 0:
            raise ValidationError(
                "Total size must be a positive integer",
                details={"total_size": total_size}
            )
        
        resolved = await self._resolver.resolve(room_id, storage_account_id)
        provider = resolved.provider
        capabilities = provider.get_capabilities()
        
        if not capabilities.supports_multipart_upload:
            raise ValidationError(
                "Storage provider does not support multipart uploads",
                details={"provider": provider.provider_type}
            )
        
        plan = plan_parts(total_size, capabilities)
        
        file_id = generate_uuid_v7()
        upload_id = generate_uuid_v7()
        storage_key = (
            f"{self._settings.storage_key_prefix}/{room_id}/files/{file_id}/"
            f"{sanitize_file_name(file_name)}"
        )
        content_type = mime_type or guess_content_type(file_name)
        
        result = await self._call_provider(
            provider,
            "create_multipart_upload",
            lambda: provider.create_multipart_upload(
                storage_key,
                content_type,
                {"file_id": file_id, "upload_id": upload_id},
            ),
        )
        self._require_success(provider, "create_multipart_upload", result)
        
        upload_handle = result.data.get("upload_handle")
        if not upload_handle:
            raise StorageProviderError(
                provider.provider_type,
                "create_multipart_upload",
                message="Provider did not return an upload handle",
            )
        
        session = UploadSession(
            upload_id=upload_id,
            provider_upload_handle=upload_handle,
            file_id=file_id,
            file_name=file_name,
            mime_type=content_type,
            total_size=total_size,
            storage_account_id=resolved.account.id,
            storage_key=storage_key,
            room_id=room_id,
            user_id=user_id,
            parent_id=parent_id,
            part_size=plan.part_size,
            total_parts=plan.total_parts,
            metadata=dict(metadata or {}),
        )
        await self._store.create(session)
        
        logger.info(
            f"Initialized multipart upload {upload_id} for {file_name} "
            f"({total_size} bytes, {plan.total_parts} parts of {plan.part_size}) "
            f"on {provider.provider_type}"
        )
        await self._emit(session)
        
        return UploadStarted(
            upload_id=upload_id,
            file_id=file_id,
            part_size=plan.part_size,
            total_parts=plan.total_parts,
            storage_key=storage_key,
        )
    
    async def get_upload_part_url(self, upload_id: str, part_number: int, content_length: int) -> PartUploadUrl:
        """Return the URL the client PUTs one part to."""
        session = await self._load(upload_id)
        self._require_active(session)
        session.validate_part_number(part_number)
        if isinstance(content_length, bool) or not isinstance(content_length, int) or content_length <= 0:
            raise ValidationError(
                "Content length must be a positive integer",
                details={"upload_id": upload_id, "content_length": content_length}
            )
        
        provider = await self._resolver.get_provider(session.storage_account_id)
        result = await self._call_provider(
            provider,
            "get_signed_url_for_part",
            lambda: provider.get_signed_url_for_part(
                session.storage_key,
                session.provider_upload_handle,
                part_number,
                content_length,
            ),
            retries=self._settings.provider_retry_attempts,
        )
        self._require_success(provider, "get_signed_url_for_part", result)
        
        url = result.data.get("url")
        if not url:
            raise StorageProviderError(
                provider.provider_type,
                "get_signed_url_for_part",
                message="Provider did not return a part URL",
            )
        
        if session.status == UploadStatus.INITIALIZED:
            async with self._store.lock(upload_id):
                current = await self._load(upload_id)
                if current.status == UploadStatus.INITIALIZED:
                    current.mark_in_progress()
                    await self._store.save(current)
        
        logger.debug(f"Issued URL for part {part_number} of upload {upload_id}")
        
        return PartUploadUrl(
            url=url,
            part_number=part_number,
            expires_in=int(result.data.get("expires_in") or self._settings.part_url_expiry_seconds),
        )
    
    async def complete_part(self, upload_id: str, part_number: int, etag: str) -> PartCompleted:
        """Record that the client stored a part; a resubmitted part replaces its etag."""
        async with self._store.lock(upload_id):
            session = await self._load(upload_id)
            self._require_active(session)
            session.validate_part_number(part_number)
            
            session.mark_in_progress()
            session.record_part(part_number, etag)
            await self._store.save(session)
        
        logger.debug(
            f"Part {part_number} of upload {upload_id} completed "
            f"({session.completed_count}/{session.total_parts})"
        )
        await self._emit(session)
        
        return PartCompleted(
            upload_id=upload_id,
            part_number=part_number,
            completed_parts=session.completed_count,
            total_parts=session.total_parts,
            is_complete=session.has_all_parts(),
        )
    
    async def finalize(self, upload_id: str) -> FileRecord:
        """Commit the upload at the provider and register the file.
        
        Calling it again after success returns the same record without
        touching the provider or the registrar.
        """
        async with self._store.lock(upload_id):
            session = await self._load(upload_id)
            
            if session.status == UploadStatus.COMPLETED and session.result is not None:
                logger.debug(f"Upload {upload_id} already finalized")
                return FileRecord.from_dict(session.result)
            
            if session.status != UploadStatus.IN_PROGRESS:
                raise InvalidUploadStateError(
                    f"Upload is in {session.status.value} state",
                    current_status=session.status.value,
                    upload_id=upload_id,
                )
            
            if not session.has_all_parts():
                raise IncompleteUploadError(upload_id, session.missing_parts(), session.total_parts)
            
            provider = await self._resolver.get_provider(session.storage_account_id)
            parts = session.sorted_parts()
            
            try:
                result = await self._call_provider(
                    provider,
                    "complete_multipart_upload",
                    lambda: provider.complete_multipart_upload(
                        session.storage_key,
                        session.provider_upload_handle,
                        parts,
                    ),
                )
                self._require_success(provider, "complete_multipart_upload", result)
            except StorageProviderError as e:
                session.mark_failed(e.message)
                await self._store.save(session)
                logger.error(f"Failed to complete multipart upload {upload_id}: {e.message}")
                await self._emit(session)
                raise
            
            registration = FileRegistration(
                name=session.file_name,
                mime_type=session.mime_type,
                size=session.total_size,
                room_id=session.room_id,
                uploaded_by_id=session.user_id,
                storage_id=session.storage_account_id,
                storage_key=session.storage_key,
                file_id=session.file_id,
                parent_id=session.parent_id,
                metadata=dict(session.metadata),
            )
            
            try:
                record = await self._registrar.create(registration)
            except Exception as e:
                # The object exists in storage without a file record
                session.mark_failed(f"File registration failed: {e}")
                await self._store.save(session)
                logger.error(
                    f"Upload {upload_id} stored at {session.storage_key} but file registration failed: {e}"
                )
                await self._emit(session)
                raise
            
            session.mark_completed(record.to_dict())
            await self._store.save(session)
        
        logger.info(
            f"Multipart upload {upload_id} completed: file {record.id} "
            f"({session.file_name}, {session.total_size} bytes)"
        )
        await self._emit(session)
        return record
    
    async def abort(self, upload_id: str) -> UploadStatusView:
        """Abandon an upload. Provider cleanup is best-effort."""
        async with self._store.lock(upload_id):
            session = await self._load(upload_id)
            
            if session.status == UploadStatus.ABORTED:
                return session.to_status_view()
            
            await self._abort_locked(session)
        
        logger.info(f"Multipart upload {upload_id} aborted ({session.file_name})")
        await self._emit(session)
        return session.to_status_view()
    
    async def abort_if_idle(
        self,
        upload_id: str,
        idle_timeout_seconds: float,
        now: Optional[datetime] = None
    ) -> bool:
        """Abort an active upload only if it is still idle once the lock is held.
        
        Returns False when the session is gone, already terminal, or saw
        activity after the caller looked at it.
        """
        async with self._store.lock(upload_id):
            session = await self._store.get(upload_id)
            if session is None or not session.is_active:
                return False
            if session.idle_seconds(now) < idle_timeout_seconds:
                return False
            
            await self._abort_locked(session)
        
        logger.info(f"Multipart upload {upload_id} aborted after {idle_timeout_seconds}s without activity")
        await self._emit(session)
        return True
    
    async def _abort_locked(self, session: UploadSession) -> None:
        if session.status == UploadStatus.COMPLETED:
            raise InvalidUploadStateError(
                "Upload is already completed",
                current_status=session.status.value,
                upload_id=session.upload_id,
            )
        
        if session.status == UploadStatus.FAILED:
            raise InvalidUploadStateError(
                "Upload has already failed",
                current_status=session.status.value,
                upload_id=session.upload_id,
            )
        
        await self._abort_at_provider(session)
        
        session.mark_aborted()
        await self._store.save(session)
    
    async def _abort_at_provider(self, session: UploadSession) -> None:
        try:
            provider = await self._resolver.get_provider(session.storage_account_id)
            result = await self._call_provider(
                provider,
                "abort_multipart_upload",
                lambda: provider.abort_multipart_upload(session.storage_key, session.provider_upload_handle),
            )
            if not result.success:
                logger.warning(f"Provider refused abort of upload {session.upload_id}: {result.message}")
        except Exception as e:
            logger.warning(f"Provider abort failed for upload {session.upload_id}: {e}")
    
    async def status(self, upload_id: str) -> UploadStatusView:
        session = await self._load(upload_id)
        return session.to_status_view()
