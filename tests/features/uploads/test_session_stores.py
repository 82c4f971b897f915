"""Tests for the in-memory and Redis upload session stores."""

import asyncio
import json
import logging

import pytest
from unittest.mock import AsyncMock, MagicMock
from redis.exceptions import ConnectionError as RedisConnectionError

from neo_files.core.exceptions import (
    ConfigurationError,
    ConflictError,
    StorageError,
    UploadSessionLockError,
)
from neo_files.features.storage.entities import MIB
from neo_files.features.uploads.adapters import (
    InMemoryUploadSessionStore,
    RedisUploadSessionStore,
    RELEASE_LOCK_SCRIPT,
    EXTEND_LOCK_SCRIPT,
)
from neo_files.features.uploads.entities import UploadSession, UploadStatus


def make_session(upload_id: str = "upload-1") -> UploadSession:
    return UploadSession(
        upload_id=upload_id,
        provider_upload_handle="handle-1",
        file_id="file-1",
        file_name="notes.txt",
        mime_type="text/plain",
        total_size=6 * MIB,
        storage_account_id="storage-1",
        storage_key="rooms/room-1/files/file-1/notes.txt",
        room_id="room-1",
        user_id="user-1",
        part_size=5 * MIB,
        total_parts=2,
    )


class TestInMemoryUploadSessionStore:
    """Test the process-local store."""
    
    @pytest.mark.asyncio
    async def test_create_get_save_delete(self):
        store = InMemoryUploadSessionStore()
        session = make_session()
        
        await store.create(session)
        session.mark_in_progress()
        
        # Stored copies are not affected by later mutation
        stored = await store.get("upload-1")
        assert stored.status == UploadStatus.INITIALIZED
        
        await store.save(session)
        assert (await store.get("upload-1")).status == UploadStatus.IN_PROGRESS
        assert await store.list_upload_ids() == ["upload-1"]
        
        assert await store.delete("upload-1") is True
        assert await store.get("upload-1") is None
        assert await store.delete("upload-1") is False
    
    @pytest.mark.asyncio
    async def test_create_duplicate(self):
        store = InMemoryUploadSessionStore()
        await store.create(make_session())
        
        with pytest.raises(ConflictError):
            await store.create(make_session())
    
    @pytest.mark.asyncio
    async def test_lock_serializes_access(self):
        """Holders of the same session lock never overlap."""
        store = InMemoryUploadSessionStore()
        active = []
        overlaps = []
        
        async def critical_section():
            async with store.lock("upload-1"):
                if active:
                    overlaps.append(True)
                active.append(True)
                await asyncio.sleep(0.01)
                active.pop()
        
        await asyncio.gather(*[critical_section() for _ in range(5)])
        
        assert overlaps == []
        assert store._locks == {}
    
    @pytest.mark.asyncio
    async def test_lock_entries_do_not_outlive_holders(self):
        """Locking ids that have no session leaves no lock behind."""
        store = InMemoryUploadSessionStore()
        
        for i in range(100):
            async with store.lock(f"missing-{i}"):
                pass
        
        with pytest.raises(RuntimeError):
            async with store.lock("missing-error"):
                raise RuntimeError("boom")
        
        assert store._locks == {}
        assert store._lock_users == {}
    
    @pytest.mark.asyncio
    async def test_lock_kept_while_contended(self):
        store = InMemoryUploadSessionStore()
        
        async with store.lock("upload-1"):
            waiter = asyncio.create_task(self._hold(store, "upload-1"))
            await asyncio.sleep(0.01)
            assert "upload-1" in store._locks
        
        await waiter
        assert store._locks == {}
    
    @staticmethod
    async def _hold(store, upload_id):
        async with store.lock(upload_id):
            pass


class TestRedisUploadSessionStore:
    """Test the Redis store against a mocked redis.asyncio client."""
    
    @pytest.fixture
    def mock_redis(self):
        client = MagicMock()
        client.set = AsyncMock(return_value=True)
        client.get = AsyncMock(return_value=None)
        client.sadd = AsyncMock(return_value=1)
        client.smembers = AsyncMock(return_value=set())
        client.eval = AsyncMock(return_value=1)
        client.aclose = AsyncMock()
        
        pipeline = MagicMock()
        pipeline.execute = AsyncMock(return_value=[1, 1])
        client.pipeline.return_value = pipeline
        return client
    
    @pytest.fixture
    def store(self, mock_redis, upload_settings):
        return RedisUploadSessionStore(mock_redis, settings=upload_settings, lock_poll_interval=0.01)
    
    @pytest.mark.asyncio
    async def test_create_writes_json_and_index(self, store, mock_redis):
        await store.create(make_session())
        
        key, payload = mock_redis.set.call_args.args
        assert key == "neo_files:uploads:session:upload-1"
        assert json.loads(payload)["upload_id"] == "upload-1"
        assert mock_redis.set.call_args.kwargs == {"nx": True, "ex": None}
        mock_redis.sadd.assert_awaited_once_with("neo_files:uploads:sessions", "upload-1")
    
    @pytest.mark.asyncio
    async def test_create_existing_id(self, store, mock_redis):
        mock_redis.set.return_value = None
        
        with pytest.raises(ConflictError):
            await store.create(make_session())
        
        mock_redis.sadd.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_get_deserializes(self, store, mock_redis):
        mock_redis.get.return_value = json.dumps(make_session().to_dict())
        
        session = await store.get("upload-1")
        
        assert session.upload_id == "upload-1"
        assert session.total_parts == 2
        mock_redis.get.assert_awaited_once_with("neo_files:uploads:session:upload-1")
    
    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("missing") is None
    
    @pytest.mark.asyncio
    async def test_save_active_session_has_no_ttl(self, store, mock_redis):
        await store.save(make_session())
        
        pipeline = mock_redis.pipeline.return_value
        assert pipeline.set.call_args.kwargs == {"ex": None}
    
    @pytest.mark.asyncio
    async def test_save_terminal_session_sets_retention_ttl(self, store, mock_redis, upload_settings):
        """Terminal sessions expire after the retention window."""
        session = make_session()
        session.mark_aborted()
        
        await store.save(session)
        
        pipeline = mock_redis.pipeline.return_value
        assert pipeline.set.call_args.kwargs == {"ex": upload_settings.terminal_retention_seconds}
        pipeline.sadd.assert_called_once_with("neo_files:uploads:sessions", "upload-1")
    
    @pytest.mark.asyncio
    async def test_delete_removes_index_entry(self, store, mock_redis):
        assert await store.delete("upload-1") is True
        
        pipeline = mock_redis.pipeline.return_value
        pipeline.delete.assert_called_once_with("neo_files:uploads:session:upload-1")
        pipeline.srem.assert_called_once_with("neo_files:uploads:sessions", "upload-1")
    
    @pytest.mark.asyncio
    async def test_list_upload_ids(self, store, mock_redis):
        mock_redis.smembers.return_value = {b"upload-2", "upload-1"}
        
        assert await store.list_upload_ids() == ["upload-1", "upload-2"]
    
    @pytest.mark.asyncio
    async def test_lock_acquire_and_release(self, store, mock_redis, upload_settings):
        async with store.lock("upload-1"):
            key, token = mock_redis.set.call_args.args
            assert key == "neo_files:uploads:lock:upload-1"
            assert mock_redis.set.call_args.kwargs == {
                "nx": True,
                "px": int(upload_settings.lock_ttl_seconds * 1000),
            }
        
        mock_redis.eval.assert_awaited_once_with(RELEASE_LOCK_SCRIPT, 1, key, token)
    
    @pytest.mark.asyncio
    async def test_lock_renewed_while_held(self, mock_redis, upload_settings):
        """A holder that outlives the TTL keeps extending its own token."""
        settings = upload_settings.model_copy(update={"lock_ttl_seconds": 0.06})
        store = RedisUploadSessionStore(mock_redis, settings=settings, lock_poll_interval=0.01)
        
        async with store.lock("upload-1"):
            token = mock_redis.set.call_args.args[1]
            await asyncio.sleep(0.1)
        
        extends = [c for c in mock_redis.eval.await_args_list if c.args[0] == EXTEND_LOCK_SCRIPT]
        assert len(extends) >= 2
        assert extends[0].args[1:] == (1, "neo_files:uploads:lock:upload-1", token, 60)
        assert mock_redis.eval.await_args_list[-1].args[0] == RELEASE_LOCK_SCRIPT
    
    @pytest.mark.asyncio
    async def test_lock_renewal_stops_when_token_lost(self, mock_redis, upload_settings, caplog):
        settings = upload_settings.model_copy(update={"lock_ttl_seconds": 0.03})
        store = RedisUploadSessionStore(mock_redis, settings=settings, lock_poll_interval=0.01)
        mock_redis.eval.return_value = 0
        
        with caplog.at_level(logging.ERROR):
            async with store.lock("upload-1"):
                await asyncio.sleep(0.06)
        
        extends = [c for c in mock_redis.eval.await_args_list if c.args[0] == EXTEND_LOCK_SCRIPT]
        assert len(extends) == 1
        assert "was lost" in caplog.text
    
    @pytest.mark.asyncio
    async def test_lock_renewal_survives_redis_errors(self, mock_redis, upload_settings):
        settings = upload_settings.model_copy(update={"lock_ttl_seconds": 0.03})
        store = RedisUploadSessionStore(mock_redis, settings=settings, lock_poll_interval=0.01)
        
        async def flaky_eval(script, *args):
            if script == EXTEND_LOCK_SCRIPT and not flaky_eval.failed:
                flaky_eval.failed = True
                raise RedisConnectionError("connection reset")
            return 1
        flaky_eval.failed = False
        mock_redis.eval.side_effect = flaky_eval
        
        async with store.lock("upload-1"):
            await asyncio.sleep(0.05)
        
        extends = [c for c in mock_redis.eval.await_args_list if c.args[0] == EXTEND_LOCK_SCRIPT]
        assert len(extends) >= 2
    
    @pytest.mark.asyncio
    async def test_lock_released_on_error(self, store, mock_redis):
        with pytest.raises(RuntimeError):
            async with store.lock("upload-1"):
                raise RuntimeError("boom")
        
        mock_redis.eval.assert_awaited_once()
    
    @pytest.mark.asyncio
    async def test_lock_polls_until_free(self, store, mock_redis):
        mock_redis.set.side_effect = [None, None, True]
        
        async with store.lock("upload-1"):
            pass
        
        assert mock_redis.set.await_count == 3
    
    @pytest.mark.asyncio
    async def test_lock_timeout(self, store, mock_redis):
        """A lock held elsewhere raises after lock_timeout_seconds."""
        mock_redis.set.return_value = None
        
        with pytest.raises(UploadSessionLockError):
            async with store.lock("upload-1"):
                pass
        
        mock_redis.eval.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_redis_errors_are_wrapped(self, store, mock_redis):
        mock_redis.get.side_effect = RedisConnectionError("connection refused")
        
        with pytest.raises(StorageError) as exc_info:
            await store.get("upload-1")
        
        assert exc_info.value.error_code == "SESSION_STORE_ERROR"
    
    def test_requires_client(self, upload_settings):
        with pytest.raises(ConfigurationError):
            RedisUploadSessionStore(None, settings=upload_settings)
