"""Redis upload session store.

Shared store for horizontally scaled deployments, built on redis.asyncio.

Layout (``prefix`` defaults to ``neo_files:uploads``):
- ``{prefix}:session:{upload_id}``: the session as a JSON document
- ``{prefix}:sessions``: set of known upload ids
- ``{prefix}:lock:{upload_id}``: per-session lock token
"""

import asyncio
import json
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Optional

import redis.asyncio as redis
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ....config.settings import UploadSettings, get_upload_settings
from ....core.exceptions import (
    ConfigurationError,
    ConflictError,
    StorageError,
    UploadSessionLockError,
)
from ..entities.upload_session import UploadSession

logger = logging.getLogger(__name__)

# Deletes the lock only if it still holds our token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""

# Extends the lock TTL (milliseconds) only if it still holds our token
EXTEND_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
else
    return 0
end
"""


class RedisUploadSessionStore:
    """UploadSessionStore backed by Redis.
    
    Terminal sessions are written with a TTL of ``terminal_retention_seconds``
    so Redis expires them even when no sweeper runs.
    """
    
    def __init__(
        self,
        redis_client: Redis,
        settings: Optional[UploadSettings] = None,
        lock_poll_interval: float = 0.05
    ):
        if redis_client is None:
            raise ConfigurationError("Redis client is required")
        
        self.redis = redis_client
        self.settings = settings or get_upload_settings()
        self.key_prefix = self.settings.redis_key_prefix
        self.lock_poll_interval = lock_poll_interval
    
    @classmethod
    def from_url(cls, url: Optional[str] = None, settings: Optional[UploadSettings] = None) -> 'RedisUploadSessionStore':
        """Create a store with its own client from ``url`` or ``settings.redis_url``."""
        settings = settings or get_upload_settings()
        url = url or settings.redis_url
        if not url:
            raise ConfigurationError("NEO_FILES_REDIS_URL is not configured")
        
        client = redis.from_url(url, decode_responses=True)
        return cls(client, settings=settings)
    
    def _session_key(self, upload_id: str) -> str:
        return f"{self.key_prefix}:session:{upload_id}"
    
    def _index_key(self) -> str:
        return f"{self.key_prefix}:sessions"
    
    def _lock_key(self, upload_id: str) -> str:
        return f"{self.key_prefix}:lock:{upload_id}"
    
    def _ttl_for(self, session: UploadSession) -> Optional[int]:
        if session.is_terminal:
            return self.settings.terminal_retention_seconds
        return None
    
    def _store_error(self, operation: str, upload_id: Optional[str], error: Exception) -> StorageError:
        logger.error(f"Upload session store {operation} failed for {upload_id}: {error}")
        return StorageError(
            f"Upload session store {operation} failed",
            error_code="SESSION_STORE_ERROR",
            details={"upload_id": upload_id, "operation": operation}
        )
    
    async def create(self, session: UploadSession) -> None:
        key = self._session_key(session.upload_id)
        payload = json.dumps(session.to_dict())
        
        try:
            created = await self.redis.set(key, payload, nx=True, ex=self._ttl_for(session))
            if not created:
                raise ConflictError(
                    f"Upload session already exists: {session.upload_id}",
                    error_code="UPLOAD_EXISTS",
                    details={"upload_id": session.upload_id}
                )
            await self.redis.sadd(self._index_key(), session.upload_id)
        except RedisError as e:
            raise self._store_error("create", session.upload_id, e) from e
        
        logger.debug(f"Created upload session {session.upload_id}")
    
    async def get(self, upload_id: str) -> Optional[UploadSession]:
        try:
            payload = await self.redis.get(self._session_key(upload_id))
        except RedisError as e:
            raise self._store_error("get", upload_id, e) from e
        
        if not payload:
            return None
        return UploadSession.from_dict(json.loads(payload))
    
    async def save(self, session: UploadSession) -> None:
        payload = json.dumps(session.to_dict())
        
        try:
            pipe = self.redis.pipeline()
            pipe.set(self._session_key(session.upload_id), payload, ex=self._ttl_for(session))
            pipe.sadd(self._index_key(), session.upload_id)
            await pipe.execute()
        except RedisError as e:
            raise self._store_error("save", session.upload_id, e) from e
    
    async def delete(self, upload_id: str) -> bool:
        try:
            pipe = self.redis.pipeline()
            pipe.delete(self._session_key(upload_id))
            pipe.srem(self._index_key(), upload_id)
            deleted, _ = await pipe.execute()
        except RedisError as e:
            raise self._store_error("delete", upload_id, e) from e
        
        return bool(deleted)
    
    async def list_upload_ids(self) -> List[str]:
        """Upload ids in the index; may include sessions Redis already expired."""
        try:
            members = await self.redis.smembers(self._index_key())
        except RedisError as e:
            raise self._store_error("list", None, e) from e
        
        return sorted(m.decode() if isinstance(m, bytes) else m for m in members)
    
    @asynccontextmanager
    async def lock(self, upload_id: str) -> AsyncIterator[None]:
        """Distributed lock on one session (SET NX PX with a release token).
        
        The lock is renewed in the background while held, so a holder that
        outlives ``lock_ttl_seconds`` (slow provider or registrar) keeps it.
        """
        key = self._lock_key(upload_id)
        token = uuid.uuid4().hex
        ttl_ms = self._lock_ttl_ms()
        timeout = self.settings.lock_timeout_seconds
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        
        try:
            while not await self.redis.set(key, token, nx=True, px=ttl_ms):
                if loop.time() >= deadline:
                    raise UploadSessionLockError(upload_id, timeout)
                await asyncio.sleep(self.lock_poll_interval)
        except RedisError as e:
            raise self._store_error("lock", upload_id, e) from e
        
        renewal = asyncio.create_task(self._renew_lock(key, token, ttl_ms))
        try:
            yield
        finally:
            renewal.cancel()
            try:
                await renewal
            except asyncio.CancelledError:
                pass
            
            try:
                await self.redis.eval(RELEASE_LOCK_SCRIPT, 1, key, token)
            except RedisError as e:
                # The lock expires on its own after lock_ttl_seconds
                logger.error(f"Failed to release lock {key}: {e}")
    
    def _lock_ttl_ms(self) -> int:
        return max(1, int(self.settings.lock_ttl_seconds * 1000))
    
    async def _renew_lock(self, key: str, token: str, ttl_ms: int) -> None:
        """Extend the lock every third of its TTL while the token still matches."""
        interval = ttl_ms / 3000
        while True:
            await asyncio.sleep(interval)
            try:
                extended = await self.redis.eval(EXTEND_LOCK_SCRIPT, 1, key, token, ttl_ms)
            except RedisError as e:
                logger.warning(f"Failed to renew lock {key}: {e}")
                continue
            
            if not extended:
                logger.error(f"Lock {key} was lost before its holder finished")
                return
    
    async def close(self) -> None:
        await self.redis.aclose()
