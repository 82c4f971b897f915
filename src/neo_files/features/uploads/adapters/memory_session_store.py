"""In-memory upload session store.

Process-local store for single-process deployments and tests. Sessions are
kept in serialized form so callers never share mutable state with the store.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

from ....core.exceptions import ConflictError
from ..entities.upload_session import UploadSession

logger = logging.getLogger(__name__)


class InMemoryUploadSessionStore:
    """UploadSessionStore backed by a dict, with one asyncio.Lock per upload."""
    
    def __init__(self):
        self._sessions: Dict[str, Dict[str, Any]] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}
    
    async def create(self, session: UploadSession) -> None:
        if session.upload_id in self._sessions:
            raise ConflictError(
                f"Upload session already exists: {session.upload_id}",
                error_code="UPLOAD_EXISTS",
                details={"upload_id": session.upload_id}
            )
        
        self._sessions[session.upload_id] = session.to_dict()
        logger.debug(f"Created upload session {session.upload_id}")
    
    async def get(self, upload_id: str) -> Optional[UploadSession]:
        data = self._sessions.get(upload_id)
        if data is None:
            return None
        return UploadSession.from_dict(data)
    
    async def save(self, session: UploadSession) -> None:
        self._sessions[session.upload_id] = session.to_dict()
    
    async def delete(self, upload_id: str) -> bool:
        return self._sessions.pop(upload_id, None) is not None
    
    @asynccontextmanager
    async def lock(self, upload_id: str) -> AsyncIterator[None]:
        """Exclusive access to one upload session within this process.
        
        A lock lives only while someone holds or awaits it, so lookups of
        unknown ids leave nothing behind.
        """
        lock = self._locks.setdefault(upload_id, asyncio.Lock())
        self._lock_users[upload_id] = self._lock_users.get(upload_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[upload_id] -= 1
            if not self._lock_users[upload_id]:
                del self._lock_users[upload_id]
                del self._locks[upload_id]
    
    async def list_upload_ids(self) -> List[str]:
        return list(self._sessions)
    
    def __len__(self) -> int:
        return len(self._sessions)
