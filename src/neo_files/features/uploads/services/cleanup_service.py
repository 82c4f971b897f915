"""Upload session sweeper.

Purges terminal sessions once their retention has passed and aborts
sessions that stopped receiving activity, releasing the provider-side
upload so no orphaned parts keep accruing storage.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ....config.settings import UploadSettings, get_upload_settings
from ....core.exceptions import NeoFilesError
from ....utils import utc_now
from ..entities import UploadSessionStore
from .upload_orchestrator import UploadOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SweepReport:
    """Outcome of one sweep."""
    purged: int = 0
    aborted: int = 0
    scanned: int = 0


class UploadSessionSweeper:
    """Periodic maintenance of upload sessions."""
    
    def __init__(
        self,
        store: UploadSessionStore,
        orchestrator: UploadOrchestrator,
        settings: Optional[UploadSettings] = None
    ):
        self._store = store
        self._orchestrator = orchestrator
        self._settings = settings or get_upload_settings()
        self._task: Optional[asyncio.Task] = None
    
    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()
    
    async def sweep_once(self, now: Optional[datetime] = None) -> SweepReport:
        """Run one maintenance pass.
        
        Sessions aborted here stay readable until a later sweep finds them
        past ``terminal_retention_seconds``.
        """
        now = now or utc_now()
        purged = aborted = scanned = 0
        
        for upload_id in await self._store.list_upload_ids():
            session = await self._store.get(upload_id)
            if session is None:
                # Expired by the backend; drop the index entry
                await self._store.delete(upload_id)
                continue
            
            scanned += 1
            idle = session.idle_seconds(now)
            
            if session.is_terminal:
                if idle >= self._settings.terminal_retention_seconds:
                    await self._store.delete(upload_id)
                    purged += 1
                    logger.debug(f"Purged {session.status.value} upload {upload_id}")
            elif idle >= self._settings.idle_session_timeout_seconds:
                # Re-checked under the session lock; a part may land meanwhile
                try:
                    if await self._orchestrator.abort_if_idle(
                        upload_id, self._settings.idle_session_timeout_seconds, now
                    ):
                        aborted += 1
                except NeoFilesError as e:
                    logger.warning(f"Could not abort idle upload {upload_id}: {e.message}")
        
        if purged or aborted:
            logger.info(f"Upload sweep: scanned {scanned}, purged {purged}, aborted {aborted}")
        
        return SweepReport(purged=purged, aborted=aborted, scanned=scanned)
    
    async def _run(self) -> None:
        interval = self._settings.sweep_interval_seconds
        while True:
            try:
                await self.sweep_once()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Upload sweep failed: {e}")
            await asyncio.sleep(interval)
    
    def start(self) -> None:
        """Start sweeping every ``sweep_interval_seconds`` on the running loop."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Started upload session sweeper (interval {self._settings.sweep_interval_seconds}s)")
    
    async def stop(self) -> None:
        if self._task is None:
            return
        
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self._task = None
        
        logger.info("Stopped upload session sweeper")
