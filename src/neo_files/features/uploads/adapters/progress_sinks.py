"""Upload progress sinks."""

import json
import logging

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..entities.protocols import UploadProgressEvent

logger = logging.getLogger(__name__)


class RedisProgressPublisher:
    """Publishes progress events to a per-room Redis channel.
    
    Delivery to websocket clients happens elsewhere; a failed publish is
    logged and never fails the upload operation that produced it.
    """
    
    def __init__(self, redis_client: Redis, key_prefix: str = "neo_files:uploads"):
        self.redis = redis_client
        self.key_prefix = key_prefix
    
    def channel_for(self, room_id: str) -> str:
        return f"{self.key_prefix}:room:{room_id}:uploads"
    
    async def publish(self, event: UploadProgressEvent) -> None:
        channel = self.channel_for(event.room_id)
        try:
            await self.redis.publish(channel, json.dumps(event.to_dict()))
        except RedisError as e:
            logger.error(f"Failed to publish progress for upload {event.upload_id} to {channel}: {e}")


class LoggingProgressSink:
    """Logs progress events at debug level."""
    
    def __init__(self, logger_name: str = __name__):
        self._logger = logging.getLogger(logger_name)
    
    async def publish(self, event: UploadProgressEvent) -> None:
        self._logger.debug(
            f"Upload {event.upload_id} ({event.room_id}): {event.status} "
            f"{event.progress:.1f}% ({event.bytes_transferred}/{event.total_bytes} bytes)"
        )
