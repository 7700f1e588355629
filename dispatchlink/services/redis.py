import json
from typing import Any

import redis.asyncio as redis
from dispatchlink.core.config import settings

# Connection pool is created lazily on first command
redis_client = redis.Redis(
    host=settings.REDIS_HOST,
    port=settings.REDIS_PORT,
    db=settings.REDIS_DB,
    password=settings.REDIS_PASSWORD,
    decode_responses=True,
)


async def publish_message(channel: str, message: Any) -> int:
    """Publish a JSON message on a Redis channel for other instances."""
    serialized_message = json.dumps(message, default=str)
    return await redis_client.publish(channel, serialized_message)


async def close() -> None:
    await redis_client.aclose()
