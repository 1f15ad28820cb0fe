"""Redis connection for the BullMQ reader."""

import logging

import redis.asyncio as redis
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError, TimeoutError

from bullscope.config import Settings

logger = logging.getLogger(__name__)

# Bounded reconnect policy: 3 retries, 200ms doubling, capped at 2s
CONNECT_RETRIES = 3
RETRY_BACKOFF_BASE_SECONDS = 0.2
RETRY_BACKOFF_CAP_SECONDS = 2.0


def create_client(settings: Settings) -> redis.Redis:
    """
    Create a Redis client for the configured server.

    The client connects lazily on first command. Connection and timeout
    errors are retried a bounded number of times before surfacing to the
    caller, which treats them as a failed refresh.
    """
    return redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password,
        db=settings.redis_db,
        decode_responses=True,
        retry=Retry(
            ExponentialBackoff(
                cap=RETRY_BACKOFF_CAP_SECONDS, base=RETRY_BACKOFF_BASE_SECONDS
            ),
            CONNECT_RETRIES,
        ),
        retry_on_error=[ConnectionError, TimeoutError],
    )


async def ping(client: redis.Redis) -> bool:
    """Check the server answers PING."""
    try:
        return bool(await client.ping())
    except Exception as e:
        logger.debug("Redis ping failed: %s", e)
        return False
