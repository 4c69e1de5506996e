"""
Redis client wrapper for webhook delivery de-duplication.

GitHub redelivers a webhook with the same X-GitHub-Delivery id when it did
not get a timely response. Each delivery id is claimed once with
SET NX EX, so redeliveries within the TTL are recognized and skipped.

Includes connection pooling and retry logic for resilience.
"""

import asyncio
import logging
from typing import Optional
from contextlib import asynccontextmanager
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import RedisError, ConnectionError, TimeoutError


logger = logging.getLogger(__name__)


class RedisConnectionError(Exception):
    """Raised when Redis connection fails after retries."""
    pass


class RedisClient:
    """
    Redis client wrapper with connection pooling and retry logic.
    """

    DELIVERY_KEY_PREFIX = "github_delivery:{delivery_id}"

    def __init__(
        self,
        redis_url: str,
        max_retries: int = 3,
        retry_delay: float = 0.5,
        connection_timeout: int = 5
    ):
        """
        Initialize Redis client.

        Args:
            redis_url: Redis connection URL
            max_retries: Maximum number of retry attempts for transient errors
            retry_delay: Base delay between retries (exponential backoff)
            connection_timeout: Connection timeout in seconds
        """
        self._redis_url = redis_url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._connection_timeout = connection_timeout

    async def initialize(self) -> None:
        """
        Initialize Redis connection pool.

        Should be called during application startup.

        Raises:
            RedisConnectionError: If connection fails
        """
        try:
            self._pool = ConnectionPool.from_url(
                self._redis_url,
                max_connections=10,
                decode_responses=True,
                socket_timeout=self._connection_timeout,
                socket_connect_timeout=self._connection_timeout
            )
            self._client = redis.Redis(connection_pool=self._pool)

            await self._client.ping()

            logger.info("Redis connection pool initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize Redis connection pool: {e}")
            raise RedisConnectionError(f"Failed to connect to Redis: {e}")

    async def close(self) -> None:
        """
        Close Redis connection pool.

        Should be called during application shutdown.
        """
        if self._client:
            await self._client.aclose()

        if self._pool:
            await self._pool.disconnect()

        logger.info("Redis connection pool closed")

    @asynccontextmanager
    async def _get_client(self):
        """
        Get Redis client with connection check.

        Yields:
            redis.Redis: Redis client instance

        Raises:
            RuntimeError: If client not initialized
        """
        if not self._client:
            raise RuntimeError("Redis client not initialized. Call initialize() first.")

        yield self._client

    async def _retry_operation(self, operation, *args, **kwargs):
        """
        Execute Redis operation with retry logic.

        Raises:
            RedisConnectionError: If operation fails after all retries
        """
        last_error = None

        for attempt in range(self._max_retries):
            try:
                return await operation(*args, **kwargs)

            except (ConnectionError, TimeoutError) as e:
                last_error = e
                if attempt < self._max_retries - 1:
                    delay = self._retry_delay * (2 ** attempt)
                    logger.warning(
                        f"Redis operation failed (attempt {attempt + 1}/{self._max_retries}), "
                        f"retrying in {delay}s: {e}"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Redis operation failed after {self._max_retries} attempts: {e}")

            except RedisError as e:
                # Non-transient errors, don't retry
                logger.error(f"Redis operation failed with non-transient error: {e}")
                raise RedisConnectionError(f"Redis operation failed: {e}") from e

        raise RedisConnectionError(f"Redis operation failed after {self._max_retries} retries: {last_error}")

    def _delivery_key(self, delivery_id: str) -> str:
        return self.DELIVERY_KEY_PREFIX.format(delivery_id=delivery_id)

    async def claim_delivery(self, delivery_id: str, ttl_seconds: int) -> bool:
        """
        Record a webhook delivery id the first time it is seen.

        Args:
            delivery_id: X-GitHub-Delivery header value
            ttl_seconds: How long the id is remembered

        Returns:
            True if this is the first time the id is seen, False for a redelivery

        Raises:
            RedisConnectionError: If operation fails after retries
        """
        async def _claim():
            async with self._get_client() as client:
                claimed = await client.set(
                    self._delivery_key(delivery_id),
                    "1",
                    nx=True,
                    ex=ttl_seconds
                )
                return bool(claimed)

        claimed = await self._retry_operation(_claim)

        if not claimed:
            logger.info(f"Webhook delivery {delivery_id} already processed")
        return claimed

    async def release_delivery(self, delivery_id: str) -> None:
        """
        Forget a delivery id so a redelivery is processed again.

        Raises:
            RedisConnectionError: If operation fails after retries
        """
        async def _release():
            async with self._get_client() as client:
                await client.delete(self._delivery_key(delivery_id))

        await self._retry_operation(_release)

    async def ping(self) -> bool:
        """Check whether Redis answers."""
        try:
            async with self._get_client() as client:
                return bool(await client.ping())
        except Exception as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
