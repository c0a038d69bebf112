# SPDX-License-Identifier: Apache-2.0

"""
Redis-backed exclusive locks for license issuance.

Issuance for a contract runs under ``SET key token NX PX ttl``; the lock is
released only by the holder of the token, so an expired lock taken over by
another worker is never released by the original one.
"""

import os
import uuid
from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

LOCK_PREFIX = "residencia:license-lock"

# Delete the key only if it still holds our token
_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class LockNotAcquiredError(Exception):
    """Raised when another worker holds the issuance lock."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Lock already held: {key}")


class RedisLockService:
    """
    Issuance locks on a standard redis-py client.

    When Redis is unreachable the service stays usable but unavailable:
    ``lock`` yields without locking and logs a warning, leaving the
    repository transaction as the only guard.
    """

    def __init__(self, redis_url: Optional[str] = None, ttl_ms: Optional[int] = None, client=None):
        """
        Initialize the lock service.

        Args:
            redis_url: Redis connection URL (redis://host:port)
            ttl_ms: Lock expiry in milliseconds
            client: Pre-built redis client (tests)
        """
        self.redis_url = redis_url or os.getenv("REDIS_URL", "redis://localhost:6379")
        self.ttl_ms = ttl_ms or int(os.getenv("LICENSE_LOCK_TTL_MS", "10000"))

        if client is not None:
            self.client = client
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._test_connection()
            logger.info(f"Redis lock service initialized at {self.redis_url}")
        except (redis.RedisError, RedisConnectionError) as e:
            logger.error(f"Failed to initialize Redis lock service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        try:
            if not self.client.ping():
                raise RedisConnectionError("Redis ping failed")
        except redis.RedisError as e:
            raise RedisConnectionError(f"Redis connection failed: {str(e)}") from e

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    @staticmethod
    def lock_key(contract_id: str) -> str:
        return f"{LOCK_PREFIX}:{contract_id}"

    def acquire(self, key: str) -> Optional[str]:
        """
        Try to take the lock.

        Returns:
            Token to release the lock with, or None if it is held elsewhere
        """
        with tracer.start_as_current_span("redis.lock.acquire") as span:
            span.set_attributes({"redis.key": key, "redis.ttl_ms": self.ttl_ms})
            token = uuid.uuid4().hex
            acquired = self.client.set(key, token, nx=True, px=self.ttl_ms)
            span.set_attribute("redis.result", "acquired" if acquired else "held")
            return token if acquired else None

    def release(self, key: str, token: str) -> bool:
        """Release the lock if ``token`` still owns it."""
        with tracer.start_as_current_span("redis.lock.release") as span:
            span.set_attribute("redis.key", key)
            try:
                released = bool(self.client.eval(_RELEASE_SCRIPT, 1, key, token))
            except redis.RedisError as e:
                # The lock expires on its own
                logger.error(f"Redis lock release failed for key {key}: {str(e)}")
                return False
            if not released:
                logger.warning(f"Lock {key} expired before release")
            return released

    @contextmanager
    def lock(self, contract_id: str) -> Iterator[None]:
        """
        Hold the issuance lock of a contract for the duration of the block.

        Raises:
            LockNotAcquiredError: If another worker holds the lock
        """
        if not self.is_available():
            logger.warning(
                "Redis not available, issuing without distributed lock",
                extra={"contract_id": contract_id}
            )
            yield
            return

        key = self.lock_key(contract_id)
        try:
            token = self.acquire(key)
        except redis.RedisError as e:
            logger.warning(
                f"Redis lock acquisition failed, issuing without distributed lock: {str(e)}",
                extra={"contract_id": contract_id}
            )
            yield
            return

        if token is None:
            logger.info("Issuance lock contention", extra={"contract_id": contract_id})
            raise LockNotAcquiredError(key)
        try:
            yield
        finally:
            self.release(key, token)

    def health_check(self) -> Dict[str, Any]:
        """Check Redis connection health."""
        if not self.client:
            return {'status': 'unavailable', 'url': self.redis_url}
        try:
            self.client.ping()
            return {'status': 'healthy', 'url': self.redis_url}
        except redis.RedisError as e:
            logger.error(f"Redis health check failed: {str(e)}")
            return {'status': 'unhealthy', 'error': str(e)}
