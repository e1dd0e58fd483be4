"""
Cache storage for incident enrichment.

The cache is the only state the engine has: field memberships, incident
records and relation links all live here as single keys.  Backends raise
``CacheOperationError``; ``GuardedCacheStore`` turns every failure into
"value absent" or "write not applied" so a cache hiccup never breaks the
processing of an event.
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Tuple

import redis

from services.incident_enrichment.errors import CacheOperationError

logger = logging.getLogger(__name__)

NO_EXPIRATION = 0


class CacheStore(ABC):
    """Key-value store with per-key TTL (seconds, 0 = never expires)."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        ...

    @abstractmethod
    def set(self, key: str, value: str, ttl: int = NO_EXPIRATION) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...

    def touch(self, key: str, ttl: int) -> bool:
        """Extend the TTL of an existing key without changing its value.

        Generic read, delete, re-set sequence. Not atomic: a concurrent
        expiry or overwrite between the steps can drop the refresh.

        Returns:
            bool: False if the key was absent.
        """
        value = self.get(key)
        if value is None:
            return False
        self.delete(key)
        self.set(key, value, ttl)
        return True


class RedisCacheStore(CacheStore):
    """Redis backend. Refreshes use ``EXPIRE`` so they are atomic."""

    def __init__(self, client: redis.Redis):
        self.client = client

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
        except redis.exceptions.RedisError as e:
            raise CacheOperationError(f"GET failed: {e}", key=key, cause=e) from e
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str, ttl: int = NO_EXPIRATION) -> None:
        try:
            if ttl > 0:
                self.client.set(key, value, ex=ttl)
            else:
                self.client.set(key, value)
        except redis.exceptions.RedisError as e:
            raise CacheOperationError(f"SET failed: {e}", key=key, cause=e) from e

    def delete(self, key: str) -> None:
        try:
            self.client.delete(key)
        except redis.exceptions.RedisError as e:
            raise CacheOperationError(f"DEL failed: {e}", key=key, cause=e) from e

    def touch(self, key: str, ttl: int) -> bool:
        try:
            if ttl > 0:
                return bool(self.client.expire(key, ttl))
            self.client.persist(key)
            return bool(self.client.exists(key))
        except redis.exceptions.RedisError as e:
            raise CacheOperationError(f"EXPIRE failed: {e}", key=key, cause=e) from e


class InMemoryCacheStore(CacheStore):
    """Process-local store with lazy expiry, for tests and local runs.

    Args:
        clock: Monotonic time source in seconds. Defaults to
            ``time.monotonic``; tests pass a fake clock to simulate expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        # key -> (value, expires_at or None)
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    def _expires_at(self, ttl: int) -> Optional[float]:
        return self._clock() + ttl if ttl > 0 else None

    def _live_entry(self, key: str) -> Optional[Tuple[str, Optional[float]]]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at = entry[1]
        if expires_at is not None and expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    def get(self, key: str) -> Optional[str]:
        entry = self._live_entry(key)
        return entry[0] if entry else None

    def set(self, key: str, value: str, ttl: int = NO_EXPIRATION) -> None:
        self._entries[key] = (value, self._expires_at(ttl))

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def touch(self, key: str, ttl: int) -> bool:
        entry = self._live_entry(key)
        if entry is None:
            return False
        self._entries[key] = (entry[0], self._expires_at(ttl))
        return True

    def ttl_of(self, key: str) -> Optional[float]:
        """Remaining seconds for *key*; None if absent or never expiring."""
        entry = self._live_entry(key)
        if entry is None or entry[1] is None:
            return None
        return entry[1] - self._clock()

    def keys(self) -> List[str]:
        return [key for key in list(self._entries) if self._live_entry(key)]


class GuardedCacheStore:
    """Log-and-continue facade over a ``CacheStore``.

    Reads that fail return None, writes that fail return False. Nothing is
    raised to the caller.
    """

    def __init__(self, backend: CacheStore):
        self.backend = backend

    def get(self, key: str) -> Optional[str]:
        try:
            return self.backend.get(key)
        except CacheOperationError as e:
            logger.error("[INCIDENT-CACHE] Failed to get key %s: %s", key, e)
        except Exception:
            logger.exception("[INCIDENT-CACHE] Unexpected error getting key %s", key)
        return None

    def set(self, key: str, value: str, ttl: int = NO_EXPIRATION) -> bool:
        try:
            self.backend.set(key, value, ttl)
            return True
        except CacheOperationError as e:
            logger.error("[INCIDENT-CACHE] Failed to set key %s: %s", key, e)
        except Exception:
            logger.exception("[INCIDENT-CACHE] Unexpected error setting key %s", key)
        return False

    def delete(self, key: str) -> bool:
        try:
            self.backend.delete(key)
            return True
        except CacheOperationError as e:
            logger.error("[INCIDENT-CACHE] Failed to delete key %s: %s", key, e)
        except Exception:
            logger.exception("[INCIDENT-CACHE] Unexpected error deleting key %s", key)
        return False

    def touch(self, key: str, ttl: int) -> bool:
        try:
            return self.backend.touch(key, ttl)
        except CacheOperationError as e:
            logger.error(
                "[INCIDENT-CACHE] Failed to update expiration time for key %s: %s",
                key,
                e,
            )
        except Exception:
            logger.exception(
                "[INCIDENT-CACHE] Unexpected error refreshing key %s", key
            )
        return False
