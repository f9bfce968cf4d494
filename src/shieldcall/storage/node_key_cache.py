"""Node public key cache with TTL expiration."""

from datetime import datetime, timedelta
from typing import Optional

from ..models import Endpoint, NodePublicKey


class NodeKeyCache:
    """In-memory cache for node public keys, keyed by endpoint URL.

    A zero TTL disables the cache: nothing is stored and every lookup misses.
    """

    def __init__(self, ttl: timedelta = timedelta(0)) -> None:
        """Creates a new node key cache with the given TTL (default: disabled)."""
        if ttl < timedelta(0):
            raise ValueError("TTL must not be negative")
        self._cache: dict[str, NodePublicKey] = {}
        self._ttl = ttl

    @property
    def enabled(self) -> bool:
        return self._ttl > timedelta(0)

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    def store(self, key: NodePublicKey) -> NodePublicKey:
        """Store a key and return it stamped with its validity window."""
        if not self.enabled:
            return key

        entry = NodePublicKey(
            endpoint=key.endpoint,
            public_key=bytes(key.public_key),
            fetched_at=key.fetched_at,
            valid_until=key.fetched_at + self._ttl,
        )
        self._cache[key.endpoint.url] = entry
        return entry

    def retrieve(self, endpoint: Endpoint) -> Optional[NodePublicKey]:
        """Retrieve the key for an endpoint (returns None if missing or expired)."""
        entry = self._cache.get(endpoint.url)
        if entry is None:
            return None

        if entry.is_expired():
            del self._cache[endpoint.url]
            return None

        return entry

    def invalidate(self, endpoint: Endpoint) -> None:
        """Invalidate the cached key for an endpoint."""
        self._cache.pop(endpoint.url, None)

    def clear(self) -> None:
        """Clear all cached keys."""
        self._cache.clear()

    def prune_expired(self) -> None:
        """Remove all expired entries."""
        now = datetime.now()
        expired = [url for url, entry in self._cache.items() if entry.is_expired(now)]
        for url in expired:
            del self._cache[url]

    def __len__(self) -> int:
        return len(self._cache)
