"""Fetching the node's public encryption key."""

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from .envelope import to_bytes
from .keys import public_key_from_bytes
from .models import Endpoint, NodePublicKey
from .storage import NodeKeyCache
from .transport import Transport
from .types import (
    DEFAULT_KEY_EXCHANGE_METHOD,
    METHOD_NOT_FOUND_CODE,
    EncodingError,
    MalformedKey,
    RpcError,
    UnsupportedNode,
)

logger = logging.getLogger(__name__)

_UNSUPPORTED_MARKERS = ("method not found", "not supported", "does not exist", "not available")


class KeyExchangeClient:
    """
    Retrieves the node's current public key over JSON-RPC.

    The fetch is read-only and idempotent. It is never retried here; the
    caller owns the retry policy.

    Example usage:
        ```python
        exchange = KeyExchangeClient(transport)
        node_key = await exchange.fetch_node_key(Endpoint("https://rpc.example"))
        ```
    """

    def __init__(
        self,
        transport: Transport,
        method: str = DEFAULT_KEY_EXCHANGE_METHOD,
        params: Sequence[Any] = ("latest",),
        cache: Optional[NodeKeyCache] = None,
    ) -> None:
        """
        Initialize the key exchange client.

        Args:
            transport: Transport used for the RPC request.
            method: Node-specific RPC method returning the key.
            params: Parameters sent with the method.
            cache: Optional read-through cache (default: disabled).
        """
        self.transport = transport
        self.method = method
        self.params = list(params)
        self.cache = cache if cache is not None else NodeKeyCache()

    async def fetch_node_key(self, endpoint: Endpoint) -> NodePublicKey:
        """
        Fetch the node's public encryption key.

        Args:
            endpoint: The node to ask.

        Returns:
            NodePublicKey bound to the endpoint.

        Raises:
            NetworkUnavailable: On transport-level failures.
            UnsupportedNode: If the node does not expose the key method.
            MalformedKey: If the response is not a valid public key.
        """
        cached = self.cache.retrieve(endpoint)
        if cached is not None:
            logger.debug(f"Using cached node key {cached.fingerprint()} for {endpoint}")
            return cached

        try:
            result = await self.transport.request(endpoint, self.method, self.params)
        except RpcError as e:
            if _is_unsupported(e):
                raise UnsupportedNode(
                    f"{endpoint} does not support {self.method}: {e}"
                ) from e
            raise

        if result is None:
            raise UnsupportedNode(f"{endpoint} returned no key for {self.method}")

        key = NodePublicKey(
            endpoint=endpoint,
            public_key=_parse_key(result),
            fetched_at=datetime.now(),
        )
        logger.debug(f"Fetched node key {key.fingerprint()} from {endpoint}")

        return self.cache.store(key)

    def invalidate(self, endpoint: Endpoint) -> None:
        """Drop any cached key for an endpoint."""
        self.cache.invalidate(endpoint)


def _is_unsupported(error: RpcError) -> bool:
    if error.code == METHOD_NOT_FOUND_CODE:
        return True
    message = str(error).lower()
    return any(marker in message for marker in _UNSUPPORTED_MARKERS)


def _parse_key(result: Any) -> bytes:
    """Parse a key returned as hex string or raw bytes."""
    if not isinstance(result, (str, bytes, bytearray)):
        raise MalformedKey(f"Unexpected key type: {type(result).__name__}")

    try:
        key_bytes = to_bytes(result)
    except EncodingError as e:
        raise MalformedKey(f"Key is not valid hex: {e}") from e

    # Raises MalformedKey on wrong length, all-zero or rejected points
    public_key_from_bytes(key_bytes)
    return key_bytes
