"""
JSON-RPC transport over HTTP.

Implements the Transport interface on top of an aiohttp session, for any
Ethereum-compatible node:

    transport = JsonRpcTransport()
    async with transport:
        result = await transport.call(endpoint, contract, data)
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Sequence

import aiohttp

from .envelope import to_bytes, to_hex
from .models import Endpoint, Receipt, TransactionHandle
from .transport import Transport
from .types import NetworkUnavailable, RpcError

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"


def _parse_quantity(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, int):
        return value
    return int(value, 16)


def parse_receipt(data: Dict[str, Any]) -> Receipt:
    """Build a Receipt from an eth_getTransactionReceipt result."""
    return Receipt(
        tx_hash=data["transactionHash"],
        succeeded=_parse_quantity(data.get("status")) == 1,
        block_number=_parse_quantity(data.get("blockNumber")) or 0,
        gas_used=_parse_quantity(data.get("gasUsed")),
    )


class JsonRpcTransport(Transport):
    """
    HTTP JSON-RPC transport backed by aiohttp.

    The session is created lazily on first use unless one is passed in. A
    session passed in by the caller is never closed by the transport.
    """

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_secs: float = 30.0,
    ) -> None:
        """
        Initialize the transport.

        Args:
            session: Existing aiohttp session to reuse (optional).
            timeout_secs: Total timeout of each HTTP request.
        """
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout_secs)
        self._request_id = 0

    async def __aenter__(self) -> "JsonRpcTransport":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the session if the transport created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _next_id(self) -> int:
        self._request_id += 1
        return self._request_id

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _post(self, endpoint: Endpoint, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Send one JSON-RPC payload and return the decoded response object."""
        session = self._get_session()
        try:
            async with session.post(endpoint.url, json=payload) as response:
                response.raise_for_status()
                body = await response.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise NetworkUnavailable(f"Request to {endpoint} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkUnavailable(f"Request to {endpoint} failed: {e}") from e
        except ValueError as e:
            raise NetworkUnavailable(f"Invalid JSON from {endpoint}: {e}") from e

        if not isinstance(body, dict):
            raise NetworkUnavailable(f"Unexpected response from {endpoint}: {body!r}")
        return body

    async def request(self, endpoint: Endpoint, method: str, params: Sequence[Any]) -> Any:
        payload = {
            "jsonrpc": JSONRPC_VERSION,
            "id": self._next_id(),
            "method": method,
            "params": list(params),
        }
        logger.debug(f"{method} -> {endpoint}")

        body = await self._post(endpoint, payload)

        error = body.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(
                    error.get("message", "Unknown error"),
                    code=error.get("code", -32000),
                    data=error.get("data"),
                )
            raise RpcError(str(error))

        return body.get("result")

    async def call(self, endpoint: Endpoint, to: str, data: bytes, block: str = "latest") -> bytes:
        result = await self.request(endpoint, "eth_call", [{"to": to, "data": to_hex(data)}, block])
        return to_bytes(result or b"")

    async def send_transaction(self, endpoint: Endpoint, signed_txn: bytes) -> TransactionHandle:
        tx_hash = await self.request(endpoint, "eth_sendRawTransaction", [to_hex(signed_txn)])
        if not isinstance(tx_hash, str) or not tx_hash:
            # The node may still have accepted the transaction
            raise NetworkUnavailable(f"No transaction hash in response from {endpoint}: {tx_hash!r}")
        return TransactionHandle(tx_hash=tx_hash, endpoint=endpoint)

    async def get_receipt(self, handle: TransactionHandle) -> Optional[Receipt]:
        """Return the receipt, or None while the transaction is pending."""
        result = await self.request(handle.endpoint, "eth_getTransactionReceipt", [handle.tx_hash])
        if result is None:
            return None
        return parse_receipt(result)

    async def wait(
        self,
        handle: TransactionHandle,
        timeout_secs: float,
        poll_interval_secs: float = 2.0,
    ) -> Receipt:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_secs

        while True:
            receipt = await self.get_receipt(handle)
            if receipt is not None:
                return receipt

            if loop.time() + poll_interval_secs > deadline:
                raise asyncio.TimeoutError(
                    f"Transaction {handle.tx_hash} not mined within {timeout_secs}s"
                )
            await asyncio.sleep(poll_interval_secs)

    # MARK: - Helpers for Signer implementations

    async def chain_id(self, endpoint: Endpoint) -> int:
        """Get the chain ID."""
        return _parse_quantity(await self.request(endpoint, "eth_chainId", []))

    async def transaction_count(self, endpoint: Endpoint, address: str, block: str = "pending") -> int:
        """Get the next nonce for an address."""
        return _parse_quantity(
            await self.request(endpoint, "eth_getTransactionCount", [address, block])
        )

    async def gas_price(self, endpoint: Endpoint) -> int:
        """Get the current gas price in wei."""
        return _parse_quantity(await self.request(endpoint, "eth_gasPrice", []))
