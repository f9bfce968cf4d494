"""
Shielded client for confidential contract calls.

The ShieldedClient binds a transport and a ShieldingConfig so callers can
issue encrypted reads and writes without threading them through every call.
"""

from typing import Optional

from .config import ShieldingConfig
from .gateway import (
    CallData,
    execute_shielded_call,
    shielded_call,
    shielded_send,
    unshielded_call,
    wait_for_receipt,
)
from .jsonrpc import JsonRpcTransport
from .key_exchange import KeyExchangeClient
from .models import (
    Endpoint,
    NodePublicKey,
    Receipt,
    SendOptions,
    ShieldedCallResult,
    TransactionHandle,
)
from .transport import Signer, Transport


class ShieldedClient:
    """
    High-level client for shielded calls and transactions.

    Example usage:
        ```python
        config = ShieldingConfig.swisstronik_testnet()
        async with ShieldedClient(config, signer=my_signer) as client:
            raw = await client.call(contract, selector_and_args)
            handle = await client.send(contract, encoded_call, options=SendOptions.confirmed())
        ```
    """

    def __init__(
        self,
        config: ShieldingConfig,
        transport: Optional[Transport] = None,
        signer: Optional[Signer] = None,
        key_exchange: Optional[KeyExchangeClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Network and shielding configuration.
            transport: Transport to the node (default: JsonRpcTransport).
            signer: Signer for transactions (required only for send()).
            key_exchange: Key exchange client (default: built from config).
        """
        self.config = config
        self.endpoint: Endpoint = config.endpoint()
        self._owns_transport = transport is None
        self.transport = transport or JsonRpcTransport(timeout_secs=config.request_timeout_secs)
        self.signer = signer
        self.key_exchange = key_exchange or KeyExchangeClient(
            self.transport,
            method=config.key_exchange_method,
            params=config.key_exchange_params,
            cache=config.key_cache(),
        )

    async def __aenter__(self) -> "ShieldedClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the transport if the client created it."""
        if self._owns_transport and isinstance(self.transport, JsonRpcTransport):
            await self.transport.close()

    async def node_key(self) -> NodePublicKey:
        """Fetch the node's current public key."""
        return await self.key_exchange.fetch_node_key(self.endpoint)

    async def call(self, destination: str, data: CallData) -> bytes:
        """Shielded read. Returns the decrypted return data."""
        return await shielded_call(
            self.transport,
            self.endpoint,
            destination,
            data,
            key_exchange=self.key_exchange,
            max_payload_size=self.config.max_payload_size,
        )

    async def call_with_result(self, destination: str, data: CallData) -> ShieldedCallResult:
        """Shielded read returning the result together with its key material."""
        return await execute_shielded_call(
            self.transport,
            self.endpoint,
            destination,
            data,
            key_exchange=self.key_exchange,
            max_payload_size=self.config.max_payload_size,
        )

    async def call_unshielded(self, destination: str, data: CallData) -> bytes:
        """Plaintext read, for callers that opted out after ShieldingUnavailable."""
        return await unshielded_call(self.transport, self.endpoint, destination, data)

    async def send(
        self,
        destination: str,
        data: CallData,
        value: int = 0,
        options: Optional[SendOptions] = None,
    ) -> TransactionHandle:
        """
        Shielded write.

        Raises:
            ValueError: If the client has no signer.
        """
        if self.signer is None:
            raise ValueError("A signer is required to send transactions")

        return await shielded_send(
            self.transport,
            self.signer,
            self.endpoint,
            destination,
            data,
            value=value,
            key_exchange=self.key_exchange,
            options=options,
            max_payload_size=self.config.max_payload_size,
        )

    async def wait(self, handle: TransactionHandle, timeout_secs: float = 120.0) -> Receipt:
        """Wait for a previously submitted transaction."""
        return await wait_for_receipt(self.transport, handle, timeout_secs=timeout_secs)

    def invalidate_node_key(self) -> None:
        """Forget any cached node key."""
        self.key_exchange.invalidate(self.endpoint)
