"""
Transport and signer interfaces.

This module provides abstract base classes for talking to an
Ethereum-compatible node and for signing transactions. Implementations can
use any HTTP client or wallet; JsonRpcTransport is the bundled one.
"""

from abc import ABC, abstractmethod
from typing import Any, Sequence

from .models import Endpoint, Receipt, TransactionHandle, TransactionRequest


class Transport(ABC):
    """Abstract base class for raw JSON-RPC primitives.

    The transport is endpoint-agnostic: every method receives the Endpoint it
    talks to, so one connection pool can serve several nodes.
    """

    @abstractmethod
    async def request(self, endpoint: Endpoint, method: str, params: Sequence[Any]) -> Any:
        """Issue a JSON-RPC request and return its result.

        Raises:
            NetworkUnavailable: On transport-level failures.
            RpcError: If the node answers with an error object.
        """
        pass

    @abstractmethod
    async def call(self, endpoint: Endpoint, to: str, data: bytes, block: str = "latest") -> bytes:
        """Execute a read-only call and return the raw result bytes."""
        pass

    @abstractmethod
    async def send_transaction(self, endpoint: Endpoint, signed_txn: bytes) -> TransactionHandle:
        """Submit a signed transaction."""
        pass

    @abstractmethod
    async def wait(
        self,
        handle: TransactionHandle,
        timeout_secs: float,
        poll_interval_secs: float = 2.0,
    ) -> Receipt:
        """Wait for a transaction to be mined."""
        pass


class Signer(ABC):
    """Abstract base class for transaction signing."""

    @property
    @abstractmethod
    def address(self) -> str:
        """The account address that signs."""
        pass

    @abstractmethod
    async def sign_transaction(self, request: TransactionRequest) -> bytes:
        """Fill in any missing fields, sign and return the raw transaction bytes."""
        pass
