"""In-memory node and signer used by the gateway tests."""

import hashlib
from typing import Any, Callable, List, Optional, Sequence

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from shieldcall.crypto import open_request, seal
from shieldcall.envelope import encode_envelope, to_hex
from shieldcall.keys import public_key_to_bytes
from shieldcall.models import Endpoint, Receipt, TransactionHandle, TransactionRequest
from shieldcall.transport import Signer, Transport
from shieldcall.types import DEFAULT_KEY_EXCHANGE_METHOD, RpcError

from .test_vectors import NODE_PRIVATE_KEY_HEX


def answer_42(plaintext: bytes) -> bytes:
    return bytes(31) + b"\x2a"


class FakeTransport(Transport):
    """A confidential node living in memory.

    It answers the key exchange with its public key, opens request envelopes
    with its private key and seals the handler's answer under the request's
    shared secret.
    """

    def __init__(
        self,
        node_private_key: Optional[X25519PrivateKey] = None,
        handler: Callable[[bytes], bytes] = answer_42,
    ) -> None:
        self.node_private_key = node_private_key or X25519PrivateKey.from_private_bytes(
            bytes.fromhex(NODE_PRIVATE_KEY_HEX)
        )
        self.handler = handler
        self.key_method = DEFAULT_KEY_EXCHANGE_METHOD
        self.key_result: Any = None
        self.key_error: Optional[Exception] = None
        self.call_error: Optional[Exception] = None
        self.response_override: Optional[bytes] = None
        self.send_error: Optional[Exception] = None
        self.wait_error: Optional[Exception] = None
        self.receipt_succeeded = True

        self.requests: List[tuple] = []
        self.calls: List[bytes] = []
        self.received: List[bytes] = []
        self.sent: List[bytes] = []
        self.waited: List[TransactionHandle] = []

    @property
    def node_public_bytes(self) -> bytes:
        return public_key_to_bytes(self.node_private_key.public_key())

    def rotate_key(self) -> None:
        self.node_private_key = X25519PrivateKey.generate()

    async def request(self, endpoint: Endpoint, method: str, params: Sequence[Any]) -> Any:
        self.requests.append((endpoint, method, list(params)))
        if method != self.key_method:
            raise RpcError(f"the method {method} does not exist/is not available", code=-32601)
        if self.key_error is not None:
            raise self.key_error
        if self.key_result is not None:
            return self.key_result
        return to_hex(self.node_public_bytes)

    async def call(self, endpoint: Endpoint, to: str, data: bytes, block: str = "latest") -> bytes:
        self.calls.append(data)
        if self.call_error is not None:
            raise self.call_error
        if self.response_override is not None:
            return self.response_override

        secret, plaintext = open_request(self.node_private_key, data)
        self.received.append(plaintext)
        return encode_envelope(seal(secret, self.handler(plaintext)))

    async def send_transaction(self, endpoint: Endpoint, signed_txn: bytes) -> TransactionHandle:
        self.sent.append(signed_txn)
        if self.send_error is not None:
            raise self.send_error
        return TransactionHandle(
            tx_hash="0x" + hashlib.sha256(signed_txn).hexdigest(),
            endpoint=endpoint,
        )

    async def wait(
        self,
        handle: TransactionHandle,
        timeout_secs: float,
        poll_interval_secs: float = 2.0,
    ) -> Receipt:
        self.waited.append(handle)
        if self.wait_error is not None:
            raise self.wait_error
        return Receipt(
            tx_hash=handle.tx_hash,
            succeeded=self.receipt_succeeded,
            block_number=7,
            gas_used=21000,
        )


class FakeSigner(Signer):
    """Signer that prefixes the transaction data instead of signing it."""

    def __init__(self, address: str, error: Optional[Exception] = None) -> None:
        self._address = address
        self.error = error
        self.requests: List[TransactionRequest] = []

    @property
    def address(self) -> str:
        return self._address

    async def sign_transaction(self, request: TransactionRequest) -> bytes:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return b"signed:" + request.data
