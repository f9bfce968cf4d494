"""
shieldcall - Confidential contract calls over JSON-RPC

Encrypts call data with X25519 + HKDF-SHA256 + ChaCha20-Poly1305 under the
node's public key, and decrypts the node's response with the same
per-call shared secret.
"""

from .keys import EphemeralKeyPair, fingerprint
from .envelope import (
    ShieldedEnvelope,
    encode_envelope,
    decode_envelope,
    is_shielded_payload,
    to_bytes,
    to_hex,
)
from .crypto import (
    SharedSecret,
    derive_shared_secret,
    encrypt,
    decrypt,
    seal,
    open_request,
)
from .types import (
    DEFAULT_MAX_PAYLOAD_SIZE,
    DEFAULT_KEY_EXCHANGE_METHOD,
    ShieldingError,
    NetworkUnavailable,
    UnsupportedNode,
    ShieldingUnavailable,
    MalformedKey,
    EncodingError,
    AuthenticationFailure,
    RpcError,
    SubmissionFailure,
    UnknownOutcome,
)
from .models import (
    Endpoint,
    NodePublicKey,
    ShieldedCallResult,
    TransactionRequest,
    TransactionStatus,
    TransactionHandle,
    Receipt,
    SendOptions,
)
from .storage import NodeKeyCache
from .transport import Transport, Signer
from .jsonrpc import JsonRpcTransport
from .key_exchange import KeyExchangeClient
from .gateway import (
    shielded_call,
    execute_shielded_call,
    unshielded_call,
    shielded_send,
    wait_for_receipt,
)
from .config import ShieldingConfig
from .client import ShieldedClient

__version__ = "0.1.0"

__all__ = [
    # Keys
    "EphemeralKeyPair",
    "fingerprint",
    # Envelope
    "ShieldedEnvelope",
    "encode_envelope",
    "decode_envelope",
    "is_shielded_payload",
    "to_bytes",
    "to_hex",
    # Crypto
    "SharedSecret",
    "derive_shared_secret",
    "encrypt",
    "decrypt",
    "seal",
    "open_request",
    # Errors
    "ShieldingError",
    "NetworkUnavailable",
    "UnsupportedNode",
    "ShieldingUnavailable",
    "MalformedKey",
    "EncodingError",
    "AuthenticationFailure",
    "RpcError",
    "SubmissionFailure",
    "UnknownOutcome",
    # Constants
    "DEFAULT_MAX_PAYLOAD_SIZE",
    "DEFAULT_KEY_EXCHANGE_METHOD",
    # Models
    "Endpoint",
    "NodePublicKey",
    "ShieldedCallResult",
    "TransactionRequest",
    "TransactionStatus",
    "TransactionHandle",
    "Receipt",
    "SendOptions",
    # Storage
    "NodeKeyCache",
    # Transport
    "Transport",
    "Signer",
    "JsonRpcTransport",
    # Key exchange
    "KeyExchangeClient",
    # Gateway
    "shielded_call",
    "execute_shielded_call",
    "unshielded_call",
    "shielded_send",
    "wait_for_receipt",
    # Client
    "ShieldingConfig",
    "ShieldedClient",
]
