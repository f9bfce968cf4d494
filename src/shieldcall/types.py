"""Protocol constants and error taxonomy for shieldcall."""

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from .models import TransactionHandle


# Envelope constants
ENVELOPE_VERSION = 0x01
SUITE_X25519_CHACHA20POLY1305 = 0x01
PUBLIC_KEY_SIZE = 32
NONCE_SIZE = 12
TAG_SIZE = 16
SYMMETRIC_KEY_SIZE = 32
HEADER_SIZE = 2 + PUBLIC_KEY_SIZE + NONCE_SIZE  # 46
ENVELOPE_OVERHEAD = HEADER_SIZE + TAG_SIZE

# Key derivation constants
SHARED_SECRET_INFO_PREFIX = b"ShieldCallV1"

# Payload limits: geth refuses transactions larger than 128 KiB
MAX_TRANSACTION_DATA_SIZE = 128 * 1024
DEFAULT_MAX_PAYLOAD_SIZE = MAX_TRANSACTION_DATA_SIZE - ENVELOPE_OVERHEAD

# Key exchange
DEFAULT_KEY_EXCHANGE_METHOD = "eth_getNodePublicKey"
METHOD_NOT_FOUND_CODE = -32601


# Exception types
class ShieldingError(Exception):
    """
    Base exception for shieldcall errors.

    Attributes:
        retryable: True if the whole operation is safe to retry from scratch.
        submitted: True if the failure happened after a transaction left the client.
    """

    retryable = True
    submitted = False


class NetworkUnavailable(ShieldingError):
    """Transport-level failure reaching the node."""
    pass


class UnsupportedNode(ShieldingError):
    """The endpoint does not expose the key exchange method."""

    retryable = False


class ShieldingUnavailable(UnsupportedNode):
    """Raised by the gateways when the node cannot shield payloads.

    The caller may fall back to an unshielded call, but only explicitly.
    """

    def __init__(self, endpoint_url: str) -> None:
        self.endpoint_url = endpoint_url
        super().__init__(f"Shielding is not available on {endpoint_url}")


class MalformedKey(ShieldingError):
    """The node returned something that is not a valid public key."""
    pass


class EncodingError(ShieldingError):
    """Payload is too large or malformed."""
    pass


class AuthenticationFailure(ShieldingError):
    """Envelope integrity check failed (tampering, wrong key, or protocol mismatch)."""
    pass


class RpcError(ShieldingError):
    """The node answered with a JSON-RPC error object."""

    def __init__(self, message: str, code: int = -32000, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.data = data


class SubmissionFailure(ShieldingError):
    """Transaction was rejected before it could be included."""
    pass


class UnknownOutcome(ShieldingError):
    """
    Failure after the transaction may have reached the node.

    The transaction can still land on-chain. Check the handle before retrying.
    """

    retryable = False
    submitted = True

    def __init__(self, message: str, handle: Optional["TransactionHandle"] = None) -> None:
        super().__init__(message)
        self.handle = handle
