"""Models for shielded calls and transactions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

from .envelope import ShieldedEnvelope
from .keys import fingerprint as key_fingerprint


@dataclass(frozen=True)
class Endpoint:
    """A target node, identified by its JSON-RPC URL."""
    url: str

    def __post_init__(self) -> None:
        if not self.url or not self.url.strip():
            raise ValueError("Endpoint URL must not be empty")
        parsed = urlparse(self.url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(f"Endpoint URL must be an http(s) URL, got {self.url!r}")

    def __str__(self) -> str:
        return self.url


@dataclass(frozen=True)
class NodePublicKey:
    """The node's current public encryption key."""
    endpoint: Endpoint
    public_key: bytes  # 32 bytes
    fetched_at: datetime = field(default_factory=datetime.now)
    valid_until: Optional[datetime] = None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Whether the key is past its validity window (never, when no window is set)."""
        if self.valid_until is None:
            return False
        return (now or datetime.now()) >= self.valid_until

    def fingerprint(self) -> str:
        """Short printable fingerprint of the key."""
        return key_fingerprint(self.public_key)


@dataclass(frozen=True)
class ShieldedCallResult:
    """Plaintext result of a shielded call, with the key material that produced it."""
    data: bytes
    ephemeral_public_key: bytes
    node_key: NodePublicKey
    envelope: ShieldedEnvelope


@dataclass
class TransactionRequest:
    """Unsigned transaction handed to a Signer."""
    sender: str
    to: str
    data: bytes
    value: int = 0
    chain_id: Optional[int] = None
    nonce: Optional[int] = None
    gas: Optional[int] = None
    gas_price: Optional[int] = None


@dataclass(frozen=True)
class Receipt:
    """Confirmation of a mined transaction."""
    tx_hash: str
    succeeded: bool
    block_number: int
    gas_used: Optional[int] = None


class TransactionStatus(Enum):
    """Status of a submitted transaction."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass
class TransactionHandle:
    """A submitted transaction. Poll or wait on it through the transport."""
    tx_hash: str
    endpoint: Endpoint
    status: TransactionStatus = TransactionStatus.PENDING
    submitted_at: datetime = field(default_factory=datetime.now)
    receipt: Optional[Receipt] = None

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def mark_confirmed(self, receipt: Receipt) -> None:
        """Record a successful receipt."""
        self.status = TransactionStatus.CONFIRMED
        self.receipt = receipt

    def mark_failed(self, receipt: Receipt) -> None:
        """Record a receipt for a reverted transaction."""
        self.status = TransactionStatus.FAILED
        self.receipt = receipt


@dataclass
class SendOptions:
    """Options for sending a shielded transaction."""
    wait_for_confirmation: bool = False
    timeout_secs: float = 120.0
    poll_interval_secs: float = 2.0

    @classmethod
    def fire_and_forget(cls) -> "SendOptions":
        """Return as soon as the node accepts the transaction."""
        return cls()

    @classmethod
    def confirmed(cls, timeout_secs: float = 120.0) -> "SendOptions":
        """Wait for the receipt before returning."""
        return cls(wait_for_confirmation=True, timeout_secs=timeout_secs)
