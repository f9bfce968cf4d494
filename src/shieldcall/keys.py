"""Key material for shielded calls."""

import hashlib
from dataclasses import dataclass

from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey, X25519PublicKey
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .types import PUBLIC_KEY_SIZE, MalformedKey


@dataclass(frozen=True)
class EphemeralKeyPair:
    """
    Single-use X25519 key pair generated by the client.

    A new pair is created for every shielded operation so that separate
    calls cannot be linked through the key material.
    """

    private_key: X25519PrivateKey
    public_key: X25519PublicKey

    @classmethod
    def generate(cls) -> "EphemeralKeyPair":
        """Generate a random ephemeral key pair."""
        private_key = X25519PrivateKey.generate()
        return cls(private_key=private_key, public_key=private_key.public_key())

    @classmethod
    def from_private_bytes(cls, data: bytes) -> "EphemeralKeyPair":
        """
        Rebuild a key pair from a raw 32-byte private scalar.

        Only meant for fixed test vectors. Production code uses generate().
        """
        if len(data) != PUBLIC_KEY_SIZE:
            raise ValueError(f"Private key must be {PUBLIC_KEY_SIZE} bytes, got {len(data)}")
        private_key = X25519PrivateKey.from_private_bytes(data)
        return cls(private_key=private_key, public_key=private_key.public_key())

    @property
    def public_bytes(self) -> bytes:
        """The ephemeral public key as raw bytes (32 bytes)."""
        return public_key_to_bytes(self.public_key)

    def __repr__(self) -> str:
        return f"EphemeralKeyPair(public={self.public_bytes.hex()})"


def x25519_ecdh(private_key: X25519PrivateKey, public_key: X25519PublicKey) -> bytes:
    """
    Perform X25519 ECDH key exchange.

    Args:
        private_key: Our private key
        public_key: Their public key

    Returns:
        32-byte shared secret

    Raises:
        MalformedKey: If the peer key is a low-order point
    """
    try:
        return private_key.exchange(public_key)
    except ValueError as e:
        raise MalformedKey(f"Key agreement failed: {e}") from e


def public_key_to_bytes(public_key: X25519PublicKey) -> bytes:
    """Convert X25519 public key to raw bytes."""
    return public_key.public_bytes(Encoding.Raw, PublicFormat.Raw)


def public_key_from_bytes(data: bytes) -> X25519PublicKey:
    """
    Create X25519 public key from raw bytes.

    Raises:
        MalformedKey: If the bytes cannot be a usable X25519 public key
    """
    if len(data) != PUBLIC_KEY_SIZE:
        raise MalformedKey(f"Public key must be {PUBLIC_KEY_SIZE} bytes, got {len(data)}")
    if data == bytes(PUBLIC_KEY_SIZE):
        raise MalformedKey("Public key is all zeros")
    try:
        return X25519PublicKey.from_public_bytes(data)
    except ValueError as e:
        raise MalformedKey(f"Invalid X25519 public key: {e}") from e


def fingerprint(public_key: bytes) -> str:
    """
    Generate a human-readable fingerprint for a public key.

    Returns:
        A fingerprint string like "A7B3 C9D1 E5F2 8A4B"
    """
    hash_bytes = hashlib.sha256(public_key).digest()

    hex_bytes = [f"{b:02X}" for b in hash_bytes[:8]]
    groups = [hex_bytes[i] + hex_bytes[i + 1] for i in range(0, 8, 2)]

    return " ".join(groups)
