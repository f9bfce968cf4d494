"""Envelope encoding and decoding for shielded payloads."""

from dataclasses import dataclass
from typing import Union

from .types import (
    ENVELOPE_VERSION,
    SUITE_X25519_CHACHA20POLY1305,
    HEADER_SIZE,
    PUBLIC_KEY_SIZE,
    NONCE_SIZE,
    TAG_SIZE,
    EncodingError,
)


@dataclass(frozen=True)
class ShieldedEnvelope:
    """Encrypted payload as it crosses the wire in a call or transaction data field."""
    version: int
    suite: int
    ephemeral_public_key: bytes  # 32 bytes
    nonce: bytes  # 12 bytes
    ciphertext: bytes  # variable (payload + 16-byte tag)

    @property
    def header(self) -> bytes:
        """Authenticated header: version, suite and ephemeral public key."""
        return bytes([self.version, self.suite]) + self.ephemeral_public_key


class EnvelopeError(EncodingError):
    """Raised when envelope encoding/decoding fails."""
    pass


def encode_envelope(envelope: ShieldedEnvelope) -> bytes:
    """
    Encode an envelope to bytes.

    Format (46-byte header + ciphertext):
        [0]      version (0x01)
        [1]      suite (0x01, X25519 + HKDF-SHA256 + ChaCha20-Poly1305)
        [2-33]   ephemeralPublicKey (32 bytes)
        [34-45]  nonce (12 bytes)
        [46+]    ciphertext (payload + 16-byte tag)

    Args:
        envelope: ShieldedEnvelope to encode

    Returns:
        Encoded bytes
    """
    return envelope.header + envelope.nonce + envelope.ciphertext


def decode_envelope(data: bytes) -> ShieldedEnvelope:
    """
    Decode bytes into an envelope.

    Args:
        data: Encoded envelope bytes

    Returns:
        Decoded ShieldedEnvelope

    Raises:
        EnvelopeError: If data is invalid
    """
    if len(data) < HEADER_SIZE + TAG_SIZE:
        raise EnvelopeError(f"Data too short: {len(data)} bytes (minimum {HEADER_SIZE + TAG_SIZE})")

    version = data[0]
    suite = data[1]

    if version != ENVELOPE_VERSION:
        raise EnvelopeError(f"Unknown version: {version}")

    if suite != SUITE_X25519_CHACHA20POLY1305:
        raise EnvelopeError(f"Unknown suite: {suite}")

    offset = 2
    ephemeral_public_key = bytes(data[offset : offset + PUBLIC_KEY_SIZE])
    offset += PUBLIC_KEY_SIZE

    nonce = bytes(data[offset : offset + NONCE_SIZE])
    offset += NONCE_SIZE

    return ShieldedEnvelope(
        version=version,
        suite=suite,
        ephemeral_public_key=ephemeral_public_key,
        nonce=nonce,
        ciphertext=bytes(data[offset:]),
    )


def is_shielded_payload(data: bytes) -> bool:
    """
    Check if data looks like a shielded envelope.

    Args:
        data: Bytes to check

    Returns:
        True if data appears to be a valid envelope
    """
    if len(data) < HEADER_SIZE + TAG_SIZE:
        return False

    return data[0] == ENVELOPE_VERSION and data[1] == SUITE_X25519_CHACHA20POLY1305


def to_bytes(data: Union[bytes, bytearray, str]) -> bytes:
    """
    Normalize call data to bytes.

    Accepts raw bytes or a hex string with or without the 0x prefix, which is
    how ABI encoders usually hand out call data.

    Raises:
        EncodingError: If a string is not valid hex
    """
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str):
        raise EncodingError(f"Expected bytes or hex string, got {type(data).__name__}")

    text = data[2:] if data[:2] in ("0x", "0X") else data
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise EncodingError(f"Invalid hex data: {e}") from e


def to_hex(data: bytes) -> str:
    """Encode bytes as a 0x-prefixed hex string."""
    return "0x" + data.hex()
