"""
Envelope codec for shielded calls.

Algorithm (suite 0x01):
    shared  = X25519(ephemeral_private, node_public)
    key     = HKDF-SHA256(shared, length=32, salt=ephemeral_public,
                          info="ShieldCallV1" || node_public)
    sealed  = ChaCha20-Poly1305(key, nonce, payload, aad=version || suite || ephemeral_public)

The node derives the same key from its private key and the ephemeral public
key carried in the envelope, and seals its response under that key with a
fresh nonce. The response therefore decrypts only with the SharedSecret of
the request that produced it.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .envelope import ShieldedEnvelope, EnvelopeError, decode_envelope
from .keys import EphemeralKeyPair, x25519_ecdh, public_key_from_bytes, public_key_to_bytes
from .models import NodePublicKey
from .types import (
    ENVELOPE_VERSION,
    SUITE_X25519_CHACHA20POLY1305,
    SHARED_SECRET_INFO_PREFIX,
    SYMMETRIC_KEY_SIZE,
    NONCE_SIZE,
    DEFAULT_MAX_PAYLOAD_SIZE,
    AuthenticationFailure,
    EncodingError,
    MalformedKey,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SharedSecret:
    """
    Symmetric key material for one shielded round trip.

    Derived once per operation and never persisted.
    """
    key: bytes = field(repr=False)
    ephemeral_public_key: bytes
    node_public_key: bytes


def _derive_key(shared: bytes, ephemeral_pub_bytes: bytes, node_pub_bytes: bytes) -> bytes:
    hkdf = HKDF(
        algorithm=SHA256(),
        length=SYMMETRIC_KEY_SIZE,
        salt=ephemeral_pub_bytes,
        info=SHARED_SECRET_INFO_PREFIX + node_pub_bytes,
    )
    return hkdf.derive(shared)


def derive_shared_secret(ephemeral: EphemeralKeyPair, node_key: NodePublicKey) -> SharedSecret:
    """
    Derive the shared secret between an ephemeral client key and the node key.

    Args:
        ephemeral: Fresh client key pair for this operation
        node_key: The node's current public encryption key

    Returns:
        SharedSecret bound to both public keys

    Raises:
        MalformedKey: If the node key is unusable for key agreement
    """
    node_public = public_key_from_bytes(node_key.public_key)
    shared = x25519_ecdh(ephemeral.private_key, node_public)
    ephemeral_pub_bytes = ephemeral.public_bytes

    return SharedSecret(
        key=_derive_key(shared, ephemeral_pub_bytes, node_key.public_key),
        ephemeral_public_key=ephemeral_pub_bytes,
        node_public_key=node_key.public_key,
    )


def seal(
    secret: SharedSecret,
    plaintext: bytes,
    nonce: Optional[bytes] = None,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> ShieldedEnvelope:
    """
    Encrypt a payload under an existing shared secret.

    Args:
        secret: Shared secret of the current round trip
        plaintext: Payload bytes (may be empty)
        nonce: Explicit 12-byte nonce; a random one is generated when omitted
        max_payload_size: Largest payload accepted

    Returns:
        ShieldedEnvelope carrying the ciphertext

    Raises:
        EncodingError: If the payload is too large or the nonce has the wrong size
    """
    if len(plaintext) > max_payload_size:
        raise EncodingError(f"Payload too large: {len(plaintext)} bytes (max {max_payload_size})")

    if nonce is None:
        nonce = os.urandom(NONCE_SIZE)
    elif len(nonce) != NONCE_SIZE:
        raise EncodingError(f"Nonce must be {NONCE_SIZE} bytes, got {len(nonce)}")

    header = bytes([ENVELOPE_VERSION, SUITE_X25519_CHACHA20POLY1305]) + secret.ephemeral_public_key
    cipher = ChaCha20Poly1305(secret.key)
    ciphertext = cipher.encrypt(nonce, bytes(plaintext), header)

    return ShieldedEnvelope(
        version=ENVELOPE_VERSION,
        suite=SUITE_X25519_CHACHA20POLY1305,
        ephemeral_public_key=secret.ephemeral_public_key,
        nonce=nonce,
        ciphertext=ciphertext,
    )


def encrypt(
    node_key: NodePublicKey,
    ephemeral: EphemeralKeyPair,
    plaintext: bytes,
    nonce: Optional[bytes] = None,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> ShieldedEnvelope:
    """
    Encrypt a payload for a node.

    Given the same keys and nonce the output is identical. Without an explicit
    nonce a fresh random one is used.

    Args:
        node_key: The node's public encryption key
        ephemeral: Client key pair for this operation
        plaintext: ABI-encoded call data (opaque)
        nonce: Optional fixed nonce, for test vectors
        max_payload_size: Largest payload accepted

    Returns:
        ShieldedEnvelope
    """
    secret = derive_shared_secret(ephemeral, node_key)
    return seal(secret, plaintext, nonce=nonce, max_payload_size=max_payload_size)


def decrypt(secret: SharedSecret, envelope: Union[ShieldedEnvelope, bytes]) -> bytes:
    """
    Decrypt an envelope with the shared secret of its round trip.

    Args:
        secret: The secret used to encrypt the matching request
        envelope: Envelope object or its encoded bytes

    Returns:
        The plaintext payload

    Raises:
        AuthenticationFailure: If the envelope is malformed, was tampered
            with, or belongs to a different key
    """
    if not isinstance(envelope, ShieldedEnvelope):
        try:
            envelope = decode_envelope(bytes(envelope))
        except EnvelopeError as e:
            raise AuthenticationFailure(f"Envelope rejected: {e}") from e

    if envelope.ephemeral_public_key != secret.ephemeral_public_key:
        raise AuthenticationFailure("Envelope was not produced for this shared secret")

    cipher = ChaCha20Poly1305(secret.key)
    try:
        return cipher.decrypt(envelope.nonce, envelope.ciphertext, envelope.header)
    except InvalidTag as e:
        logger.warning("Envelope authentication failed; node key may be stale")
        raise AuthenticationFailure("Envelope integrity check failed") from e


def open_request(
    node_private_key: X25519PrivateKey,
    envelope: Union[ShieldedEnvelope, bytes],
) -> Tuple[SharedSecret, bytes]:
    """
    Decrypt a request envelope as the node.

    This is the counterpart of encrypt() for nodes and local test doubles. The
    returned secret seals the response with seal().

    Args:
        node_private_key: The node's X25519 private key
        envelope: Request envelope or its encoded bytes

    Returns:
        Tuple of (shared_secret, plaintext)

    Raises:
        AuthenticationFailure: If the envelope does not decrypt
    """
    if not isinstance(envelope, ShieldedEnvelope):
        try:
            envelope = decode_envelope(bytes(envelope))
        except EnvelopeError as e:
            raise AuthenticationFailure(f"Envelope rejected: {e}") from e

    try:
        ephemeral_public = public_key_from_bytes(envelope.ephemeral_public_key)
        shared = x25519_ecdh(node_private_key, ephemeral_public)
    except MalformedKey as e:
        raise AuthenticationFailure(f"Envelope carries an unusable key: {e}") from e

    node_pub_bytes = public_key_to_bytes(node_private_key.public_key())
    secret = SharedSecret(
        key=_derive_key(shared, envelope.ephemeral_public_key, node_pub_bytes),
        ephemeral_public_key=envelope.ephemeral_public_key,
        node_public_key=node_pub_bytes,
    )
    return secret, decrypt(secret, envelope)
