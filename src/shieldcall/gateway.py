"""
Shielded call and transaction gateways.

Each operation is a strictly ordered sequence:

    fetch node key -> fresh ephemeral key -> encrypt -> transport -> (reads) decrypt

It suspends only on the key fetch and on the call/send itself, plus the
confirmation wait when the caller asks for one.
"""

import logging
from typing import Optional, Union

from .crypto import decrypt, derive_shared_secret, seal
from .envelope import encode_envelope, to_bytes
from .key_exchange import KeyExchangeClient
from .keys import EphemeralKeyPair
from .models import (
    Endpoint,
    NodePublicKey,
    Receipt,
    SendOptions,
    ShieldedCallResult,
    TransactionHandle,
    TransactionRequest,
)
from .transport import Signer, Transport
from .types import (
    DEFAULT_MAX_PAYLOAD_SIZE,
    AuthenticationFailure,
    RpcError,
    ShieldingError,
    ShieldingUnavailable,
    SubmissionFailure,
    UnknownOutcome,
    UnsupportedNode,
)

logger = logging.getLogger(__name__)

CallData = Union[bytes, str]


async def _fetch_key(key_exchange: KeyExchangeClient, endpoint: Endpoint) -> NodePublicKey:
    try:
        return await key_exchange.fetch_node_key(endpoint)
    except ShieldingUnavailable:
        raise
    except UnsupportedNode as e:
        raise ShieldingUnavailable(endpoint.url) from e


async def execute_shielded_call(
    transport: Transport,
    endpoint: Endpoint,
    destination: str,
    data: CallData,
    key_exchange: Optional[KeyExchangeClient] = None,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> ShieldedCallResult:
    """
    Run one shielded read and keep the key material with the result.

    Args:
        transport: Transport to the node.
        endpoint: Node to call.
        destination: Contract address.
        data: ABI-encoded call data, as bytes or hex.
        key_exchange: Key exchange client (default: uncached, over the same transport).
        max_payload_size: Largest call data accepted.

    Returns:
        ShieldedCallResult with the decrypted return data.

    Raises:
        ShieldingUnavailable: If the node does not support shielding. No call is made.
        NetworkUnavailable, MalformedKey, EncodingError, RpcError: Before or during the call.
        AuthenticationFailure: If the response does not decrypt.
    """
    key_exchange = key_exchange or KeyExchangeClient(transport)
    plaintext = to_bytes(data)

    node_key = await _fetch_key(key_exchange, endpoint)

    ephemeral = EphemeralKeyPair.generate()
    secret = derive_shared_secret(ephemeral, node_key)
    envelope = seal(secret, plaintext, max_payload_size=max_payload_size)

    # A rotated node key shows up either as a node-side error or as a response
    # that does not decrypt; both drop the cached key.
    try:
        response = await transport.call(endpoint, destination, encode_envelope(envelope))
        result = decrypt(secret, response)
    except (RpcError, AuthenticationFailure):
        key_exchange.invalidate(endpoint)
        raise

    return ShieldedCallResult(
        data=result,
        ephemeral_public_key=secret.ephemeral_public_key,
        node_key=node_key,
        envelope=envelope,
    )


async def shielded_call(
    transport: Transport,
    endpoint: Endpoint,
    destination: str,
    data: CallData,
    key_exchange: Optional[KeyExchangeClient] = None,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> bytes:
    """
    Encrypt call data, run it through the node and return the decrypted result.

    The operation has no on-chain side effects, so the whole sequence is safe
    to retry after any failure. See execute_shielded_call for the errors.
    """
    result = await execute_shielded_call(
        transport,
        endpoint,
        destination,
        data,
        key_exchange=key_exchange,
        max_payload_size=max_payload_size,
    )
    return result.data


async def unshielded_call(
    transport: Transport,
    endpoint: Endpoint,
    destination: str,
    data: CallData,
) -> bytes:
    """
    Plain call without encryption.

    Only for callers that received ShieldingUnavailable and decided to send
    the call data in the clear.
    """
    logger.warning(f"Sending unshielded call to {destination} via {endpoint}")
    return await transport.call(endpoint, destination, to_bytes(data))


async def shielded_send(
    transport: Transport,
    signer: Signer,
    endpoint: Endpoint,
    destination: str,
    data: CallData,
    value: int = 0,
    key_exchange: Optional[KeyExchangeClient] = None,
    options: Optional[SendOptions] = None,
    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE,
) -> TransactionHandle:
    """
    Encrypt call data, sign the transaction and submit it.

    Args:
        transport: Transport to the node.
        signer: Signs the transaction.
        endpoint: Node to submit to.
        destination: Contract address.
        data: ABI-encoded call data, as bytes or hex.
        value: Amount of native currency to attach, in wei.
        key_exchange: Key exchange client (default: uncached, over the same transport).
        options: Send options (default: fire-and-forget).
        max_payload_size: Largest call data accepted.

    Returns:
        TransactionHandle, pending unless options asked to wait.

    Raises:
        ShieldingUnavailable: If the node does not support shielding. Nothing is sent.
        NetworkUnavailable, MalformedKey, EncodingError: Before submission, safe to retry.
        SubmissionFailure: Signing failed or the node rejected the transaction.
        UnknownOutcome: The transaction may have been submitted. Do not blindly retry.
    """
    options = options or SendOptions.fire_and_forget()
    key_exchange = key_exchange or KeyExchangeClient(transport)
    plaintext = to_bytes(data)

    if value < 0:
        raise ValueError("Value must not be negative")

    node_key = await _fetch_key(key_exchange, endpoint)

    ephemeral = EphemeralKeyPair.generate()
    secret = derive_shared_secret(ephemeral, node_key)
    envelope = seal(secret, plaintext, max_payload_size=max_payload_size)

    request = TransactionRequest(
        sender=signer.address,
        to=destination,
        data=encode_envelope(envelope),
        value=value,
    )

    try:
        signed_txn = await signer.sign_transaction(request)
    except ShieldingError:
        raise
    except Exception as e:
        raise SubmissionFailure(f"Signing failed: {e}") from e

    try:
        handle = await transport.send_transaction(endpoint, signed_txn)
    except RpcError as e:
        raise SubmissionFailure(f"Transaction rejected by {endpoint}: {e}") from e
    except Exception as e:
        logger.warning(f"Submission to {endpoint} ended ambiguously: {e}")
        raise UnknownOutcome(f"Transaction may have been submitted: {e}") from e

    logger.info(f"Submitted shielded transaction {handle.tx_hash} to {destination}")

    if options.wait_for_confirmation:
        await wait_for_receipt(
            transport,
            handle,
            timeout_secs=options.timeout_secs,
            poll_interval_secs=options.poll_interval_secs,
        )

    return handle


async def wait_for_receipt(
    transport: Transport,
    handle: TransactionHandle,
    timeout_secs: float = 120.0,
    poll_interval_secs: float = 2.0,
) -> Receipt:
    """
    Wait for a submitted transaction and record the receipt on its handle.

    Raises:
        UnknownOutcome: If waiting fails. The transaction may still be mined.
    """
    try:
        receipt = await transport.wait(handle, timeout_secs, poll_interval_secs)
    except Exception as e:
        logger.warning(f"Lost track of transaction {handle.tx_hash}: {e}")
        raise UnknownOutcome(
            f"Confirmation of {handle.tx_hash} failed: {e}", handle=handle
        ) from e

    if receipt.succeeded:
        handle.mark_confirmed(receipt)
    else:
        handle.mark_failed(receipt)
    return receipt
