"""Tests for the key exchange client."""

import asyncio
from datetime import timedelta

import pytest

from shieldcall.key_exchange import KeyExchangeClient
from shieldcall.models import Endpoint
from shieldcall.storage import NodeKeyCache
from shieldcall.types import MalformedKey, NetworkUnavailable, RpcError, UnsupportedNode
from .fakes import FakeTransport
from .test_vectors import ENDPOINT_URL, NODE_PUBLIC_KEY_HEX


@pytest.fixture
def endpoint() -> Endpoint:
    return Endpoint(ENDPOINT_URL)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


class TestFetchNodeKey:
    def test_fetches_hex_key(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport)
        key = asyncio.run(client.fetch_node_key(endpoint))

        assert key.public_key.hex() == NODE_PUBLIC_KEY_HEX
        assert key.endpoint == endpoint
        assert key.valid_until is None
        assert transport.requests == [(endpoint, "eth_getNodePublicKey", ["latest"])]

    def test_accepts_raw_bytes_without_prefix(self, transport, endpoint) -> None:
        transport.key_result = bytes.fromhex(NODE_PUBLIC_KEY_HEX)
        key = asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))
        assert key.public_key.hex() == NODE_PUBLIC_KEY_HEX

    def test_configurable_method(self, transport, endpoint) -> None:
        transport.key_method = "confidential_nodeKey"
        client = KeyExchangeClient(transport, method="confidential_nodeKey", params=[])
        asyncio.run(client.fetch_node_key(endpoint))
        assert transport.requests[0][1:] == ("confidential_nodeKey", [])

    def test_fetches_fresh_key_every_time_by_default(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport)
        asyncio.run(client.fetch_node_key(endpoint))
        asyncio.run(client.fetch_node_key(endpoint))
        assert len(transport.requests) == 2


class TestErrors:
    def test_method_not_found_is_unsupported(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport, method="eth_unknownMethod")
        with pytest.raises(UnsupportedNode):
            asyncio.run(client.fetch_node_key(endpoint))

    def test_not_supported_message_is_unsupported(self, transport, endpoint) -> None:
        transport.key_error = RpcError("shielding not supported on this node", code=-32000)
        with pytest.raises(UnsupportedNode):
            asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))

    def test_null_result_is_unsupported(self, transport, endpoint) -> None:
        async def null_request(endpoint, method, params):
            return None

        transport.request = null_request
        with pytest.raises(UnsupportedNode):
            asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))

    def test_other_rpc_errors_propagate(self, transport, endpoint) -> None:
        transport.key_error = RpcError("header not found", code=-32000)
        with pytest.raises(RpcError) as excinfo:
            asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))
        assert not isinstance(excinfo.value, UnsupportedNode)

    def test_network_error_propagates(self, transport, endpoint) -> None:
        transport.key_error = NetworkUnavailable("connection refused")
        with pytest.raises(NetworkUnavailable):
            asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))

    @pytest.mark.parametrize(
        "result",
        [
            "0x1234",
            "0x" + "zz" * 32,
            "0x" + "00" * 32,
            "0x" + "11" * 33,
            12345,
            {"key": NODE_PUBLIC_KEY_HEX},
        ],
    )
    def test_malformed_keys(self, transport, endpoint, result) -> None:
        transport.key_result = result
        with pytest.raises(MalformedKey):
            asyncio.run(KeyExchangeClient(transport).fetch_node_key(endpoint))

    def test_retry_flags(self) -> None:
        assert NetworkUnavailable("x").retryable
        assert MalformedKey("x").retryable
        assert not UnsupportedNode("x").retryable


class TestCaching:
    def test_cache_hit_skips_request(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport, cache=NodeKeyCache(ttl=timedelta(minutes=5)))

        first = asyncio.run(client.fetch_node_key(endpoint))
        second = asyncio.run(client.fetch_node_key(endpoint))

        assert len(transport.requests) == 1
        assert first == second
        assert first.valid_until == first.fetched_at + timedelta(minutes=5)

    def test_invalidate_forces_refetch(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport, cache=NodeKeyCache(ttl=timedelta(minutes=5)))

        asyncio.run(client.fetch_node_key(endpoint))
        client.invalidate(endpoint)
        asyncio.run(client.fetch_node_key(endpoint))

        assert len(transport.requests) == 2

    def test_cache_is_per_endpoint(self, transport, endpoint) -> None:
        client = KeyExchangeClient(transport, cache=NodeKeyCache(ttl=timedelta(minutes=5)))
        other = Endpoint("http://localhost:8545")

        asyncio.run(client.fetch_node_key(endpoint))
        key = asyncio.run(client.fetch_node_key(other))

        assert len(transport.requests) == 2
        assert key.endpoint == other
