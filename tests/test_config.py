"""Tests for configuration."""

from datetime import timedelta

import pytest

from shieldcall.config import ShieldingConfig
from shieldcall.types import DEFAULT_KEY_EXCHANGE_METHOD, DEFAULT_MAX_PAYLOAD_SIZE


class TestShieldingConfig:
    def test_defaults(self) -> None:
        config = ShieldingConfig(endpoint_url="http://localhost:8545")

        assert config.key_exchange_method == DEFAULT_KEY_EXCHANGE_METHOD
        assert config.max_payload_size == DEFAULT_MAX_PAYLOAD_SIZE
        assert config.key_cache_ttl_secs == 0
        assert not config.key_cache().enabled

    def test_presets(self) -> None:
        assert ShieldingConfig.swisstronik_testnet().endpoint().url.startswith("https://")
        assert ShieldingConfig.localnet().endpoint().url == "http://localhost:8545"

    def test_with_key_cache(self) -> None:
        config = ShieldingConfig.localnet().with_key_cache(60)
        cache = config.key_cache()

        assert cache.enabled
        assert cache.ttl == timedelta(seconds=60)

    def test_from_env(self) -> None:
        config = ShieldingConfig.from_env({
            "SHIELDCALL_RPC_URL": "https://node.example/rpc",
            "SHIELDCALL_KEY_METHOD": "confidential_nodeKey",
            "SHIELDCALL_MAX_PAYLOAD": "4096",
            "SHIELDCALL_KEY_CACHE_TTL": "30",
            "SHIELDCALL_TIMEOUT": "5",
        })

        assert config.endpoint_url == "https://node.example/rpc"
        assert config.key_exchange_method == "confidential_nodeKey"
        assert config.max_payload_size == 4096
        assert config.key_cache_ttl_secs == 30
        assert config.request_timeout_secs == 5

    def test_from_env_requires_url(self) -> None:
        with pytest.raises(ValueError, match="SHIELDCALL_RPC_URL"):
            ShieldingConfig.from_env({})

    def test_from_env_rejects_bad_numbers(self) -> None:
        with pytest.raises(ValueError):
            ShieldingConfig.from_env({
                "SHIELDCALL_RPC_URL": "https://node.example/rpc",
                "SHIELDCALL_MAX_PAYLOAD": "lots",
            })

    @pytest.mark.parametrize(
        "kwargs",
        [{"max_payload_size": 0}, {"key_cache_ttl_secs": -1}, {"request_timeout_secs": 0}],
    )
    def test_invalid_values(self, kwargs) -> None:
        with pytest.raises(ValueError):
            ShieldingConfig(endpoint_url="http://localhost:8545", **kwargs)

    @pytest.mark.parametrize("url", ["not a url", "ftp://node.example", ""])
    def test_invalid_endpoint_rejected_at_construction(self, url: str) -> None:
        with pytest.raises(ValueError):
            ShieldingConfig(endpoint_url=url)

    def test_from_env_rejects_bad_url(self) -> None:
        with pytest.raises(ValueError):
            ShieldingConfig.from_env({"SHIELDCALL_RPC_URL": "ftp://x"})

    def test_key_exchange_params(self) -> None:
        assert ShieldingConfig.localnet().key_exchange_params == ("latest",)

        config = ShieldingConfig.from_env({
            "SHIELDCALL_RPC_URL": "https://node.example/rpc",
            "SHIELDCALL_KEY_PARAMS": "pending, 0x1",
        })
        assert config.key_exchange_params == ("pending", "0x1")

        empty = ShieldingConfig.from_env({
            "SHIELDCALL_RPC_URL": "https://node.example/rpc",
            "SHIELDCALL_KEY_PARAMS": "",
        })
        assert empty.key_exchange_params == ()
