"""Configuration for shielded RPC access."""

import os
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Mapping, Optional, Tuple

from .models import Endpoint
from .storage import NodeKeyCache
from .types import DEFAULT_KEY_EXCHANGE_METHOD, DEFAULT_MAX_PAYLOAD_SIZE

ENV_PREFIX = "SHIELDCALL_"


@dataclass(frozen=True)
class ShieldingConfig:
    """Configuration for one target network."""

    endpoint_url: str
    """JSON-RPC URL of the node."""

    key_exchange_method: str = DEFAULT_KEY_EXCHANGE_METHOD
    """RPC method returning the node's public encryption key."""

    key_exchange_params: Tuple[str, ...] = ("latest",)
    """Parameters sent with the key exchange method."""

    max_payload_size: int = DEFAULT_MAX_PAYLOAD_SIZE
    """Largest call data accepted for encryption, in bytes."""

    key_cache_ttl_secs: float = 0
    """How long a fetched node key is reused (0 disables caching)."""

    request_timeout_secs: float = 30.0
    """Total timeout of a single HTTP request."""

    def __post_init__(self) -> None:
        # Raises ValueError for a malformed URL
        Endpoint(self.endpoint_url)
        if self.max_payload_size <= 0:
            raise ValueError("max_payload_size must be positive")
        if self.key_cache_ttl_secs < 0:
            raise ValueError("key_cache_ttl_secs must not be negative")
        if self.request_timeout_secs <= 0:
            raise ValueError("request_timeout_secs must be positive")

    @classmethod
    def swisstronik_testnet(cls) -> "ShieldingConfig":
        """Creates configuration for the Swisstronik testnet."""
        return cls(endpoint_url="https://json-rpc.testnet.swisstronik.com/")

    @classmethod
    def localnet(cls) -> "ShieldingConfig":
        """Creates configuration for a local development node."""
        return cls(endpoint_url="http://localhost:8545")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ShieldingConfig":
        """
        Creates configuration from SHIELDCALL_* environment variables.

        SHIELDCALL_RPC_URL is required. SHIELDCALL_KEY_METHOD,
        SHIELDCALL_KEY_PARAMS (comma-separated), SHIELDCALL_MAX_PAYLOAD,
        SHIELDCALL_KEY_CACHE_TTL and SHIELDCALL_TIMEOUT are optional.

        Raises:
            ValueError: If the URL is missing or invalid, or a number does not parse.
        """
        env = os.environ if environ is None else environ

        url = env.get(ENV_PREFIX + "RPC_URL")
        if not url:
            raise ValueError(f"{ENV_PREFIX}RPC_URL is not set")

        config = cls(endpoint_url=url)
        overrides = {}
        if env.get(ENV_PREFIX + "KEY_METHOD"):
            overrides["key_exchange_method"] = env[ENV_PREFIX + "KEY_METHOD"]
        if ENV_PREFIX + "KEY_PARAMS" in env:
            raw = env[ENV_PREFIX + "KEY_PARAMS"]
            overrides["key_exchange_params"] = tuple(p.strip() for p in raw.split(",") if p.strip())
        if env.get(ENV_PREFIX + "MAX_PAYLOAD"):
            overrides["max_payload_size"] = int(env[ENV_PREFIX + "MAX_PAYLOAD"])
        if env.get(ENV_PREFIX + "KEY_CACHE_TTL"):
            overrides["key_cache_ttl_secs"] = float(env[ENV_PREFIX + "KEY_CACHE_TTL"])
        if env.get(ENV_PREFIX + "TIMEOUT"):
            overrides["request_timeout_secs"] = float(env[ENV_PREFIX + "TIMEOUT"])

        return replace(config, **overrides)

    def with_key_cache(self, ttl_secs: float) -> "ShieldingConfig":
        """Returns a copy with node key caching enabled for ttl_secs."""
        return replace(self, key_cache_ttl_secs=ttl_secs)

    def endpoint(self) -> Endpoint:
        """The configured endpoint."""
        return Endpoint(self.endpoint_url)

    def key_cache(self) -> NodeKeyCache:
        """A fresh node key cache honoring the configured TTL."""
        return NodeKeyCache(ttl=timedelta(seconds=self.key_cache_ttl_secs))
