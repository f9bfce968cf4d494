"""shieldcall storage module."""

from .node_key_cache import NodeKeyCache

__all__ = [
    "NodeKeyCache",
]
