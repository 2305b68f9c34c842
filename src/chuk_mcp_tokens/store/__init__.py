"""
Token store - parses layered token documents.

Sources come from the data directory (or inline data) and keep their
layer identity on every token they define.
"""

from chuk_mcp_tokens.store.loader import TokenStore, is_token_node

__all__ = [
    "TokenStore",
    "is_token_node",
]
