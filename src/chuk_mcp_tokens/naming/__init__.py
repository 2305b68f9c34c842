"""
Identifier sanitization for CSS custom properties.
"""

from chuk_mcp_tokens.naming.sanitizer import (
    check_collisions,
    find_collisions,
    sanitize_segment,
    to_identifier,
)

__all__ = [
    "check_collisions",
    "find_collisions",
    "sanitize_segment",
    "to_identifier",
]
