"""
Cascade composition - ordered, per-mode layer folding.
"""

from chuk_mcp_tokens.cascade.composer import (
    CascadeComposer,
    ComposedTree,
    check_mode_coverage,
    tree_fingerprint,
)

__all__ = [
    "CascadeComposer",
    "ComposedTree",
    "check_mode_coverage",
    "tree_fingerprint",
]
