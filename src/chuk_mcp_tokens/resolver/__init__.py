"""
Reference resolution - symbol linking for token trees.

Resolves whole-value `{Path}` references with cycle detection and a
(mode, path) memo that can be reused across runs.
"""

from chuk_mcp_tokens.resolver.reference import (
    ReferenceResolver,
    ResolutionCache,
    ResolvedTree,
)

__all__ = [
    "ReferenceResolver",
    "ResolutionCache",
    "ResolvedTree",
]
