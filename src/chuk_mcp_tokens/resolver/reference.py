"""
Reference resolver - reduces every token in a mode tree to a literal.

A raw value holds at most one whole-value reference, so the reference
graph has out-degree at most one per node: resolving a path means walking
its chain until a literal, a memoized path, a missing path or a repeat.
The walk is iterative, so chain length never touches the recursion limit.
Every path on a finished chain is memoized, which keeps a full pass at
O(N + E).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from chuk_mcp_tokens.cascade.composer import ComposedTree, tree_fingerprint
from chuk_mcp_tokens.constants import TokenType
from chuk_mcp_tokens.errors import (
    BuildError,
    CyclicTokenReference,
    UnresolvedTokenReference,
    format_path,
)
from chuk_mcp_tokens.models.token import (
    LiteralScalar,
    LiteralValue,
    ResolvedToken,
    TokenPath,
)

logger = logging.getLogger(__name__)

ResolvedTree = Mapping[TokenPath, ResolvedToken]

# Memo entry: literal value plus the type of the literal the chain ended on
MemoEntry = tuple[LiteralScalar, TokenType]


@dataclass
class _ModeMemo:
    fingerprint: str
    values: dict[TokenPath, MemoEntry] = field(default_factory=dict)


class ResolutionCache:
    """
    Memo of resolved values keyed by (mode, path).

    Entries for a mode are only valid for the composed tree they were
    computed from; binding a mode with a different tree fingerprint drops
    them. Resolution is a pure function of the tree, so surviving entries
    are safe to reuse across pipeline runs.
    """

    def __init__(self) -> None:
        self._modes: dict[str, _ModeMemo] = {}
        self.hits = 0
        self.misses = 0
        self.invalidations = 0

    def bind(self, mode: str, fingerprint: str) -> dict[TokenPath, MemoEntry]:
        """
        Get the memo for a mode, invalidating it if the tree changed.

        Args:
            mode: Mode identifier
            fingerprint: Digest of the mode's composed tree

        Returns:
            Mutable path -> entry memo for this mode
        """
        memo = self._modes.get(mode)
        if memo is None or memo.fingerprint != fingerprint:
            if memo is not None:
                self.invalidations += 1
                logger.debug(f"Resolution cache invalidated for mode {mode}")
            memo = _ModeMemo(fingerprint=fingerprint)
            self._modes[mode] = memo
        return memo.values

    def get(self, mode: str, path: TokenPath) -> MemoEntry | None:
        memo = self._modes.get(mode)
        return memo.values.get(path) if memo else None

    def __len__(self) -> int:
        return sum(len(memo.values) for memo in self._modes.values())

    def stats(self) -> dict[str, int]:
        """Cache statistics for build reports."""
        return {
            "size": len(self),
            "modes": len(self._modes),
            "hits": self.hits,
            "misses": self.misses,
            "invalidations": self.invalidations,
        }

    def clear(self) -> None:
        """Drop every entry."""
        self._modes.clear()


class _ChainFailed(Exception):
    """Internal: a chain ended in an already-reported failure."""


class ReferenceResolver:
    """
    Resolves `{Path}` references within one mode's composed tree.

    Resolution has no I/O and never mutates the tree. Each mode is resolved
    independently; a ResolutionCache may be shared across modes and runs.
    """

    def __init__(self, cache: ResolutionCache | None = None):
        """
        Initialize the resolver.

        Args:
            cache: Shared memo; a private one is created when omitted
        """
        self.cache = cache if cache is not None else ResolutionCache()

    def resolve(
        self,
        tree: ComposedTree,
        mode: str,
        errors: list[BuildError] | None = None,
    ) -> ResolvedTree:
        """
        Resolve every path in a mode tree.

        Args:
            tree: Composed path -> token map for the mode
            mode: Mode identifier (for diagnostics and cache keys)
            errors: When given, failures are appended here, the failing
                paths are left out of the result, and resolution continues;
                otherwise the first failure is raised

        Returns:
            Read-only path -> ResolvedToken map in tree order

        Raises:
            CyclicTokenReference: If a reference chain loops
            UnresolvedTokenReference: If a reference targets a missing path
        """
        memo = self.cache.bind(mode, tree_fingerprint(tree))
        failed: dict[TokenPath, BuildError] = {}
        reported: set[object] = set()
        resolved: dict[TokenPath, ResolvedToken] = {}

        for path, token in tree.items():
            try:
                value, terminal_type = self._resolve_path(tree, mode, path, memo, failed)
            except _ChainFailed:
                continue
            except (CyclicTokenReference, UnresolvedTokenReference) as e:
                if errors is None:
                    raise
                key = self._error_key(e)
                if key not in reported:
                    reported.add(key)
                    errors.append(e)
                continue

            resolved[path] = ResolvedToken(
                path=path,
                type=token.type or terminal_type,
                value=value,
                source_layer=token.source_layer,
            )
            if logger.isEnabledFor(logging.DEBUG):
                via = ""
                if token.is_reference:
                    chain = self.reference_chain(tree, path)
                    via = f" (via {' -> '.join(format_path(p) for p in chain[1:])})"
                logger.debug(f"[{mode}] {token.dotted_path} = {value!r}{via}")

        return MappingProxyType(resolved)

    def resolve_path(self, tree: ComposedTree, mode: str, path: TokenPath) -> LiteralScalar:
        """
        Resolve a single path.

        Raises:
            UnresolvedTokenReference: If the path or anything it references is missing
            CyclicTokenReference: If its chain loops
        """
        memo = self.cache.bind(mode, tree_fingerprint(tree))
        if path not in tree:
            raise UnresolvedTokenReference(mode, path, path, chain=(path,))
        value, _ = self._resolve_path(tree, mode, path, memo, {})
        return value

    def _resolve_path(
        self,
        tree: ComposedTree,
        mode: str,
        start: TokenPath,
        memo: dict[TokenPath, MemoEntry],
        failed: dict[TokenPath, BuildError],
    ) -> MemoEntry:
        """Walk one reference chain and memoize every path on it."""
        cached = memo.get(start)
        if cached is not None:
            self.cache.hits += 1
            return cached
        self.cache.misses += 1

        chain: list[TokenPath] = [start]
        in_progress: dict[TokenPath, int] = {start: 0}
        current = start

        while True:
            if current in failed:
                self._mark_failed(chain, failed, failed[current])
                raise _ChainFailed()

            entry = memo.get(current)
            if entry is not None:
                break

            token = tree.get(current)
            if token is None:
                error = UnresolvedTokenReference(mode, chain[-2], current, chain=chain)
                self._mark_failed(chain[:-1], failed, error)
                raise error

            if isinstance(token.value, LiteralValue):
                entry = (token.value.value, token.type or TokenType.STRING)
                break

            target = token.value.path
            if target in in_progress:
                cycle = [*chain[in_progress[target] :], target]
                error = CyclicTokenReference(mode, cycle)
                self._mark_failed(chain, failed, error)
                raise error

            in_progress[target] = len(chain)
            chain.append(target)
            current = target

        for path in chain:
            memo[path] = entry
        return entry

    @staticmethod
    def _mark_failed(
        chain: list[TokenPath], failed: dict[TokenPath, BuildError], error: BuildError
    ) -> None:
        for path in chain:
            failed.setdefault(path, error)

    @staticmethod
    def _error_key(error: BuildError) -> object:
        """Identity of a root cause, so a cycle is reported once."""
        if isinstance(error, CyclicTokenReference):
            return ("cycle", error.mode, frozenset(error.cycle))
        if isinstance(error, UnresolvedTokenReference):
            return ("missing", error.mode, error.referencing, error.missing)
        return id(error)

    @staticmethod
    def reference_chain(tree: ComposedTree, path: TokenPath) -> list[TokenPath]:
        """
        Follow a path's references for diagnostics.

        Stops at a literal, a missing path, or the first repeated path.
        """
        chain = [path]
        seen = {path}
        token = tree.get(path)
        while token is not None and not isinstance(token.value, LiteralValue):
            target = token.value.path
            chain.append(target)
            if target in seen:
                break
            seen.add(target)
            token = tree.get(target)
        return chain
