"""
Cascade composer - folds layers into one raw token tree per mode.

Later layers have higher priority. A path defined by several applicable
layers takes the whole token from the highest-priority one: values are
replaced, never merged.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable, Mapping

from chuk_mcp_tokens.errors import ModeCoverageMismatch
from chuk_mcp_tokens.models.token import Layer, Token, TokenPath

logger = logging.getLogger(__name__)

ComposedTree = dict[TokenPath, Token]


class CascadeComposer:
    """
    Composes per-mode token trees from ordered layers.

    Layer order is the order of the list passed in; the composer never
    reorders. Mode-independent layers take part in every mode.
    """

    def layers_for_mode(self, layers: Iterable[Layer], mode: str) -> list[Layer]:
        """
        Select the layers that apply to a mode, keeping cascade order.

        Args:
            layers: All layers in cascade order
            mode: Mode identifier

        Returns:
            Applicable layers, lowest priority first
        """
        return [layer for layer in layers if layer.applies_to(mode)]

    def compose(self, layers: Iterable[Layer], mode: str) -> ComposedTree:
        """
        Fold applicable layers left to right into a path -> token map.

        The key order of the result is the position where each path was
        first defined, which keeps output stable when a later layer only
        overrides values.

        Args:
            layers: All layers in cascade order
            mode: Mode identifier

        Returns:
            Winning token per path
        """
        tree: ComposedTree = {}
        overrides = 0
        for layer in self.layers_for_mode(layers, mode):
            for token in layer.tokens:
                if token.path in tree:
                    overrides += 1
                tree[token.path] = token

        logger.debug(f"Composed mode {mode}: {len(tree)} tokens, {overrides} overrides")
        return tree

    def compose_all(self, layers: list[Layer], modes: Iterable[str]) -> dict[str, ComposedTree]:
        """Compose every mode."""
        return {mode: self.compose(layers, mode) for mode in modes}


def check_mode_coverage(
    trees: Mapping[str, Mapping[TokenPath, object]],
) -> list[ModeCoverageMismatch]:
    """
    Find paths present in some modes but not others.

    Every mode must cover exactly the same set of paths.

    Args:
        trees: Per-mode trees (composed or resolved), in mode order

    Returns:
        One mismatch per offending path, in first-seen order
    """
    modes = list(trees)
    union: dict[TokenPath, None] = {}
    for tree in trees.values():
        union.update(dict.fromkeys(tree))

    mismatches: list[ModeCoverageMismatch] = []
    for path in union:
        present = [m for m in modes if path in trees[m]]
        if len(present) != len(modes):
            missing = [m for m in modes if m not in present]
            mismatches.append(ModeCoverageMismatch(path, present, missing))
    return mismatches


def tree_fingerprint(tree: ComposedTree) -> str:
    """Stable digest of a composed tree, used to validate cached resolutions."""
    payload = [token.fingerprint_dict() for token in tree.values()]
    encoded = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(encoded.encode("utf-8")).hexdigest()
