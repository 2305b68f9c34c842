"""
Tests for the cascade composer.
"""

import pytest

from chuk_mcp_tokens.cascade import CascadeComposer, check_mode_coverage, tree_fingerprint
from chuk_mcp_tokens.errors import ModeCoverageMismatch
from chuk_mcp_tokens.models.config import LayerSource
from chuk_mcp_tokens.store import TokenStore


def make_layer(name: str, data: dict, mode: str | None = None):
    return TokenStore().load_layer(LayerSource(name=name, data=data, mode=mode))


@pytest.fixture
def layers():
    """Base layer plus light/dark mode layers and a mode-independent override."""
    return [
        make_layer(
            "base",
            {
                "Color": {
                    "Base": {"value": "#eee", "type": "color"},
                    "Accent": {"value": "#00f", "type": "color"},
                }
            },
        ),
        make_layer("light", {"Color": {"Base": {"value": "#fff", "type": "color"}}}, "light"),
        make_layer("dark", {"Color": {"Base": {"value": "#000", "type": "color"}}}, "dark"),
        make_layer("brand", {"Color": {"Accent": {"value": "{Color.Base}"}}}),
    ]


class TestCascadeComposer:
    """Tests for per-mode composition."""

    def test_layers_for_mode(self, layers):
        composer = CascadeComposer()
        assert [layer.name for layer in composer.layers_for_mode(layers, "dark")] == [
            "base",
            "dark",
            "brand",
        ]

    def test_later_layer_wins(self, layers):
        """The highest-priority applicable layer defines the value."""
        composer = CascadeComposer()
        light = composer.compose(layers, "light")
        dark = composer.compose(layers, "dark")
        assert light[("Color", "Base")].value.value == "#fff"
        assert light[("Color", "Base")].source_layer == "light"
        assert dark[("Color", "Base")].value.value == "#000"

    def test_override_replaces_whole_token(self, layers):
        """Overrides replace the token, including turning a literal into a reference."""
        composer = CascadeComposer()
        tree = composer.compose(layers, "light")
        accent = tree[("Color", "Accent")]
        assert accent.is_reference
        assert accent.type is None
        assert accent.source_layer == "brand"

    def test_first_definition_order(self, layers):
        """Keys keep the position where a path was first defined."""
        composer = CascadeComposer()
        tree = composer.compose(layers, "light")
        assert list(tree) == [("Color", "Base"), ("Color", "Accent")]

    def test_unknown_mode_gets_shared_layers_only(self, layers):
        composer = CascadeComposer()
        tree = composer.compose(layers, "sepia")
        assert tree[("Color", "Base")].value.value == "#eee"

    def test_compose_all(self, layers):
        composer = CascadeComposer()
        trees = composer.compose_all(layers, ["light", "dark"])
        assert list(trees) == ["light", "dark"]

    def test_composition_is_pure(self, layers):
        """Composing twice gives equal trees and leaves layers untouched."""
        composer = CascadeComposer()
        before = [layer.tokens for layer in layers]
        assert composer.compose(layers, "dark") == composer.compose(layers, "dark")
        assert [layer.tokens for layer in layers] == before


class TestModeCoverage:
    """Tests for cross-mode coverage checks."""

    def test_matching_modes(self, layers):
        trees = CascadeComposer().compose_all(layers, ["light", "dark"])
        assert check_mode_coverage(trees) == []

    def test_path_missing_in_one_mode(self, layers):
        """A path only one mode layer defines is reported."""
        layers = [
            *layers,
            make_layer("dark-extra", {"Color": {"Glow": {"value": "#0f0"}}}, "dark"),
        ]
        trees = CascadeComposer().compose_all(layers, ["light", "dark"])
        mismatches = check_mode_coverage(trees)
        assert len(mismatches) == 1
        mismatch = mismatches[0]
        assert isinstance(mismatch, ModeCoverageMismatch)
        assert mismatch.path == ("Color", "Glow")
        assert mismatch.present_in == ("dark",)
        assert mismatch.missing_in == ("light",)
        assert "Color.Glow" in str(mismatch)


class TestTreeFingerprint:
    """Tests for composed-tree digests."""

    def test_stable(self, layers):
        composer = CascadeComposer()
        assert tree_fingerprint(composer.compose(layers, "light")) == tree_fingerprint(
            composer.compose(layers, "light")
        )

    def test_changes_with_values(self, layers):
        composer = CascadeComposer()
        assert tree_fingerprint(composer.compose(layers, "light")) != tree_fingerprint(
            composer.compose(layers, "dark")
        )

    def test_distinguishes_int_and_float(self):
        """4 and 4.0 serialize differently, so they must not share cache entries."""
        composer = CascadeComposer()
        as_int = composer.compose([make_layer("a", {"Gap": {"value": 4}})], "light")
        as_float = composer.compose([make_layer("a", {"Gap": {"value": 4.0}})], "light")
        assert tree_fingerprint(as_int) != tree_fingerprint(as_float)
