"""
Pytest configuration and shared fixtures.
"""

import json
import tempfile
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from chuk_mcp_tokens.models.config import PipelineConfig

BRAND_THEME = {
    "Color": {
        "Primitive": {
            "$type": "color",
            "White": {"$value": "#fff"},
            "Black": {"$value": "#000"},
        }
    },
    "Font": {
        "Family": {"Base": {"value": "Open Sans", "type": "fontFamilies"}},
        "Weight": {"Bold": {"value": "Bold", "type": "fontWeights"}},
    },
}

LIGHT_MODE = {"Color": {"Base": {"default": {"value": "{Color.Primitive.White}", "type": "color"}}}}
DARK_MODE = {"Color": {"Base": {"default": {"value": "{Color.Primitive.Black}", "type": "color"}}}}

COMPONENT = {
    "Button": {
        "Background": {"value": "{Color.Base.default}", "type": "color"},
        "Padding": {"value": 8, "type": "spacing"},
        "Font": {"value": "{Font.Family.Base}"},
        "Weight": {"value": "{Font.Weight.Bold}"},
    }
}

LAYOUT = {"Layout": {"Gutter": {"value": 1.5, "type": "number"}}}


def write_json(path: Path, data: Any) -> Path:
    """Write a JSON document, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def json_writer() -> Callable[[Path, Any], Path]:
    """The write_json helper, for tests that build their own documents."""
    return write_json


@pytest.fixture
def token_data(temp_dir: Path) -> Path:
    """A Tokens Studio style data directory with brand, mode, and component sets."""
    data_dir = temp_dir / "data"
    write_json(data_dir / "brand-theme" / "dive-theme.json", BRAND_THEME)
    write_json(data_dir / "color-modes" / "light-mode.json", LIGHT_MODE)
    write_json(data_dir / "color-modes" / "dark-mode.json", DARK_MODE)
    write_json(data_dir / "components" / "component.json", COMPONENT)
    write_json(data_dir / "layouts" / "layout.json", LAYOUT)
    write_json(
        data_dir / "$metadata.json",
        {
            "tokenSetOrder": [
                "brand-theme/dive-theme",
                "color-modes/light-mode",
                "color-modes/dark-mode",
                "components/component",
                "layouts/layout",
            ]
        },
    )
    return data_dir


@pytest.fixture
def pipeline_config(token_data: Path, temp_dir: Path) -> PipelineConfig:
    """Explicit config over the token_data directory."""
    return PipelineConfig(
        theme="dive-theme",
        data_dir=token_data,
        output_dir=temp_dir / "css-vars",
        modes=["light-mode", "dark-mode"],
        layers=[
            {
                "name": "brand",
                "source": "brand-theme/dive-theme.json",
                "group": "theme",
                "emit": False,
            },
            {
                "name": "light",
                "source": "color-modes/light-mode.json",
                "mode": "light-mode",
                "group": "theme",
                "emit": False,
            },
            {
                "name": "dark",
                "source": "color-modes/dark-mode.json",
                "mode": "dark-mode",
                "group": "theme",
                "emit": False,
            },
            {"name": "component", "source": "components/component.json", "group": "component"},
            {"name": "layout", "source": "layouts/layout.json", "group": "layout"},
        ],
    )


@pytest.fixture
def inline_config(temp_dir: Path) -> Callable[..., PipelineConfig]:
    """Factory for configs whose layers carry inline token documents."""

    def make(
        layers: list[dict[str, Any]],
        modes: list[str] | None = None,
        **kwargs: Any,
    ) -> PipelineConfig:
        return PipelineConfig(
            data_dir=temp_dir,
            output_dir=kwargs.pop("output_dir", temp_dir / "out"),
            modes=modes or ["light"],
            layers=layers,
            **kwargs,
        )

    return make
