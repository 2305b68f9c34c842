"""
Pipeline configuration models.

Cascade order and mode membership are configured explicitly, never
inferred from token content. The configuration is a value passed into the
orchestrator; nothing here is global.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from chuk_mcp_tokens.constants import METADATA_FILE, METADATA_GROUPS
from chuk_mcp_tokens.errors import ConfigError


class LayerSource(BaseModel):
    """
    Where a layer comes from and where it sits in the cascade.

    Either `source` names a JSON document relative to the data directory,
    or `data` carries the parsed document inline.
    """

    name: str = Field(..., min_length=1, description="Layer name")
    source: str | None = Field(default=None, description="Document path relative to data_dir")
    data: dict[str, Any] | None = Field(default=None, description="Inline token document")
    mode: str | None = Field(default=None, description="Mode tag; None = all modes")
    group: str = Field(
        default="tokens",
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Output file group (file name stem)",
    )
    emit: bool = Field(default=True, description="Emit CSS for tokens this layer wins")
    optional: bool = Field(
        default=False,
        description="Skip silently when the source document does not exist",
    )

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def check_origin(self) -> LayerSource:
        """A layer needs a document path or inline data."""
        if self.source is None and self.data is None:
            raise ValueError(f"Layer '{self.name}' needs either 'source' or 'data'")
        return self

    @property
    def identifier(self) -> str:
        """Identifier used in diagnostics."""
        return self.source or f"<inline:{self.name}>"


class PipelineConfig(BaseModel):
    """Complete description of one token build."""

    theme: str = Field(
        default="theme",
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Output sub-directory",
    )
    data_dir: Path = Field(default=Path("."), description="Root of token documents")
    output_dir: Path = Field(default=Path("css-vars"), description="Root of CSS output")
    modes: list[str] = Field(..., min_length=1, description="Modes in emission order")
    default_mode: str | None = Field(
        default=None,
        description="Mode emitted under :root (defaults to the first mode)",
    )
    layers: list[LayerSource] = Field(..., min_length=1, description="Cascade order")
    index_imports: list[str] = Field(
        default_factory=list,
        description="Extra @import targets placed before the theme index",
    )
    minify: bool = Field(default=False, description="Compact CSS rule blocks")

    @field_validator("modes")
    @classmethod
    def validate_modes(cls, v: list[str]) -> list[str]:
        if any(not mode.strip() for mode in v):
            raise ValueError("Mode names must be non-empty")
        if len(set(v)) != len(v):
            raise ValueError(f"Duplicate mode names: {v}")
        return v

    @model_validator(mode="after")
    def check_references(self) -> PipelineConfig:
        """Cross-field checks: default mode and layer mode tags must exist."""
        if self.default_mode is None:
            self.default_mode = self.modes[0]
        elif self.default_mode not in self.modes:
            raise ValueError(f"default_mode '{self.default_mode}' is not one of {self.modes}")

        names = [layer.name for layer in self.layers]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Duplicate layer names: {duplicates}")

        for layer in self.layers:
            if layer.mode is not None and layer.mode not in self.modes:
                raise ValueError(f"Layer '{layer.name}' is tagged with unknown mode '{layer.mode}'")

        if "index" in self.groups:
            raise ValueError("Group name 'index' is reserved for the index file")
        return self

    @property
    def ordered_modes(self) -> list[str]:
        """Modes with the default mode first, then configured order."""
        return [self.default_mode] + [m for m in self.modes if m != self.default_mode]

    @property
    def groups(self) -> list[str]:
        """Output groups in cascade order of first appearance."""
        seen: list[str] = []
        for layer in self.layers:
            if layer.group not in seen:
                seen.append(layer.group)
        return seen

    def source_paths(self) -> list[Path]:
        """Absolute paths of every document-backed layer."""
        return [self.data_dir / layer.source for layer in self.layers if layer.source]

    @classmethod
    def from_dict(cls, data: dict[str, Any], base_dir: Path | None = None) -> PipelineConfig:
        """
        Build a config from a parsed mapping.

        Relative data_dir/output_dir are anchored at base_dir.

        Raises:
            ConfigError: If the mapping is not a valid configuration
        """
        try:
            config = cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid token pipeline config: {e}") from e

        if base_dir is not None:
            updates: dict[str, Path] = {}
            if not config.data_dir.is_absolute():
                updates["data_dir"] = base_dir / config.data_dir
            if not config.output_dir.is_absolute():
                updates["output_dir"] = base_dir / config.output_dir
            if updates:
                config = config.model_copy(update=updates)
        return config

    @classmethod
    def from_yaml(cls, path: Path) -> PipelineConfig:
        """
        Load a config from a YAML file.

        Args:
            path: Path to the YAML config

        Returns:
            Validated PipelineConfig
        """
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {path}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Config file is not valid YAML: {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping: {path}")
        return cls.from_dict(data, base_dir=path.parent)

    @classmethod
    def from_metadata(
        cls,
        data_dir: Path,
        output_dir: Path | None = None,
        theme: str | None = None,
    ) -> PipelineConfig:
        """
        Derive a config from a Tokens Studio $metadata.json.

        The tokenSetOrder list gives cascade order. Sets under
        color-modes/<mode> become mode-scoped layers; everything else is
        mode-independent. Brand-theme and color-mode sets feed resolution
        only; component and layout sets are emitted.

        Args:
            data_dir: Directory holding $metadata.json and the token sets
            output_dir: Output root (defaults to data_dir/../css-vars)
            theme: Theme directory name (defaults to the brand-theme set name)
        """
        metadata_path = data_dir / METADATA_FILE
        try:
            metadata = json.loads(metadata_path.read_text(encoding="utf-8"))
        except FileNotFoundError as e:
            raise ConfigError(f"{METADATA_FILE} not found in {data_dir}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"{METADATA_FILE} is not valid JSON: {e}") from e

        order = metadata.get("tokenSetOrder") if isinstance(metadata, dict) else None
        if not isinstance(order, list) or not order:
            raise ConfigError(f"{METADATA_FILE} has no tokenSetOrder")

        layers: list[dict[str, Any]] = []
        modes: list[str] = []
        theme_name = theme
        for token_set in order:
            prefix = next((p for p in METADATA_GROUPS if token_set.startswith(p)), None)
            layer: dict[str, Any] = {"name": token_set, "source": f"{token_set}.json"}
            if prefix == "color-modes/":
                mode = token_set.split("/", 1)[1]
                modes.append(mode)
                layer.update(mode=mode, group=METADATA_GROUPS[prefix], emit=False)
            elif prefix == "brand-theme/":
                theme_name = theme_name or token_set.split("/", 1)[1]
                layer.update(group=METADATA_GROUPS[prefix], emit=False)
            elif prefix is not None:
                layer.update(group=METADATA_GROUPS[prefix])
            else:
                layer.update(group=token_set.split("/", 1)[0])
            layers.append(layer)

        if not modes:
            raise ConfigError(f"{METADATA_FILE} lists no color-modes/ token sets")

        return cls.from_dict(
            {
                "theme": theme_name or "theme",
                "data_dir": data_dir,
                "output_dir": output_dir or data_dir.parent / "css-vars",
                "modes": modes,
                "layers": layers,
            }
        )


class BuildOptions(BaseModel):
    """Per-invocation options layered on top of a PipelineConfig."""

    dry_run: bool = Field(default=False, description="Resolve and report, write nothing")
    verbose: bool = Field(default=False, description="Per-token diagnostic logging")
    watch: bool = Field(default=False, description="Rebuild on source changes")
    modes: list[str] | None = Field(default=None, description="Subset of modes to build")
    output_dir: Path | None = Field(default=None, description="Output root override")

    model_config = {"frozen": True}
