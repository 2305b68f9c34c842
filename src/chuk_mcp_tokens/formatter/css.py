"""
CSS formatter - renders resolved trees as mode-scoped custom properties.

Output layout, for theme T:
    T/<group>.css   one rule block per mode (default mode under :root,
                    others under [data-mode="<mode>"])
    T/index.css     @imports the group files in cascade order
    index.css       @imports extra entries, then T/index.css

Output is deterministic: no timestamps, declarations in cascade order,
blocks in configured mode order.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from chuk_mcp_tokens.constants import (
    FONT_WEIGHT_MAP,
    INDEX_FILE,
    MODE_ATTRIBUTE,
    ROOT_SELECTOR,
    TokenType,
)
from chuk_mcp_tokens.models.config import PipelineConfig
from chuk_mcp_tokens.models.token import LiteralScalar, TokenPath
from chuk_mcp_tokens.resolver.reference import ResolvedTree


@dataclass(frozen=True)
class OutputFile:
    """A file the formatter produced, relative to the output root."""

    path: str
    content: str
    kind: str = "group"  # "group" or "index"


class CSSFormatter:
    """
    Formats resolved token trees into CSS files.

    Which file a path lands in, and whether it is emitted at all, is decided
    by the layer that wins the path in the default mode, so every mode
    block of a file declares the same set of properties.
    """

    def __init__(self, config: PipelineConfig):
        """
        Initialize the formatter.

        Args:
            config: Pipeline config (theme, modes, layer groups, minify)
        """
        self.config = config
        self._layer_group = {layer.name: layer.group for layer in config.layers}
        self._layer_emit = {layer.name: layer.emit for layer in config.layers}

    # ------------------------------------------------------------------
    # Values
    # ------------------------------------------------------------------

    @staticmethod
    def format_value(value: LiteralScalar, token_type: TokenType) -> str:
        """
        Serialize a literal for a declaration.

        Numbers stay unitless; consumers apply units with calc().
        """
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, int):
            return str(value)
        if isinstance(value, float):
            return str(int(value)) if value.is_integer() else repr(value)

        text = " ".join(value.split())
        if token_type == TokenType.FONT_FAMILY:
            if " " in text and "," not in text and not text.startswith(("'", '"')):
                return f'"{text}"'
        elif token_type == TokenType.FONT_WEIGHT:
            return FONT_WEIGHT_MAP.get(text.lower(), text)
        return text

    # ------------------------------------------------------------------
    # Rules and headers
    # ------------------------------------------------------------------

    def mode_selector(self, mode: str) -> str:
        """Selector for a mode's rule block."""
        if mode == self.config.default_mode:
            return ROOT_SELECTOR
        return f'[{MODE_ATTRIBUTE}="{mode}"]'

    def css_rule(self, selector: str, declarations: Sequence[tuple[str, str]]) -> str:
        """Render one rule block."""
        if self.config.minify:
            body = "".join(f"{name}:{value};" for name, value in declarations)
            return f"{selector}{{{body}}}"
        lines = [f"{selector} {{"]
        lines.extend(f"  {name}: {value};" for name, value in declarations)
        lines.append("}")
        return "\n".join(lines)

    @staticmethod
    def file_header(
        file_name: str,
        description: str | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> str:
        """Comment header for a generated file."""
        lines = [f"/* {file_name} */"]
        if description:
            lines.append(f"/* {description} */")
        if metadata:
            lines.append("/*")
            lines.extend(f" * {key}: {value}" for key, value in metadata.items())
            lines.append(" */")
        return "\n".join(lines) + "\n\n"

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    def emitted_paths(
        self, resolved_trees: Mapping[str, ResolvedTree]
    ) -> dict[str, list[TokenPath]]:
        """
        Group emitted paths by output group, in cascade order.

        Placement is taken from the default mode's winning layers.
        """
        reference = resolved_trees.get(self.config.default_mode) or next(
            iter(resolved_trees.values()), {}
        )
        grouped: dict[str, list[TokenPath]] = {group: [] for group in self.config.groups}
        for path, token in reference.items():
            if not self._layer_emit.get(token.source_layer, True):
                continue
            group = self._layer_group.get(token.source_layer, "tokens")
            grouped.setdefault(group, []).append(path)
        return {group: paths for group, paths in grouped.items() if paths}

    def mode_counts(self, resolved_trees: Mapping[str, ResolvedTree]) -> dict[str, int]:
        """Declarations emitted per mode."""
        grouped = self.emitted_paths(resolved_trees)
        total = sum(len(paths) for paths in grouped.values())
        return {mode: total for mode in self._modes_in_order(resolved_trees)}

    def format(
        self,
        resolved_trees: Mapping[str, ResolvedTree],
        identifiers: Mapping[TokenPath, str],
    ) -> list[OutputFile]:
        """
        Render every output file.

        Args:
            resolved_trees: mode -> resolved tree (identical path coverage)
            identifiers: path -> sanitized, collision-checked identifier

        Returns:
            Group files in cascade order, then the two index files
        """
        theme = self.config.theme
        modes = self._modes_in_order(resolved_trees)
        files: list[OutputFile] = []

        for group, paths in self.emitted_paths(resolved_trees).items():
            blocks = []
            for mode in modes:
                tree = resolved_trees[mode]
                declarations = [
                    (identifiers[path], self.format_value(tree[path].value, tree[path].type))
                    for path in paths
                ]
                blocks.append(self.css_rule(self.mode_selector(mode), declarations))

            file_name = f"{group}.css"
            header = self.file_header(
                file_name,
                f"{group.capitalize()} tokens for all modes",
                {
                    "theme": theme,
                    "modes": ", ".join(modes),
                    "group": group,
                    "variables": len(paths) * len(modes),
                },
            )
            files.append(OutputFile(f"{theme}/{file_name}", header + "\n\n".join(blocks) + "\n"))

        files.extend(self.index_files([f.path.rsplit("/", 1)[1] for f in files]))
        return files

    def index_files(self, group_files: Sequence[str]) -> list[OutputFile]:
        """Theme index and root index, importing in cascade order."""
        theme = self.config.theme
        theme_index = self.file_header(f"{theme}/{INDEX_FILE}", "Auto-generated theme imports")
        theme_index += "".join(f"@import './{name}';\n" for name in group_files)

        root_index = self.file_header(INDEX_FILE, "Auto-generated design tokens")
        root_index += "".join(f"@import '{target}';\n" for target in self.config.index_imports)
        root_index += f"@import './{theme}/{INDEX_FILE}';\n"

        return [
            OutputFile(f"{theme}/{INDEX_FILE}", theme_index, kind="index"),
            OutputFile(INDEX_FILE, root_index, kind="index"),
        ]

    def _modes_in_order(self, resolved_trees: Mapping[str, ResolvedTree]) -> list[str]:
        return [mode for mode in self.config.ordered_modes if mode in resolved_trees]
