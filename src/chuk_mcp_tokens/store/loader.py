"""
Token store - loads token documents into layers.

Documents are nested JSON objects. Leaves carry a value (`value` or
`$value`) and optionally a type (`type` or `$type`); `$type` on a group is
inherited by its descendants. Values CSS cannot carry (NaN, Infinity, or
strings containing ; { or }) are rejected here. This stage does not resolve
references or check anything across layers.
"""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from chuk_mcp_tokens.constants import CSS_VALUE_DELIMITERS, TOKEN_TYPE_ALIASES, TokenType
from chuk_mcp_tokens.errors import BuildError, ConfigError, MalformedTokenDocument, format_path
from chuk_mcp_tokens.models.config import LayerSource
from chuk_mcp_tokens.models.token import (
    Layer,
    LiteralValue,
    ReferenceValue,
    Token,
    TokenPath,
    parse_token_value,
)

logger = logging.getLogger(__name__)

VALUE_KEYS = ("$value", "value")
TYPE_KEYS = ("$type", "type")
DESCRIPTION_KEYS = ("$description", "description")


class _DuplicateKey(ValueError):
    """Raised from the JSON object hook when a key repeats in one object."""


def _reject_duplicates(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise _DuplicateKey(key)
        result[key] = value
    return result


def _first_key(data: dict[str, Any], keys: tuple[str, ...]) -> str | None:
    return next((k for k in keys if k in data), None)


def is_token_node(node: Any) -> bool:
    """A node is a token if it carries $value, or a non-object `value`."""
    if not isinstance(node, dict):
        return False
    if "$value" in node:
        return True
    return "value" in node and not isinstance(node["value"], dict)


class TokenStore:
    """
    Parses layer sources into Layers.

    Document-backed sources are read relative to `data_dir`. Parsed
    documents are cached by absolute path and modification time, so watch
    mode only re-parses files that changed.
    """

    def __init__(self, data_dir: Path | None = None):
        """
        Initialize the store.

        Args:
            data_dir: Directory that layer `source` paths are relative to
        """
        self.data_dir = data_dir or Path.cwd()
        self._cache: dict[Path, tuple[float, Any]] = {}

    def load(
        self,
        sources: list[LayerSource],
        errors: list[BuildError] | None = None,
    ) -> list[Layer]:
        """
        Load every source, preserving cascade order.

        Args:
            sources: Layer sources in cascade order
            errors: When given, malformed documents are appended here and
                loading continues; otherwise the first one is raised

        Returns:
            Layers in the same order as sources

        Raises:
            MalformedTokenDocument: If a document cannot be parsed and
                no error list was supplied
        """
        layers: list[Layer] = []
        for source in sources:
            try:
                layer = self.load_layer(source)
            except MalformedTokenDocument as e:
                if errors is None:
                    raise
                errors.append(e)
                continue
            if layer is not None:
                layers.append(layer)
        return layers

    def load_layer(self, source: LayerSource) -> Layer | None:
        """
        Load a single layer.

        Returns:
            The layer, or None for an optional source whose file is absent
        """
        if source.data is not None:
            document: Any = source.data
        elif source.source is not None:
            path = self.data_dir / source.source
            if not path.exists():
                if source.optional:
                    logger.info(f"Skipping optional layer {source.name}: {path} not found")
                    return None
                raise MalformedTokenDocument(source.identifier, "document not found")
            document = self._read_document(path, source.identifier)
        else:
            raise ConfigError(f"Layer '{source.name}' has neither a source nor inline data")

        tokens = self.parse_document(document, source.name, source.identifier)
        logger.info(f"Loaded layer {source.name}: {len(tokens)} tokens")
        return Layer(
            name=source.name,
            tokens=tuple(tokens),
            mode=source.mode,
            group=source.group,
            emit=source.emit,
            source=source.identifier,
        )

    def _read_document(self, path: Path, identifier: str) -> Any:
        """Read and parse a JSON document, using the mtime cache."""
        try:
            mtime = path.stat().st_mtime
        except OSError as e:
            raise MalformedTokenDocument(identifier, f"cannot stat file: {e}") from e

        cached = self._cache.get(path)
        if cached is not None and cached[0] == mtime:
            return cached[1]

        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise MalformedTokenDocument(identifier, f"cannot read file: {e}") from e

        try:
            document = json.loads(text, object_pairs_hook=_reject_duplicates)
        except json.JSONDecodeError as e:
            raise MalformedTokenDocument(
                identifier, e.msg, location=f"line {e.lineno}, column {e.colno}"
            ) from e
        except _DuplicateKey as e:
            raise MalformedTokenDocument(identifier, f"duplicate key '{e}'") from e

        self._cache[path] = (mtime, document)
        return document

    def parse_document(self, document: Any, layer_name: str, identifier: str) -> list[Token]:
        """
        Flatten a nested token document into tokens.

        Args:
            document: Parsed JSON document
            layer_name: Layer tag stamped on every token
            identifier: Source identifier for error messages

        Returns:
            Tokens in document order
        """
        if not isinstance(document, dict):
            raise MalformedTokenDocument(identifier, "document root must be an object")

        tokens: list[Token] = []
        self._walk(document, (), None, layer_name, identifier, tokens)
        return tokens

    def _walk(
        self,
        node: dict[str, Any],
        path: TokenPath,
        inherited_type: TokenType | None,
        layer_name: str,
        identifier: str,
        out: list[Token],
    ) -> None:
        """Depth-first walk collecting tokens."""
        group_type = inherited_type
        if "$type" in node:
            group_type = self._parse_type(node["$type"], path, identifier)

        for key, child in node.items():
            if key.startswith("$"):
                continue
            child_path = (*path, key)
            if not key.strip():
                raise MalformedTokenDocument(
                    identifier, "empty key", location=format_path(child_path) or "<root>"
                )
            if is_token_node(child):
                out.append(self._parse_token(child, child_path, group_type, layer_name, identifier))
            elif isinstance(child, dict):
                self._walk(child, child_path, group_type, layer_name, identifier, out)
            else:
                raise MalformedTokenDocument(
                    identifier,
                    f"expected a token or group object, got {type(child).__name__}",
                    location=format_path(child_path),
                )

    def _parse_token(
        self,
        node: dict[str, Any],
        path: TokenPath,
        inherited_type: TokenType | None,
        layer_name: str,
        identifier: str,
    ) -> Token:
        """Build a Token from a leaf node."""
        location = format_path(path)
        raw = node[_first_key(node, VALUE_KEYS)]  # type: ignore[index]
        if raw is None or isinstance(raw, dict | list):
            raise MalformedTokenDocument(
                identifier,
                f"token value must be a string, number or boolean, got {type(raw).__name__}",
                location=location,
            )

        if isinstance(raw, float) and not math.isfinite(raw):
            raise MalformedTokenDocument(
                identifier, f"token value must be a finite number, got {raw}", location=location
            )

        value = parse_token_value(raw)
        literal = value.value if isinstance(value, LiteralValue) else None
        if isinstance(literal, str) and CSS_VALUE_DELIMITERS.search(literal):
            raise MalformedTokenDocument(
                identifier,
                f"literal value {literal!r} contains a CSS delimiter (; {{ or }})",
                location=location,
            )

        type_key = _first_key(node, TYPE_KEYS)
        if type_key is not None:
            token_type = self._parse_type(node[type_key], path, identifier)
        elif inherited_type is not None:
            token_type = inherited_type
        else:
            token_type = self._infer_type(value)

        description_key = _first_key(node, DESCRIPTION_KEYS)
        description = node.get(description_key) if description_key else None

        return Token(
            path=path,
            type=token_type,
            value=value,
            source_layer=layer_name,
            description=description if isinstance(description, str) else None,
        )

    @staticmethod
    def _parse_type(raw: Any, path: TokenPath, identifier: str) -> TokenType:
        """Map a declared type string onto TokenType."""
        if isinstance(raw, str):
            if raw in TOKEN_TYPE_ALIASES:
                return TOKEN_TYPE_ALIASES[raw]
            try:
                return TokenType(raw)
            except ValueError:
                pass
        raise MalformedTokenDocument(
            identifier,
            f"unknown token type {raw!r}",
            location=format_path(path) or "<root>",
        )

    @staticmethod
    def _infer_type(value: LiteralValue | ReferenceValue) -> TokenType | None:
        """
        Type for tokens that declare none, directly or via a group.

        Untyped references stay None and take their target's type.
        """
        if isinstance(value, ReferenceValue):
            return None
        raw = value.value
        if isinstance(raw, bool):
            return TokenType.BOOLEAN
        if isinstance(raw, int | float):
            return TokenType.NUMBER
        return TokenType.STRING

    def count_tokens(self, layers: list[Layer]) -> dict[str, int]:
        """Token count per layer, for diagnostics."""
        return {layer.name: layer.token_count for layer in layers}

    def clear_cache(self) -> None:
        """Drop cached documents."""
        self._cache.clear()
