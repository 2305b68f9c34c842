"""
Constants and enums for the token pipeline.

No magic strings - use enums and module constants for constrained values.
"""

import re
from enum import Enum


class TokenType(str, Enum):
    """
    Declared token types.

    Types are informational: they pick a value serializer, nothing else.
    """

    COLOR = "color"
    NUMBER = "number"
    DIMENSION = "dimension"
    FONT_FAMILY = "fontFamily"
    FONT_WEIGHT = "fontWeight"
    STRING = "string"
    BOOLEAN = "boolean"


class PipelineStage(str, Enum):
    """Orchestrator states, in the order a successful build visits them."""

    IDLE = "idle"
    LOADING = "loading"
    COMPOSING = "composing"
    RESOLVING = "resolving"
    FORMATTING = "formatting"
    WRITING = "writing"
    DONE = "done"
    FAILED = "failed"


# Tokens Studio type names folded onto the closed TokenType set
TOKEN_TYPE_ALIASES: dict[str, TokenType] = {
    "spacing": TokenType.DIMENSION,
    "sizing": TokenType.DIMENSION,
    "borderRadius": TokenType.DIMENSION,
    "borderWidth": TokenType.DIMENSION,
    "fontSizes": TokenType.DIMENSION,
    "lineHeights": TokenType.DIMENSION,
    "letterSpacing": TokenType.DIMENSION,
    "paragraphSpacing": TokenType.DIMENSION,
    "opacity": TokenType.NUMBER,
    "fontFamilies": TokenType.FONT_FAMILY,
    "fontWeights": TokenType.FONT_WEIGHT,
    "text": TokenType.STRING,
    "other": TokenType.STRING,
}

# Whole-value reference: "{Color.Base.default}"
REFERENCE_PATTERN = re.compile(r"^\{([^{}]+)\}$")

# Characters that would end a declaration or rule if written into a value
CSS_VALUE_DELIMITERS = re.compile(r"[;{}]")

# Characters allowed in a sanitized identifier segment
IDENTIFIER_INVALID_CHARS = re.compile(r"[^A-Za-z0-9_-]")
IDENTIFIER_PATTERN = re.compile(r"^--[A-Za-z0-9_-]+$")

CUSTOM_PROPERTY_SIGIL = "--"
PATH_SEPARATOR = "."

# Used when every segment of a path sanitizes to nothing
EMPTY_IDENTIFIER_FALLBACK = "_"

DEFAULT_CONFIG_FILE = "tokens.yaml"
METADATA_FILE = "$metadata.json"
INDEX_FILE = "index.css"

ROOT_SELECTOR = ":root"
MODE_ATTRIBUTE = "data-mode"

# Named font weights mapped to their numeric CSS equivalents
FONT_WEIGHT_MAP: dict[str, str] = {
    "thin": "100",
    "extra-light": "200",
    "light": "300",
    "normal": "400",
    "medium": "500",
    "semi-bold": "600",
    "bold": "700",
    "extra-bold": "800",
    "black": "900",
}

# Token-set folder prefixes in $metadata.json tokenSetOrder, mapped to output groups
METADATA_GROUPS: dict[str, str] = {
    "brand-theme/": "theme",
    "color-modes/": "theme",
    "components/": "component",
    "layouts/": "layout",
}


class ErrorMessages:
    """Standardized error messages."""

    MALFORMED_DOCUMENT = "Malformed token document '{source}'{location}: {reason}"
    UNRESOLVED_REFERENCE = (
        "Unresolved reference in mode '{mode}': '{referencing}' points to "
        "missing token '{missing}'"
    )
    CYCLIC_REFERENCE = "Circular reference in mode '{mode}': {cycle}"
    IDENTIFIER_COLLISION = (
        "Identifier collision: '{first}' and '{second}' both sanitize to '{identifier}'"
    )
    MODE_COVERAGE = "Token '{path}' is defined in mode(s) {present} but missing in {missing}"
    UNKNOWN_MODE = "Unknown mode '{mode}'. Configured modes: {modes}"
    OUTPUT_WRITE = "Could not write output to {output_dir}: {reason}"
