"""
Token models - the parsed form of token documents.

A raw token value is either a literal or a whole-value reference to another
token. The distinction is made once, at parse time, so the resolver never
re-parses strings during traversal.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

from chuk_mcp_tokens.constants import PATH_SEPARATOR, REFERENCE_PATTERN, TokenType

TokenPath = tuple[str, ...]
LiteralScalar = bool | int | float | str


class LiteralValue(BaseModel):
    """A concrete value."""

    kind: Literal["literal"] = "literal"
    value: LiteralScalar

    model_config = {"frozen": True}


class ReferenceValue(BaseModel):
    """A reference to another token's path, written as {A.B.C}."""

    kind: Literal["reference"] = "reference"
    path: TokenPath

    model_config = {"frozen": True}

    @property
    def expression(self) -> str:
        return "{" + PATH_SEPARATOR.join(self.path) + "}"


TokenValue = Annotated[LiteralValue | ReferenceValue, Field(discriminator="kind")]


def parse_token_value(raw: LiteralScalar) -> LiteralValue | ReferenceValue:
    """
    Classify a raw document value.

    Only a string that is entirely one {Dotted.Path} expression is a
    reference. Anything else, including strings that merely embed braces,
    is a literal.

    Args:
        raw: Value as read from the document

    Returns:
        LiteralValue or ReferenceValue
    """
    if isinstance(raw, str):
        match = REFERENCE_PATTERN.match(raw.strip())
        if match:
            segments = tuple(s.strip() for s in match.group(1).split(PATH_SEPARATOR))
            if all(segments):
                return ReferenceValue(path=segments)
    return LiteralValue(value=raw)


def parse_path(dotted: str) -> TokenPath:
    """Split a dotted path ("Color.Base.default") into segments."""
    return tuple(s.strip() for s in dotted.split(PATH_SEPARATOR))


class Token(BaseModel):
    """A single named design value as defined by one layer."""

    path: TokenPath = Field(..., description="Hierarchical path segments")
    type: TokenType | None = Field(
        default=None,
        description="Declared type; None for untyped references (takes the target's type)",
    )
    value: TokenValue = Field(..., description="Literal or reference")
    source_layer: str = Field(..., description="Layer that defined this token")
    description: str | None = Field(default=None)

    model_config = {"frozen": True}

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: TokenPath) -> TokenPath:
        """Paths need at least one segment and no empty segments."""
        if not v or any(not segment for segment in v):
            raise ValueError(f"Invalid token path: {v!r}")
        return v

    @property
    def dotted_path(self) -> str:
        return PATH_SEPARATOR.join(self.path)

    @property
    def is_reference(self) -> bool:
        return isinstance(self.value, ReferenceValue)

    def fingerprint_dict(self) -> dict[str, Any]:
        """Canonical, JSON-serializable form used for cache fingerprints."""
        if isinstance(self.value, ReferenceValue):
            raw: Any = {"ref": list(self.value.path)}
        else:
            raw = {"lit": self.value.value, "py": type(self.value.value).__name__}
        token_type = self.type.value if self.type else None
        return {"path": list(self.path), "type": token_type, "value": raw}


class Layer(BaseModel):
    """
    An ordered, named collection of tokens with a fixed cascade position.

    Layers with mode=None apply to every mode; others only to their mode.
    """

    name: str
    tokens: tuple[Token, ...] = ()
    mode: str | None = Field(default=None, description="Mode tag, None if mode-independent")
    group: str = Field(default="tokens", description="Output file group")
    emit: bool = Field(default=True, description="Emit CSS for tokens won by this layer")
    source: str | None = Field(default=None, description="Document the layer came from")

    model_config = {"frozen": True}

    def applies_to(self, mode: str) -> bool:
        """Check if this layer takes part in a mode's cascade."""
        return self.mode is None or self.mode == mode

    @property
    def token_count(self) -> int:
        return len(self.tokens)


@dataclass(frozen=True)
class ResolvedToken:
    """A token whose value has been reduced to a literal."""

    path: TokenPath
    type: TokenType
    value: LiteralScalar
    source_layer: str

    @property
    def dotted_path(self) -> str:
        return PATH_SEPARATOR.join(self.path)
