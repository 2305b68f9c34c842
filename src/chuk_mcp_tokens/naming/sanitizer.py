"""
Identifier sanitizer - token paths to CSS custom-property names.

Segments may contain spaces and punctuation ("Subtle Background"); raw
segment text must never reach CSS syntax.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from chuk_mcp_tokens.constants import (
    CUSTOM_PROPERTY_SIGIL,
    EMPTY_IDENTIFIER_FALLBACK,
    IDENTIFIER_INVALID_CHARS,
)
from chuk_mcp_tokens.errors import IdentifierCollision
from chuk_mcp_tokens.models.token import TokenPath

_WHITESPACE = re.compile(r"\s+")
_HYPHEN_RUNS = re.compile(r"-{2,}")


def sanitize_segment(segment: str) -> str:
    """
    Reduce one path segment to [A-Za-z0-9_-].

    Whitespace runs and invalid characters become hyphens, hyphen runs
    collapse, and leading/trailing hyphens are stripped. May return "".
    """
    text = _WHITESPACE.sub("-", segment)
    text = IDENTIFIER_INVALID_CHARS.sub("-", text)
    text = _HYPHEN_RUNS.sub("-", text)
    return text.strip("-")


def to_identifier(path: Sequence[str]) -> str:
    """
    Convert a token path to a custom-property identifier.

    Never raises. Segments that sanitize to nothing are dropped so the
    result has no doubled separators; a path with nothing left maps to a
    fixed placeholder, keeping the result a valid identifier.

    Example:
        ("Color", "Base", "Subtle Background", "default")
        -> "--Color-Base-Subtle-Background-default"
    """
    parts = [sanitize_segment(str(segment)) for segment in path]
    body = "-".join(part for part in parts if part)
    return CUSTOM_PROPERTY_SIGIL + (body or EMPTY_IDENTIFIER_FALLBACK)


def find_collisions(
    paths: Iterable[TokenPath],
) -> tuple[dict[str, TokenPath], list[IdentifierCollision]]:
    """
    Sanitize every path and report identifiers claimed twice.

    Args:
        paths: Distinct token paths, in emission order

    Returns:
        (identifier -> first path that claimed it, collisions)
    """
    owners: dict[str, TokenPath] = {}
    collisions: list[IdentifierCollision] = []
    for path in paths:
        identifier = to_identifier(path)
        owner = owners.get(identifier)
        if owner is None:
            owners[identifier] = path
        elif owner != path:
            collisions.append(IdentifierCollision(identifier, owner, path))
    return owners, collisions


def check_collisions(paths: Iterable[TokenPath]) -> dict[TokenPath, str]:
    """
    Map paths to identifiers, failing on the first collision.

    Raises:
        IdentifierCollision: If two distinct paths share an identifier
    """
    owners, collisions = find_collisions(paths)
    if collisions:
        raise collisions[0]
    return {path: identifier for identifier, path in owners.items()}
