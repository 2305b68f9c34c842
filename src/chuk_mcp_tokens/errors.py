"""
Build errors.

Every failure the pipeline can report is a BuildError. None of them are
recoverable for the current build: the orchestrator aborts and writes
nothing. Dry-run collects them instead and raises TokenBuildFailed once.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from chuk_mcp_tokens.constants import PATH_SEPARATOR, ErrorMessages

if TYPE_CHECKING:
    from chuk_mcp_tokens.models.report import BuildReport


def format_path(path: Sequence[str]) -> str:
    """Dotted form of a token path, as used in reference expressions."""
    return PATH_SEPARATOR.join(path)


class BuildError(Exception):
    """Base class for all pipeline failures."""


class ConfigError(BuildError):
    """The pipeline configuration is invalid."""


class MalformedTokenDocument(BuildError):
    """A source document cannot be parsed into the token structure."""

    def __init__(self, source: str, reason: str, location: str | None = None):
        self.source = source
        self.reason = reason
        self.location = location
        where = f" at {location}" if location else ""
        super().__init__(
            ErrorMessages.MALFORMED_DOCUMENT.format(source=source, location=where, reason=reason)
        )


class UnresolvedTokenReference(BuildError):
    """A reference points to a path absent from the mode's merged tree."""

    def __init__(
        self,
        mode: str,
        referencing: tuple[str, ...],
        missing: tuple[str, ...],
        chain: Sequence[tuple[str, ...]] = (),
    ):
        self.mode = mode
        self.referencing = referencing
        self.missing = missing
        self.chain = tuple(chain) or (referencing, missing)
        message = ErrorMessages.UNRESOLVED_REFERENCE.format(
            mode=mode,
            referencing=format_path(referencing),
            missing=format_path(missing),
        )
        if len(self.chain) > 2:
            message += f" (chain: {' -> '.join(format_path(p) for p in self.chain)})"
        super().__init__(message)


class CyclicTokenReference(BuildError):
    """A reference chain loops back on itself."""

    def __init__(self, mode: str, cycle: Sequence[tuple[str, ...]]):
        self.mode = mode
        self.cycle = tuple(cycle)
        super().__init__(
            ErrorMessages.CYCLIC_REFERENCE.format(
                mode=mode,
                cycle=" -> ".join(format_path(p) for p in self.cycle),
            )
        )


class IdentifierCollision(BuildError):
    """Two distinct token paths sanitize to the same CSS identifier."""

    def __init__(self, identifier: str, first: tuple[str, ...], second: tuple[str, ...]):
        self.identifier = identifier
        self.first = first
        self.second = second
        super().__init__(
            ErrorMessages.IDENTIFIER_COLLISION.format(
                first=format_path(first),
                second=format_path(second),
                identifier=identifier,
            )
        )


class ModeCoverageMismatch(BuildError):
    """A path resolved in one mode is absent from another mode's tree."""

    def __init__(self, path: tuple[str, ...], present_in: Sequence[str], missing_in: Sequence[str]):
        self.path = path
        self.present_in = tuple(present_in)
        self.missing_in = tuple(missing_in)
        super().__init__(
            ErrorMessages.MODE_COVERAGE.format(
                path=format_path(path),
                present=", ".join(self.present_in),
                missing=", ".join(self.missing_in),
            )
        )


class TokenBuildFailed(BuildError):
    """Aggregate of every error collected during a dry-run."""

    def __init__(self, errors: Sequence[BuildError], report: BuildReport | None = None):
        self.errors = list(errors)
        self.report = report
        lines = [f"Token build failed with {len(self.errors)} error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        super().__init__("\n".join(lines))


class OutputWriteError(BuildError):
    """Generated files could not be written to the output directory."""

    def __init__(self, output_dir: Path, reason: OSError):
        self.output_dir = output_dir
        self.reason = reason
        super().__init__(ErrorMessages.OUTPUT_WRITE.format(output_dir=output_dir, reason=reason))
