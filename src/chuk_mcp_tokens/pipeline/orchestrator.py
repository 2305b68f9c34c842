"""
Token pipeline - the central build orchestrator.

    Layer sources → Layers (store)
    → per-mode composed trees (cascade)
    → per-mode resolved trees (resolver)
    → identifiers (sanitizer) → CSS files (formatter)
    → output directory (writer)

Every stage runs in memory before anything is written. Any failure aborts
the run and leaves the output directory untouched, including a failure
part-way through writing. Dry-run keeps going past individual failures so
one pass reports all of them.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

from chuk_mcp_tokens.cascade.composer import CascadeComposer, ComposedTree, check_mode_coverage
from chuk_mcp_tokens.constants import ErrorMessages, PipelineStage
from chuk_mcp_tokens.errors import (
    BuildError,
    ConfigError,
    CyclicTokenReference,
    IdentifierCollision,
    ModeCoverageMismatch,
    OutputWriteError,
    TokenBuildFailed,
    UnresolvedTokenReference,
)
from chuk_mcp_tokens.formatter.css import CSSFormatter, OutputFile
from chuk_mcp_tokens.formatter.writer import OutputWriter
from chuk_mcp_tokens.models.config import BuildOptions, PipelineConfig
from chuk_mcp_tokens.models.report import BuildReport
from chuk_mcp_tokens.models.token import Layer, LiteralScalar, parse_path
from chuk_mcp_tokens.naming.sanitizer import find_collisions
from chuk_mcp_tokens.resolver.reference import ReferenceResolver, ResolutionCache, ResolvedTree
from chuk_mcp_tokens.store.loader import TokenStore

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "chuk_mcp_tokens"


@dataclass
class BuildResult:
    """Everything a successful run produced."""

    report: BuildReport
    resolved: dict[str, ResolvedTree] = field(default_factory=dict)
    files: list[OutputFile] = field(default_factory=list)


class TokenPipeline:
    """
    Runs token builds for one configuration.

    The pipeline holds no token data between runs except the resolution
    cache, which is keyed by tree fingerprint and therefore safe to reuse.
    """

    def __init__(self, config: PipelineConfig, cache: ResolutionCache | None = None):
        """
        Initialize the pipeline.

        Args:
            config: Explicit build configuration
            cache: Resolution memo to share across runs (created if omitted)
        """
        self.config = config
        self.cache = cache if cache is not None else ResolutionCache()
        self.store = TokenStore(config.data_dir)
        self.composer = CascadeComposer()
        self.resolver = ReferenceResolver(self.cache)
        self.formatter = CSSFormatter(config)
        self.stage = PipelineStage.IDLE
        self.last_report: BuildReport | None = None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def run(self, options: BuildOptions | None = None) -> BuildReport:
        """
        Run one build.

        Args:
            options: Per-run options (dry-run, verbose, mode filter, output dir)

        Returns:
            BuildReport for the run

        Raises:
            BuildError: On any failure; in dry-run, a TokenBuildFailed
                carrying every collected error and the report
        """
        return self.build(options).report

    def build(self, options: BuildOptions | None = None) -> BuildResult:
        """Run one build and return the resolved trees and files as well."""
        options = options or BuildOptions()
        with self._verbosity(options.verbose):
            return self._build(options)

    def resolve_token(self, dotted_path: str, mode: str) -> LiteralScalar:
        """
        Resolve a single token for one mode.

        Raises:
            BuildError: If the mode is unknown, a document is malformed, or
                the token cannot be resolved
        """
        self._check_modes([mode])
        layers = self.store.load(self.config.layers)
        tree = self.composer.compose(layers, mode)
        return self.resolver.resolve_path(tree, mode, parse_path(dotted_path))

    def describe_layers(self) -> list[dict[str, Any]]:
        """Cascade order with mode tags and groups, lowest priority first."""
        return [
            {
                "name": layer.name,
                "source": layer.identifier,
                "mode": layer.mode,
                "group": layer.group,
                "emit": layer.emit,
                "priority": index,
            }
            for index, layer in enumerate(self.config.layers)
        ]

    # ------------------------------------------------------------------
    # Build stages
    # ------------------------------------------------------------------

    def _build(self, options: BuildOptions) -> BuildResult:
        started = time.perf_counter()
        report = BuildReport(dry_run=options.dry_run)
        self.last_report = report
        collected: list[BuildError] | None = [] if options.dry_run else None

        try:
            modes = self._select_modes(options)

            self._enter(PipelineStage.LOADING, report)
            layers = self.store.load(self.config.layers, collected)
            if collected:
                # Malformed documents abort before composition, even in dry-run
                raise TokenBuildFailed(collected, report)
            self._log_layers(layers)

            self._enter(PipelineStage.COMPOSING, report)
            composed = self.composer.compose_all(layers, modes)
            self._check_coverage(composed, report, collected)

            self._enter(PipelineStage.RESOLVING, report)
            resolved = self._resolve(composed, report, collected)
            identifiers = self._identifiers(resolved, report, collected)

            if collected:
                raise TokenBuildFailed(collected, report)

            self._enter(PipelineStage.FORMATTING, report)
            files = self.formatter.format(resolved, identifiers)
            report.mode_counts = self.formatter.mode_counts(resolved)
            report.total_variables = sum(report.mode_counts.values())
            report.files_planned = [f.path for f in files]

            if not options.dry_run:
                self._enter(PipelineStage.WRITING, report)
                writer = OutputWriter(options.output_dir or self.config.output_dir)
                try:
                    written = writer.write(files)
                except OSError as e:
                    raise OutputWriteError(writer.output_dir, e) from e
                report.files_written = written.written
                report.files_unchanged = written.unchanged

            self._enter(PipelineStage.DONE, report)
        except BuildError as e:
            self.stage = PipelineStage.FAILED
            report.stage = PipelineStage.FAILED
            errors = e.errors if isinstance(e, TokenBuildFailed) else [e]
            report.errors = [str(error) for error in errors]
            self._count_failures(errors, report)
            raise
        finally:
            report.processing_time_ms = (time.perf_counter() - started) * 1000
            report.cache = self.cache.stats()

        for line in report.summary_lines():
            logger.info(line)
        if options.dry_run:
            logger.info("Dry run completed - no files were written")
        return BuildResult(report=report, resolved=resolved, files=files)

    def _select_modes(self, options: BuildOptions) -> list[str]:
        if not options.modes:
            return list(self.config.ordered_modes)
        self._check_modes(options.modes)
        return [m for m in self.config.ordered_modes if m in options.modes]

    def _check_modes(self, modes: list[str]) -> None:
        for mode in modes:
            if mode not in self.config.modes:
                raise ConfigError(
                    ErrorMessages.UNKNOWN_MODE.format(mode=mode, modes=", ".join(self.config.modes))
                )

    def _check_coverage(
        self,
        composed: dict[str, ComposedTree],
        report: BuildReport,
        collected: list[BuildError] | None,
    ) -> None:
        mismatches = check_mode_coverage(composed)
        report.coverage_mismatches = len(mismatches)
        if not mismatches:
            return
        if collected is None:
            raise mismatches[0]
        collected.extend(mismatches)

    def _resolve(
        self,
        composed: dict[str, ComposedTree],
        report: BuildReport,
        collected: list[BuildError] | None,
    ) -> dict[str, ResolvedTree]:
        resolved: dict[str, ResolvedTree] = {}
        for mode, tree in composed.items():
            errors_before = len(collected) if collected is not None else 0
            resolved[mode] = self.resolver.resolve(tree, mode, collected)
            failed = len(tree) - len(resolved[mode])
            report.unresolved_tokens += failed
            if failed:
                logger.warning(f"Mode {mode}: {failed} token(s) could not be resolved")
            if collected is not None:
                new_errors = collected[errors_before:]
                report.cycle_detections += sum(
                    isinstance(e, CyclicTokenReference) for e in new_errors
                )
            logger.info(f"Resolved mode {mode}: {len(resolved[mode])} tokens")
        return resolved

    def _identifiers(
        self,
        resolved: dict[str, ResolvedTree],
        report: BuildReport,
        collected: list[BuildError] | None,
    ) -> dict[tuple[str, ...], str]:
        """Identifiers for every emitted path; non-emitted tokens never reach CSS."""
        emitted = [
            path for paths in self.formatter.emitted_paths(resolved).values() for path in paths
        ]
        owners, collisions = find_collisions(emitted)
        report.collisions = len(collisions)
        if collisions:
            if collected is None:
                raise collisions[0]
            collected.extend(collisions)
        return {path: identifier for identifier, path in owners.items()}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enter(self, stage: PipelineStage, report: BuildReport) -> None:
        self.stage = stage
        report.stage = stage
        logger.info(f"Stage: {stage.value}")

    def _log_layers(self, layers: list[Layer]) -> None:
        for name, count in self.store.count_tokens(layers).items():
            logger.debug(f"  layer {name}: {count} tokens")

    @staticmethod
    def _count_failures(errors: list[BuildError], report: BuildReport) -> None:
        """Fill failure counters that the failing stage did not get to."""
        if not report.unresolved_tokens:
            report.unresolved_tokens = sum(
                isinstance(e, UnresolvedTokenReference | CyclicTokenReference) for e in errors
            )
        if not report.cycle_detections:
            report.cycle_detections = sum(isinstance(e, CyclicTokenReference) for e in errors)
        if not report.collisions:
            report.collisions = sum(isinstance(e, IdentifierCollision) for e in errors)
        if not report.coverage_mismatches:
            report.coverage_mismatches = sum(isinstance(e, ModeCoverageMismatch) for e in errors)

    @contextmanager
    def _verbosity(self, verbose: bool) -> Iterator[None]:
        """Raise package logging to DEBUG for the duration of a verbose run."""
        if not verbose:
            yield
            return
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        previous = package_logger.level
        package_logger.setLevel(logging.DEBUG)
        try:
            yield
        finally:
            package_logger.setLevel(previous)
