#!/usr/bin/env python3
"""
Command-line entry point for the token pipeline.

    chuk-mcp-tokens --config tokens.yaml
    chuk-mcp-tokens --data-dir tokens/data --mode light-mode --dry-run
    chuk-mcp-tokens --watch
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from chuk_mcp_tokens.constants import DEFAULT_CONFIG_FILE
from chuk_mcp_tokens.errors import BuildError, ConfigError, TokenBuildFailed
from chuk_mcp_tokens.models.config import BuildOptions, PipelineConfig
from chuk_mcp_tokens.pipeline import TokenPipeline, TokenWatcher

logger = logging.getLogger(__name__)


def load_config(config_path: Path | None = None, data_dir: Path | None = None) -> PipelineConfig:
    """
    Locate the pipeline configuration.

    An explicit config file wins; otherwise a data directory is read through
    its $metadata.json; otherwise tokens.yaml in the working directory.

    Raises:
        ConfigError: If no usable configuration is found
    """
    if config_path is not None:
        return PipelineConfig.from_yaml(config_path)
    if data_dir is not None:
        return PipelineConfig.from_metadata(data_dir)

    default = Path.cwd() / DEFAULT_CONFIG_FILE
    if default.exists():
        return PipelineConfig.from_yaml(default)
    raise ConfigError(f"No {DEFAULT_CONFIG_FILE} found; pass --config or --data-dir")


def config_source_file(config_path: Path | None, data_dir: Path | None) -> Path | None:
    """The YAML file load_config reads for these arguments, if any."""
    if config_path is not None:
        return config_path
    if data_dir is not None:
        return None
    return Path.cwd() / DEFAULT_CONFIG_FILE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chuk-mcp-tokens",
        description="Compile layered design tokens into CSS custom properties",
    )
    parser.add_argument("--config", type=Path, help=f"YAML config (default: {DEFAULT_CONFIG_FILE})")
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Token data directory with $metadata.json (used when no config is given)",
    )
    parser.add_argument("--output-dir", type=Path, help="Override the output directory")
    parser.add_argument(
        "--mode",
        action="append",
        dest="modes",
        metavar="NAME",
        help="Build only this mode (repeatable)",
    )
    parser.add_argument("--dry-run", action="store_true", help="Resolve and report, write nothing")
    parser.add_argument("--verbose", action="store_true", help="Per-token diagnostic logging")
    parser.add_argument("--watch", action="store_true", help="Rebuild on source changes")
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=0.5,
        help="Watch poll interval in seconds (default: 0.5)",
    )
    parser.add_argument("--json", action="store_true", help="Print the build report as JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI. Returns the process exit status."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    options = BuildOptions(
        dry_run=args.dry_run,
        verbose=args.verbose,
        watch=args.watch,
        modes=args.modes,
        output_dir=args.output_dir,
    )

    pipeline: TokenPipeline | None = None
    try:
        config = load_config(args.config, args.data_dir)
        pipeline = TokenPipeline(config)

        if options.watch:
            watcher = TokenWatcher(
                pipeline,
                options,
                poll_interval=args.poll_interval,
                config_file=config_source_file(args.config, args.data_dir),
                reload_config=lambda: load_config(args.config, args.data_dir),
            )
            watcher.run_forever()
            return 0

        report = pipeline.run(options)
    except BuildError as e:
        errors = e.errors if isinstance(e, TokenBuildFailed) else [e]
        for error in errors:
            logger.error(str(error))
        if args.json:
            report = pipeline.last_report if pipeline is not None else None
            print(
                json.dumps(
                    {
                        "status": "error",
                        "errors": [str(error) for error in errors],
                        "report": report.to_dict() if report is not None else None,
                    },
                    indent=2,
                )
            )
        return 1

    if args.json:
        print(json.dumps({"status": "success", "report": report.to_dict()}, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
