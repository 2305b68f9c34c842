#!/usr/bin/env python3
"""
Example: Compile the demo token set to CSS custom properties.

Usage:
    python examples/build_tokens.py
    # Creates: examples/output/css-vars/

Shows the whole pipeline:
1. tokens.yaml declares cascade order and modes
2. A dry run validates every layer, reference and identifier
3. The real build writes one file per group plus index files
4. A second build finds nothing to rewrite
"""

import logging
from pathlib import Path

from chuk_mcp_tokens.errors import BuildError
from chuk_mcp_tokens.models.config import BuildOptions, PipelineConfig
from chuk_mcp_tokens.pipeline import TokenPipeline


def main() -> None:
    """Build the demo tokens."""
    logging.basicConfig(level=logging.WARNING)
    examples_dir = Path(__file__).parent
    config = PipelineConfig.from_yaml(examples_dir / "tokens.yaml")

    print("CHUK Token Compiler")
    print("=" * 40)
    print(f"Theme: {config.theme}")
    print(f"Modes: {', '.join(config.ordered_modes)}")
    print("Layers:")
    for layer in config.layers:
        scope = layer.mode or "all modes"
        print(f"  {layer.name:<14} {scope:<14} group={layer.group} emit={layer.emit}")
    print()

    pipeline = TokenPipeline(config)

    try:
        dry = pipeline.run(BuildOptions(dry_run=True))
    except BuildError as e:
        print(f"Validation failed:\n{e}")
        return
    print(f"Dry run: {dry.total_variables} variables in {len(dry.files_planned)} files")

    value = pipeline.resolve_token("Button.Background", "hc-dark-mode")
    print(f"Button.Background in hc-dark-mode: {value}")
    print()

    report = pipeline.run()
    for line in report.summary_lines():
        print(line)
    print()

    component = config.output_dir / config.theme / "component.css"
    print(f"--- {component.relative_to(examples_dir)} ---")
    print(component.read_text())

    again = pipeline.run()
    print(f"Rebuild: {len(again.files_written)} written, {len(again.files_unchanged)} unchanged")
    print(f"Resolution cache: {again.cache}")


if __name__ == "__main__":
    main()
