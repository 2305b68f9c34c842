#!/usr/bin/env python3
"""
Async Token MCP Server using chuk-mcp-server

This server exposes the design-token pipeline to build agents. It compiles
layered token documents into mode-scoped CSS custom properties.

The server provides tools for:
- Building CSS output (optionally for a subset of modes)
- Validating layers, references, and identifiers without writing
- Resolving single tokens per mode
- Inspecting the configured modes and cascade order

Configuration is read from $TOKENS_CONFIG, else tokens.yaml in the working
directory, else $TOKENS_DATA_DIR through its $metadata.json.
"""

import logging
import os
from pathlib import Path

from chuk_mcp_server import ChukMCPServer

from chuk_mcp_tokens.cli import load_config
from chuk_mcp_tokens.pipeline import TokenPipeline
from chuk_mcp_tokens.tools import register_token_tools

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create the MCP server instance
mcp = ChukMCPServer("chuk-mcp-tokens")

CONFIG_PATH = Path(os.environ["TOKENS_CONFIG"]) if "TOKENS_CONFIG" in os.environ else None
DATA_DIR = Path(os.environ["TOKENS_DATA_DIR"]) if "TOKENS_DATA_DIR" in os.environ else None

config = load_config(CONFIG_PATH, DATA_DIR)
pipeline = TokenPipeline(config)

# Register all tools
token_tools = register_token_tools(mcp, pipeline)

# Export tool functions for direct access
tokens_build = token_tools["tokens_build"]
tokens_validate = token_tools["tokens_validate"]
tokens_resolve = token_tools["tokens_resolve"]
tokens_list_modes = token_tools["tokens_list_modes"]
tokens_list_layers = token_tools["tokens_list_layers"]

logger.info("CHUK Tokens MCP Server initialized")
logger.info(f"  Data dir: {config.data_dir}")
logger.info(f"  Output dir: {config.output_dir}")
logger.info(f"  Modes: {', '.join(config.ordered_modes)}")
