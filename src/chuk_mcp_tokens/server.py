#!/usr/bin/env python3
"""
Entry point for the CHUK Tokens MCP Server.

    chuk-mcp-tokens-server --config tokens.yaml
    chuk-mcp-tokens-server --data-dir tokens/data --transport http --port 8010
"""

import argparse
import asyncio
import logging
import os

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def main() -> None:
    """Parse arguments, point the server at its token config, and run it."""
    parser = argparse.ArgumentParser(description="CHUK Tokens MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "http"],
        default="stdio",
        help="Transport mode (default: stdio)",
    )
    parser.add_argument("--port", type=int, default=8000, help="HTTP port (http transport only)")
    parser.add_argument("--config", help="Token pipeline YAML config (sets TOKENS_CONFIG)")
    parser.add_argument(
        "--data-dir",
        help="Token data directory with $metadata.json (sets TOKENS_DATA_DIR)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)
    if args.config:
        os.environ["TOKENS_CONFIG"] = args.config
    if args.data_dir:
        os.environ["TOKENS_DATA_DIR"] = args.data_dir

    # The server module loads its config at import time
    from chuk_mcp_tokens.async_server import mcp

    if args.transport == "stdio":
        logger.info("Starting CHUK Tokens MCP Server (stdio)")
        asyncio.run(mcp.run_stdio())
    else:
        logger.info(f"Starting CHUK Tokens MCP Server (http:{args.port})")
        asyncio.run(mcp.run_http(port=args.port))


if __name__ == "__main__":
    main()
