"""
MCP tool implementations.

- build - Run, validate, and inspect token builds
"""

from chuk_mcp_tokens.tools.build import register_token_tools

__all__ = ["register_token_tools"]
