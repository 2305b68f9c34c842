"""
Pydantic models for the token pipeline.

This module provides:
- Token / Layer: parsed token documents
- LiteralValue / ReferenceValue: tagged raw values
- ResolvedToken: a token reduced to a literal
- PipelineConfig / LayerSource / BuildOptions: explicit build configuration
- BuildReport: run statistics
"""

from chuk_mcp_tokens.models.config import BuildOptions, LayerSource, PipelineConfig
from chuk_mcp_tokens.models.report import BuildReport
from chuk_mcp_tokens.models.token import (
    Layer,
    LiteralValue,
    ReferenceValue,
    ResolvedToken,
    Token,
    TokenPath,
    parse_path,
    parse_token_value,
)

__all__ = [
    "BuildOptions",
    "BuildReport",
    "Layer",
    "LayerSource",
    "LiteralValue",
    "PipelineConfig",
    "ReferenceValue",
    "ResolvedToken",
    "Token",
    "TokenPath",
    "parse_path",
    "parse_token_value",
]
