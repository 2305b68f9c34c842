"""
CSS output - formatting and cache-aware writing.
"""

from chuk_mcp_tokens.formatter.css import CSSFormatter, OutputFile
from chuk_mcp_tokens.formatter.writer import OutputWriter, WritePlan, WriteResult

__all__ = [
    "CSSFormatter",
    "OutputFile",
    "OutputWriter",
    "WritePlan",
    "WriteResult",
]
