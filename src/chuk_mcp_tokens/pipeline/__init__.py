"""Build orchestration and watch mode."""

from chuk_mcp_tokens.pipeline.orchestrator import BuildResult, TokenPipeline
from chuk_mcp_tokens.pipeline.watch import FileWatcher, TokenWatcher

__all__ = [
    "BuildResult",
    "FileWatcher",
    "TokenPipeline",
    "TokenWatcher",
]
