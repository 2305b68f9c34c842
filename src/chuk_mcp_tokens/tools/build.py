"""
Build tools - MCP tools for running and inspecting token builds.

Every tool returns a JSON string with a "status" field and never raises.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from chuk_mcp_tokens.errors import BuildError, TokenBuildFailed
from chuk_mcp_tokens.models.config import BuildOptions
from chuk_mcp_tokens.pipeline import TokenPipeline

if TYPE_CHECKING:
    from chuk_mcp_server import ChukMCPServer

logger = logging.getLogger(__name__)


def _failure(e: BuildError, pipeline: TokenPipeline) -> str:
    """Error payload for a failed build, including the partial report."""
    errors = [str(error) for error in e.errors] if isinstance(e, TokenBuildFailed) else [str(e)]
    payload: dict[str, Any] = {
        "status": "error",
        "error_type": type(e).__name__,
        "message": errors[0] if len(errors) == 1 else f"{len(errors)} errors",
        "errors": errors,
    }
    if pipeline.last_report is not None:
        payload["report"] = pipeline.last_report.to_dict()
    return json.dumps(payload)


def register_token_tools(mcp: ChukMCPServer, pipeline: TokenPipeline) -> dict[str, Any]:
    """
    Register token build tools with the MCP server.

    Args:
        mcp: The MCP server instance
        pipeline: The pipeline the tools drive

    Returns:
        Dictionary of registered tool functions
    """
    tools: dict[str, Any] = {}

    @mcp.tool  # type: ignore[arg-type]
    async def tokens_build(modes: list[str] | None = None, dry_run: bool = False) -> str:
        """
        Build CSS custom properties from the configured token layers.

        Args:
            modes: Optional subset of modes to build
            dry_run: Resolve and report without writing files

        Returns:
            JSON string with the build report

        Example:
            tokens_build(modes=["light-mode", "dark-mode"])
        """
        try:
            report = pipeline.run(BuildOptions(dry_run=dry_run, modes=modes or None))
            return json.dumps(
                {
                    "status": "success",
                    "report": report.to_dict(),
                    "message": (
                        f"{report.total_variables} variables, "
                        f"{len(report.files_written)} file(s) written"
                    ),
                }
            )
        except BuildError as e:
            return _failure(e, pipeline)
        except Exception as e:
            logger.exception("Failed to build tokens")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tokens_build"] = tokens_build

    @mcp.tool  # type: ignore[arg-type]
    async def tokens_validate() -> str:
        """
        Validate every layer, reference, and identifier without writing.

        Runs a dry-run build and reports all problems at once.

        Returns:
            JSON string with validity, errors, and the planned files

        Example:
            tokens_validate()
        """
        try:
            report = pipeline.run(BuildOptions(dry_run=True))
            return json.dumps(
                {
                    "status": "success",
                    "valid": True,
                    "errors": [],
                    "files_planned": report.files_planned,
                    "total_variables": report.total_variables,
                }
            )
        except BuildError as e:
            errors = e.errors if isinstance(e, TokenBuildFailed) else [e]
            return json.dumps(
                {
                    "status": "success",
                    "valid": False,
                    "errors": [
                        {"type": type(error).__name__, "message": str(error)} for error in errors
                    ],
                }
            )
        except Exception as e:
            logger.exception("Failed to validate tokens")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tokens_validate"] = tokens_validate

    @mcp.tool  # type: ignore[arg-type]
    async def tokens_resolve(path: str, mode: str | None = None) -> str:
        """
        Resolve one token to its literal value.

        Args:
            path: Dotted token path (e.g., "Color.Base.Subtle Background.default")
            mode: Mode to resolve in (defaults to the default mode)

        Returns:
            JSON string with the resolved value

        Example:
            tokens_resolve(path="Color.Base.default", mode="dark-mode")
        """
        mode = mode or pipeline.config.default_mode
        try:
            value = pipeline.resolve_token(path, mode)
            return json.dumps({"status": "success", "path": path, "mode": mode, "value": value})
        except BuildError as e:
            return json.dumps(
                {"status": "error", "error_type": type(e).__name__, "message": str(e)}
            )
        except Exception as e:
            logger.exception("Failed to resolve token")
            return json.dumps({"status": "error", "message": str(e)})

    tools["tokens_resolve"] = tokens_resolve

    @mcp.tool  # type: ignore[arg-type]
    async def tokens_list_modes() -> str:
        """
        List configured modes in emission order.

        Returns:
            JSON string with modes, their selectors, and the default mode
        """
        config = pipeline.config
        return json.dumps(
            {
                "status": "success",
                "default_mode": config.default_mode,
                "modes": [
                    {"name": mode, "selector": pipeline.formatter.mode_selector(mode)}
                    for mode in config.ordered_modes
                ],
            }
        )

    tools["tokens_list_modes"] = tokens_list_modes

    @mcp.tool  # type: ignore[arg-type]
    async def tokens_list_layers() -> str:
        """
        List layers in cascade order, lowest priority first.

        Returns:
            JSON string with each layer's source, mode tag, group, and emit flag
        """
        layers = pipeline.describe_layers()
        return json.dumps({"status": "success", "count": len(layers), "layers": layers})

    tools["tokens_list_layers"] = tokens_list_layers

    return tools
