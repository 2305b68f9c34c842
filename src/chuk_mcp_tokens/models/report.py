"""
Build report - the statistics CI and downstream tooling gate on.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from chuk_mcp_tokens.constants import PipelineStage


class BuildReport(BaseModel):
    """Aggregate statistics for one pipeline run."""

    total_variables: int = Field(default=0, description="Declarations emitted across modes")
    mode_counts: dict[str, int] = Field(default_factory=dict, description="Declarations per mode")
    files_written: list[str] = Field(default_factory=list)
    files_unchanged: list[str] = Field(default_factory=list)
    files_planned: list[str] = Field(
        default_factory=list,
        description="Every output file the run produced content for",
    )
    processing_time_ms: float = Field(default=0.0)
    unresolved_tokens: int = Field(default=0)
    cycle_detections: int = Field(default=0)
    collisions: int = Field(default=0)
    coverage_mismatches: int = Field(default=0)
    cache: dict[str, int] = Field(default_factory=dict, description="Resolution cache stats")
    errors: list[str] = Field(default_factory=list)
    dry_run: bool = False
    stage: PipelineStage = PipelineStage.IDLE

    @property
    def succeeded(self) -> bool:
        return self.stage == PipelineStage.DONE and not self.errors

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form."""
        data = self.model_dump(mode="json")
        data["succeeded"] = self.succeeded
        return data

    def summary_lines(self) -> list[str]:
        """Human-readable summary for log output."""
        lines = [
            f"Total variables: {self.total_variables}",
            *(f"  {mode}: {count}" for mode, count in self.mode_counts.items()),
            f"Files written: {len(self.files_written)}",
            f"Files unchanged: {len(self.files_unchanged)}",
            f"Processing time: {self.processing_time_ms:.1f}ms",
            f"Unresolved tokens: {self.unresolved_tokens}",
        ]
        if self.dry_run:
            lines.append(f"Dry run: {len(self.files_planned)} file(s) would be produced")
        return lines
