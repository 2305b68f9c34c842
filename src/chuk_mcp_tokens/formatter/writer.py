"""
Output writer - cache-aware, all-or-nothing file output.

Files whose content already matches what is on disk are left alone. The
rest are staged as temporary files next to their targets and only moved
into place once every one of them has been staged. If a move fails, the
targets moved so far are restored.
"""

from __future__ import annotations

import hashlib
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from chuk_mcp_tokens.formatter.css import OutputFile

logger = logging.getLogger(__name__)


def content_digest(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass
class WritePlan:
    """Which files need writing and which are already current."""

    changed: list[OutputFile] = field(default_factory=list)
    unchanged: list[OutputFile] = field(default_factory=list)

    @property
    def is_noop(self) -> bool:
        return not self.changed


@dataclass
class WriteResult:
    """Paths written and skipped, relative to the output root."""

    written: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


class OutputWriter:
    """Writes formatter output under an output root."""

    def __init__(self, output_dir: Path):
        self.output_dir = output_dir

    def plan(self, files: list[OutputFile]) -> WritePlan:
        """Diff files against the output directory."""
        plan = WritePlan()
        for output in files:
            digest = content_digest(output.content)
            if self._current_digest(output.path) == digest:
                plan.unchanged.append(output)
            else:
                plan.changed.append(output)
        return plan

    def write(self, files: list[OutputFile]) -> WriteResult:
        """
        Write every changed file.

        Raises:
            OSError: If staging or replacing fails. Staged temporaries are
                removed and targets already replaced are restored.
        """
        plan = self.plan(files)
        result = WriteResult(unchanged=[f.path for f in plan.unchanged])
        if plan.is_noop:
            logger.info("Output is up to date")
            return result

        staged: list[tuple[Path, Path, OutputFile]] = []
        try:
            for output in plan.changed:
                target = self.output_dir / output.path
                target.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
                )
                staged.append((Path(tmp_name), target, output))
                with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                    f.write(output.content)

            previous = {target: self._snapshot(target) for _, target, _ in staged}
            replaced: list[Path] = []
            try:
                for tmp, target, output in staged:
                    os.replace(tmp, target)
                    replaced.append(target)
                    result.written.append(output.path)
                    logger.debug(f"Wrote {target}")
            except OSError:
                self._restore(replaced, previous)
                result.written.clear()
                raise
        finally:
            for tmp, _, _ in staged:
                tmp.unlink(missing_ok=True)

        return result

    @staticmethod
    def _snapshot(target: Path) -> bytes | None:
        """Current bytes of a target file, or None if there is no file to restore."""
        if not target.is_file():
            return None
        return target.read_bytes()

    @staticmethod
    def _restore(replaced: list[Path], previous: dict[Path, bytes | None]) -> None:
        """Put replaced targets back the way they were before this write."""
        for target in reversed(replaced):
            content = previous[target]
            try:
                if content is None:
                    target.unlink(missing_ok=True)
                else:
                    target.write_bytes(content)
                logger.debug(f"Rolled back {target}")
            except OSError as e:
                logger.error(f"Could not roll back {target}: {e}")

    def _current_digest(self, relative: str) -> str | None:
        target = self.output_dir / relative
        try:
            return content_digest(target.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError):
            return None
