"""
Watch mode - rebuild when token documents or the config change.

Polling, mtime-based change detection. Builds are serialized: a change
that arrives while a build is running is folded into one follow-up build.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from pathlib import Path

from chuk_mcp_tokens.constants import METADATA_FILE
from chuk_mcp_tokens.errors import BuildError
from chuk_mcp_tokens.models.config import BuildOptions, PipelineConfig
from chuk_mcp_tokens.pipeline.orchestrator import TokenPipeline

logger = logging.getLogger(__name__)

# Token documents and $metadata.json
WATCH_PATTERNS = ["*.json"]


class FileWatcher:
    """
    Watches files for changes using polling.

    Reports each poll's changes as one batch: new, modified, and deleted
    files together.
    """

    def __init__(
        self,
        paths: list[Path],
        on_change: Callable[[list[Path]], None],
        patterns: list[str] | None = None,
        poll_interval: float = 0.5,
    ):
        """
        Initialize the file watcher.

        Args:
            paths: Directories or files to watch
            on_change: Callback receiving the changed files of one poll
            patterns: Glob patterns matched inside watched directories
            poll_interval: Seconds between polls
        """
        self.paths = paths
        self.on_change = on_change
        self.patterns = patterns or WATCH_PATTERNS
        self.poll_interval = poll_interval

        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._file_mtimes: dict[Path, float] = {}

    def start(self) -> None:
        """Start watching for file changes."""
        self._file_mtimes = self._scan_files()
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._watch_loop, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop watching for file changes."""
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=2)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll(self) -> list[Path]:
        """Rescan once and return files that changed since the last scan."""
        current = self._scan_files()
        changed = [
            path
            for path, mtime in current.items()
            if path not in self._file_mtimes or mtime > self._file_mtimes[path]
        ]
        changed.extend(path for path in self._file_mtimes if path not in current)
        self._file_mtimes = current
        return sorted(changed)

    def _scan_files(self) -> dict[Path, float]:
        """Scan all watched paths and return file mtimes."""
        mtimes: dict[Path, float] = {}

        for watch_path in self.paths:
            if not watch_path.exists():
                continue

            if watch_path.is_file():
                try:
                    mtimes[watch_path] = watch_path.stat().st_mtime
                except OSError:
                    continue
            else:
                for pattern in self.patterns:
                    for file_path in watch_path.rglob(pattern):
                        try:
                            mtimes[file_path] = file_path.stat().st_mtime
                        except OSError:
                            continue

        return mtimes

    def _watch_loop(self) -> None:
        """Main watch loop that polls for file changes."""
        while not self._stop_event.is_set():
            try:
                changed = self.poll()
                if changed:
                    self.on_change(changed)
            except Exception:
                logger.exception("File watcher error")

            self._stop_event.wait(self.poll_interval)


class TokenWatcher:
    """
    Re-runs a pipeline whenever its sources change.

    A failed rebuild is logged and the watcher keeps going; the previous
    output stays in place because a failed run never writes. When a
    `reload_config` callable is supplied, changes to the config file or
    $metadata.json reload the configuration before the next build.
    """

    def __init__(
        self,
        pipeline: TokenPipeline,
        options: BuildOptions | None = None,
        paths: list[Path] | None = None,
        poll_interval: float = 0.5,
        config_file: Path | None = None,
        reload_config: Callable[[], PipelineConfig] | None = None,
    ):
        """
        Initialize the token watcher.

        Args:
            pipeline: Pipeline to re-run
            options: Options for each rebuild
            paths: What to watch (defaults to the data directory and config file)
            poll_interval: Seconds between polls
            config_file: Config file whose changes trigger a reload
            reload_config: Loads a fresh PipelineConfig after a config change
        """
        self.pipeline = pipeline
        self.options = options or BuildOptions()
        self.config_file = config_file
        self.reload_config = reload_config
        self._explicit_paths = paths
        self.watcher = FileWatcher(
            paths=self._watch_paths(),
            on_change=self._on_change,
            poll_interval=poll_interval,
        )
        self.builds = 0
        self.failures = 0
        self.reloads = 0

        self._build_lock = threading.Lock()
        self._state_lock = threading.Lock()
        self._pending = False
        self._reload_pending = False

    def start(self) -> None:
        """Begin watching."""
        self.watcher.start()
        logger.info(f"Watching {len(self.watcher.paths)} path(s) for token changes")

    def stop(self) -> None:
        """Stop watching; a build already running is allowed to finish."""
        self.watcher.stop()
        with self._build_lock:
            logger.info("Watch stopped")

    def run_forever(self, stop_event: threading.Event | None = None) -> None:
        """Build once, then watch until interrupted or stop_event is set."""
        self.rebuild()
        self.start()
        stop_event = stop_event or threading.Event()
        try:
            while not stop_event.wait(self.watcher.poll_interval):
                pass
        except KeyboardInterrupt:
            logger.info("Interrupted")
        finally:
            self.stop()

    def rebuild(self, reload: bool = False) -> None:
        """
        Run a build, or queue one if a build is already running.

        Any number of triggers that arrive during a build collapse into a
        single follow-up build. A queued reload is kept until that build
        picks it up.
        """
        with self._state_lock:
            self._pending = True
            self._reload_pending = self._reload_pending or reload
        while True:
            if not self._build_lock.acquire(blocking=False):
                return
            try:
                while True:
                    with self._state_lock:
                        if not self._pending:
                            break
                        self._pending = False
                        reload, self._reload_pending = self._reload_pending, False
                    if reload:
                        self._reload()
                    self._build_once()
            finally:
                self._build_lock.release()
            # A trigger may have landed between the last check and the release
            with self._state_lock:
                if not self._pending:
                    return

    def is_config_change(self, path: Path) -> bool:
        """True for the config file and the data directory's $metadata.json."""
        watched = [self.pipeline.config.data_dir / METADATA_FILE]
        if self.config_file is not None:
            watched.append(self.config_file)
        resolved = path.resolve()
        return any(resolved == candidate.resolve() for candidate in watched)

    def _watch_paths(self) -> list[Path]:
        if self._explicit_paths:
            return list(self._explicit_paths)
        paths = [self.pipeline.config.data_dir]
        if self.config_file is not None:
            paths.append(self.config_file)
        return paths

    def _reload(self) -> None:
        """Swap in a pipeline for the reloaded config, keeping the resolution cache."""
        if self.reload_config is None:
            return
        try:
            config = self.reload_config()
        except BuildError as e:
            logger.error(f"Config reload failed, keeping previous config: {e}")
            return
        self.pipeline = TokenPipeline(config, cache=self.pipeline.cache)
        self.watcher.paths = self._watch_paths()
        self.reloads += 1
        logger.info(f"Reloaded config: {len(config.layers)} layer(s), modes {config.modes}")

    def _build_once(self) -> None:
        self.builds += 1
        try:
            self.pipeline.run(self.options)
        except BuildError as e:
            self.failures += 1
            logger.error(f"Rebuild failed: {e}")

    def _on_change(self, changed: list[Path]) -> None:
        for path in changed:
            logger.info(f"Change detected: {path}")
        if any(not path.exists() for path in changed):
            self.pipeline.store.clear_cache()
        reload = self.reload_config is not None and any(
            self.is_config_change(path) for path in changed
        )
        self.rebuild(reload=reload)
