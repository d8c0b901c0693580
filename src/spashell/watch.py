"""Rebuild-on-change support for development mode.

Monitors the entry module's source tree and the public directory, and
rebuilds the output directory when a transformed source file or a public
asset changes. A failed rebuild leaves the previous output in place.
"""

import asyncio
import logging
from collections.abc import Iterable
from pathlib import Path

from watchfiles import Change, awatch

from spashell.build import BuildError, Bundler

logger = logging.getLogger(__name__)


class RebuildWatcher:
    """Watches source directories and drives the bundler on changes."""

    def __init__(
        self,
        bundler: Bundler,
        watch_dirs: list[Path] | None = None,
    ) -> None:
        """Initialize the rebuild watcher.

        Args:
            bundler: Bundler used for rebuilds
            watch_dirs: Directories to watch (default: the entry module's
                directory and the public directory)
        """
        self._bundler = bundler
        build = bundler.config
        if watch_dirs is None:
            watch_dirs = [build.entry.parent, build.public_dir]
        self._watch_dirs = [path.resolve() for path in watch_dirs]
        self._output_dir = build.output_dir.resolve()
        self._public_dir = build.public_dir.resolve()
        self._watch_task: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        """Whether the watcher task is active."""
        return self._watch_task is not None

    async def start(self) -> None:
        """Start the file watcher."""
        if self._watch_task is not None:
            return

        existing = [path for path in self._watch_dirs if path.is_dir()]
        if not existing:
            logger.warning("No source directories to watch, rebuilds disabled")
            return

        self._watch_dirs = existing
        self._watch_task = asyncio.create_task(self._watch_files())
        logger.info(f"Watching {', '.join(str(path) for path in existing)}")

    async def stop(self) -> None:
        """Stop the file watcher."""
        if self._watch_task is not None:
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
            self._watch_task = None

    async def _watch_files(self) -> None:
        async for changes in awatch(*self._watch_dirs):
            await self.handle_changes(changes)

    async def handle_changes(self, changes: Iterable[tuple[Change, str]]) -> bool:
        """Rebuild if any change touches a relevant file.

        Args:
            changes: Change events as reported by watchfiles

        Returns:
            True if a rebuild ran and succeeded
        """
        relevant = [
            Path(path_str)
            for change_type, path_str in changes
            if change_type != Change.deleted and self.is_relevant(Path(path_str))
        ]
        if not relevant:
            return False

        logger.info(f"Rebuilding after change to {relevant[0]}")
        try:
            await asyncio.to_thread(self._bundler.build)
        except BuildError as e:
            logger.error(f"Rebuild failed, keeping previous output: {e}")
            if e.diagnostic:
                logger.error(e.diagnostic)
            return False
        except OSError as e:
            logger.error(f"Rebuild failed, keeping previous output: {e}")
            return False
        return True

    def is_relevant(self, path: Path) -> bool:
        """Check if a changed path should trigger a rebuild."""
        resolved = path.resolve()
        if self._is_build_output(resolved):
            return False
        if resolved.is_relative_to(self._public_dir):
            return True
        return self._bundler.is_transformed(resolved)

    def _is_build_output(self, path: Path) -> bool:
        if path.is_relative_to(self._output_dir):
            return True
        # Staging and backup directories live beside the output directory.
        try:
            first = path.relative_to(self._output_dir.parent).parts[0]
        except (ValueError, IndexError):
            return False
        return first.startswith(f".{self._output_dir.name}-")
