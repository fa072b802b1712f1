"""
File watcher for the system resolv.conf.

Monitors the directory holding the source file and triggers a debounced
reconciliation on the asyncio loop when the file changes.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class ResolvConfFileHandler(FileSystemEventHandler):
    """Handles file system events for one file in the watched directory."""

    def __init__(
        self,
        file_name: str,
        callback: Callable[[], Awaitable[None]],
        loop: asyncio.AbstractEventLoop,
        debounce_ms: int = 500
    ):
        """
        Initialize file handler.

        Args:
            file_name: Name of the watched file inside the directory
            callback: Async function to call once a burst of changes settles
            loop: Loop the callback runs on
            debounce_ms: Debounce delay in milliseconds
        """
        super().__init__()
        self.file_name = file_name
        self.callback = callback
        self.loop = loop
        self.debounce_ms = debounce_ms
        self.debounce_task: Optional[asyncio.Task] = None

    def _matches(self, event: FileSystemEvent) -> bool:
        if event.is_directory:
            return False
        paths = [event.src_path, getattr(event, "dest_path", "")]
        return any(p and Path(p).name == self.file_name for p in paths)

    def on_any_event(self, event: FileSystemEvent):
        """Handle any event touching the watched file (runs on the observer thread)."""
        if event.event_type in ("opened", "closed_no_write") or not self._matches(event):
            return

        logger.debug(f"{self.file_name}: {event.event_type}")
        self.loop.call_soon_threadsafe(self.schedule)

    def schedule(self):
        """Restart the debounce timer. Must run on the loop."""
        if self.debounce_task:
            self.debounce_task.cancel()

        self.debounce_task = self.loop.create_task(self._debounced_reload())

    async def _debounced_reload(self):
        """Run the callback once the debounce delay passes without new events."""
        try:
            await asyncio.sleep(self.debounce_ms / 1000.0)
            logger.info(f"{self.file_name} changed, reconciling")
            await self.callback()

        except asyncio.CancelledError:
            # Debounce was cancelled - another event came in
            pass
        except Exception as e:
            logger.error(f"Error in debounced reload: {e}")


class FileWatcher:
    """Watches the source resolv.conf and triggers reconciliation."""

    def __init__(
        self,
        file_path: Path,
        reload_callback: Callable[[], Awaitable[None]],
        debounce_ms: int = 500
    ):
        """
        Initialize file watcher.

        Args:
            file_path: File to watch; its parent directory is observed
            reload_callback: Async function to call on file changes
            debounce_ms: Debounce delay in milliseconds
        """
        self.file_path = file_path
        self.reload_callback = reload_callback
        self.debounce_ms = debounce_ms

        self.observer: Optional[Observer] = None
        self.handler: Optional[ResolvConfFileHandler] = None
        self.running = False

    def start(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        """Start file watcher. Call from the loop that should run reloads."""
        if self.running:
            logger.warning("File watcher already running")
            return

        watch_dir = self.file_path.parent
        logger.info(f"Starting file watcher for {self.file_path}")

        self.handler = ResolvConfFileHandler(
            file_name=self.file_path.name,
            callback=self.reload_callback,
            loop=loop or asyncio.get_running_loop(),
            debounce_ms=self.debounce_ms
        )

        self.observer = Observer()
        self.observer.schedule(self.handler, path=str(watch_dir), recursive=False)
        self.observer.start()
        self.running = True

        logger.info("File watcher started")

    def stop(self):
        """Stop file watcher."""
        if not self.running:
            return

        logger.info("Stopping file watcher")

        if self.observer:
            self.observer.stop()
            self.observer.join()

        if self.handler and self.handler.debounce_task:
            self.handler.debounce_task.cancel()

        self.running = False
        logger.info("File watcher stopped")

    def is_running(self) -> bool:
        """
        Check if file watcher is running.

        Returns:
            True if running, False otherwise
        """
        return self.running
