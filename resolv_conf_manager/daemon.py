"""
resolv-conf-manager daemon

Keeps the managed resolv.conf in sync with the system one: publishes on
start, again whenever the source file changes, and optionally on a timer.
"""
# Module can be run with: python -m resolv_conf_manager

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Callable, Optional

from .config.file_watcher import FileWatcher
from .errors import ResolvConfError
from .manager import ResolvConfManager
from .settings import ManagerSettings, load_settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


class ResolvConfDaemon:
    """Long-running host for a ResolvConfManager."""

    def __init__(
        self,
        settings: Optional[ManagerSettings] = None,
        flush_cache: Optional[Callable[[], None]] = None
    ):
        """
        Initialize daemon.

        Args:
            settings: Manager settings (defaults when omitted)
            flush_cache: Cache flush hook handed to the manager
        """
        self.settings = settings or ManagerSettings()
        self.manager = ResolvConfManager(self.settings, flush_cache=flush_cache)
        self.file_watcher: Optional[FileWatcher] = None
        self.running = False
        self._stopped: Optional[asyncio.Event] = None
        self._resync_task: Optional[asyncio.Task] = None
        self._sync_lock: Optional[asyncio.Lock] = None

    async def sync(self) -> bool:
        """
        Run one reconciliation and publish.

        Returns:
            True if the managed file was written, False if it was already
            up to date or the sync failed
        """
        async with self._sync_lock:
            try:
                return self.manager.write_resolv_conf()
            except ResolvConfError as e:
                logger.error(f"Sync failed: {e.message}")
                return False

    async def start(self):
        """Start the daemon and publish once."""
        logger.info("Starting resolv-conf-manager daemon")

        self._stopped = asyncio.Event()
        self._sync_lock = asyncio.Lock()

        await self.sync()

        self.file_watcher = FileWatcher(
            file_path=self.manager.source_path,
            reload_callback=self.sync,
            debounce_ms=self.settings.watch.debounce_ms
        )
        self.file_watcher.start()

        if self.settings.watch.resync_interval_s > 0:
            self._resync_task = asyncio.create_task(self._resync_loop())

        self.running = True
        logger.info("Daemon started successfully")

    async def stop(self):
        """Stop the daemon."""
        logger.info("Stopping daemon...")
        self.running = False

        if self.file_watcher:
            self.file_watcher.stop()

        if self._resync_task:
            self._resync_task.cancel()
            try:
                await self._resync_task
            except asyncio.CancelledError:
                pass

        if self._stopped:
            self._stopped.set()

        logger.info("Daemon stopped")

    async def run(self):
        """Start and block until stop() is called."""
        await self.start()
        await self._stopped.wait()

    async def _resync_loop(self):
        interval = self.settings.watch.resync_interval_s
        while True:
            await asyncio.sleep(interval)
            await self.sync()


async def main(settings_path: Optional[Path] = None):
    """Main entry point."""
    try:
        settings = load_settings(settings_path)
    except ResolvConfError as e:
        logger.error(e.message)
        sys.exit(1)

    daemon = ResolvConfDaemon(settings)

    # Setup signal handlers
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await daemon.run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    asyncio.run(main())
