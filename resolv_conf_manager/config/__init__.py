"""
resolv.conf reconciliation subsystem.

Modules:
- parser: Classify resolv.conf lines
- change_detector: Decide whether the source file needs reading
- merger: Mark-and-sweep merge into the server/domain collections
- writer: Render resolv.conf within resolver limits
- publisher: Atomic temp-file + rename publishing
- file_watcher: Monitor the source file for changes
"""

from .change_detector import ChangeDetector, ReadOutcome
from .merger import ResolvConfMerger
from .publisher import publish_atomically
from .writer import render_resolv_conf, write_resolv_conf_contents
from .file_watcher import FileWatcher

__all__ = [
    "ChangeDetector",
    "ReadOutcome",
    "ResolvConfMerger",
    "publish_atomically",
    "render_resolv_conf",
    "write_resolv_conf_contents",
    "FileWatcher",
]
