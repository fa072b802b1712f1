"""
Reconciliation state for resolv-conf-manager.

Tracks the last-seen modification time of the source file, the read policy,
and read/write counters.
"""

import time
from typing import Optional

from .errors import ResolvConfError


class ReconciliationState:
    """
    State that survives between reconciliation cycles.

    ``resolv_conf_mtime_ns`` only moves forward, and only after a complete
    successful parse of the source file. ``last_read_mtime_ns`` is the exact
    mtime of that last parse, even if it moved backwards; change detection
    compares against it.
    """

    def __init__(self, read_resolv_conf: bool = True):
        """
        Initialize reconciliation state.

        Args:
            read_resolv_conf: Whether the source file is read at all
        """
        self.read_resolv_conf = read_resolv_conf
        self.resolv_conf_mtime_ns: Optional[int] = None
        self.last_read_mtime_ns: Optional[int] = None
        self.read_count: int = 0
        self.failed_read_count: int = 0
        self.write_count: int = 0
        self.failed_write_count: int = 0
        self.last_write_timestamp: Optional[float] = None
        self.last_error: Optional[ResolvConfError] = None

    def is_current(self, mtime_ns: int) -> bool:
        return self.last_read_mtime_ns == mtime_ns

    def record_read(self, mtime_ns: int):
        """Record a complete successful parse."""
        if self.resolv_conf_mtime_ns is None or mtime_ns > self.resolv_conf_mtime_ns:
            self.resolv_conf_mtime_ns = mtime_ns
        self.last_read_mtime_ns = mtime_ns
        self.read_count += 1

    def record_read_failure(self, error: ResolvConfError):
        self.failed_read_count += 1
        self.last_error = error

    def record_write(self, success: bool, error: Optional[ResolvConfError] = None):
        """
        Record a publish attempt.

        Args:
            success: Whether the managed file was replaced
            error: Failure reason when unsuccessful
        """
        if success:
            self.write_count += 1
            self.last_write_timestamp = time.time()
        else:
            self.failed_write_count += 1
            self.last_error = error

    def to_dict(self) -> dict:
        """
        Convert state to dictionary.

        Returns:
            State as dictionary
        """
        return {
            "read_resolv_conf": self.read_resolv_conf,
            "resolv_conf_mtime_ns": self.resolv_conf_mtime_ns,
            "last_read_mtime_ns": self.last_read_mtime_ns,
            "read_count": self.read_count,
            "failed_read_count": self.failed_read_count,
            "write_count": self.write_count,
            "failed_write_count": self.failed_write_count,
            "last_write_timestamp": self.last_write_timestamp,
            "last_error": self.last_error.to_dict() if self.last_error else None,
        }
