"""
Change detection for the source resolv.conf.

Decides from file metadata whether the source needs to be read again, and
refuses to read it when it is our own managed file seen through a symlink
or hard link.
"""

import errno
import logging
import os
from enum import Enum
from pathlib import Path
from typing import NamedTuple, Optional, TextIO

from ..errors import ErrorCode, ResolvConfReadError
from ..state import ReconciliationState

logger = logging.getLogger(__name__)


class ReadOutcome(str, Enum):
    """Result of a read_resolv_conf() cycle."""
    DISABLED = "disabled"
    ABSENT = "absent"
    UNCHANGED = "unchanged"
    SELF_LINK = "self_link"
    LOADED = "loaded"
    FAILED = "failed"


class ChangeCheck(NamedTuple):
    """
    Outcome of a change check.

    ``skip`` is set when there is nothing to do. Otherwise ``handle`` is the
    opened source file and ``mtime_ns`` its modification time taken from the
    open handle. The caller owns ``handle``.
    """

    skip: Optional[ReadOutcome] = None
    handle: Optional[TextIO] = None
    mtime_ns: Optional[int] = None

    @property
    def changed(self) -> bool:
        return self.skip is None


class ChangeDetector:
    """Stat-based change detection for one source/managed file pair."""

    def __init__(self, source_path: Path, managed_path: Path, state: ReconciliationState):
        """
        Initialize change detector.

        Args:
            source_path: System resolv.conf
            managed_path: Our managed resolv.conf
            state: Shared reconciliation state (read policy, last mtime)
        """
        self.source_path = source_path
        self.managed_path = managed_path
        self.state = state

    def _is_own_file(self, st: os.stat_result) -> bool:
        try:
            own = os.stat(self.managed_path)
        except OSError:
            return False
        return st.st_dev == own.st_dev and st.st_ino == own.st_ino

    def check(self) -> ChangeCheck:
        """
        Check the source file and open it if it needs to be read.

        Returns:
            ChangeCheck with either ``skip`` or an open ``handle``

        Raises:
            ResolvConfReadError: If the file exists but cannot be stat'ed or opened
        """
        if not self.state.read_resolv_conf:
            return ChangeCheck(skip=ReadOutcome.DISABLED)

        try:
            st = os.stat(self.source_path)
        except FileNotFoundError:
            logger.debug(f"{self.source_path} does not exist")
            return ChangeCheck(skip=ReadOutcome.ABSENT)
        except OSError as e:
            raise ResolvConfReadError(str(self.source_path), e.strerror or str(e),
                                      code=ErrorCode.STAT_FAILED) from e

        if self.state.is_current(st.st_mtime_ns):
            return ChangeCheck(skip=ReadOutcome.UNCHANGED)

        if self._is_own_file(st):
            logger.debug(f"{self.source_path} points to {self.managed_path}, not reading it")
            return ChangeCheck(skip=ReadOutcome.SELF_LINK)

        try:
            handle = open(self.source_path, "r", encoding="utf-8", errors="replace")
        except OSError as e:
            if e.errno == errno.ENOENT:
                logger.debug(f"{self.source_path} vanished before it could be opened")
                return ChangeCheck(skip=ReadOutcome.ABSENT)
            raise ResolvConfReadError(str(self.source_path), e.strerror or str(e)) from e

        # The path may have been replaced since the first stat
        try:
            st = os.fstat(handle.fileno())
        except OSError as e:
            handle.close()
            raise ResolvConfReadError(str(self.source_path), f"stat of open file failed: {e}",
                                      code=ErrorCode.STAT_FAILED) from e

        return ChangeCheck(handle=handle, mtime_ns=st.st_mtime_ns)
