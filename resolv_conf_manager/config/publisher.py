"""
Atomic publishing of the managed resolv.conf.

Content is written to a temporary file next to the target and renamed over
it, so readers see either the old file or the complete new one.
"""

import logging
import os
import tempfile
from pathlib import Path
from typing import Callable, TextIO, Tuple, Union

from ..errors import ErrorCode, ResolvConfWriteError

logger = logging.getLogger(__name__)

MANAGED_FILE_MODE = 0o644


def _unlink_quietly(path: Union[str, Path]):
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.debug(f"Could not remove {path}: {e}")


def create_temporary(target: Path, mode: int = MANAGED_FILE_MODE) -> Tuple[TextIO, str]:
    """
    Create a temporary file in the target's directory.

    The file gets ``mode`` before anything is written to it.

    Returns:
        (open text stream, temporary path)

    Raises:
        ResolvConfWriteError: If the directory or file cannot be created
    """
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=target.parent, prefix=f".{target.name}-")
    except OSError as e:
        raise ResolvConfWriteError(str(target), e.strerror or str(e),
                                   code=ErrorCode.TEMP_FILE_FAILED) from e

    try:
        os.fchmod(fd, mode)
        return os.fdopen(fd, "w", encoding="utf-8"), temp_path
    except OSError as e:
        os.close(fd)
        _unlink_quietly(temp_path)
        raise ResolvConfWriteError(str(target), e.strerror or str(e),
                                   code=ErrorCode.TEMP_FILE_FAILED) from e


def publish_atomically(target: Path, write: Callable[[TextIO], None], mode: int = MANAGED_FILE_MODE):
    """
    Replace ``target`` with the output of ``write``.

    Args:
        target: Path readers open
        write: Callable writing the full content to the given stream
        mode: Permission bits of the published file

    Raises:
        ResolvConfWriteError: If any step fails. The previous target is left
            as it was and the temporary file is removed.
    """
    f, temp_path = create_temporary(target, mode)
    published = False
    code = ErrorCode.WRITE_FAILED

    try:
        with f:
            write(f)
            f.flush()
            os.fsync(f.fileno())

        code = ErrorCode.RENAME_FAILED
        os.replace(temp_path, target)
        published = True
        logger.debug(f"Published {target}")

    except OSError as e:
        raise ResolvConfWriteError(str(target), e.strerror or str(e), code=code) from e

    finally:
        if not published:
            _unlink_quietly(temp_path)
