"""Shared helpers for resolv-conf-manager tests."""

import os
from pathlib import Path
from typing import List


def write_source(path: Path, text: str) -> None:
    """Write ``path`` and move its mtime forward so a change is always seen."""
    previous = path.stat().st_mtime_ns if path.exists() else 0
    path.write_text(text)
    mtime_ns = max(previous + 1_000_000_000, path.stat().st_mtime_ns)
    os.utime(path, ns=(mtime_ns, mtime_ns))


def nameservers(text: str) -> List[str]:
    """Addresses of the nameserver lines in ``text``, in order."""
    return [line.split()[1] for line in text.splitlines() if line.startswith("nameserver ")]


def search_line(text: str) -> str:
    """The single search line of ``text``, or an empty string."""
    lines = [line for line in text.splitlines() if line.startswith("search")]
    assert len(lines) <= 1
    return lines[0] if lines else ""
