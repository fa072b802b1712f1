"""
Pytest configuration and fixtures for resolv-conf-manager tests.
"""

import sys
from pathlib import Path
from typing import Callable, List

import pytest

# Add the project root and this directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent))

from resolv_conf_manager.manager import ResolvConfManager
from resolv_conf_manager.settings import ManagerSettings

from helpers import write_source


@pytest.fixture
def source_path(tmp_path) -> Path:
    """System resolv.conf stand-in (not created)."""
    etc = tmp_path / "etc"
    etc.mkdir()
    return etc / "resolv.conf"


@pytest.fixture
def managed_path(tmp_path) -> Path:
    """Managed resolv.conf location (directory not created)."""
    return tmp_path / "run" / "resolve" / "resolv.conf"


@pytest.fixture
def settings(source_path, managed_path) -> ManagerSettings:
    return ManagerSettings(
        paths={"source": source_path, "managed": managed_path},
        resolver={"fallback_dns": ["9.9.9.9"]},
    )


@pytest.fixture
def flushes() -> List[int]:
    """Records cache flushes."""
    return []


@pytest.fixture
def manager(settings, flushes) -> ResolvConfManager:
    return ResolvConfManager(settings, flush_cache=lambda: flushes.append(1))


@pytest.fixture
def source_writer(source_path) -> Callable[[str], None]:
    """Write the source file with a guaranteed new mtime."""
    return lambda text: write_source(source_path, text)
