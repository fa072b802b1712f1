"""
Settings for resolv-conf-manager.

Loaded from an optional TOML file (``/etc/resolv-conf-manager.toml`` or
``$RESOLV_CONF_MANAGER_CONFIG``). Every option has a default, so running
without a file is fine.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .dns import parse_server_address
from .errors import AddressParseError, ErrorCode, SettingsError

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path("/etc/resolv-conf-manager.toml")
SETTINGS_ENV_VAR = "RESOLV_CONF_MANAGER_CONFIG"


class PathSettings(BaseModel):
    """Source file and managed output file."""

    model_config = ConfigDict(extra='forbid')

    source: Path = Field(Path("/etc/resolv.conf"), description="System resolv.conf to read")
    managed: Path = Field(
        Path("/run/systemd/resolve/resolv.conf"),
        description="Managed copy written atomically"
    )


class ResolvConfLimits(BaseModel):
    """
    Capacity limits.

    ``max_servers``, ``max_search_domains`` and ``max_search_length`` mirror
    the glibc resolver (MAXNS, MAXDNSRCH and the 256 byte search buffer).
    The ``max_managed_*`` limits bound the in-memory collections.
    """

    model_config = ConfigDict(extra='forbid')

    max_servers: int = Field(3, ge=1, description="nameserver lines honoured by the resolver")
    max_search_domains: int = Field(6, ge=1, description="Domains on the search line")
    max_search_length: int = Field(256, ge=1, description="Total characters of all search domains")
    max_managed_servers: int = Field(32, ge=1, description="DNS servers read from the source file")
    max_managed_search_domains: int = Field(32, ge=1, description="Search domains read from the source file")


class ResolverSettings(BaseModel):
    """Reading policy and fallback servers."""

    model_config = ConfigDict(extra='forbid')

    read_resolv_conf: bool = Field(True, description="Pick up servers from the source file")
    fallback_dns: List[str] = Field(
        default_factory=lambda: ["8.8.8.8", "8.8.4.4"],
        description="Servers published when nothing else is known"
    )

    @field_validator('fallback_dns')
    @classmethod
    def validate_fallback_dns(cls, v: List[str]) -> List[str]:
        for spec in v:
            try:
                parse_server_address(spec)
            except AddressParseError as e:
                raise ValueError(e.message) from e
        return v


class WatchSettings(BaseModel):
    """Daemon file watching."""

    model_config = ConfigDict(extra='forbid')

    debounce_ms: int = Field(500, ge=0, description="Debounce delay for change bursts")
    resync_interval_s: float = Field(0, ge=0, description="Periodic resync, 0 disables")


class ManagerSettings(BaseModel):
    """Complete settings tree."""

    model_config = ConfigDict(extra='forbid')

    paths: PathSettings = Field(default_factory=PathSettings)
    limits: ResolvConfLimits = Field(default_factory=ResolvConfLimits)
    resolver: ResolverSettings = Field(default_factory=ResolverSettings)
    watch: WatchSettings = Field(default_factory=WatchSettings)


def default_settings_path() -> Path:
    env = os.environ.get(SETTINGS_ENV_VAR)
    return Path(env) if env else DEFAULT_SETTINGS_PATH


def load_settings(path: Optional[Path] = None) -> ManagerSettings:
    """
    Load settings from TOML.

    Args:
        path: Explicit settings file. When given it must exist; when omitted
            the default location is used if present.

    Returns:
        ManagerSettings instance

    Raises:
        SettingsError: If the file is missing (explicit path only), is not
            valid TOML, or fails validation
    """
    explicit = path is not None
    settings_path = path if explicit else default_settings_path()

    if not settings_path.exists():
        if explicit:
            raise SettingsError(str(settings_path), "file not found", code=ErrorCode.SETTINGS_NOT_FOUND)
        logger.debug(f"No settings file at {settings_path}, using defaults")
        return ManagerSettings()

    try:
        with open(settings_path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise SettingsError(str(settings_path), str(e)) from e

    try:
        settings = ManagerSettings(**data)
    except ValidationError as e:
        raise SettingsError(str(settings_path), str(e)) from e

    logger.info(f"Loaded settings from {settings_path}")
    return settings
