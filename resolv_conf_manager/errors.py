"""
Error handling for resolv-conf-manager.

Structured error codes shared by the reader, the writer and the CLI.
"""

from enum import Enum
from typing import Optional, Dict, Any


class ErrorCode(Enum):
    """
    Error codes for resolv-conf-manager.

    - 1000-1099: Parse errors (per line, never fatal)
    - 1100-1199: Read errors
    - 1200-1299: Write/publish errors
    - 1300-1399: Settings errors
    """

    # Parse errors (1000-1099)
    PARSE_FAILED = 1000
    INVALID_ADDRESS = 1001
    INVALID_DOMAIN = 1002
    TOO_MANY_ENTRIES = 1003

    # Read errors (1100-1199)
    READ_FAILED = 1100
    STAT_FAILED = 1101

    # Write errors (1200-1299)
    WRITE_FAILED = 1200
    TEMP_FILE_FAILED = 1201
    RENAME_FAILED = 1202

    # Settings errors (1300-1399)
    SETTINGS_INVALID = 1300
    SETTINGS_NOT_FOUND = 1301


class ResolvConfError(Exception):
    """Base exception for resolv-conf-manager errors."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        suggestion: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            suggestion: Suggested recovery action
            context: Additional context for debugging
        """
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.context = context or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for status output.

        Returns:
            Error dictionary with code, message, suggestion, and context
        """
        result = {
            "code": self.code.value,
            "message": self.message
        }

        if self.suggestion:
            result["suggestion"] = self.suggestion

        if self.context:
            result["context"] = self.context

        return result


class ParseError(ResolvConfError):
    """A single directive argument could not be used. Never aborts a read."""

    def __init__(self, text: str, reason: str, code: ErrorCode = ErrorCode.PARSE_FAILED):
        super().__init__(
            code=code,
            message=f"Failed to parse '{text}': {reason}",
            context={"text": text, "reason": reason}
        )
        self.text = text


class AddressParseError(ParseError):
    """Invalid DNS server address."""

    def __init__(self, text: str, reason: str):
        super().__init__(text, reason, code=ErrorCode.INVALID_ADDRESS)


class DomainParseError(ParseError):
    """Invalid search domain."""

    def __init__(self, text: str, reason: str):
        super().__init__(text, reason, code=ErrorCode.INVALID_DOMAIN)


class CapacityExceededError(ParseError):
    """The in-memory collection is full."""

    def __init__(self, text: str, limit: int):
        super().__init__(text, f"limit of {limit} entries reached", code=ErrorCode.TOO_MANY_ENTRIES)
        self.limit = limit


class ResolvConfReadError(ResolvConfError):
    """Source file could not be stat'ed, opened or read."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.READ_FAILED):
        """
        Initialize read error.

        Args:
            file_path: Path to the source resolv.conf
            reason: Reason for read failure
            code: READ_FAILED or STAT_FAILED
        """
        super().__init__(
            code=code,
            message=f"Failed to read {file_path}: {reason}",
            suggestion="Check file permissions; the next change will retry",
            context={"file_path": file_path, "reason": reason}
        )


class ResolvConfWriteError(ResolvConfError):
    """Managed file could not be generated or published."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.WRITE_FAILED):
        """
        Initialize write error.

        Args:
            file_path: Path to the managed resolv.conf
            reason: Reason for write failure
            code: WRITE_FAILED, TEMP_FILE_FAILED or RENAME_FAILED
        """
        super().__init__(
            code=code,
            message=f"Failed to write {file_path}: {reason}",
            suggestion="Check that the directory exists, is writable and has free space",
            context={"file_path": file_path, "reason": reason}
        )


class SettingsError(ResolvConfError):
    """Invalid or unreadable settings file."""

    def __init__(self, file_path: str, reason: str, code: ErrorCode = ErrorCode.SETTINGS_INVALID):
        super().__init__(
            code=code,
            message=f"Invalid settings in {file_path}: {reason}",
            suggestion="Check TOML syntax and option names",
            context={"file_path": file_path, "reason": reason}
        )
