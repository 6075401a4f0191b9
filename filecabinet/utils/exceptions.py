"""
Custom Exceptions
=================

Defines the exception taxonomy for the document vault.
All exceptions include error codes for programmatic handling.
"""

from enum import Enum
from typing import Optional


class ErrorCode(Enum):
    """Error codes for programmatic error handling."""

    # General errors (1000-1099)
    UNKNOWN_ERROR = 1000
    CONFIGURATION_ERROR = 1001
    IO_FAILED = 1002

    # Format errors (1100-1199)
    INVALID_SIDECAR = 1100
    INVALID_METADATA = 1101

    # Security errors (1300-1399)
    AUTHENTICATION_FAILED = 1300
    KEY_DERIVATION_FAILED = 1301
    MISSING_PASSWORD = 1302

    # State errors (1400-1499)
    ALREADY_ENCRYPTED = 1400
    NOT_ENCRYPTED = 1401
    DESTINATION_EXISTS = 1402

    # Ledger errors (1500-1599)
    REFERENCE_MISSING = 1500
    CHECKSUM_MISMATCH = 1501


class VaultError(Exception):
    """Base exception for all vault errors.

    Attributes:
        message: Human-readable error message.
        error_code: Programmatic error code.
        details: Additional error context.
        cause: Original exception that caused this error.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.UNKNOWN_ERROR,
        details: Optional[dict] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """Return a formatted error string."""
        result = f"[{self.error_code.name}] {self.message}"
        if self.cause:
            result += f" | Caused by: {type(self.cause).__name__}: {self.cause}"
        return result

    @property
    def reason(self) -> str:
        """Short human-readable reason, without the error code prefix."""
        return self.message

    @property
    def file_path(self) -> Optional[str]:
        """Path the error is about, if one was recorded."""
        return self.details.get("file_path")

    def to_dict(self) -> dict:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
            "cause": str(self.cause) if self.cause else None,
        }


def _with_path(kwargs: dict, file_path: Optional[str]) -> dict:
    details = kwargs.pop("details", {})
    if file_path:
        details["file_path"] = file_path
    return details


class ConfigurationError(VaultError):
    """Raised when there's a configuration problem.

    Examples:
        - Invalid configuration file format
        - Missing or empty password for an operation that needs one
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.CONFIGURATION_ERROR,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class VaultIOError(VaultError):
    """Raised when opening, reading, writing or renaming a file fails."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.IO_FAILED,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class FormatError(VaultError):
    """Raised for a malformed sidecar line or undecodable metadata."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.INVALID_SIDECAR,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class AuthenticationError(VaultError):
    """Raised when a container fails authentication.

    Examples:
        - Wrong password
        - Truncated, corrupted or tampered container
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(
            message,
            error_code=ErrorCode.AUTHENTICATION_FAILED,
            details=details,
            **kwargs
        )


class KeyDerivationError(VaultError):
    """Raised when a key cannot be derived from a password."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, error_code=ErrorCode.KEY_DERIVATION_FAILED, **kwargs)


class StateError(VaultError):
    """Raised when an operation is applied to a file already in the target state.

    Examples:
        - Encrypting a path that already carries the reserved suffix
        - Decrypting a path that does not
        - Renaming onto an existing file
    """

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.ALREADY_ENCRYPTED,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(message, error_code=error_code, details=details, **kwargs)


class MissingReferenceError(VaultError):
    """Raised when a checksum sidecar references a file that does not exist."""

    def __init__(
        self,
        message: str,
        file_path: Optional[str] = None,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(
            message,
            error_code=ErrorCode.REFERENCE_MISSING,
            details=details,
            **kwargs
        )


class ChecksumMismatchError(VaultError):
    """Raised when a file no longer matches the digest in its sidecar."""

    def __init__(
        self,
        message: str = "Checksum mismatch",
        file_path: Optional[str] = None,
        **kwargs
    ):
        details = _with_path(kwargs, file_path)
        super().__init__(
            message,
            error_code=ErrorCode.CHECKSUM_MISMATCH,
            details=details,
            **kwargs
        )
