"""Utilities module for filecabinet."""

from .logging_config import setup_logging, get_logger, LoggingConfig
from .exceptions import (
    ErrorCode,
    VaultError,
    ConfigurationError,
    VaultIOError,
    FormatError,
    AuthenticationError,
    KeyDerivationError,
    StateError,
    MissingReferenceError,
    ChecksumMismatchError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "LoggingConfig",
    "ErrorCode",
    "VaultError",
    "ConfigurationError",
    "VaultIOError",
    "FormatError",
    "AuthenticationError",
    "KeyDerivationError",
    "StateError",
    "MissingReferenceError",
    "ChecksumMismatchError",
]
