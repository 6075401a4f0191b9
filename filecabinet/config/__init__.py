"""Configuration module for filecabinet."""

from .settings import (
    Config,
    SecurityConfig,
    BatchConfig,
    ServerConfig,
    LoggingSection,
    ENCRYPTED_SUFFIX,
    SIDECAR_SUFFIX,
)

__all__ = [
    "Config",
    "SecurityConfig",
    "BatchConfig",
    "ServerConfig",
    "LoggingSection",
    "ENCRYPTED_SUFFIX",
    "SIDECAR_SUFFIX",
]
