"""
Configuration Management System
===============================

Provides dataclass-based configuration with YAML file loading support.
All settings have sensible defaults; a missing config file is not an error.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Any, Dict
import yaml
import logging

from filecabinet.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENCRYPTED_SUFFIX = ".vault"
SIDECAR_SUFFIX = ".sha256"


def _positive_int(value: Any, key: str) -> int:
    """Coerce a setting to an int of at least 1."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if isinstance(value, bool) or number < 1:
        raise ConfigurationError(
            f"{key} must be a positive integer, got {value!r}",
            config_key=key
        )
    return number


@dataclass
class SecurityConfig:
    """Encryption and key derivation configuration.

    Attributes:
        argon2_memory_cost: Argon2 memory cost in KB.
        argon2_time_cost: Argon2 iteration count.
        argon2_parallelism: Argon2 parallelism degree.
        encrypted_suffix: Reserved suffix marking an encrypted container.
    """
    argon2_memory_cost: int = 65536  # 64MB
    argon2_time_cost: int = 3
    argon2_parallelism: int = 4
    encrypted_suffix: str = ENCRYPTED_SUFFIX

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SecurityConfig":
        """Create SecurityConfig from dictionary."""
        if not data:
            return cls()
        suffix = str(data.get("encrypted_suffix", cls.encrypted_suffix))
        if not suffix.startswith(".") or len(suffix) < 2 or suffix == SIDECAR_SUFFIX:
            raise ConfigurationError(
                f"Invalid encrypted suffix: {suffix!r}",
                config_key="security.encrypted_suffix"
            )
        return cls(
            argon2_memory_cost=int(data.get("argon2_memory_cost", cls.argon2_memory_cost)),
            argon2_time_cost=int(data.get("argon2_time_cost", cls.argon2_time_cost)),
            argon2_parallelism=int(data.get("argon2_parallelism", cls.argon2_parallelism)),
            encrypted_suffix=suffix,
        )


@dataclass
class BatchConfig:
    """Batch engine settings.

    Attributes:
        max_workers: Worker pool size. None sizes the pool to the CPU count.
        hash_buffer_size: Chunk size in bytes when streaming files through SHA-256.
    """
    max_workers: Optional[int] = None
    hash_buffer_size: int = 65536

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BatchConfig":
        """Create BatchConfig from dictionary."""
        if not data:
            return cls()
        max_workers = data.get("max_workers")
        return cls(
            max_workers=(
                _positive_int(max_workers, "batch.max_workers")
                if max_workers is not None else None
            ),
            hash_buffer_size=_positive_int(
                data.get("hash_buffer_size", cls.hash_buffer_size),
                "batch.hash_buffer_size"
            ),
        )


@dataclass
class ServerConfig:
    """Listing server settings.

    Attributes:
        host: Interface to bind.
        port: TCP port.
        target_directory: Directory whose documents are listed.
    """
    host: str = "127.0.0.1"
    port: int = 8000
    target_directory: Path = field(default_factory=lambda: Path("./"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ServerConfig":
        """Create ServerConfig from dictionary."""
        if not data:
            return cls()
        return cls(
            host=data.get("host", cls.host),
            port=int(data.get("port", cls.port)),
            target_directory=Path(data.get("target_directory", "./")).expanduser(),
        )


@dataclass
class LoggingSection:
    """Logging settings as they appear in the config file."""
    level: str = "INFO"
    file_output: bool = False
    json_format: bool = False
    log_dir: Path = field(default_factory=lambda: Path.home() / ".filecabinet" / "logs")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LoggingSection":
        """Create LoggingSection from dictionary."""
        if not data:
            return cls()
        return cls(
            level=str(data.get("level", cls.level)).upper(),
            file_output=bool(data.get("file_output", cls.file_output)),
            json_format=bool(data.get("json_format", cls.json_format)),
            log_dir=Path(data.get("log_dir", "~/.filecabinet/logs")).expanduser(),
        )


@dataclass
class Config:
    """Main configuration container.

    Aggregates all configuration sections and provides loading from YAML.
    """
    security: SecurityConfig = field(default_factory=SecurityConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingSection = field(default_factory=LoggingSection)

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "Config":
        """Load configuration from YAML file.

        Args:
            config_path: Path to the configuration file. If None, looks for
                        filecabinet.yaml in the current directory.

        Returns:
            Config instance with loaded settings.

        Raises:
            ConfigurationError: If the file is not valid YAML or holds bad values.
        """
        if config_path is None:
            config_path = Path("filecabinet.yaml")

        if not config_path.exists():
            logger.debug(f"Config file not found at {config_path}, using defaults")
            return cls()

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f) or {}
        except (OSError, UnicodeDecodeError) as e:
            raise ConfigurationError(
                f"Cannot read config file {config_path}: {getattr(e, 'strerror', None) or e}",
                cause=e
            ) from e
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse config file: {e}")
            raise ConfigurationError(
                f"Invalid YAML in {config_path}",
                cause=e
            ) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config root must be a mapping: {config_path}")

        logger.info(f"Loaded configuration from {config_path}")
        try:
            return cls._from_dict(data)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid value in {config_path}: {e}",
                cause=e
            ) from e

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        sections = {}
        for name in ("security", "batch", "server", "logging"):
            section = data.get(name) or {}
            if not isinstance(section, dict):
                raise ConfigurationError(
                    f"Section '{name}' must be a mapping",
                    config_key=name
                )
            sections[name] = section
        return cls(
            security=SecurityConfig.from_dict(sections["security"]),
            batch=BatchConfig.from_dict(sections["batch"]),
            server=ServerConfig.from_dict(sections["server"]),
            logging=LoggingSection.from_dict(sections["logging"]),
        )

    def save(self, config_path: Path) -> None:
        """Save configuration to YAML file.

        Args:
            config_path: Path where to save the configuration.
        """
        data = {
            "security": {
                "argon2_memory_cost": self.security.argon2_memory_cost,
                "argon2_time_cost": self.security.argon2_time_cost,
                "argon2_parallelism": self.security.argon2_parallelism,
                "encrypted_suffix": self.security.encrypted_suffix,
            },
            "batch": {
                "max_workers": self.batch.max_workers,
                "hash_buffer_size": self.batch.hash_buffer_size,
            },
            "server": {
                "host": self.server.host,
                "port": self.server.port,
                "target_directory": str(self.server.target_directory),
            },
            "logging": {
                "level": self.logging.level,
                "file_output": self.logging.file_output,
                "json_format": self.logging.json_format,
                "log_dir": str(self.logging.log_dir),
            },
        }

        with open(config_path, 'w', encoding='utf-8') as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Saved configuration to {config_path}")
