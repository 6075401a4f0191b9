"""
Key Derivation Service
======================

Turns the vault password plus a per-container salt into an AES-256 key with
Argon2id. The salt travels in the container header, so only the cost
parameters have to match between encryption and decryption.
"""

import secrets
from dataclasses import dataclass, field, asdict
from typing import Optional

from argon2.exceptions import Argon2Error
from argon2.low_level import hash_secret_raw, Type

from filecabinet.config.settings import SecurityConfig
from filecabinet.utils.logging_config import get_logger
from filecabinet.utils.exceptions import KeyDerivationError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Argon2Params:
    """Argon2id cost parameters.

    Attributes:
        memory_cost: Memory in KiB.
        time_cost: Passes over memory.
        parallelism: Lanes.
        key_length: Output length in bytes.
    """
    memory_cost: int = 65536
    time_cost: int = 3
    parallelism: int = 4
    key_length: int = 32

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "Argon2Params":
        return cls(
            memory_cost=config.argon2_memory_cost,
            time_cost=config.argon2_time_cost,
            parallelism=config.argon2_parallelism,
        )

    def to_dict(self) -> dict:
        return {"algorithm": "argon2id", **asdict(self)}


@dataclass(frozen=True)
class DerivedKey:
    """A derived key and the salt it came from.

    The key bytes are kept out of ``repr`` and ``to_dict``.
    """
    key: bytes = field(repr=False)
    salt: bytes
    params: Argon2Params

    def to_dict(self) -> dict:
        return {
            "salt_hex": self.salt.hex(),
            "key_length": len(self.key),
            "params": self.params.to_dict(),
        }


class KeyDerivationService:
    """Argon2id key derivation for vault containers."""

    SALT_LENGTH = 16

    def __init__(
        self,
        memory_cost: int = Argon2Params.memory_cost,
        time_cost: int = Argon2Params.time_cost,
        parallelism: int = Argon2Params.parallelism,
    ):
        self.params = Argon2Params(
            memory_cost=memory_cost,
            time_cost=time_cost,
            parallelism=parallelism,
        )

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "KeyDerivationService":
        params = Argon2Params.from_config(config)
        return cls(params.memory_cost, params.time_cost, params.parallelism)

    def __repr__(self) -> str:
        return f"KeyDerivationService({self.params})"

    def derive_key(self, password: str, salt: Optional[bytes] = None) -> DerivedKey:
        """Derive the container key for ``password``.

        Args:
            password: Vault password.
            salt: Salt read from a container header. A fresh random salt
                is drawn when omitted, as for a new container.

        Returns:
            DerivedKey holding the key and the salt used.

        Raises:
            KeyDerivationError: If Argon2 rejects the inputs or parameters.
        """
        if salt is None:
            salt = self.generate_salt()
        elif len(salt) != self.SALT_LENGTH:
            raise KeyDerivationError(
                f"Salt must be {self.SALT_LENGTH} bytes, got {len(salt)}"
            )

        params = self.params
        try:
            key = hash_secret_raw(
                secret=password.encode('utf-8'),
                salt=salt,
                time_cost=params.time_cost,
                memory_cost=params.memory_cost,
                parallelism=params.parallelism,
                hash_len=params.key_length,
                type=Type.ID
            )
        except Argon2Error as e:
            logger.error(f"Argon2 failed with {params}: {e}")
            raise KeyDerivationError(f"Key derivation failed: {e}", cause=e) from e

        return DerivedKey(key=key, salt=salt, params=params)

    def generate_salt(self) -> bytes:
        """Draw a random salt for a new container."""
        return secrets.token_bytes(self.SALT_LENGTH)
