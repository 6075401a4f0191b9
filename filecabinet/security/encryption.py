"""
Vault Encryption
================

Password-based AES-256-GCM encryption of whole files.

Container layout::

    salt (16) || nonce (12) || ciphertext || tag (16)

The key for every container is derived from the password and that
container's own salt, so equal plaintexts never produce equal containers.
Files are read into memory whole; there is no streaming mode.
"""

from pathlib import Path
from typing import Optional, Union
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from filecabinet.actions.file_operations import FileOperations
from filecabinet.config.settings import SecurityConfig, ENCRYPTED_SUFFIX
from filecabinet.security.key_derivation import KeyDerivationService
from filecabinet.utils.logging_config import get_logger
from filecabinet.utils.exceptions import (
    AuthenticationError,
    StateError,
    ErrorCode,
)

logger = get_logger(__name__)


def encrypted_name(path: Union[str, Path], suffix: str = ENCRYPTED_SUFFIX) -> Path:
    """Append the reserved suffix to a path."""
    path = Path(path)
    if path.name.endswith(suffix):
        return path
    return path.with_name(path.name + suffix)


def decrypted_name(path: Union[str, Path], suffix: str = ENCRYPTED_SUFFIX) -> Path:
    """Strip the reserved suffix from a path."""
    path = Path(path)
    if not path.name.endswith(suffix):
        return path
    return path.with_name(path.name[:-len(suffix)])


def is_encrypted(path: Union[str, Path], suffix: str = ENCRYPTED_SUFFIX) -> bool:
    return Path(path).name.endswith(suffix)


class VaultCrypto:
    """Password-based authenticated encryption for vault files."""

    SALT_SIZE = KeyDerivationService.SALT_LENGTH
    NONCE_SIZE = 12      # 96 bits (recommended for GCM)
    TAG_SIZE = 16
    HEADER_SIZE = SALT_SIZE + NONCE_SIZE

    def __init__(
        self,
        key_service: Optional[KeyDerivationService] = None,
        suffix: str = ENCRYPTED_SUFFIX,
        file_ops: Optional[FileOperations] = None
    ):
        """Initialize the vault cipher.

        Args:
            key_service: Key derivation service. Default Argon2id parameters if omitted.
            suffix: Reserved suffix for encrypted containers.
            file_ops: File operations helper.
        """
        self.key_service = key_service or KeyDerivationService()
        self.suffix = suffix
        self.file_ops = file_ops or FileOperations()

    @classmethod
    def from_config(cls, config: SecurityConfig) -> "VaultCrypto":
        return cls(
            key_service=KeyDerivationService.from_config(config),
            suffix=config.encrypted_suffix,
        )

    def __repr__(self) -> str:
        return f"{type(self).__name__}(suffix={self.suffix!r})"

    def encrypt(self, password: str, plaintext: bytes) -> bytes:
        """Encrypt bytes into a container.

        Args:
            password: Vault password.
            plaintext: Data to encrypt.

        Returns:
            salt + nonce + ciphertext + tag.
        """
        derived = self.key_service.derive_key(password)
        nonce = os.urandom(self.NONCE_SIZE)
        ciphertext = AESGCM(derived.key).encrypt(nonce, plaintext, None)
        return derived.salt + nonce + ciphertext

    def decrypt(self, password: str, blob: bytes) -> bytes:
        """Decrypt a container.

        Args:
            password: Vault password.
            blob: Bytes produced by ``encrypt``.

        Returns:
            Decrypted plaintext.

        Raises:
            AuthenticationError: Wrong password, or a corrupted or tampered container.
        """
        if len(blob) < self.HEADER_SIZE + self.TAG_SIZE:
            raise AuthenticationError("Container is too short")

        salt = blob[:self.SALT_SIZE]
        nonce = blob[self.SALT_SIZE:self.HEADER_SIZE]
        ciphertext = blob[self.HEADER_SIZE:]

        derived = self.key_service.derive_key(password, salt)
        try:
            return AESGCM(derived.key).decrypt(nonce, ciphertext, None)
        except InvalidTag as e:
            raise AuthenticationError(
                "Wrong password or corrupted container",
                cause=e
            ) from e

    def encrypted_name(self, path: Union[str, Path]) -> Path:
        return encrypted_name(path, self.suffix)

    def decrypted_name(self, path: Union[str, Path]) -> Path:
        return decrypted_name(path, self.suffix)

    def is_encrypted(self, path: Union[str, Path]) -> bool:
        return is_encrypted(path, self.suffix)

    def encrypt_file(self, input_path: Union[str, Path], password: str) -> Path:
        """Encrypt a file into its suffixed sibling.

        The original file is left in place.

        Args:
            input_path: Path to an unencrypted file.
            password: Vault password.

        Returns:
            Path to the encrypted container.

        Raises:
            StateError: If the path already carries the reserved suffix.
            VaultIOError: If reading or writing fails.
        """
        input_path = Path(input_path)
        if self.is_encrypted(input_path):
            raise StateError(
                "File is already encrypted",
                file_path=str(input_path),
                error_code=ErrorCode.ALREADY_ENCRYPTED
            )

        output_path = self.encrypted_name(input_path)
        container = self.encrypt(password, self.file_ops.read_bytes(input_path))
        self.file_ops.atomic_write(output_path, container)

        logger.info(f"Encrypted file: {input_path.name} -> {output_path.name}")
        return output_path

    def decrypt_file(self, input_path: Union[str, Path], password: str) -> Path:
        """Decrypt a container into its unsuffixed sibling.

        Nothing is written unless authentication succeeds.

        Args:
            input_path: Path to an encrypted container.
            password: Vault password.

        Returns:
            Path to the decrypted file.

        Raises:
            StateError: If the path does not carry the reserved suffix.
            AuthenticationError: Wrong password or tampered container.
            VaultIOError: If reading or writing fails.
        """
        input_path = Path(input_path)
        if not self.is_encrypted(input_path):
            raise StateError(
                "File is not encrypted",
                file_path=str(input_path),
                error_code=ErrorCode.NOT_ENCRYPTED
            )

        output_path = self.decrypted_name(input_path)
        try:
            plaintext = self.decrypt(password, self.file_ops.read_bytes(input_path))
        except AuthenticationError as e:
            e.details["file_path"] = str(input_path)
            raise
        self.file_ops.atomic_write(output_path, plaintext)

        logger.info(f"Decrypted file: {input_path.name} -> {output_path.name}")
        return output_path
