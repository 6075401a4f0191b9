"""Security module for vault encryption."""

from .encryption import VaultCrypto, encrypted_name, decrypted_name, is_encrypted
from .key_derivation import KeyDerivationService, DerivedKey, Argon2Params

__all__ = [
    "VaultCrypto",
    "encrypted_name",
    "decrypted_name",
    "is_encrypted",
    "KeyDerivationService",
    "DerivedKey",
    "Argon2Params",
]
