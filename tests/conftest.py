"""
Shared fixtures.
"""

import pytest

from filecabinet.security.encryption import VaultCrypto
from filecabinet.security.key_derivation import KeyDerivationService


@pytest.fixture
def key_service():
    """Key derivation with fast parameters for testing."""
    return KeyDerivationService(
        memory_cost=1024,  # Low for fast tests
        time_cost=1,
        parallelism=1
    )


@pytest.fixture
def crypto(key_service):
    """Vault cipher using the fast key service."""
    return VaultCrypto(key_service=key_service)


@pytest.fixture
def fast_config_file(tmp_path):
    """YAML config with cheap Argon2 parameters."""
    path = tmp_path / "filecabinet.yaml"
    path.write_text(
        "security:\n"
        "  argon2_memory_cost: 1024\n"
        "  argon2_time_cost: 1\n"
        "  argon2_parallelism: 1\n"
        "batch:\n"
        "  max_workers: 2\n",
        encoding="utf-8"
    )
    return path
