"""Shared test fixtures for CredLocker."""
import pytest

from credlocker.locker.config import VaultConfig

MASTER_KEY = "CorrectHorseBattery1!"


@pytest.fixture
def fast_config() -> VaultConfig:
    """Configuration with tiny iteration counts so PBKDF2 stays quick."""
    return VaultConfig(
        master_key_hash_iterations=10,
        intermediate_iterations=100,
        final_iteration_multiplier=50,
        final_iteration_factor_min=1,
        final_iteration_factor_max=3,
    )


@pytest.fixture
def master_key() -> str:
    return MASTER_KEY
