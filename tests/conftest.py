"""Shared fixtures for the Notosha Vault test suite."""
import os

import pytest

from notosha_vault.models import PlaintextRecord
from notosha_vault.vault.keys import KeyDerivation, VaultKey


@pytest.fixture
def kdf():
    """Key derivation with the default labeled scheme."""
    return KeyDerivation()


@pytest.fixture
def key():
    """Random AES-256 key handle."""
    return VaultKey(os.urandom(32))


@pytest.fixture
def other_key():
    return VaultKey(os.urandom(32))


@pytest.fixture
def record():
    return PlaintextRecord(
        name="GitHub",
        username="octocat",
        password="Tr0ub4dor&3XyZ!",
        url="https://github.com",
        notes="work account",
    )
