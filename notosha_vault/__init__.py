"""Notosha Vault.

Client-side, zero-knowledge secret vault: secrets are encrypted and
decrypted on the user's device and storage only ever sees ciphertext.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    InvalidInputError,
    FormatError,
    VaultLockedError,
    DecryptionError,
    RecordNotFoundError,
)
from .models import (
    SecretCategory,
    PlaintextRecord,
    EncryptedPayload,
    EncryptedRecord,
    VaultIdentity,
    Secret,
)
from .vault import VaultConfig, VaultSession, AutoLockTimer, KeyDerivation
from .analyzer import analyze, calculate_password_strength, PasswordStrength
from .manager import VaultManager, AuthResult
from .storage import IdentityResolver, MemoryIdentityStore, MemoryRecordStore

__all__ = [
    "__version__",
    "VaultError",
    "InvalidInputError",
    "FormatError",
    "VaultLockedError",
    "DecryptionError",
    "RecordNotFoundError",
    "SecretCategory",
    "PlaintextRecord",
    "EncryptedPayload",
    "EncryptedRecord",
    "VaultIdentity",
    "Secret",
    "VaultConfig",
    "VaultSession",
    "AutoLockTimer",
    "KeyDerivation",
    "analyze",
    "calculate_password_strength",
    "PasswordStrength",
    "VaultManager",
    "AuthResult",
    "IdentityResolver",
    "MemoryIdentityStore",
    "MemoryRecordStore",
]
