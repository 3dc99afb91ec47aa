"""Vault core — key derivation, record encryption and session locking.

Security Note (Threat Model):
    The encryption key exists only in process memory while the session is
    unlocked. A memory dump of the application process taken during that
    window could expose it. Python offers no platform-enforced key
    opacity; ``VaultKey`` only keeps the key out of the public API.
"""

from .autolock import AutoLockTimer
from .cipher import BatchResult
from .config import VaultConfig
from .keys import DerivedSecrets, KeyDerivation, VaultKey
from .session_vault import SessionState, VaultCredentials, VaultSession

__all__ = [
    "AutoLockTimer",
    "BatchResult",
    "VaultConfig",
    "DerivedSecrets",
    "KeyDerivation",
    "VaultKey",
    "SessionState",
    "VaultCredentials",
    "VaultSession",
]
