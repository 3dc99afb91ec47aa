"""
VaultSession — the in-memory key lifecycle of an unlocked vault.

Provides the public API of the vault core:
- ``initialize_vault(password)`` — derive a new key, return salt + auth hash
- ``unlock(password, salt, auth_hash)`` — verify and derive, False on mismatch
- ``lock()`` / ``logout()`` — drop the key
- ``encrypt(record)`` / ``decrypt(ciphertext, nonce)`` — only while unlocked

The session never talks to storage: callers persist the returned salt and
auth hash themselves.

Security Note:
    The key handle lives in a single slot. Each operation snapshots the
    handle when it starts, so a concurrent ``lock()`` lets an in-flight
    call finish while any later call fails with ``VaultLockedError``.
"""
import logging
from enum import Enum
from typing import Callable, Mapping, NamedTuple, Optional

from ..exceptions import VaultLockedError
from ..models import EncryptedPayload, PlaintextRecord
from . import cipher
from .autolock import AutoLockTimer
from .config import VaultConfig
from .keys import KeyDerivation, SaltLike, VaultKey

logger = logging.getLogger("notosha.vault")


class SessionState(str, Enum):
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class VaultCredentials(NamedTuple):
    """Non-secret values the caller must persist after initialization."""
    auth_hash: str
    salt: str


class VaultSession:
    """Holds at most one vault key for the lifetime of an unlocked session.

    An ``AutoLockTimer`` is created on first unlock (when an event loop is
    running) and is armed on every unlock and disarmed on every lock.
    """

    def __init__(
        self,
        config: Optional[VaultConfig] = None,
        kdf: Optional[KeyDerivation] = None,
    ):
        self._config = config or VaultConfig()
        self._kdf = kdf or KeyDerivation(self._config.kdf_scheme)
        self._key: Optional[VaultKey] = None
        self._timer: Optional[AutoLockTimer] = None
        self._listeners: list[Callable[[], None]] = []
        # bumped by every lock(); derivations started earlier are discarded
        self._generation = 0

    def __repr__(self) -> str:
        return f"<VaultSession state={self.state.value}>"

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return SessionState.UNLOCKED if self._key is not None else SessionState.LOCKED

    @property
    def is_unlocked(self) -> bool:
        return self._key is not None

    @property
    def auto_lock(self) -> Optional[AutoLockTimer]:
        return self._timer

    def add_lock_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run after every transition to LOCKED."""
        self._listeners.append(callback)

    # ------------------------------------------------------------------
    # Key slot
    # ------------------------------------------------------------------

    def _set_key(self, key: VaultKey) -> None:
        if self._timer is None:
            self._timer = AutoLockTimer(
                self.lock,
                timeout=self._config.auto_lock_timeout,
                enabled=self._config.auto_lock_enabled,
            )
        self._timer.arm()
        self._key = key

    def _snapshot(self) -> VaultKey:
        key = self._key
        if key is None:
            raise VaultLockedError()
        return key

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def initialize_vault(self, master_password: str) -> VaultCredentials:
        """Create vault key material and unlock the session.

        Uniqueness of the vault identity is the caller's responsibility.
        If ``lock()`` runs while the key is being derived, the session
        stays LOCKED; the credentials are still returned.

        Returns:
            Auth hash and salt (base64) to persist.
        """
        generation = self._generation
        derived = await self._kdf.initialize(master_password)
        if generation != self._generation:
            logger.info("Vault locked during initialization; staying locked")
        else:
            self._set_key(derived.encryption_key)
            logger.info("Vault initialized and unlocked")
        return VaultCredentials(derived.auth_hash, derived.salt)

    async def unlock(
        self, master_password: str, salt: SaltLike, auth_hash: str
    ) -> bool:
        """Unlock with the master password.

        A session that is already unlocked is locked first, so a failed
        attempt always leaves the session LOCKED.
        A ``lock()`` issued while the key is being derived wins: the
        derived key is discarded and False is returned.

        Returns:
            True on success, False on a wrong master password.

        Raises:
            InvalidInputError: If the salt is malformed.
        """
        if self._key is not None:
            self.lock()
        generation = self._generation
        key = await self._kdf.unlock(master_password, salt, auth_hash)
        if key is None:
            logger.info("Vault unlock rejected: master password mismatch")
            return False
        if generation != self._generation:
            logger.info("Vault locked while unlocking; discarding derived key")
            return False
        self._set_key(key)
        logger.info("Vault unlocked")
        return True

    def lock(self) -> None:
        """Drop the key. Safe to call when already locked."""
        was_unlocked = self._key is not None
        self._key = None
        self._generation += 1
        if self._timer is not None:
            self._timer.disarm()
        if was_unlocked:
            logger.info("Vault locked")
            for callback in list(self._listeners):
                callback()

    def logout(self) -> None:
        self.lock()

    def touch(self) -> None:
        """Activity signal; restarts the auto-lock countdown."""
        if self._timer is not None:
            self._timer.touch()

    # ------------------------------------------------------------------
    # Crypto operations
    # ------------------------------------------------------------------

    async def encrypt(self, record: PlaintextRecord) -> EncryptedPayload:
        """Encrypt a record with the session key.

        Raises:
            VaultLockedError: If the session is locked.
        """
        key = self._snapshot()
        return await cipher.encrypt(record, key)

    async def decrypt(self, ciphertext: str, nonce: str) -> PlaintextRecord:
        """Decrypt a stored record with the session key.

        Raises:
            VaultLockedError: If the session is locked.
            DecryptionError: If the record cannot be authenticated.
        """
        key = self._snapshot()
        return await cipher.decrypt(ciphertext, nonce, key)

    async def encrypt_batch(
        self, records: Mapping[str, PlaintextRecord]
    ) -> dict[str, EncryptedPayload]:
        key = self._snapshot()
        return await cipher.encrypt_batch(records, key)

    async def decrypt_batch(
        self, items: Mapping[str, tuple[str, str]]
    ) -> cipher.BatchResult:
        key = self._snapshot()
        return await cipher.decrypt_batch(items, key)
