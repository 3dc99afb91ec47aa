"""
VaultManager — account and record workflows on top of ``VaultSession``.

- ``register(email, password)`` / ``login(email, password)``
- ``lock()`` / ``logout()`` / ``touch()``
- record CRUD: ``add_secret``, ``update_secret``, ``toggle_favorite``,
  ``delete_secret``, ``list_secrets`` (with client-side search)
- ``delete_vault()`` removes the account and all of its records
- ``security_report()`` over the decrypted secrets

Security Note:
    Never log emails together with outcomes that reveal whether the
    password or the stored salt was at fault. User-facing login errors are
    deliberately generic.
"""
import logging
from typing import NamedTuple, Optional

from .analyzer import SecurityReport, analyze
from .exceptions import InvalidInputError, RecordNotFoundError, VaultLockedError
from .models import (
    EncryptedRecord,
    PlaintextRecord,
    Secret,
    SecretCategory,
    VaultIdentity,
    utcnow,
)
from .storage import IdentityResolver, RecordStore
from .vault.config import VaultConfig
from .vault.session_vault import VaultSession

logger = logging.getLogger("notosha.vault")

INVALID_PASSWORD = "Invalid master password"


class AuthResult(NamedTuple):
    success: bool
    error: Optional[str] = None


def _matches(record: PlaintextRecord, query: str) -> bool:
    needle = query.casefold()
    fields = (record.name, record.username, record.url, record.notes)
    return any(needle in f.casefold() for f in fields if f)


def _as_secret(stored: EncryptedRecord, record: PlaintextRecord) -> Secret:
    return Secret(
        id=stored.id,
        record=record,
        category=stored.category,
        favorite=stored.favorite,
        created_at=stored.created_at,
        updated_at=stored.updated_at,
    )


class VaultManager:
    """Registration, login and encrypted record management for one user."""

    def __init__(
        self,
        identities: IdentityResolver,
        records: RecordStore,
        config: Optional[VaultConfig] = None,
        session: Optional[VaultSession] = None,
    ):
        self._config = config or VaultConfig()
        self._identities = identities
        self._records = records
        self._session = session or VaultSession(self._config)
        self._identity: Optional[VaultIdentity] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def session(self) -> VaultSession:
        return self._session

    @property
    def identity(self) -> Optional[VaultIdentity]:
        return self._identity

    @property
    def is_unlocked(self) -> bool:
        return self._session.is_unlocked

    def _vault_id(self) -> str:
        if not self._session.is_unlocked or self._identity is None:
            raise VaultLockedError()
        return self._identity.vault_id

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def register(self, email: str, master_password: str) -> AuthResult:
        """Create a new vault and leave it unlocked."""
        if not email or not master_password:
            return AuthResult(False, "Email and password are required")
        if await self._identities.exists(email):
            return AuthResult(False, "A vault with this email already exists")
        min_length = self._config.min_master_password_length
        if len(master_password) < min_length:
            return AuthResult(
                False, f"Password must be at least {min_length} characters"
            )

        credentials = await self._session.initialize_vault(master_password)
        identity = VaultIdentity(
            email=email,
            salt=credentials.salt,
            auth_hash=credentials.auth_hash,
            last_unlock=utcnow(),
        )
        try:
            await self._identities.save(identity)
        except Exception:
            self._session.lock()
            raise
        self._identity = identity
        logger.info("Vault registered: vault=%s", identity.vault_id)
        return AuthResult(True)

    async def login(self, email: str, master_password: str) -> AuthResult:
        """Unlock an existing vault.

        Wrong passwords and corrupted identity records produce the same
        user-facing error; they are only told apart in the logs.
        """
        if not email or not master_password:
            return AuthResult(False, "Email and password are required")
        identity = await self._identities.resolve(email)
        if identity is None:
            return AuthResult(False, "No vault found")

        try:
            unlocked = await self._session.unlock(
                master_password, identity.salt, identity.auth_hash,
            )
        except InvalidInputError as err:
            logger.error(
                "Stored identity for vault=%s is malformed: %s",
                identity.vault_id, err,
            )
            return AuthResult(False, INVALID_PASSWORD)
        if not unlocked:
            return AuthResult(False, INVALID_PASSWORD)

        identity = identity.model_copy(update={"last_unlock": utcnow()})
        try:
            await self._identities.save(identity)
        except Exception:
            self._session.lock()
            raise
        self._identity = identity
        return AuthResult(True)

    def lock(self) -> None:
        self._session.lock()

    def logout(self) -> None:
        self._session.logout()
        self._identity = None

    def touch(self) -> None:
        self._session.touch()

    # ------------------------------------------------------------------
    # Records
    # ------------------------------------------------------------------

    async def _get(self, vault_id: str, secret_id: str) -> EncryptedRecord:
        stored = await self._records.get_record(vault_id, secret_id)
        if stored is None:
            raise RecordNotFoundError(f"Secret {secret_id} not found")
        return stored

    async def _to_secret(self, stored: EncryptedRecord) -> Secret:
        record = await self._session.decrypt(stored.ciphertext, stored.nonce)
        return _as_secret(stored, record)

    async def add_secret(
        self,
        record: PlaintextRecord,
        category: SecretCategory = SecretCategory.LOGIN,
        favorite: bool = False,
    ) -> Secret:
        """Encrypt and store a new secret."""
        vault_id = self._vault_id()
        payload = await self._session.encrypt(record)
        stored = EncryptedRecord(
            vault_id=vault_id,
            ciphertext=payload.ciphertext,
            nonce=payload.nonce,
            category=category,
            favorite=favorite,
        )
        await self._records.save_record(stored)
        self.touch()
        logger.debug("Secret added: vault=%s id=%s", vault_id, stored.id)
        return _as_secret(stored, record)

    async def update_secret(
        self,
        secret_id: str,
        record: PlaintextRecord,
        category: Optional[SecretCategory] = None,
    ) -> Secret:
        """Replace a secret's content; always re-encrypts with a new nonce."""
        vault_id = self._vault_id()
        stored = await self._get(vault_id, secret_id)
        payload = await self._session.encrypt(record)
        updates = {
            "ciphertext": payload.ciphertext,
            "nonce": payload.nonce,
            "updated_at": utcnow(),
        }
        if category is not None:
            updates["category"] = category
        stored = stored.model_copy(update=updates)
        await self._records.save_record(stored)
        self.touch()
        logger.debug("Secret updated: vault=%s id=%s", vault_id, secret_id)
        return _as_secret(stored, record)

    async def toggle_favorite(self, secret_id: str) -> bool:
        """Flip the favorite flag; returns the new value."""
        vault_id = self._vault_id()
        stored = await self._get(vault_id, secret_id)
        stored = stored.model_copy(
            update={"favorite": not stored.favorite, "updated_at": utcnow()}
        )
        await self._records.save_record(stored)
        self.touch()
        return stored.favorite

    async def delete_secret(self, secret_id: str) -> bool:
        vault_id = self._vault_id()
        deleted = await self._records.delete_record(vault_id, secret_id)
        self.touch()
        logger.debug("Secret delete: vault=%s id=%s deleted=%s", vault_id, secret_id, deleted)
        return deleted

    async def get_secret(self, secret_id: str) -> Secret:
        """Decrypt a single secret.

        Raises:
            RecordNotFoundError: If no such secret exists.
            DecryptionError: If the stored record is corrupted.
        """
        vault_id = self._vault_id()
        stored = await self._get(vault_id, secret_id)
        self.touch()
        return await self._to_secret(stored)

    async def list_secrets(
        self,
        category: Optional[SecretCategory] = None,
        favorites_only: bool = False,
        query: Optional[str] = None,
    ) -> list[Secret]:
        """Decrypt all secrets of the vault.

        Unreadable records are skipped and logged; they never prevent the
        rest of the vault from loading.

        Args:
            category: Only secrets of this category.
            favorites_only: Only secrets flagged as favorite.
            query: Case-insensitive substring matched against name,
                username, url and notes. Storage only holds ciphertext,
                so the match runs after decryption.
        """
        vault_id = self._vault_id()
        stored = await self._records.list_records(vault_id)
        if category is not None:
            stored = [r for r in stored if r.category == category]
        if favorites_only:
            stored = [r for r in stored if r.favorite]

        batch = await self._session.decrypt_batch(
            {r.id: (r.ciphertext, r.nonce) for r in stored}
        )
        if batch.failed:
            logger.warning(
                "Vault %s: %d unreadable secret(s) skipped", vault_id, len(batch.failed),
            )
        self.touch()
        secrets = [
            _as_secret(r, batch.records[r.id])
            for r in stored
            if r.id in batch.records
        ]
        if query:
            secrets = [s for s in secrets if _matches(s.record, query)]
        return secrets

    async def security_report(self) -> SecurityReport:
        secrets = await self.list_secrets()
        return analyze(secrets, stale_after_days=self._config.stale_after_days)

    async def delete_vault(self) -> int:
        """Delete the unlocked vault: its records and its identity.

        The session is locked first, so no key outlives the account.

        Returns:
            Number of records removed.
        """
        vault_id = self._vault_id()
        email = self._identity.email
        self.logout()
        removed = await self._records.clear_records(vault_id)
        await self._identities.delete(email)
        logger.info("Vault deleted: vault=%s records=%d", vault_id, removed)
        return removed
