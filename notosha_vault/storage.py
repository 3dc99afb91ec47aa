"""
Vault storage collaborators.

The vault core is storage-agnostic: it only needs somewhere to read and
write ``VaultIdentity`` and ``EncryptedRecord`` values. Remote backends
implement the ``IdentityStore`` / ``RecordStore`` protocols; the memory
implementations below serve as the local cache and in tests.

Stores must keep ``ciphertext``, ``nonce``, ``salt`` and ``auth_hash``
text byte-for-byte; any mutation makes the record undecryptable.
"""
import logging
from typing import Optional, Protocol, runtime_checkable

from .models import EncryptedRecord, VaultIdentity

logger = logging.getLogger("notosha.vault")


def normalize_email(email: str) -> str:
    return email.strip().lower()


@runtime_checkable
class IdentityStore(Protocol):
    async def get_identity(self, email: str) -> Optional[VaultIdentity]:
        ...

    async def save_identity(self, identity: VaultIdentity) -> None:
        ...

    async def exists(self, email: str) -> bool:
        ...

    async def delete_identity(self, email: str) -> None:
        ...


@runtime_checkable
class RecordStore(Protocol):
    async def list_records(self, vault_id: str) -> list[EncryptedRecord]:
        ...

    async def get_record(self, vault_id: str, record_id: str) -> Optional[EncryptedRecord]:
        ...

    async def save_record(self, record: EncryptedRecord) -> None:
        ...

    async def delete_record(self, vault_id: str, record_id: str) -> bool:
        ...

    async def clear_records(self, vault_id: str) -> int:
        ...


class MemoryIdentityStore:
    """In-process identity store keyed by lowercase email."""

    def __init__(self):
        self._identities: dict[str, VaultIdentity] = {}

    async def get_identity(self, email: str) -> Optional[VaultIdentity]:
        return self._identities.get(normalize_email(email))

    async def save_identity(self, identity: VaultIdentity) -> None:
        self._identities[normalize_email(identity.email)] = identity

    async def exists(self, email: str) -> bool:
        return normalize_email(email) in self._identities

    async def delete_identity(self, email: str) -> None:
        self._identities.pop(normalize_email(email), None)


class MemoryRecordStore:
    """In-process record store grouped by vault id, newest first."""

    def __init__(self):
        self._records: dict[str, dict[str, EncryptedRecord]] = {}

    async def list_records(self, vault_id: str) -> list[EncryptedRecord]:
        records = self._records.get(vault_id, {}).values()
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    async def get_record(self, vault_id: str, record_id: str) -> Optional[EncryptedRecord]:
        return self._records.get(vault_id, {}).get(record_id)

    async def save_record(self, record: EncryptedRecord) -> None:
        self._records.setdefault(record.vault_id, {})[record.id] = record

    async def delete_record(self, vault_id: str, record_id: str) -> bool:
        return self._records.get(vault_id, {}).pop(record_id, None) is not None

    async def clear_records(self, vault_id: str) -> int:
        return len(self._records.pop(vault_id, {}))


class IdentityResolver:
    """Two-tier identity lookup: remote store first, then local cache.

    A remote hit is written through to the local cache so the vault can
    still be unlocked when the remote backend is unavailable. A remote
    lookup error falls back to the cache; it is logged, not raised.
    """

    def __init__(self, remote: Optional[IdentityStore], local: IdentityStore):
        self._remote = remote
        self._local = local

    async def resolve(self, email: str) -> Optional[VaultIdentity]:
        identity = None
        if self._remote is not None:
            try:
                identity = await self._remote.get_identity(email)
            except Exception as err:  # remote backends raise their own errors
                logger.warning("Remote identity lookup failed: %s", err)
        if identity is not None:
            await self._local.save_identity(identity)
            return identity
        identity = await self._local.get_identity(email)
        if identity is not None:
            logger.debug("Identity resolved from local cache")
        return identity

    async def exists(self, email: str) -> bool:
        return await self.resolve(email) is not None

    async def save(self, identity: VaultIdentity) -> None:
        if self._remote is not None:
            await self._remote.save_identity(identity)
        await self._local.save_identity(identity)

    async def delete(self, email: str) -> None:
        """Remove the identity from both tiers."""
        if self._remote is not None:
            await self._remote.delete_identity(email)
        await self._local.delete_identity(email)
