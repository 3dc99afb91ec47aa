"""Tests for VaultManager workflows and storage collaborators."""
from datetime import timedelta

import pytest

from notosha_vault.exceptions import RecordNotFoundError, VaultLockedError
from notosha_vault.manager import INVALID_PASSWORD, VaultManager
from notosha_vault.models import (
    EncryptedRecord,
    PlaintextRecord,
    SecretCategory,
    VaultIdentity,
    utcnow,
)
from notosha_vault.storage import (
    IdentityResolver,
    IdentityStore,
    MemoryIdentityStore,
    MemoryRecordStore,
    RecordStore,
)
from notosha_vault.vault.config import VaultConfig

EMAIL = "Alice@Example.com"
PASSWORD = "correct horse battery staple"


class FailingIdentityStore(MemoryIdentityStore):
    """Remote store that is unreachable."""

    async def get_identity(self, email):
        raise ConnectionError("remote down")


@pytest.fixture
def local():
    return MemoryIdentityStore()


@pytest.fixture
def remote():
    return MemoryIdentityStore()


@pytest.fixture
def records():
    return MemoryRecordStore()


@pytest.fixture
def manager(remote, local, records):
    return VaultManager(
        IdentityResolver(remote, local),
        records,
        VaultConfig(auto_lock_enabled=False),
    )


class TestStorage:
    """Tests for the storage collaborators."""

    def test_protocols(self):
        assert isinstance(MemoryIdentityStore(), IdentityStore)
        assert isinstance(MemoryRecordStore(), RecordStore)

    @pytest.mark.asyncio
    async def test_email_is_case_insensitive(self, local):
        await local.save_identity(VaultIdentity(email=EMAIL, salt="s", auth_hash="h"))
        assert await local.exists("alice@example.com")
        assert (await local.get_identity("ALICE@example.COM")).email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_resolver_writes_remote_hit_through(self, remote, local):
        identity = VaultIdentity(email=EMAIL, salt="s", auth_hash="h")
        await remote.save_identity(identity)
        resolver = IdentityResolver(remote, local)
        assert await resolver.resolve(EMAIL) == identity
        assert await local.get_identity(EMAIL) == identity

    @pytest.mark.asyncio
    async def test_resolver_falls_back_to_local(self, local):
        identity = VaultIdentity(email=EMAIL, salt="s", auth_hash="h")
        await local.save_identity(identity)
        resolver = IdentityResolver(FailingIdentityStore(), local)
        assert await resolver.resolve(EMAIL) == identity

    @pytest.mark.asyncio
    async def test_resolver_without_remote(self, local):
        resolver = IdentityResolver(None, local)
        assert await resolver.resolve(EMAIL) is None
        assert not await resolver.exists(EMAIL)

    @pytest.mark.asyncio
    async def test_resolver_delete_clears_both_tiers(self, remote, local):
        identity = VaultIdentity(email=EMAIL, salt="s", auth_hash="h")
        resolver = IdentityResolver(remote, local)
        await resolver.save(identity)
        await resolver.delete(EMAIL.upper())
        assert not await remote.exists(EMAIL)
        assert not await local.exists(EMAIL)

    @pytest.mark.asyncio
    async def test_clear_records_only_touches_one_vault(self, records):
        for vault_id in ("v1", "v1", "v2"):
            await records.save_record(
                EncryptedRecord(vault_id=vault_id, ciphertext="c", nonce="n")
            )
        assert await records.clear_records("v1") == 2
        assert await records.list_records("v1") == []
        assert len(await records.list_records("v2")) == 1
        assert await records.clear_records("v1") == 0


class TestRegistration:
    """Tests for register."""

    @pytest.mark.asyncio
    async def test_register_unlocks_and_persists(self, manager, remote, local):
        result = await manager.register(EMAIL, PASSWORD)
        assert result.success and result.error is None
        assert manager.is_unlocked
        stored = await remote.get_identity(EMAIL)
        assert stored.salt and stored.auth_hash
        assert await local.exists(EMAIL)
        assert PASSWORD not in stored.model_dump_json()

    @pytest.mark.asyncio
    async def test_duplicate_vault(self, manager):
        await manager.register(EMAIL, PASSWORD)
        manager.logout()
        result = await manager.register(EMAIL.lower(), PASSWORD)
        assert not result.success
        assert "already exists" in result.error

    @pytest.mark.asyncio
    @pytest.mark.parametrize("email,password", [("", PASSWORD), (EMAIL, ""), (EMAIL, "short")])
    async def test_invalid_input(self, manager, email, password):
        result = await manager.register(email, password)
        assert not result.success
        assert not manager.is_unlocked


class TestLogin:
    """Tests for login."""

    @pytest.mark.asyncio
    async def test_login_roundtrip(self, manager):
        await manager.register(EMAIL, PASSWORD)
        secret = await manager.add_secret(PlaintextRecord(name="mail", password="Kq9#vL2$mW7@pZ4!"))
        manager.lock()
        assert not manager.is_unlocked

        result = await manager.login(EMAIL, PASSWORD)
        assert result.success
        assert manager.identity.last_unlock is not None
        assert (await manager.get_secret(secret.id)).password == "Kq9#vL2$mW7@pZ4!"

    @pytest.mark.asyncio
    async def test_wrong_password(self, manager):
        await manager.register(EMAIL, PASSWORD)
        manager.logout()
        result = await manager.login(EMAIL, "wrong password")
        assert result == (False, INVALID_PASSWORD)
        assert not manager.is_unlocked

    @pytest.mark.asyncio
    async def test_corrupt_salt_gives_same_message(self, manager, remote, local):
        """Test a malformed stored salt is indistinguishable from a wrong password."""
        await manager.register(EMAIL, PASSWORD)
        manager.logout()
        identity = await remote.get_identity(EMAIL)
        corrupt = identity.model_copy(update={"salt": "%%corrupt%%"})
        await remote.save_identity(corrupt)
        result = await manager.login(EMAIL, PASSWORD)
        assert result == (False, INVALID_PASSWORD)

    @pytest.mark.asyncio
    async def test_unknown_vault(self, manager):
        result = await manager.login("nobody@example.com", PASSWORD)
        assert result == (False, "No vault found")

    @pytest.mark.asyncio
    async def test_login_from_local_cache_when_remote_down(self, local, records):
        online = VaultManager(IdentityResolver(MemoryIdentityStore(), local), records,
                              VaultConfig(auto_lock_enabled=False))
        await online.register(EMAIL, PASSWORD)
        online.logout()

        offline = VaultManager(IdentityResolver(FailingIdentityStore(), local), records,
                               VaultConfig(auto_lock_enabled=False))
        assert (await offline.login(EMAIL, PASSWORD)).success


class TestSecrets:
    """Tests for encrypted record CRUD."""

    @pytest.mark.asyncio
    async def test_crud_requires_unlock(self, manager):
        with pytest.raises(VaultLockedError):
            await manager.add_secret(PlaintextRecord(name="x", password="y"))
        with pytest.raises(VaultLockedError):
            await manager.list_secrets()

    @pytest.mark.asyncio
    async def test_storage_never_sees_plaintext(self, manager, records):
        await manager.register(EMAIL, PASSWORD)
        secret = await manager.add_secret(
            PlaintextRecord(name="bank", username="alice", password="Hx5&nB8*rT1^yG6%"),
            category=SecretCategory.CREDIT_CARD,
        )
        stored = await records.get_record(manager.identity.vault_id, secret.id)
        dumped = stored.model_dump_json()
        assert "Hx5&nB8" not in dumped
        assert "alice" not in dumped
        assert stored.category is SecretCategory.CREDIT_CARD

    @pytest.mark.asyncio
    async def test_update_reencrypts_with_new_nonce(self, manager, records):
        await manager.register(EMAIL, PASSWORD)
        record = PlaintextRecord(name="mail", password="Pa7!Qe3@Ws9#Dz2$")
        secret = await manager.add_secret(record)
        vault_id = manager.identity.vault_id
        before = await records.get_record(vault_id, secret.id)

        updated = await manager.update_secret(secret.id, record, category=SecretCategory.NOTE)
        after = await records.get_record(vault_id, secret.id)
        assert after.nonce != before.nonce
        assert after.ciphertext != before.ciphertext
        assert updated.category is SecretCategory.NOTE
        assert (await manager.get_secret(secret.id)).record == record

    @pytest.mark.asyncio
    async def test_toggle_favorite_and_filters(self, manager):
        await manager.register(EMAIL, PASSWORD)
        a = await manager.add_secret(PlaintextRecord(name="a", password="1"))
        await manager.add_secret(PlaintextRecord(name="b", password="2"), category=SecretCategory.API_KEY)

        assert await manager.toggle_favorite(a.id) is True
        favorites = await manager.list_secrets(favorites_only=True)
        assert [s.id for s in favorites] == [a.id]
        api_keys = await manager.list_secrets(category=SecretCategory.API_KEY)
        assert [s.name for s in api_keys] == ["b"]
        assert await manager.toggle_favorite(a.id) is False

    @pytest.mark.asyncio
    async def test_delete(self, manager):
        await manager.register(EMAIL, PASSWORD)
        secret = await manager.add_secret(PlaintextRecord(name="a", password="1"))
        assert await manager.delete_secret(secret.id) is True
        assert await manager.delete_secret(secret.id) is False
        with pytest.raises(RecordNotFoundError):
            await manager.get_secret(secret.id)

    @pytest.mark.asyncio
    async def test_corrupted_record_is_skipped(self, manager, records):
        await manager.register(EMAIL, PASSWORD)
        good = await manager.add_secret(PlaintextRecord(name="good", password="1"))
        bad = await manager.add_secret(PlaintextRecord(name="bad", password="2"))
        vault_id = manager.identity.vault_id
        stored = await records.get_record(vault_id, bad.id)
        await records.save_record(stored.model_copy(update={"ciphertext": stored.ciphertext[::-1]}))

        secrets = await manager.list_secrets()
        assert [s.id for s in secrets] == [good.id]

    @pytest.mark.asyncio
    async def test_security_report(self, manager, records):
        await manager.register(EMAIL, PASSWORD)
        await manager.add_secret(PlaintextRecord(name="a", password="Sunshine1!"))
        await manager.add_secret(PlaintextRecord(name="b", password="Sunshine1!"))
        old = await manager.add_secret(PlaintextRecord(name="c", password="Kq9#vL2$mW7@pZ4!"))
        vault_id = manager.identity.vault_id
        stored = await records.get_record(vault_id, old.id)
        await records.save_record(
            stored.model_copy(update={"updated_at": utcnow() - timedelta(days=200)})
        )

        report = await manager.security_report()
        assert report.score.reused_passwords == 2
        assert report.score.old_passwords == 1
        assert report.score.overall < 100

    @pytest.mark.asyncio
    async def test_search_matches_decrypted_fields(self, manager):
        await manager.register(EMAIL, PASSWORD)
        await manager.add_secret(PlaintextRecord(name="GitHub", username="octocat", password="1"))
        await manager.add_secret(
            PlaintextRecord(name="bank", password="2", url="https://bank.example.com")
        )
        await manager.add_secret(
            PlaintextRecord(name="wifi", password="3", notes="Router in the HALLWAY")
        )

        assert [s.name for s in await manager.list_secrets(query="github")] == ["GitHub"]
        assert [s.name for s in await manager.list_secrets(query="OCTO")] == ["GitHub"]
        assert [s.name for s in await manager.list_secrets(query="bank.example")] == ["bank"]
        assert [s.name for s in await manager.list_secrets(query="hallway")] == ["wifi"]
        assert await manager.list_secrets(query="nothing-like-this") == []
        assert len(await manager.list_secrets(query="")) == 3

    @pytest.mark.asyncio
    async def test_search_combines_with_filters(self, manager):
        await manager.register(EMAIL, PASSWORD)
        await manager.add_secret(PlaintextRecord(name="aws prod", password="1"),
                                 category=SecretCategory.API_KEY)
        await manager.add_secret(PlaintextRecord(name="aws console", password="2"))
        found = await manager.list_secrets(category=SecretCategory.API_KEY, query="aws")
        assert [s.name for s in found] == ["aws prod"]


class TestDeleteVault:
    """Tests for removing a whole vault."""

    @pytest.mark.asyncio
    async def test_delete_vault_removes_everything(self, manager, remote, local, records):
        await manager.register(EMAIL, PASSWORD)
        await manager.add_secret(PlaintextRecord(name="a", password="1"))
        await manager.add_secret(PlaintextRecord(name="b", password="2"))
        vault_id = manager.identity.vault_id

        assert await manager.delete_vault() == 2
        assert not manager.is_unlocked
        assert manager.identity is None
        assert await records.list_records(vault_id) == []
        assert not await remote.exists(EMAIL)
        assert not await local.exists(EMAIL)
        assert await manager.login(EMAIL, PASSWORD) == (False, "No vault found")

    @pytest.mark.asyncio
    async def test_email_can_register_again(self, manager):
        await manager.register(EMAIL, PASSWORD)
        await manager.delete_vault()
        assert (await manager.register(EMAIL, PASSWORD)).success

    @pytest.mark.asyncio
    async def test_delete_vault_requires_unlock(self, manager, remote):
        await manager.register(EMAIL, PASSWORD)
        manager.lock()
        with pytest.raises(VaultLockedError):
            await manager.delete_vault()
        assert await remote.exists(EMAIL)
