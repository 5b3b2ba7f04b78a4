"""Tests for CredentialRepository."""
import asyncio
import json

import pytest

from models.entities import Credential
from services.cipher import CipherCodec
from services.credentials import CredentialRepository
from services.encrypted_slot import EncryptedSlot
from services.slot_store import SecureSlotStore, SlotId


@pytest.fixture
def repo(make_slot) -> CredentialRepository:
    return CredentialRepository(make_slot(SlotId.CREDENTIALS))


async def add_john(repo: CredentialRepository, email: str = "Test@Example.com") -> bool:
    return await repo.upsert(email, "password123", "John", "Doe", "5551234567")


class TestUpsert:
    async def test_round_trip(self, repo: CredentialRepository):
        assert await add_john(repo) is True
        cred = await repo.find_by_email("test@example.com")
        assert cred == Credential("test@example.com", "password123", "John", "Doe", "5551234567")

    async def test_email_is_stored_lowercase(self, repo: CredentialRepository):
        await add_john(repo, "MiXeD@Example.COM")
        [cred] = await repo.list_credentials()
        assert cred.email == "mixed@example.com"

    async def test_same_email_updates_in_place(self, repo: CredentialRepository):
        await repo.upsert("first@example.com", "pw-first-1", "Ann", "One", "1111111111")
        await add_john(repo)
        await repo.upsert("last@example.com", "pw-last-11", "Zed", "Last", "9999999999")

        await repo.upsert("TEST@example.com", "newpassword", "Jane", "Smith", "0987654321")

        creds = await repo.list_credentials()
        assert [c.email for c in creds] == ["first@example.com", "test@example.com", "last@example.com"]
        assert creds[1] == Credential("test@example.com", "newpassword", "Jane", "Smith", "0987654321")

    async def test_distinct_emails_are_appended(self, repo: CredentialRepository):
        await add_john(repo, "a@example.com")
        await add_john(repo, "b@example.com")
        assert len(await repo.list_credentials()) == 2

    async def test_concurrent_upserts_are_not_lost(self, repo: CredentialRepository):
        emails = [f"user{i}@example.com" for i in range(10)]
        results = await asyncio.gather(*(add_john(repo, email) for email in emails))
        assert all(results)
        stored = {c.email for c in await repo.list_credentials()}
        assert stored == set(emails)

    async def test_storage_failure_returns_false(self, failing_keyring, cipher: CipherCodec):
        slot = EncryptedSlot(SecureSlotStore(backend=failing_keyring), cipher, SlotId.CREDENTIALS)
        repo = CredentialRepository(slot)
        assert await add_john(repo) is False

    async def test_unreadable_list_is_not_overwritten(self, memory_keyring, cipher: CipherCodec, monkeypatch):
        store = SecureSlotStore(backend=memory_keyring)
        repo = CredentialRepository(EncryptedSlot(store, cipher, SlotId.CREDENTIALS))
        await add_john(repo, "keep@example.com")
        before = dict(memory_keyring.entries)

        def broken_get(service, username):
            raise RuntimeError("keystore locked")

        monkeypatch.setattr(memory_keyring, "get_password", broken_get)
        assert await add_john(repo, "new@example.com") is False
        assert memory_keyring.entries == before

    def test_requires_credentials_slot(self, make_slot):
        with pytest.raises(ValueError):
            CredentialRepository(make_slot(SlotId.SESSION))


class TestListCredentials:
    async def test_empty_when_absent(self, repo: CredentialRepository):
        assert await repo.list_credentials() == []

    async def test_corrupted_blob_yields_empty_list(self, repo: CredentialRepository, store: SecureSlotStore):
        await add_john(repo)
        await store.write(SlotId.CREDENTIALS, "ENC:1:AAAAgarbageAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA")
        assert await repo.list_credentials() == []

    async def test_wrong_shape_yields_empty_list(self, repo: CredentialRepository, store: SecureSlotStore, cipher: CipherCodec):
        await store.write(SlotId.CREDENTIALS, cipher.encrypt(json.dumps({"email": "a@b.c"})))
        assert await repo.list_credentials() == []

    async def test_partially_valid_entries_rejected_as_a_whole(
        self, repo: CredentialRepository, store: SecureSlotStore, cipher: CipherCodec
    ):
        payload = [
            {"email": "a@b.c", "password": "pw", "firstName": "A", "lastName": "B", "phoneNumber": "1"},
            {"email": "x@y.z", "password": 12345},
        ]
        await store.write(SlotId.CREDENTIALS, cipher.encrypt(json.dumps(payload)))
        assert await repo.list_credentials() == []


class TestValidate:
    async def test_scenario_signup_then_validate(self, repo: CredentialRepository):
        await add_john(repo)
        assert await repo.validate("test@example.com", "password123") is True
        assert await repo.validate("test@example.com", "wrong") is False

    async def test_email_case_is_ignored(self, repo: CredentialRepository):
        await add_john(repo)
        assert await repo.validate("TEST@EXAMPLE.COM", "password123") is True

    async def test_password_case_matters(self, repo: CredentialRepository):
        await add_john(repo)
        assert await repo.validate("test@example.com", "PASSWORD123") is False

    async def test_unknown_email(self, repo: CredentialRepository):
        await add_john(repo)
        assert await repo.validate("nobody@example.com", "password123") is False

    @pytest.mark.parametrize("email,password", [("", "password123"), ("test@example.com", "")])
    async def test_empty_input_never_matches(self, repo: CredentialRepository, email: str, password: str):
        await add_john(repo)
        assert await repo.validate(email, password) is False

    async def test_updated_password_replaces_old(self, repo: CredentialRepository):
        await add_john(repo)
        await repo.upsert("test@example.com", "newpassword", "John", "Doe", "5551234567")
        assert await repo.validate("test@example.com", "password123") is False
        assert await repo.validate("test@example.com", "newpassword") is True


class TestFindByEmail:
    async def test_case_insensitive(self, repo: CredentialRepository):
        await add_john(repo)
        assert (await repo.find_by_email("TeSt@eXaMpLe.CoM")).first_name == "John"

    async def test_missing_returns_none(self, repo: CredentialRepository):
        assert await repo.find_by_email("nobody@example.com") is None

    async def test_empty_email_returns_none(self, repo: CredentialRepository):
        await add_john(repo)
        assert await repo.find_by_email("") is None

    async def test_find_profile_strips_password(self, repo: CredentialRepository):
        await add_john(repo)
        profile = await repo.find_profile("test@example.com")
        assert profile.to_dict() == {
            "email": "test@example.com",
            "firstName": "John",
            "lastName": "Doe",
            "phoneNumber": "5551234567",
        }
        assert not hasattr(profile, "password")
