"""Tests for SessionManager."""
import json
import time

import pytest

from services.cipher import CipherCodec
from services.encrypted_slot import EncryptedSlot
from services.session import SessionManager
from services.slot_store import SecureSlotStore, SlotId


@pytest.fixture
def sessions(make_slot) -> SessionManager:
    return SessionManager(make_slot(SlotId.SESSION))


class TestSessionManager:
    async def test_no_session_initially(self, sessions: SessionManager):
        assert await sessions.current() is None

    async def test_create_then_current(self, sessions: SessionManager):
        before = int(time.time() * 1000)
        assert await sessions.create("Test@Example.com") is True
        session = await sessions.current()
        assert session.email == "test@example.com"
        assert session.timestamp >= before

    async def test_uses_injected_clock(self, make_slot):
        sessions = SessionManager(make_slot(SlotId.SESSION), clock=lambda: 1_700_000_000_000)
        await sessions.create("a@b.c")
        assert (await sessions.current()).timestamp == 1_700_000_000_000

    async def test_new_session_replaces_old(self, sessions: SessionManager):
        await sessions.create("first@example.com")
        await sessions.create("second@example.com")
        assert (await sessions.current()).email == "second@example.com"

    async def test_clear_then_recreate(self, sessions: SessionManager):
        await sessions.create("a@b.c")
        assert await sessions.clear() is True
        assert await sessions.current() is None
        assert await sessions.create("a@b.c") is True
        assert (await sessions.current()).email == "a@b.c"

    async def test_clear_without_session(self, sessions: SessionManager):
        assert await sessions.clear() is True

    @pytest.mark.parametrize("payload", [
        {"email": "a@b.c"},
        {"email": "a@b.c", "timestamp": "yesterday"},
        {"email": "a@b.c", "timestamp": True},
        {"email": 7, "timestamp": 1},
        ["a@b.c", 1],
    ])
    async def test_malformed_session_is_none(
        self, sessions: SessionManager, store: SecureSlotStore, cipher: CipherCodec, payload
    ):
        await store.write(SlotId.SESSION, cipher.encrypt(json.dumps(payload)))
        assert await sessions.current() is None

    async def test_storage_failure_is_reported(self, failing_keyring, cipher: CipherCodec):
        sessions = SessionManager(EncryptedSlot(SecureSlotStore(backend=failing_keyring), cipher, SlotId.SESSION))
        assert await sessions.create("a@b.c") is False
        assert await sessions.current() is None
        assert await sessions.clear() is False

    def test_requires_session_slot(self, make_slot):
        with pytest.raises(ValueError):
            SessionManager(make_slot(SlotId.CREDENTIALS))
