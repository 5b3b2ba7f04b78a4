"""Shared fixtures for AccountSetup tests."""
import time
from pathlib import Path
from typing import Dict, Optional, Tuple

import pytest
import pytest_asyncio
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from api import AuthAPI
from core import ServiceContainer, bootstrap, shutdown
from database import LocalStore
from services.cipher import CipherCodec, RawKeyProvider
from services.encrypted_slot import EncryptedSlot
from services.slot_store import SecureSlotStore, SlotId

TEST_KEY = bytes(range(32))


class MemoryKeyring(KeyringBackend):
    """In-process keyring backend standing in for the OS keychain."""
    priority = 1

    def __init__(self) -> None:
        super().__init__()
        self.entries: Dict[Tuple[str, str], str] = {}

    def set_password(self, service: str, username: str, password: str) -> None:
        self.entries[(service, username)] = password

    def get_password(self, service: str, username: str) -> Optional[str]:
        return self.entries.get((service, username))

    def delete_password(self, service: str, username: str) -> None:
        if (service, username) not in self.entries:
            raise PasswordDeleteError("not found")
        del self.entries[(service, username)]


class FailingKeyring(KeyringBackend):
    """Keyring that is locked / denied for every call."""
    priority = 1

    def set_password(self, service: str, username: str, password: str) -> None:
        raise KeyringError("keychain unavailable")

    def get_password(self, service: str, username: str) -> Optional[str]:
        raise KeyringError("keychain unavailable")

    def delete_password(self, service: str, username: str) -> None:
        raise KeyringError("keychain unavailable")


class HangingKeyring(MemoryKeyring):
    """Keyring whose calls block longer than the store's timeout."""
    delay = 0.5

    def set_password(self, service: str, username: str, password: str) -> None:
        time.sleep(self.delay)
        super().set_password(service, username, password)

    def get_password(self, service: str, username: str) -> Optional[str]:
        time.sleep(self.delay)
        return super().get_password(service, username)

    def delete_password(self, service: str, username: str) -> None:
        time.sleep(self.delay)
        super().delete_password(service, username)


@pytest.fixture
def memory_keyring() -> MemoryKeyring:
    return MemoryKeyring()


@pytest.fixture
def failing_keyring() -> FailingKeyring:
    return FailingKeyring()


@pytest.fixture
def hanging_keyring() -> HangingKeyring:
    return HangingKeyring()


@pytest.fixture
def test_key() -> bytes:
    return TEST_KEY


@pytest.fixture
def cipher() -> CipherCodec:
    return CipherCodec(RawKeyProvider(TEST_KEY))


@pytest.fixture
def store(memory_keyring: MemoryKeyring) -> SecureSlotStore:
    return SecureSlotStore(backend=memory_keyring, service="AccountSetupTest", timeout=2.0)


@pytest.fixture
def make_slot(store: SecureSlotStore, cipher: CipherCodec):
    def _make(slot_id: SlotId) -> EncryptedSlot:
        return EncryptedSlot(store, cipher, slot_id)
    return _make


@pytest_asyncio.fixture
async def local_store(tmp_path: Path) -> LocalStore:
    ls = LocalStore(tmp_path / "local.db")
    yield ls
    await ls.close()


@pytest_asyncio.fixture
async def services(tmp_path: Path, memory_keyring: MemoryKeyring) -> ServiceContainer:
    """Fully wired services over an in-memory keyring and a temp database."""
    svc = await bootstrap(
        db_path=tmp_path / "accountsetup.db",
        backend=memory_keyring,
        key_provider=RawKeyProvider(TEST_KEY),
        timeout=2.0,
    )
    yield svc
    await shutdown(svc)


@pytest.fixture
def api(services: ServiceContainer) -> AuthAPI:
    return AuthAPI(services)
