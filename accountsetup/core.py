"""Headless bootstrap for the AccountSetup services.

Wires the cipher, secure slot store, repositories and local store without
any UI dependency, suitable for the app shell, scripts and testing.

Usage:
    from core import bootstrap, shutdown

    svc = await bootstrap(db_path=Path("my.db"))
    await svc.credentials.upsert("a@b.c", "password123", "Ann", "Bee", "5551234567")
    await svc.sessions.create("a@b.c")
    await shutdown(svc)
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from keyring.backend import KeyringBackend

from config import KEY_SOURCE, KEYCHAIN_SERVICE, STORAGE_TIMEOUT_SECONDS, KeySource
from database import LocalStore
from events import EventBus
from services.cipher import CipherCodec, KeyProvider, KeyringKeyProvider, StaticKeyProvider
from services.credentials import CredentialRepository
from services.encrypted_slot import EncryptedSlot
from services.profile_cache import ProfileCache
from services.session import SessionManager
from services.signup_draft import SignupDraftService
from services.slot_store import SecureSlotStore, SlotId

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """Container holding all initialized services."""
    store: SecureSlotStore
    cipher: CipherCodec
    credentials: CredentialRepository
    sessions: SessionManager
    profile_cache: ProfileCache
    drafts: SignupDraftService
    local_store: LocalStore
    event_bus: EventBus


def default_key_provider(backend: Optional[KeyringBackend] = None) -> KeyProvider:
    """Key provider selected by configuration."""
    if KEY_SOURCE is KeySource.KEYRING:
        return KeyringKeyProvider(backend=backend, service=KEYCHAIN_SERVICE)
    return StaticKeyProvider()


async def bootstrap(
    db_path: Optional[Path] = None,
    backend: Optional[KeyringBackend] = None,
    key_provider: Optional[KeyProvider] = None,
    timeout: float = STORAGE_TIMEOUT_SECONDS,
) -> ServiceContainer:
    """Initialize the service layer.

    Args:
        db_path: Path of the local (unencrypted) store. Uses config DB_PATH if None.
        backend: Keyring backend. Uses the platform keyring if None.
        key_provider: Cipher key source. Chosen from config if None.
        timeout: Seconds allowed for each keyring call

    Returns:
        ServiceContainer with all services ready to use.
    """
    store = SecureSlotStore(backend=backend, service=KEYCHAIN_SERVICE, timeout=timeout)
    cipher = CipherCodec(key_provider or default_key_provider(backend), timeout=timeout)
    local_store = LocalStore(db_path)

    def slot(slot_id: SlotId) -> EncryptedSlot:
        return EncryptedSlot(store, cipher, slot_id)

    svc = ServiceContainer(
        store=store,
        cipher=cipher,
        credentials=CredentialRepository(slot(SlotId.CREDENTIALS)),
        sessions=SessionManager(slot(SlotId.SESSION)),
        profile_cache=ProfileCache(slot(SlotId.USER_DATA)),
        drafts=SignupDraftService(local_store),
        local_store=local_store,
        event_bus=EventBus(),
    )
    logger.info(f"Services initialized (keychain service '{KEYCHAIN_SERVICE}')")
    return svc


async def shutdown(svc: ServiceContainer) -> None:
    """Clean up resources (close local store connection)."""
    svc.event_bus.clear()
    await svc.local_store.close()
