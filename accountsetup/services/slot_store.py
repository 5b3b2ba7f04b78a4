"""
Secure slot storage backed by the OS keychain.

Each logical slot (credentials, session, userData) is kept as one opaque
blob under its own keyring service/username pair, so slots never collide.
Writes replace the whole blob; there is no partial update.

Keyring calls are blocking, so they run in the default executor and are
bounded by an explicit timeout. Every platform failure surfaces as
StorageError; callers translate it into a boolean/optional result.
"""
import asyncio
import logging
from enum import Enum
from typing import Callable, Optional, Tuple, TypeVar

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError, PasswordDeleteError

from config import (
    CREDENTIALS_KEY,
    KEYCHAIN_SERVICE,
    SESSION_KEY,
    STORAGE_TIMEOUT_SECONDS,
    USER_DATA_KEY,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class StorageError(Exception):
    """Secure keystore read/write/clear failed (unavailable, denied, timeout)."""
    pass


class SlotId(Enum):
    """Logical storage slots."""
    CREDENTIALS = CREDENTIALS_KEY
    SESSION = SESSION_KEY
    USER_DATA = USER_DATA_KEY


def slot_address(slot: SlotId, service: str = KEYCHAIN_SERVICE) -> Tuple[str, str]:
    """Map a slot to its keyring (service, username) pair."""
    if slot is SlotId.USER_DATA:
        return service, slot.value
    return f"{service}_{slot.value}", slot.value


class SecureSlotStore:
    """
    Async wrapper over a keyring backend, one blob per slot.

    Usage:
        store = SecureSlotStore()
        await store.write(SlotId.SESSION, blob)
        blob = await store.read(SlotId.SESSION)
        await store.clear(SlotId.SESSION)
    """

    def __init__(
        self,
        backend: Optional[KeyringBackend] = None,
        service: str = KEYCHAIN_SERVICE,
        timeout: float = STORAGE_TIMEOUT_SECONDS,
    ) -> None:
        """Initialize the slot store.

        Args:
            backend: Keyring backend to use. Defaults to the platform keyring.
            service: Base keychain service name
            timeout: Seconds to wait for any single keyring call
        """
        self._backend = backend
        self._service = service
        self._timeout = timeout

    def _get_backend(self) -> KeyringBackend:
        # Backend discovery may touch the filesystem; only call from the executor.
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    async def _run(self, op: str, slot: SlotId, fn: Callable[[KeyringBackend], T]) -> T:
        loop = asyncio.get_running_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, lambda: fn(self._get_backend())),
                self._timeout,
            )
        except asyncio.TimeoutError as e:
            logger.error(f"Keyring {op} of slot '{slot.value}' timed out after {self._timeout}s")
            raise StorageError(f"Timed out during {op} of {slot.value}") from e
        except (KeyringError, OSError, RuntimeError) as e:
            logger.error(f"Keyring {op} of slot '{slot.value}' failed: {e}")
            raise StorageError(f"Failed during {op} of {slot.value}: {e}") from e

    async def write(self, slot: SlotId, blob: str) -> None:
        """Overwrite the slot with blob.

        Raises:
            StorageError: If the keystore rejects the write
        """
        service, username = slot_address(slot, self._service)
        await self._run("write", slot, lambda backend: backend.set_password(service, username, blob))

    async def read(self, slot: SlotId) -> Optional[str]:
        """Return the slot's blob, or None if never written or cleared.

        Raises:
            StorageError: If the keystore cannot be read
        """
        service, username = slot_address(slot, self._service)
        return await self._run("read", slot, lambda backend: backend.get_password(service, username))

    async def clear(self, slot: SlotId) -> bool:
        """Remove the slot's blob.

        Returns:
            True once the slot is empty, including when it already was

        Raises:
            StorageError: If the keystore cannot be modified
        """
        service, username = slot_address(slot, self._service)

        def delete(backend: KeyringBackend) -> bool:
            try:
                backend.delete_password(service, username)
            except PasswordDeleteError:
                logger.debug(f"Slot '{slot.value}' already empty")
            return True

        return await self._run("clear", slot, delete)
