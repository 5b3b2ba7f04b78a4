"""Encrypt-before-write / decrypt-after-read discipline for one slot.

Every reader and writer of the secure store goes through EncryptedSlot so
the JSON -> encrypt -> write and read -> decrypt -> JSON steps live in one
place. Failures are never raised: writes report False, reads report None.
"""
import json
import logging
from typing import Any, Optional

from services.cipher import CipherCodec, CipherKeyError
from services.slot_store import SecureSlotStore, SlotId, StorageError

logger = logging.getLogger(__name__)


class EncryptedSlot:
    """JSON payload stored encrypted in a single secure slot."""

    def __init__(self, store: SecureSlotStore, cipher: CipherCodec, slot: SlotId) -> None:
        self.store = store
        self.cipher = cipher
        self.slot = slot

    async def load_json(self) -> Optional[Any]:
        """Read, decrypt and parse the slot.

        Returns None when the slot is absent, the store fails, or the
        payload does not decrypt to valid JSON (DecodeFailure).
        """
        try:
            return await self.read_json()
        except StorageError:
            return None

    async def read_json(self) -> Optional[Any]:
        """Like load_json, but a store failure is raised instead of hidden.

        Read-modify-write callers need this to avoid overwriting data they
        could not read.

        Raises:
            StorageError: If the keystore cannot be read
        """
        blob = await self.store.read(self.slot)
        if blob is None:
            return None

        try:
            await self.cipher.ensure_key()
            plaintext = self.cipher.decrypt(blob)
        except CipherKeyError as e:
            logger.error(f"Cannot decrypt slot '{self.slot.value}': {e}")
            return None
        if not plaintext:
            logger.warning(f"Slot '{self.slot.value}' did not decrypt, treating as empty")
            return None

        try:
            return json.loads(plaintext)
        except json.JSONDecodeError as e:
            logger.warning(f"Slot '{self.slot.value}' holds invalid JSON: {e}")
            return None

    async def save_json(self, payload: Any) -> bool:
        """Serialize, encrypt and overwrite the slot. Returns success."""
        try:
            plaintext = json.dumps(payload)
        except (TypeError, ValueError) as e:
            logger.error(f"Cannot serialize payload for slot '{self.slot.value}': {e}")
            return False

        try:
            await self.cipher.ensure_key()
            blob = self.cipher.encrypt(plaintext)
        except CipherKeyError as e:
            logger.error(f"Cannot encrypt slot '{self.slot.value}': {e}")
            return False

        try:
            await self.store.write(self.slot, blob)
        except StorageError:
            return False
        return True

    async def clear(self) -> bool:
        try:
            return await self.store.clear(self.slot)
        except StorageError:
            return False
