import logging
from typing import Optional

from models.entities import UserProfile
from services.encrypted_slot import EncryptedSlot
from services.slot_store import SlotId

logger = logging.getLogger(__name__)


class ProfileCache:
    """Last-known profile mirrored into the userData slot.

    Convenience only: credentials remain the source of truth.
    """

    def __init__(self, slot: EncryptedSlot) -> None:
        if slot.slot is not SlotId.USER_DATA:
            raise ValueError("ProfileCache requires the userData slot")
        self._slot = slot

    async def store(self, profile: UserProfile) -> bool:
        return await self._slot.save_json(profile.to_dict())

    async def load(self) -> Optional[UserProfile]:
        payload = await self._slot.load_json()
        if payload is None:
            return None
        try:
            return UserProfile.from_dict(payload)
        except ValueError as e:
            logger.warning(f"Cached profile failed validation: {e}")
            return None

    async def clear(self) -> bool:
        return await self._slot.clear()
