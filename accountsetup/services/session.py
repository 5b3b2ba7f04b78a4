import logging
import time
from typing import Callable, Optional

from models.entities import Session, normalize_email
from services.encrypted_slot import EncryptedSlot
from services.slot_store import SlotId

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionManager:
    """Service for the single active session.

    A new session fully replaces the previous one. Sessions carry their
    creation time and never expire on their own.
    """

    def __init__(self, slot: EncryptedSlot, clock: Optional[Callable[[], int]] = None) -> None:
        if slot.slot is not SlotId.SESSION:
            raise ValueError("SessionManager requires the session slot")
        self._slot = slot
        self._clock = clock or _now_ms

    async def create(self, email: str) -> bool:
        """Start a session for email. Returns False if it could not be stored."""
        session = Session(email=normalize_email(email), timestamp=self._clock())
        if not await self._slot.save_json(session.to_dict()):
            logger.error("Failed to create session")
            return False
        logger.info("Session created")
        return True

    async def current(self) -> Optional[Session]:
        """Return the active session, or None if absent or unreadable."""
        payload = await self._slot.load_json()
        if payload is None:
            return None
        try:
            return Session.from_dict(payload)
        except ValueError as e:
            logger.warning(f"Stored session failed validation: {e}")
            return None

    async def clear(self) -> bool:
        """End the active session. Returns the store's success indicator."""
        cleared = await self._slot.clear()
        if cleared:
            logger.info("Session cleared")
        return cleared
