import logging
from typing import Optional

from config import SIGNUP_DRAFT_KEY
from database import LocalStore, LocalStoreError
from models.entities import SignupDraft

logger = logging.getLogger(__name__)


class SignupDraftService:
    """Service for the in-progress signup form.

    Persists the draft unencrypted so it survives app restarts. Errors are
    logged and dropped: losing a draft only costs the user some typing.
    """

    def __init__(self, store: LocalStore, key: str = SIGNUP_DRAFT_KEY) -> None:
        self.store = store
        self.key = key

    async def save(self, draft: SignupDraft) -> None:
        """Save the draft unless every field is still empty."""
        if draft.is_empty():
            return
        try:
            await self.store.set_item(self.key, draft.to_dict())
        except LocalStoreError as e:
            logger.warning(f"Could not save signup draft: {e}")

    async def load(self) -> Optional[SignupDraft]:
        try:
            data = await self.store.get_item(self.key)
        except LocalStoreError as e:
            logger.warning(f"Could not load signup draft: {e}")
            return None
        if data is None:
            return None
        try:
            return SignupDraft.from_dict(data)
        except ValueError as e:
            logger.warning(f"Discarding malformed signup draft: {e}")
            return None

    async def clear(self) -> None:
        try:
            await self.store.remove_item(self.key)
        except LocalStoreError as e:
            logger.warning(f"Could not clear signup draft: {e}")
