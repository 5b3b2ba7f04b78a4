"""Credential repository: the list of registered accounts, keyed by email.

The whole list lives encrypted in the credentials slot. Mutation is a
read-modify-write of the full list, so every upsert holds the repository's
lock; the keystore has no compare-and-swap to fall back on.
"""
import asyncio
import hmac
import logging
from typing import Any, List, Optional

from models.entities import Credential, UserProfile, normalize_email
from services.encrypted_slot import EncryptedSlot
from services.slot_store import SlotId, StorageError

logger = logging.getLogger(__name__)


def _decode_credentials(payload: Any) -> List[Credential]:
    """Strictly decode a JSON array of credentials.

    Raises:
        ValueError: If the payload is not a list of well-formed credentials
    """
    if not isinstance(payload, list):
        raise ValueError(f"Expected a JSON array, got {type(payload).__name__}")
    return [Credential.from_dict(item) for item in payload]


class CredentialRepository:
    """Service for registered credentials.

    Handles upsert-by-email, lookup and password validation.
    All data operations are async and never raise.
    """

    def __init__(self, slot: EncryptedSlot) -> None:
        if slot.slot is not SlotId.CREDENTIALS:
            raise ValueError("CredentialRepository requires the credentials slot")
        self._slot = slot
        self._write_lock = asyncio.Lock()

    async def _load(self) -> List[Credential]:
        """Load the list, raising only on storage failure."""
        payload = await self._slot.read_json()
        if payload is None:
            return []
        try:
            return _decode_credentials(payload)
        except ValueError as e:
            logger.warning(f"Stored credentials failed validation, treating as empty: {e}")
            return []

    async def list_credentials(self) -> List[Credential]:
        """Return all credentials, or an empty list if absent or unreadable."""
        try:
            return await self._load()
        except StorageError:
            return []

    async def upsert(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        phone_number: str,
    ) -> bool:
        """Insert a credential, or replace the one with the same email.

        Replaced entries keep their position; new ones are appended.

        Returns:
            True if the list was written, False on storage or
            serialization failure
        """
        new_credential = Credential(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            phone_number=phone_number,
        )

        async with self._write_lock:
            try:
                credentials = await self._load()
            except StorageError:
                logger.error("Not storing credential: existing list could not be read")
                return False

            index = next(
                (i for i, cred in enumerate(credentials) if cred.matches_email(email)),
                None,
            )
            if index is None:
                credentials.append(new_credential)
            else:
                credentials[index] = new_credential

            saved = await self._slot.save_json([cred.to_dict() for cred in credentials])

        if saved:
            action = "added" if index is None else "updated"
            logger.info(f"Stored credential ({action}), {len(credentials)} total")
        return saved

    async def find_by_email(self, email: str) -> Optional[Credential]:
        """Return the credential for email (case-insensitive), or None."""
        if not email:
            return None
        normalized = normalize_email(email)
        for cred in await self.list_credentials():
            if cred.email == normalized:
                return cred
        return None

    async def find_profile(self, email: str) -> Optional[UserProfile]:
        """Return the password-free profile for email, or None."""
        cred = await self.find_by_email(email)
        return cred.to_profile() if cred is not None else None

    async def validate(self, email: str, password: str) -> bool:
        """True iff a credential matches email and the exact password."""
        if not email or not password:
            return False
        cred = await self.find_by_email(email)
        if cred is None:
            return False
        return hmac.compare_digest(cred.password.encode("utf-8"), password.encode("utf-8"))
