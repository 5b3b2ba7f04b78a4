"""
Symmetric encryption for payloads written to the secure keystore.

This module provides:
- AES-256-GCM authenticated encryption of opaque string payloads
- Key providers that isolate where the key comes from

Security Model:
- Each payload gets a unique nonce
- Authentication tag prevents tampering (tampered data decrypts to None)
- The default StaticKeyProvider derives the key from a passphrase compiled
  into the app. It round-trips, but offers no confidentiality against
  someone who has the app bundle. KeyringKeyProvider keeps a random key in
  the OS keyring instead.

Usage:
    cipher = CipherCodec(StaticKeyProvider())
    await cipher.ensure_key()

    encrypted = cipher.encrypt('{"email": "a@b.c"}')
    decrypted = cipher.decrypt(encrypted)
"""
import asyncio
import base64
import binascii
import logging
import secrets
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import keyring
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError

from config import (
    ARGON2_HASH_LEN,
    ARGON2_MEMORY_COST,
    ARGON2_PARALLELISM,
    ARGON2_TIME_COST,
    KEYCHAIN_SERVICE,
    KEYRING_CIPHER_KEY_ID,
    STATIC_PASSPHRASE,
    STATIC_SALT,
    STORAGE_TIMEOUT_SECONDS,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Constants
# ============================================================================

AES_KEY_SIZE = 32             # 256-bit key
GCM_NONCE_SIZE = 12           # 96-bit nonce (recommended for GCM)
GCM_TAG_SIZE = 16             # 128-bit authentication tag

ENCRYPTED_PREFIX = "ENC:1:"   # Version 1 encryption format


class CipherKeyError(Exception):
    """The cipher key could not be obtained."""
    pass


# ============================================================================
# Data Classes
# ============================================================================

@dataclass
class EncryptedData:
    """Container for encrypted data with its nonce."""
    nonce: bytes       # 12 bytes
    ciphertext: bytes  # Variable length (plaintext + 16-byte tag)

    def to_string(self) -> str:
        """Encode to a base64 string for keystore storage."""
        combined = self.nonce + self.ciphertext
        return ENCRYPTED_PREFIX + base64.b64encode(combined).decode("utf-8")

    @classmethod
    def from_string(cls, data: str) -> Optional["EncryptedData"]:
        """Decode from base64 string. Returns None if format is invalid."""
        if not isinstance(data, str) or not data.startswith(ENCRYPTED_PREFIX):
            return None
        try:
            combined = base64.b64decode(data[len(ENCRYPTED_PREFIX):], validate=True)
        except (binascii.Error, ValueError):
            return None
        if len(combined) < GCM_NONCE_SIZE + GCM_TAG_SIZE:
            return None
        return cls(
            nonce=combined[:GCM_NONCE_SIZE],
            ciphertext=combined[GCM_NONCE_SIZE:],
        )


# ============================================================================
# Key Providers
# ============================================================================

class KeyProvider(ABC):
    """Source of the 256-bit cipher key."""

    @abstractmethod
    def get_key(self) -> bytes:
        """Return the key.

        Raises:
            CipherKeyError: If the key cannot be obtained
        """


class RawKeyProvider(KeyProvider):
    """Key supplied directly by the caller."""

    def __init__(self, key: bytes) -> None:
        if len(key) != AES_KEY_SIZE:
            raise ValueError(f"Key must be {AES_KEY_SIZE} bytes, got {len(key)}")
        self._key = key

    def get_key(self) -> bytes:
        return self._key


class StaticKeyProvider(KeyProvider):
    """Key derived with Argon2id from the passphrase compiled into the app."""

    def __init__(self, passphrase: str = STATIC_PASSPHRASE, salt: bytes = STATIC_SALT) -> None:
        self._passphrase = passphrase
        self._salt = salt

    def get_key(self) -> bytes:
        return hash_secret_raw(
            secret=self._passphrase.encode("utf-8"),
            salt=self._salt,
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
            hash_len=ARGON2_HASH_LEN,
            type=Type.ID,
        )


class KeyringKeyProvider(KeyProvider):
    """Random key generated on first use and kept in the OS keyring.

    Nothing key-related ships in the app bundle. Losing the keyring entry
    makes every stored payload undecryptable, which callers already treat
    as "no data".
    """

    def __init__(
        self,
        backend: Optional[KeyringBackend] = None,
        service: str = KEYCHAIN_SERVICE,
        key_id: str = KEYRING_CIPHER_KEY_ID,
    ) -> None:
        self._backend = backend
        self._service = service
        self._key_id = key_id

    def _keyring(self) -> KeyringBackend:
        return self._backend if self._backend is not None else keyring.get_keyring()

    def get_key(self) -> bytes:
        backend = self._keyring()
        try:
            stored = backend.get_password(self._service, self._key_id)
            if stored is not None:
                key = base64.b64decode(stored)
                if len(key) == AES_KEY_SIZE:
                    return key
                logger.warning("Stored cipher key has wrong length, generating a new one")

            key = secrets.token_bytes(AES_KEY_SIZE)
            backend.set_password(
                self._service, self._key_id, base64.b64encode(key).decode("utf-8")
            )
            logger.info("Generated new cipher key in keyring")
            return key
        except KeyringError as e:
            logger.error(f"Failed to access cipher key in keyring: {e}")
            raise CipherKeyError(f"Keyring unavailable: {e}") from e
        except (binascii.Error, ValueError) as e:
            logger.error(f"Stored cipher key is not valid base64: {e}")
            raise CipherKeyError(f"Corrupt cipher key: {e}") from e


# ============================================================================
# CipherCodec
# ============================================================================

class CipherCodec:
    """
    Encrypts and decrypts opaque string payloads.

    The key is fetched from the provider on first use and cached for the
    lifetime of the codec. Async callers await ensure_key() first so the
    provider (keyring lookup, Argon2 derivation) never runs on the event
    loop.

    Thread Safety:
        Key loading is guarded by a lock so concurrent first calls from
        executor threads derive the key only once.
    """

    def __init__(self, key_provider: KeyProvider, timeout: float = STORAGE_TIMEOUT_SECONDS) -> None:
        self._key_provider = key_provider
        self._timeout = timeout
        self._aesgcm: Optional[AESGCM] = None
        self._key_lock = threading.Lock()

    def _get_aesgcm(self) -> AESGCM:
        if self._aesgcm is None:
            with self._key_lock:
                if self._aesgcm is None:
                    self._aesgcm = AESGCM(self._key_provider.get_key())
        return self._aesgcm

    @property
    def key_loaded(self) -> bool:
        return self._aesgcm is not None

    async def ensure_key(self) -> None:
        """Load the key in the default executor, bounded by the timeout.

        Raises:
            CipherKeyError: If the provider fails or does not answer in time
        """
        if self._aesgcm is not None:
            return
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(loop.run_in_executor(None, self._get_aesgcm), self._timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"Cipher key not available after {self._timeout}s")
            raise CipherKeyError("Timed out loading cipher key") from e

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a payload for storage.

        Args:
            plaintext: The data to encrypt

        Returns:
            Encrypted string in format "ENC:1:<base64(nonce + ciphertext + tag)>"

        Raises:
            CipherKeyError: If the key provider fails
        """
        aesgcm = self._get_aesgcm()
        nonce = secrets.token_bytes(GCM_NONCE_SIZE)
        ciphertext = aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
        return EncryptedData(nonce=nonce, ciphertext=ciphertext).to_string()

    def decrypt(self, encrypted: str) -> Optional[str]:
        """Decrypt a payload read from storage.

        Returns:
            Decrypted plaintext, or None if the input was not produced by
            encrypt() with this key (wrong key, corrupted, tampered)

        Raises:
            CipherKeyError: If the key provider fails
        """
        data = EncryptedData.from_string(encrypted)
        if data is None:
            return None

        try:
            plaintext_bytes = self._get_aesgcm().decrypt(data.nonce, data.ciphertext, None)
            return plaintext_bytes.decode("utf-8")
        except (InvalidTag, UnicodeDecodeError, ValueError) as e:
            logger.warning(f"Decryption failed: {type(e).__name__}")
            return None

    def is_encrypted(self, value: str) -> bool:
        """Check if a value is in encrypted format."""
        return value.startswith(ENCRYPTED_PREFIX)
