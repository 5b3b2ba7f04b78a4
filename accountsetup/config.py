"""Application configuration - single source of truth for all constants.

Contains keychain identifiers, storage timeouts, lockout policy and key
derivation parameters. Import from here instead of hardcoding values
elsewhere so every service agrees on slot names and limits.
"""
import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv

# Missing .env is fine, mobile builds don't bundle one
load_dotenv(Path(__file__).parent / ".env")


class KeySource(Enum):
    """Where the cipher key comes from."""
    STATIC = "static"    # Passphrase compiled into the app
    KEYRING = "keyring"  # Random key generated once, kept in the OS keyring


# ============================================================================
# Secure storage
# ============================================================================

KEYCHAIN_SERVICE = os.getenv("ACCOUNTSETUP_KEYCHAIN_SERVICE", "") or "AccountSetup"

USER_DATA_KEY = "userData"
CREDENTIALS_KEY = "credentials"
SESSION_KEY = "session"

# A hung platform keystore must not hang the caller forever
STORAGE_TIMEOUT_SECONDS = float(os.getenv("ACCOUNTSETUP_STORAGE_TIMEOUT", "") or 5.0)

# ============================================================================
# Encryption
# ============================================================================

KEY_SOURCE = KeySource(os.getenv("ACCOUNTSETUP_KEY_SOURCE", "") or KeySource.STATIC.value)

# Static key material. Anyone holding the app bundle can read these, see
# KeyringKeyProvider for the deployment alternative.
STATIC_PASSPHRASE = "AccountSetupSecretKey2024!"
STATIC_SALT = b"accountsetup-static-salt-v1"

KEYRING_CIPHER_KEY_ID = "cipher-key"

ARGON2_TIME_COST = 3
ARGON2_MEMORY_COST = 65536    # 64 MB
ARGON2_PARALLELISM = 4
ARGON2_HASH_LEN = 32          # 256-bit key

# ============================================================================
# Login policy
# ============================================================================

MAX_FAILED_ATTEMPTS = 5

PASSWORD_MIN_LENGTH = 8
NAME_MIN_LENGTH = 2
PHONE_NUMBER_DIGITS = 10

# ============================================================================
# Local (unencrypted) storage
# ============================================================================

DB_PATH = Path(os.getenv("ACCOUNTSETUP_DB_PATH", "") or "accountsetup.db")
SIGNUP_DRAFT_KEY = "@AccountSetup:signupFormData"
