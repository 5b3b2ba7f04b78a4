"""Database package - plain (unencrypted) local key-value storage.

Holds UX-only state such as the signup form draft. Nothing secret belongs
here: credentials, sessions and profiles go to the secure slot store.
"""
from database.core import LocalStore, LocalStoreError  # noqa: F401
