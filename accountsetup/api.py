"""Auth flow facade over the credential, session and draft services.

Screens call these four flows (signup, login, restore_session, logout)
instead of sequencing repository calls themselves. Every method is total:
outcomes come back as values, never as storage exceptions.

Usage:
    svc = await bootstrap()
    api = AuthAPI(svc)

    lockout = LockoutState.initial()
    result = await api.login("a@b.c", "password123", lockout)
    lockout = result.lockout
"""
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from core import ServiceContainer
from events import AppEvent
from models.entities import SignupDraft, SignupForm, UserProfile, normalize_email
from services.lockout import LockoutState
from services.validation import validate_login_form, validate_signup_form

logger = logging.getLogger(__name__)


class LoginOutcome(Enum):
    """Result of a login attempt, distinguishable by the caller."""
    SUCCESS = "success"
    INVALID_FORM = "invalid_form"
    INVALID_CREDENTIALS = "invalid_credentials"
    LOCKED_OUT = "locked_out"
    PROFILE_NOT_FOUND = "profile_not_found"
    SESSION_FAILED = "session_failed"


@dataclass
class LoginResult:
    """Outcome of a login attempt plus the lockout state to carry forward."""
    outcome: LoginOutcome
    lockout: LockoutState
    profile: Optional[UserProfile] = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.outcome is LoginOutcome.SUCCESS


@dataclass
class SignupResult:
    """Profile of the new account, or the reasons it was not created."""
    profile: Optional[UserProfile] = None
    errors: Dict[str, str] = field(default_factory=dict)
    storage_failed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.profile is not None


class AuthAPI:
    """Entry point for the login, signup, app-start and logout flows."""

    def __init__(self, services: ServiceContainer) -> None:
        self.svc = services

    # ------------------------------------------------------------------
    # Signup
    # ------------------------------------------------------------------

    async def signup(self, form: SignupForm) -> SignupResult:
        """Register (or re-register) an account and start its session.

        A repeated signup for an existing email overwrites that account.
        """
        errors = validate_signup_form(form)
        if errors:
            return SignupResult(errors=errors)

        stored = await self.svc.credentials.upsert(
            form.email,
            form.password,
            form.first_name,
            form.last_name,
            form.phone_number,
        )
        if not stored:
            logger.error("Signup failed: credentials could not be stored")
            return SignupResult(storage_failed=True)

        if not await self.svc.sessions.create(form.email):
            logger.error("Signup failed: session could not be created")
            return SignupResult(storage_failed=True)

        await self.svc.drafts.clear()

        profile = UserProfile(
            email=normalize_email(form.email),
            first_name=form.first_name,
            last_name=form.last_name,
            phone_number=form.phone_number,
        )
        await self._cache_profile(profile)
        self.svc.event_bus.emit(AppEvent.SIGNED_UP, profile)
        return SignupResult(profile=profile)

    async def save_draft(self, draft: SignupDraft) -> None:
        await self.svc.drafts.save(draft)

    async def load_draft(self) -> Optional[SignupDraft]:
        return await self.svc.drafts.load()

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def login(self, email: str, password: str, lockout: LockoutState) -> LoginResult:
        """Check credentials under the lockout policy and start a session.

        Args:
            email: Entered email (any case)
            password: Entered password (compared exactly)
            lockout: Current lockout state for this login screen

        Returns:
            LoginResult whose lockout field replaces the caller's state.
            A form that fails validation is not an attempt: the lockout
            state comes back unchanged.
        """
        errors = validate_login_form(email, password)
        if errors:
            return LoginResult(LoginOutcome.INVALID_FORM, lockout, errors=errors)

        if lockout.is_locked_out:
            self.svc.event_bus.emit(AppEvent.LOCKED_OUT, lockout)
            return LoginResult(LoginOutcome.LOCKED_OUT, lockout)

        if not await self.svc.credentials.validate(email, password):
            lockout = lockout.record_failure()
            if lockout.is_locked_out:
                logger.warning("Login locked out after repeated failures")
                self.svc.event_bus.emit(AppEvent.LOCKED_OUT, lockout)
                return LoginResult(LoginOutcome.LOCKED_OUT, lockout)
            self.svc.event_bus.emit(AppEvent.LOGIN_FAILED, lockout)
            return LoginResult(LoginOutcome.INVALID_CREDENTIALS, lockout)

        lockout = lockout.record_success()

        profile = await self.svc.credentials.find_profile(email)
        if profile is None:
            logger.error("Credential validated but could not be re-read")
            return LoginResult(LoginOutcome.PROFILE_NOT_FOUND, lockout)

        if not await self.svc.sessions.create(email):
            return LoginResult(LoginOutcome.SESSION_FAILED, lockout)

        await self._cache_profile(profile)
        self.svc.event_bus.emit(AppEvent.LOGGED_IN, profile)
        return LoginResult(LoginOutcome.SUCCESS, lockout, profile)

    # ------------------------------------------------------------------
    # App start / logout
    # ------------------------------------------------------------------

    async def restore_session(self) -> Optional[UserProfile]:
        """Resolve the active session to a profile.

        Returns None when there is no session or its account is gone; the
        caller routes to login in both cases.
        """
        session = await self.svc.sessions.current()
        if session is None:
            return None

        profile = await self.svc.credentials.find_profile(session.email)
        if profile is None:
            logger.warning("Session refers to an unknown account")
            return None

        self.svc.event_bus.emit(AppEvent.SESSION_RESTORED, profile)
        return profile

    async def logout(self) -> bool:
        """End the session. Registered credentials are kept."""
        cleared = await self.svc.sessions.clear()
        if not await self.svc.profile_cache.clear():
            logger.warning("Cached profile could not be cleared")
        self.svc.event_bus.emit(AppEvent.LOGGED_OUT, None)
        return cleared

    async def _cache_profile(self, profile: UserProfile) -> None:
        if not await self.svc.profile_cache.store(profile):
            logger.warning("Profile cache not updated")
