"""
# `tesland/client/session.py` — Session store

Single source of truth for "who is signed in" and "are they an admin" on the client.
State only changes through identity-provider events:

    LOADING ──INITIAL_SESSION/SIGNED_IN/TOKEN_REFRESHED──► AUTHENTICATED
       │                                                      │
       └──────────────INITIAL_SESSION(None)/SIGNED_OUT──────► ANONYMOUS

`is_admin` is re-derived from `user_roles` on every event and is False whenever the
lookup fails. Each event bumps a generation counter; a role lookup that finishes after
a newer event has arrived is dropped.

The remember-me flag lives under `tesland-remember-me`, apart from the session. When it
is `"false"`, `handle_unload()` wipes the persisted session so the next start is anonymous.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from tesland.client.identity import AuthEvent, FirebaseIdentityClient, IdentityProviderError
from tesland.client.storage import LocalStorage
from tesland.integrations.identity_toolkit import INVALID_CREDENTIAL_CODES
from tesland.schemas.principal import Principal, Session

logger = logging.getLogger("tesland.client.session")

REMEMBER_ME_KEY = "tesland-remember-me"

RoleLookup = Callable[[str], bool]


class AuthState(str, Enum):
    LOADING = "loading"
    AUTHENTICATED = "authenticated"
    ANONYMOUS = "anonymous"


class AuthErrorKind(str, Enum):
    invalid_credentials = "invalid_credentials"
    email_taken = "email_taken"
    unknown = "unknown"


@dataclass(frozen=True)
class AuthResult:
    error: Optional[AuthErrorKind] = None
    code: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _error_kind(exc: IdentityProviderError) -> AuthErrorKind:
    if exc.code in INVALID_CREDENTIAL_CODES:
        return AuthErrorKind.invalid_credentials
    if exc.code == "EMAIL_EXISTS":
        return AuthErrorKind.email_taken
    return AuthErrorKind.unknown


class SessionStore:
    def __init__(self, identity: FirebaseIdentityClient, storage: LocalStorage, role_lookup: RoleLookup):
        self._identity = identity
        self._storage = storage
        self._role_lookup = role_lookup
        self._state = AuthState.LOADING
        self._session: Optional[Session] = None
        self._principal: Optional[Principal] = None
        self._generation = 0
        self._unsubscribe: Optional[Callable[[], None]] = None

    # --- read-only view ------------------------------------------------------
    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def loading(self) -> bool:
        return self._state is AuthState.LOADING

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def principal(self) -> Optional[Principal]:
        return self._principal

    @property
    def is_admin(self) -> bool:
        return bool(self._principal and self._principal.is_admin)

    # --- lifecycle -----------------------------------------------------------
    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self._identity.on_auth_state_change(self._on_auth_state_change)
        session = await self._identity.initialize()
        if session is None and self._state is AuthState.LOADING:
            # initialize() stays silent when an expired session could not be renewed
            self._apply(self._generation, None, None)

    async def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    # --- provider events -----------------------------------------------------
    async def _on_auth_state_change(self, event: AuthEvent, session: Optional[Session]) -> None:
        self._generation += 1
        generation = self._generation
        logger.debug("Auth event %s (generation %d)", event.value, generation)
        if session is None:
            self._apply(generation, None, None)
            return
        is_admin = await self._lookup_admin(session.uid)
        principal = Principal(uid=session.uid, email=session.email, is_admin=is_admin)
        self._apply(generation, session, principal)

    def _apply(self, generation: int, session: Optional[Session], principal: Optional[Principal]) -> None:
        if generation != self._generation:
            logger.debug("Dropping stale auth update (generation %d < %d)", generation, self._generation)
            return
        self._session = session
        self._principal = principal
        self._state = AuthState.AUTHENTICATED if session else AuthState.ANONYMOUS

    async def _lookup_admin(self, uid: str) -> bool:
        try:
            return bool(await asyncio.to_thread(self._role_lookup, uid))
        except Exception as exc:
            logger.warning("Admin role lookup failed for %s: %s", uid, exc)
            return False

    # --- operations ----------------------------------------------------------
    async def sign_in(self, email: str, password: str, remember_me: bool = True) -> AuthResult:
        # Written first so the unload cleanup sees it even if the call fails
        self._storage.set_item(REMEMBER_ME_KEY, "true" if remember_me else "false")
        return await self._attempt(self._identity.sign_in_with_password, email, password)

    async def sign_up(self, email: str, password: str) -> AuthResult:
        return await self._attempt(self._identity.sign_up, email, password)

    async def _attempt(self, call, email: str, password: str) -> AuthResult:
        try:
            await call(email, password)
        except IdentityProviderError as exc:
            logger.info("Identity provider refused request: %s", exc.code)
            return AuthResult(error=_error_kind(exc), code=exc.code)
        except Exception as exc:
            logger.warning("Identity provider call failed: %s", exc)
            return AuthResult(error=AuthErrorKind.unknown)
        return AuthResult()

    async def sign_out(self) -> None:
        self._storage.remove_item(REMEMBER_ME_KEY)
        try:
            await self._identity.sign_out()
        except Exception as exc:
            logger.warning("Remote sign-out failed, clearing local state anyway: %s", exc)
        finally:
            self._generation += 1
            self._apply(self._generation, None, None)

    async def refresh_session(self) -> Optional[Session]:
        return await self._identity.refresh_session()

    def handle_unload(self) -> None:
        """Synchronous unload hook; only touches local storage."""
        if self._storage.get_item(REMEMBER_ME_KEY) == "false":
            self._identity.clear_persisted_session()
