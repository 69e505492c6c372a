"""
tesland/client/identity.py - Firebase identity provider for the client side.

Owns the persisted session (one at a time, stored under SESSION_STORAGE_KEY) and pushes
auth-state events to its listeners in order:

| Event             | When |
|-------------------|------|
| `INITIAL_SESSION` | `initialize()` finished restoring (session may be None) |
| `SIGNED_IN`       | password sign-in or sign-up succeeded |
| `TOKEN_REFRESHED` | an expired session was renewed with its refresh token |
| `SIGNED_OUT`      | sign-out, or the refresh token was rejected |
"""
import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Awaitable, Callable, List, Optional

import httpx

from tesland.client.storage import LocalStorage
from tesland.config import settings
from tesland.integrations.identity_toolkit import IdentityToolkit, error_code
from tesland.schemas.principal import Session

logger = logging.getLogger("tesland.client.identity")

SESSION_STORAGE_KEY = "tesland-auth-session"


class AuthEvent(str, Enum):
    INITIAL_SESSION = "INITIAL_SESSION"
    SIGNED_IN = "SIGNED_IN"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    SIGNED_OUT = "SIGNED_OUT"


Listener = Callable[[AuthEvent, Optional[Session]], Awaitable[None]]


class IdentityProviderError(Exception):
    def __init__(self, code: str, status_code: Optional[int] = None):
        super().__init__(code)
        self.code = code
        self.status_code = status_code


def _expires_at(expires_in) -> datetime:
    return datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))


class FirebaseIdentityClient:
    def __init__(self, storage: LocalStorage, toolkit: Optional[IdentityToolkit] = None,
                 api_base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.storage = storage
        self.toolkit = toolkit or IdentityToolkit(transport=transport)
        self.api_base_url = (api_base_url or settings.api_base_url).rstrip("/")
        self.transport = transport
        self._listeners: List[Listener] = []

    # --- subscription --------------------------------------------------------
    def on_auth_state_change(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    async def _emit(self, event: AuthEvent, session: Optional[Session]) -> None:
        for listener in list(self._listeners):
            try:
                await listener(event, session)
            except Exception:
                logger.exception("Auth state listener failed on %s", event.value)

    # --- persisted session ---------------------------------------------------
    def get_persisted_session(self) -> Optional[Session]:
        raw = self.storage.get_item(SESSION_STORAGE_KEY)
        if not raw:
            return None
        try:
            return Session.model_validate_json(raw)
        except ValueError:
            logger.warning("Discarding unreadable persisted session")
            self.storage.remove_item(SESSION_STORAGE_KEY)
            return None

    def _persist(self, session: Session) -> None:
        self.storage.set_item(SESSION_STORAGE_KEY, session.model_dump_json())

    def clear_persisted_session(self) -> None:
        """Synchronous, local only. Safe to call from an unload hook."""
        self.storage.remove_item(SESSION_STORAGE_KEY)

    # --- operations ----------------------------------------------------------
    async def initialize(self) -> Optional[Session]:
        session = self.get_persisted_session()
        if session and session.is_expired():
            session = await self.refresh_session()
            if session is None:
                return None
        await self._emit(AuthEvent.INITIAL_SESSION, session)
        return session

    async def refresh_session(self) -> Optional[Session]:
        current = self.get_persisted_session()
        if not current:
            return None
        try:
            resp = await self.toolkit.refresh(current.refresh_token)
        except httpx.HTTPError as exc:
            # Network trouble: keep the stored session for the next attempt
            logger.warning("Token refresh failed: %s", exc)
            return None
        if resp.status_code != 200:
            logger.info("Refresh token rejected (%s), signing out locally", error_code(resp) or resp.status_code)
            self.clear_persisted_session()
            await self._emit(AuthEvent.SIGNED_OUT, None)
            return None
        data = resp.json()
        session = Session(
            id_token=data["id_token"],
            refresh_token=data["refresh_token"],
            expires_at=_expires_at(data["expires_in"]),
            uid=data.get("user_id", current.uid),
            email=current.email,
        )
        self._persist(session)
        await self._emit(AuthEvent.TOKEN_REFRESHED, session)
        return session

    async def _password_flow(self, call, email: str, password: str) -> Session:
        resp = await call(email, password)
        if resp.status_code != 200:
            raise IdentityProviderError(error_code(resp) or "UNKNOWN", resp.status_code)
        data = resp.json()
        session = Session(
            id_token=data["idToken"],
            refresh_token=data["refreshToken"],
            expires_at=_expires_at(data["expiresIn"]),
            uid=data["localId"],
            email=data.get("email", email),
        )
        self._persist(session)
        await self._emit(AuthEvent.SIGNED_IN, session)
        return session

    async def sign_in_with_password(self, email: str, password: str) -> Session:
        return await self._password_flow(self.toolkit.sign_in_with_password, email, password)

    async def sign_up(self, email: str, password: str) -> Session:
        return await self._password_flow(self.toolkit.sign_up, email, password)

    async def sign_out(self) -> None:
        """Revokes the session on the backend; local state is dropped even if that fails."""
        session = self.get_persisted_session()
        try:
            if session:
                async with httpx.AsyncClient(transport=self.transport, timeout=settings.http_timeout) as client:
                    resp = await client.post(
                        f"{self.api_base_url}/auth/logout",
                        headers={"Authorization": f"Bearer {session.id_token}"},
                    )
                resp.raise_for_status()
        finally:
            self.clear_persisted_session()
            await self._emit(AuthEvent.SIGNED_OUT, None)
