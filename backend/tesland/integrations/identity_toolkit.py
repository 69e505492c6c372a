"""
tesland/integrations/identity_toolkit.py - Firebase Auth REST endpoints.

Used by the /auth router (server-side proxy) and by the client identity provider.
Every call returns the raw `httpx.Response`; callers decide how to map failures.
"""
from typing import Optional

import httpx

from tesland.config import settings

IDENTITY_BASE = "https://identitytoolkit.googleapis.com/v1/accounts"
SECURE_TOKEN_URL = "https://securetoken.googleapis.com/v1/token"

# Firebase error codes that mean "wrong email or password"
INVALID_CREDENTIAL_CODES = {"INVALID_LOGIN_CREDENTIALS", "INVALID_PASSWORD", "EMAIL_NOT_FOUND", "USER_DISABLED"}


def error_code(resp: httpx.Response) -> str:
    try:
        message = resp.json().get("error", {}).get("message", "")
    except ValueError:
        return ""
    # e.g. "WEAK_PASSWORD : Password should be at least 6 characters"
    return message.split(":")[0].strip()


class IdentityToolkit:
    def __init__(self, api_key: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = api_key if api_key is not None else settings.firebase_web_api_key
        self.transport = transport

    async def _post(self, url: str, **kwargs) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=settings.http_timeout) as client:
            return await client.post(url, params={"key": self.api_key}, **kwargs)

    async def sign_in_with_password(self, email: str, password: str) -> httpx.Response:
        return await self._post(f"{IDENTITY_BASE}:signInWithPassword",
                                json={"email": email, "password": password, "returnSecureToken": True})

    async def sign_up(self, email: str, password: str) -> httpx.Response:
        return await self._post(f"{IDENTITY_BASE}:signUp",
                                json={"email": email, "password": password, "returnSecureToken": True})

    async def refresh(self, refresh_token: str) -> httpx.Response:
        return await self._post(SECURE_TOKEN_URL,
                                data={"grant_type": "refresh_token", "refresh_token": refresh_token})

    async def send_password_reset(self, email: str, language: str = "hu") -> httpx.Response:
        return await self._post(f"{IDENTITY_BASE}:sendOobCode",
                                json={"requestType": "PASSWORD_RESET", "email": email},
                                headers={"X-Firebase-Locale": language})

    async def confirm_password_reset(self, oob_code: str, new_password: str) -> httpx.Response:
        return await self._post(f"{IDENTITY_BASE}:resetPassword",
                                json={"oobCode": oob_code, "newPassword": new_password})
