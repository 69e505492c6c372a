"""
# tesland/routers/auth.py — Authentication Documentation

## General
Registration, sign-in, password reset and sign-out. Firebase Authentication does the
identity work; request bodies are checked with the localized auth form schemas
(`tesland.core.validation`). The language comes from the body `language` field or the
`Accept-Language` header (Hungarian by default).

---

## Endpoints

### POST /auth/register
Body: `{"email", "password", "language"?}`: signup schema (strong password).
Creates the Firebase user through the REST `signUp` call and returns its tokens.
Already used e-mail → 400 with a localized message.

### POST /auth/login
Body: `{"email", "password"}`: login schema (password only has to be present).
Proxies `signInWithPassword`; wrong credentials → 401 localized.

### POST /auth/reset-password
Body: `{"email"}`: forgot schema. Always answers with the same generic message
(no user enumeration).

### POST /auth/confirm-reset
Body: `{"oob_code", "password", "confirmPassword"}`: reset schema; the mismatch error
is reported on `confirmPassword`.

### POST /auth/logout
Revokes every refresh token of the caller. Clients also drop their local session.

### GET /auth/me
The caller as a `Principal` (`is_admin` comes from `user_roles`).
"""
import asyncio
import logging

import httpx
from fastapi import APIRouter, Depends, Request
from firebase_admin import auth as firebase_auth

from tesland.config import get_firebase_app
from tesland.core.auth import get_principal
from tesland.core.errors import AuthError, UpstreamError, ValidationError
from tesland.core.http import read_json
from tesland.core.validation import FormSchema, schemas_for
from tesland.i18n.translations import get_translations, resolve_language
from tesland.integrations.identity_toolkit import INVALID_CREDENTIAL_CODES, IdentityToolkit, error_code
from tesland.schemas.principal import Principal
from tesland.schemas.user import LoginResponse, RegisterResponse

logger = logging.getLogger("tesland.auth")

router = APIRouter(prefix="/auth", tags=["Auth"])


def get_identity_toolkit() -> IdentityToolkit:
    return IdentityToolkit()


def _language(request: Request, raw) -> str:
    body_lang = raw.get("language") if isinstance(raw, dict) else None
    return resolve_language(body_lang or request.headers.get("Accept-Language"))


def _validated(schema: FormSchema, raw) -> dict:
    result = schema.validate(raw if isinstance(raw, dict) else {})
    if not result.ok:
        first = next(iter(result.errors.values()))[0]
        raise ValidationError(first, extra={"fields": result.errors})
    return result.data


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(request: Request, identity: IdentityToolkit = Depends(get_identity_toolkit)):
    raw = await read_json(request)
    language = _language(request, raw)
    t = get_translations(language)
    form = _validated(schemas_for(language).signup, raw)

    resp = await identity.sign_up(form["email"], form["password"])
    if resp.status_code != 200:
        code = error_code(resp)
        logger.warning("Firebase sign-up failed: %s %s", resp.status_code, code)
        if code == "EMAIL_EXISTS":
            raise ValidationError(t["emailAlreadyRegistered"])
        raise UpstreamError(t["signUpFailed"], 502)

    data = resp.json()
    return RegisterResponse(
        user_id=data["localId"],
        email=data.get("email", form["email"]),
        id_token=data["idToken"],
        refresh_token=data["refreshToken"],
        expires_in=int(data["expiresIn"]),
    )


@router.post("/login", response_model=LoginResponse)
async def login(request: Request, identity: IdentityToolkit = Depends(get_identity_toolkit)):
    """Proxies Firebase e-mail/password sign-in and returns id_token + refresh_token."""
    raw = await read_json(request)
    language = _language(request, raw)
    t = get_translations(language)
    form = _validated(schemas_for(language).login, raw)

    resp = await identity.sign_in_with_password(form["email"], form["password"])
    if resp.status_code != 200:
        code = error_code(resp)
        logger.warning("Firebase login failed: %s", code or resp.status_code)
        if code in INVALID_CREDENTIAL_CODES or resp.status_code == 400:
            raise AuthError(t["invalidCredentials"])
        raise UpstreamError(t["signInFailed"], 502)

    data = resp.json()
    return LoginResponse(
        id_token=data["idToken"],
        refresh_token=data["refreshToken"],
        expires_in=int(data["expiresIn"]),
        user_id=data["localId"],
    )


@router.post("/reset-password")
async def request_password_reset(request: Request, identity: IdentityToolkit = Depends(get_identity_toolkit)):
    """
    Triggers Firebase to send the password reset email.
    Always returns a generic message (no user enumeration).
    """
    raw = await read_json(request)
    language = _language(request, raw)
    t = get_translations(language)
    form = _validated(schemas_for(language).forgot, raw)

    try:
        resp = await identity.send_password_reset(form["email"], language)
    except httpx.HTTPError as exc:
        logger.exception("sendOobCode failed")
        raise UpstreamError(t["unknownError"], 502) from exc
    if resp.status_code != 200:
        # EMAIL_NOT_FOUND is the usual one; the answer stays generic
        logger.warning("sendOobCode response: %s %s", resp.status_code, error_code(resp))
    return {"message": t["passwordResetSent"]}


@router.post("/confirm-reset")
async def confirm_password_reset(request: Request, identity: IdentityToolkit = Depends(get_identity_toolkit)):
    raw = await read_json(request)
    language = _language(request, raw)
    t = get_translations(language)
    oob_code = raw.get("oob_code") if isinstance(raw, dict) else None
    if not oob_code:
        raise ValidationError(t["passwordResetFailed"])
    form = _validated(schemas_for(language).reset_password, raw)

    resp = await identity.confirm_password_reset(oob_code, form["password"])
    if resp.status_code != 200:
        logger.warning("resetPassword failed: %s %s", resp.status_code, error_code(resp))
        raise ValidationError(t["passwordResetFailed"])
    return {"message": t["passwordResetDone"]}


@router.post("/logout")
async def logout(principal: Principal = Depends(get_principal)):
    """
    Revokes the refresh tokens on every device.
    The client must drop its stored session as well.
    """
    try:
        await asyncio.to_thread(firebase_auth.revoke_refresh_tokens, principal.uid, get_firebase_app())
    except firebase_auth.UserNotFoundError:
        logger.info("Logout for deleted user %s", principal.uid)
    return {"detail": "Logged out"}


@router.get("/me", response_model=Principal)
async def me(principal: Principal = Depends(get_principal)):
    return principal
