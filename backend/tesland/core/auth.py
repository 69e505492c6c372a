# tesland/core/auth.py
import asyncio
import logging
from typing import Optional

from fastapi import Depends, Request
from firebase_admin import auth as fb_auth

from tesland.config import get_db, get_firebase_app
from tesland.core.errors import AuthError, ForbiddenError, InternalError
from tesland.repositories import roles
from tesland.schemas.principal import Principal

logger = logging.getLogger("tesland.auth")


def _extract_bearer_token(request: Request) -> Optional[str]:
    """
    Reads the token from an `Authorization: Bearer <id_token>` header.
    Returns None when the header is missing or malformed.
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    parts = auth_header.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_id_token(id_token: str) -> dict:
    """
    Firebase ID token verification, revoked tokens included.
    Invalid, revoked or expired tokens become a 401; a broken Firebase setup is a 500.
    """
    try:
        app = get_firebase_app()
    except Exception as exc:
        logger.exception("Firebase app initialisation failed")
        raise InternalError("Internal error") from exc
    try:
        return fb_auth.verify_id_token(id_token, app=app, check_revoked=True)
    except Exception as exc:
        raise AuthError("Unauthorized") from exc


def verify_bearer(request: Request) -> dict:
    token = _extract_bearer_token(request)
    if not token:
        raise AuthError("Unauthorized")
    decoded = _decode_id_token(token)
    if not (decoded.get("uid") or decoded.get("user_id")):
        raise AuthError("Unauthorized")
    return decoded


# --------- FastAPI Dependencies --------- #

async def get_principal(request: Request, db=Depends(get_db)) -> Principal:
    """
    Token required: verifies it and returns the Principal with `is_admin` from user_roles.
    """
    decoded = await asyncio.to_thread(verify_bearer, request)
    uid = decoded.get("uid") or decoded.get("user_id")
    is_admin = await asyncio.to_thread(roles.is_admin, db, uid)
    return Principal(uid=uid, email=decoded.get("email"), is_admin=is_admin)


def require_admin(principal: Principal = Depends(get_principal)) -> Principal:
    """Accepts admins only."""
    if not principal.is_admin:
        raise ForbiddenError("Admin privilege required.")
    return principal
