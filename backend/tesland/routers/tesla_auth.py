"""
# `tesland/routers/tesla_auth.py` — Tesla account connection (OAuth)

### POST /functions/tesla-auth
Body: `{"action": ..., "code": ..., "redirect_uri": ...}`

| action                | Auth   | Result |
|-----------------------|--------|--------|
| `get_auth_url_public` | none   | `{auth_url, state}` |
| `get_auth_url`        | bearer | `{auth_url, state}` |
| `exchange_code`       | bearer | tokens stored in `tesla_connections/{uid}`, `{success: true}` |
| `status`              | bearer | `{connected, expires_at}` |
| `disconnect`          | bearer | tokens and cached vehicles removed, `{success: true}` |

Missing client credentials → 500; a refused code exchange → 400; unknown action → 400.
The stored access token is what `/functions/tesla-register-partner` uses.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tesland.config import get_db, settings
from tesland.core.auth import verify_bearer
from tesland.core.errors import AppError, InternalError, ValidationError
from tesland.core.http import json_response, preflight_response, read_json
from tesland.integrations.fleet_api import FleetApiClient, authorize_url, get_fleet_api
from tesland.repositories import connections
from tesland.schemas.functions import TeslaAuthRequest

logger = logging.getLogger("tesland.tesla_auth")

router = APIRouter(prefix="/functions", tags=["Functions"])


@router.options("/tesla-auth")
def tesla_auth_preflight():
    return preflight_response()


def _auth_url(body: TeslaAuthRequest):
    if not body.redirect_uri:
        raise ValidationError("Missing redirect_uri")
    url, state = authorize_url(settings.tesla_client_id, body.redirect_uri)
    return json_response({"auth_url": url, "state": state})


async def _exchange_code(body: TeslaAuthRequest, uid: str, db, fleet: FleetApiClient):
    if not body.code or not body.redirect_uri:
        raise ValidationError("Missing code or redirect_uri")
    resp = await fleet.exchange_code(body.code, body.redirect_uri,
                                     settings.tesla_client_id, settings.tesla_client_secret)
    if not resp.is_success:
        raise ValidationError("Failed to exchange authorization code")
    tokens = resp.json()
    try:
        await asyncio.to_thread(connections.save_tesla_connection, db, uid, tokens["access_token"],
                                tokens.get("refresh_token"), tokens.get("expires_in", 0))
    except Exception as exc:
        logger.exception("Failed to save Tesla connection for %s", uid)
        raise InternalError("Failed to save Tesla connection") from exc
    logger.info("Tesla account connected for %s", uid)
    return json_response({"success": True})


async def _disconnect(uid: str, db):
    try:
        removed = await asyncio.to_thread(connections.delete_tesla_connection, db, uid)
    except Exception as exc:
        logger.exception("Failed to delete Tesla connection for %s", uid)
        raise InternalError("Failed to disconnect Tesla account") from exc
    logger.info("Tesla account disconnected for %s (%d cached vehicle(s) removed)", uid, removed)
    return json_response({"success": True})


async def _status(uid: str, db):
    connection = await asyncio.to_thread(connections.get_tesla_connection, db, uid)
    return json_response({
        "connected": connection is not None,
        "expires_at": connection.get("expires_at") if connection else None,
    })


@router.post("/tesla-auth")
async def tesla_auth(request: Request, db=Depends(get_db), fleet: FleetApiClient = Depends(get_fleet_api)):
    if not settings.tesla_client_id or not settings.tesla_client_secret:
        raise InternalError("Tesla API credentials not configured")

    raw = await read_json(request)
    try:
        body = TeslaAuthRequest.model_validate(raw)
    except PydanticValidationError:
        raise ValidationError("Invalid request data")

    if body.action == "get_auth_url_public":
        return _auth_url(body)

    decoded = await asyncio.to_thread(verify_bearer, request)
    uid = decoded.get("uid") or decoded.get("user_id")

    try:
        if body.action == "get_auth_url":
            return _auth_url(body)
        if body.action == "exchange_code":
            return await _exchange_code(body, uid, db, fleet)
        if body.action == "disconnect":
            return await _disconnect(uid, db)
        if body.action == "status":
            return await _status(uid, db)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Tesla auth error")
        raise InternalError("Internal error") from exc
    raise ValidationError("Invalid action")
