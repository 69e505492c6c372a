"""
# `tesland/routers/partner.py` — Tesla partner registration proxy

### POST /functions/tesla-register-partner
Header: `Authorization: Bearer <Firebase ID token>`
Body (optional): `{"region": "eu|na|cn"}`, unknown or missing → `eu`

1. The caller's token is verified (401).
2. The caller's stored Tesla access token is loaded from `tesla_connections/{uid}`;
   missing → 404 with guidance.
3. The registration is posted to the regional Fleet API; its status and body are relayed.
   A 409 / "already registered" answer counts as success.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tesland.config import get_db, settings
from tesland.core.auth import verify_bearer
from tesland.core.errors import AppError, InternalError, NotFoundError, ValidationError
from tesland.core.http import json_response, preflight_response
from tesland.i18n.translations import get_translations
from tesland.integrations.fleet_api import FleetApiClient, get_fleet_api
from tesland.repositories.connections import get_tesla_connection
from tesland.schemas.functions import PartnerRequest

logger = logging.getLogger("tesland.partner")

router = APIRouter(prefix="/functions", tags=["Functions"])


def _body_of(resp):
    try:
        return resp.json()
    except ValueError:
        return {"message": resp.text}


@router.options("/tesla-register-partner")
def partner_preflight():
    return preflight_response()


@router.post("/tesla-register-partner")
async def register_partner(request: Request, db=Depends(get_db), fleet: FleetApiClient = Depends(get_fleet_api)):
    decoded = await asyncio.to_thread(verify_bearer, request)
    uid = decoded.get("uid") or decoded.get("user_id")

    raw = await request.body()
    try:
        body = PartnerRequest.model_validate_json(raw) if raw.strip() else PartnerRequest()
    except PydanticValidationError:
        raise ValidationError("Invalid request data")
    t = get_translations(body.language or request.headers.get("Accept-Language"))
    region = body.resolved_region

    connection = await asyncio.to_thread(get_tesla_connection, db, uid)
    if not connection:
        raise NotFoundError(t["teslaNotConnected"])

    try:
        resp = await fleet.register_partner(connection["access_token"], region, settings.partner_domain)
    except AppError:
        raise
    except Exception as exc:
        logger.exception("Tesla partner registration error")
        raise InternalError("Internal error") from exc

    result = _body_of(resp)
    if resp.is_success:
        return json_response({
            "success": True,
            "message": t["partnerRegistered"],
            "region": region,
            "result": result,
        })
    if resp.status_code == 409 or "already registered" in resp.text:
        return json_response({
            "success": True,
            "message": t["partnerAlreadyRegistered"],
            "region": region,
            "result": result,
        })

    logger.error("Partner registration failed: %s %s", resp.status_code, resp.text)
    error = result.get("error") if isinstance(result, dict) else None
    return json_response({
        "success": False,
        "error": error or t["partnerRegistrationFailed"],
        "region": region,
        "result": result,
    }, resp.status_code)
