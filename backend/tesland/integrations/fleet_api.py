"""
tesland/integrations/fleet_api.py - Tesla OAuth and Fleet API calls.

- OAuth: the authorize URL the customer is sent to, and the code → token exchange.
- Fleet API: partner-account registration. Three regional base URLs exist; unknown or
  missing regions fall back to `eu`.
"""
import logging
import uuid
from typing import Optional, Tuple

import httpx

from tesland.config import settings
from tesland.schemas.functions import DEFAULT_REGION, FLEET_API_REGIONS

logger = logging.getLogger("tesland.partner")

OAUTH_SCOPES = (
    "openid",
    "email",
    "offline_access",
    "user_data",
    "vehicle_device_data",
    "vehicle_cmds",
    "vehicle_charging_cmds",
)


def base_url_for(region: Optional[str]) -> str:
    return FLEET_API_REGIONS.get((region or "").lower(), FLEET_API_REGIONS[DEFAULT_REGION])


def authorize_url(client_id: str, redirect_uri: str, state: Optional[str] = None) -> Tuple[str, str]:
    """Returns `(url, state)`; the customer also gets asked for scopes missing from an earlier grant."""
    state = state or str(uuid.uuid4())
    url = httpx.URL(f"{settings.tesla_auth_url}/authorize", params={
        "client_id": client_id,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": " ".join(OAUTH_SCOPES),
        "state": state,
        "prompt_missing_scopes": "true",
        "require_requested_scopes": "true",
    })
    return str(url), state


class FleetApiClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.transport = transport

    async def exchange_code(self, code: str, redirect_uri: str, client_id: str, client_secret: str) -> httpx.Response:
        async with httpx.AsyncClient(transport=self.transport, timeout=settings.http_timeout) as client:
            resp = await client.post(f"{settings.tesla_auth_url}/token", data={
                "grant_type": "authorization_code",
                "client_id": client_id,
                "client_secret": client_secret,
                "code": code,
                "redirect_uri": redirect_uri,
            })
        if not resp.is_success:
            logger.error("Tesla token exchange failed: %s %s", resp.status_code, resp.text[:200])
        return resp

    async def register_partner(self, access_token: str, region: str, domain: str) -> httpx.Response:
        url = f"{base_url_for(region)}/api/1/partner_accounts"
        logger.info("Registering domain %s at %s", domain, url)
        async with httpx.AsyncClient(transport=self.transport, timeout=settings.http_timeout) as client:
            resp = await client.post(
                url,
                json={"domain": domain},
                headers={"Authorization": f"Bearer {access_token}"},
            )
        logger.info("Registration response: %s - %s", resp.status_code, resp.text[:200])
        return resp


def get_fleet_api() -> FleetApiClient:
    return FleetApiClient()
