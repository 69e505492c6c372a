"""
# `tesland/routers/arrivals.py` — Customer arrival notification

### POST /functions/notify-customer-arrival
Header: `Authorization: Bearer <Firebase ID token>`
Body: `{"reservation_id": ..., "arrival_type": "geofence|manual", "language": "hu|en"}`

1. The bearer token is verified (401 otherwise).
2. `reservation_id` is required (400 otherwise).
3. Every registered admin device gets one push, all concurrently; a failing device is
   logged and does not stop the rest.
4. Response: `{"success": true, "notified": <number of attempted pushes>}`.
"""
import asyncio
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError as PydanticValidationError

from tesland.config import get_db
from tesland.core.auth import verify_bearer
from tesland.core.errors import AppError, InternalError, ValidationError
from tesland.core.http import json_response, preflight_response, read_json
from tesland.i18n.translations import get_translations
from tesland.repositories import push_subscriptions
from tesland.schemas.functions import ArrivalRequest
from tesland.services.push import fan_out

logger = logging.getLogger("tesland.arrivals")

router = APIRouter(prefix="/functions", tags=["Functions"])


def arrival_message(reservation_id, arrival_type, language):
    t = get_translations(language)
    method = t["arrivalGeofence"] if arrival_type == "geofence" else t["arrivalManual"]
    return t["arrivalTitle"], f"{t['arrivalReservation']} #{reservation_id} – {method}"


@router.options("/notify-customer-arrival")
def arrival_preflight():
    return preflight_response()


@router.post("/notify-customer-arrival")
async def notify_customer_arrival(request: Request, db=Depends(get_db)):
    await asyncio.to_thread(verify_bearer, request)
    raw = await read_json(request)
    try:
        body = ArrivalRequest.model_validate(raw)
    except PydanticValidationError:
        raise ValidationError("reservation_id is required")

    try:
        try:
            admin_subs = await asyncio.to_thread(push_subscriptions.list_admin_devices, db)
        except Exception as exc:
            logger.error("[ARRIVAL] Error fetching admin subs: %s", exc)
            admin_subs = []

        title, text = arrival_message(body.reservation_id, body.arrival_type, body.language)
        results = await fan_out(admin_subs, title, text, {
            "reservationId": str(body.reservation_id),
            "type": "customer_arrival",
        })
    except AppError:
        raise
    except Exception as exc:
        logger.exception("[ARRIVAL] Error")
        raise InternalError("Internal error") from exc

    logger.info("[ARRIVAL] Reservation %s – %s. Notified %d admin device(s).",
                body.reservation_id, body.arrival_type, len(results))
    return json_response({"success": True, "notified": len(results)})
