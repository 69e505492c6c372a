"""
tesland/routers/push_subscriptions.py - Device registration for push notifications.

Customers register a device for one appointment (reminders); admins register their
devices to hear about customer arrivals.
"""
from fastapi import APIRouter, Depends, Request

from tesland.config import get_db
from tesland.core.auth import require_admin
from tesland.core.errors import NotFoundError
from tesland.i18n.translations import get_translations
from tesland.repositories import appointments, push_subscriptions
from tesland.schemas.principal import Principal
from tesland.schemas.push import AdminPushSubscriptionCreate, PushSubscriptionCreate, PushSubscriptionOut

router = APIRouter(prefix="/push-subscriptions", tags=["Push"])


@router.post("/", response_model=PushSubscriptionOut, status_code=201)
def register_device(payload: PushSubscriptionCreate, request: Request, db=Depends(get_db)):
    if not appointments.get(db, payload.appointment_id):
        raise NotFoundError(get_translations(request.headers.get("Accept-Language"))["appointmentNotFound"])
    return push_subscriptions.register_for_appointment(
        db, payload.appointment_id, payload.device_token, payload.platform
    )


admin_router = APIRouter(prefix="/push-subscriptions", tags=["Admin: Push"])


@admin_router.post("/", response_model=PushSubscriptionOut, status_code=201)
def register_admin_device(
    payload: AdminPushSubscriptionCreate,
    principal: Principal = Depends(require_admin),
    db=Depends(get_db),
):
    return push_subscriptions.register_admin_device(db, principal.uid, payload.device_token, payload.platform)
