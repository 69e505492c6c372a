"""
# `tesland/routers/appointments.py` — Appointment Management Documentation

Customers book appointments and read their history; admins work the dashboard.
Two routers: `router` (public, `/appointments`) and `admin_router` (mounted under `/admin`).

| Method | Path                                         | Who      | Purpose |
|--------|----------------------------------------------|----------|---------|
| POST   | `/appointments/`                             | anyone   | Book (slot check, e-mail normalized) |
| GET    | `/appointments/history?email=`               | signed in| History by normalized e-mail, newest date first |
| GET    | `/admin/appointments/?status=`               | admin    | Dashboard list |
| PATCH  | `/admin/appointments/{id}/status`            | admin    | Set status |
| POST   | `/admin/appointments/{id}/reschedule`        | admin    | New date/time, status `rescheduled` |
| POST   | `/admin/appointments/{id}/cancel`            | admin    | Status `cancelled` |

Booking, rescheduling and cancelling e-mail the customer after the response is sent
(`services/appointment_emails.py`); a failed send never fails the request.
"""
import logging
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request

from tesland.config import get_db
from tesland.core.auth import get_principal, require_admin
from tesland.core.errors import NotFoundError, SlotTakenError
from tesland.i18n.translations import get_translations
from tesland.repositories import appointments as repo
from tesland.schemas.appointment import (
    AppointmentCreate, AppointmentOut, AppointmentReschedule, AppointmentStatus,
    AppointmentStatusUpdate, normalize_email,
)
from tesland.schemas.principal import Principal
from tesland.services.appointment_emails import send_appointment_update, send_booking_confirmation

logger = logging.getLogger("tesland.appointments")

router = APIRouter(prefix="/appointments", tags=["Appointments"])


# === Customer: book =========================================================
@router.post("/", response_model=AppointmentOut, status_code=201)
def book_appointment(payload: AppointmentCreate, background_tasks: BackgroundTasks, db=Depends(get_db)):
    """Books the slot; the confirmation e-mail goes out after the response."""
    t = get_translations(payload.language)
    try:
        saved = repo.create(db, payload.model_dump())
    except SlotTakenError:
        raise SlotTakenError(t["slotAlreadyTaken"])
    background_tasks.add_task(send_booking_confirmation, saved)
    return saved


# === Customer: history ======================================================
@router.get("/history", response_model=List[AppointmentOut])
def appointment_history(
    request: Request,
    email: Optional[str] = Query(None, max_length=255),
    principal: Principal = Depends(get_principal),
    db=Depends(get_db),
):
    """
    Appointments booked with the given e-mail (defaults to the caller's own).
    Non-admins may only read their own address.
    """
    wanted = normalize_email(email or principal.email or "")
    if not wanted:
        raise HTTPException(status_code=400, detail="email is required")
    if not principal.is_admin and wanted != normalize_email(principal.email or ""):
        raise HTTPException(status_code=403, detail="Not allowed to read other customers' history")
    return repo.list_by_email(db, wanted)


# === Admin Router ===========================================================
admin_router = APIRouter(prefix="/appointments", tags=["Admin: Appointments"], dependencies=[Depends(require_admin)])


@admin_router.get("/", response_model=List[AppointmentOut])
def list_appointments(
    status: Optional[str] = Query(None, pattern="^(pending|confirmed|completed|cancelled|rescheduled)$"),
    db=Depends(get_db),
):
    """Admin endpoint – lists all appointments, optional **status** filter."""
    return repo.list_all(db, status)


@admin_router.patch("/{appointment_id}/status", response_model=AppointmentOut)
def update_status(appointment_id: str, payload: AppointmentStatusUpdate, db=Depends(get_db)):
    updated = repo.update(db, appointment_id, {"status": payload.status.value})
    logger.info("Appointment %s status -> %s", appointment_id, payload.status.value)
    return updated


@admin_router.post("/{appointment_id}/reschedule", response_model=AppointmentOut)
def reschedule(appointment_id: str, payload: AppointmentReschedule, background_tasks: BackgroundTasks,
               request: Request, db=Depends(get_db)):
    current = repo.get(db, appointment_id)
    if not current:
        raise NotFoundError(get_translations(request.headers.get("Accept-Language"))["appointmentNotFound"])
    t = get_translations(current.get("language"))
    if repo.slot_taken(db, current["location"], payload.appointment_date, payload.appointment_time,
                       exclude_id=appointment_id):
        raise SlotTakenError(t["slotAlreadyTaken"])
    updated = repo.update(db, appointment_id, {
        "appointment_date": payload.appointment_date,
        "appointment_time": payload.appointment_time,
        "status": AppointmentStatus.rescheduled.value,
    })
    background_tasks.add_task(send_appointment_update, "reschedule", updated, current)
    return updated


@admin_router.post("/{appointment_id}/cancel", response_model=AppointmentOut)
def cancel(appointment_id: str, background_tasks: BackgroundTasks, request: Request, db=Depends(get_db)):
    if not repo.get(db, appointment_id):
        raise NotFoundError(get_translations(request.headers.get("Accept-Language"))["appointmentNotFound"])
    updated = repo.update(db, appointment_id, {"status": AppointmentStatus.cancelled.value})
    background_tasks.add_task(send_appointment_update, "cancellation", updated)
    return updated
