"""
tesland/repositories/appointments.py - Firestore access for the `appointments` collection.

Dates are stored as ISO strings (`YYYY-MM-DD`) so ordering by `appointment_date` works lexically.
E-mail addresses are always lower-cased and trimmed before a write or a lookup.
"""
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud import firestore as gcf

from tesland.core.errors import NotFoundError, SlotTakenError
from tesland.schemas.appointment import ACTIVE_STATUSES, AppointmentStatus, normalize_email

logger = logging.getLogger("tesland.appointments")

COL = "appointments"


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, date) else value


def _to_out(doc) -> Dict[str, Any]:
    d = doc.to_dict() or {}
    d["id"] = doc.id
    return d


def slot_taken(db, location: str, appointment_date: Any, appointment_time: str,
               exclude_id: Optional[str] = None) -> bool:
    docs = db.collection(COL).where("appointment_date", "==", _iso(appointment_date)) \
             .where("location", "==", location).stream()
    for doc in docs:
        if doc.id == exclude_id:
            continue
        d = doc.to_dict() or {}
        if d.get("appointment_time") == appointment_time and d.get("status") in ACTIVE_STATUSES:
            return True
    return False


def create(db, data: Dict[str, Any]) -> Dict[str, Any]:
    """Insert one appointment in `pending` state. Raises SlotTakenError if the slot is held."""
    record = dict(data)
    record["email"] = normalize_email(record.get("email", ""))
    record["appointment_date"] = _iso(record["appointment_date"])
    if slot_taken(db, record["location"], record["appointment_date"], record["appointment_time"]):
        raise SlotTakenError("Time slot is not available")
    record["status"] = AppointmentStatus.pending.value
    record["created_at"] = datetime.now(timezone.utc)
    ref = db.collection(COL).document()
    ref.set(record)
    record["id"] = ref.id
    logger.info("Appointment %s booked for %s %s at %s", ref.id, record["appointment_date"],
                record["appointment_time"], record["location"])
    return record


def get(db, appointment_id: str) -> Optional[Dict[str, Any]]:
    doc = db.collection(COL).document(appointment_id).get()
    return _to_out(doc) if doc.exists else None


def list_by_email(db, email: str) -> List[Dict[str, Any]]:
    """Appointment history for one contact address, newest date first."""
    query = db.collection(COL).where("email", "==", normalize_email(email)) \
              .order_by("appointment_date", direction=gcf.Query.DESCENDING)
    return [_to_out(doc) for doc in query.stream()]


def list_all(db, status: Optional[str] = None) -> List[Dict[str, Any]]:
    query = db.collection(COL)
    if status:
        query = query.where("status", "==", status)
    appts = [_to_out(doc) for doc in query.stream()]
    appts.sort(key=lambda x: (x.get("appointment_date") or "", x.get("appointment_time") or ""))
    return appts


def list_for_day(db, day: date, status: str) -> List[Dict[str, Any]]:
    docs = db.collection(COL).where("appointment_date", "==", day.isoformat()) \
             .where("status", "==", status).stream()
    return [_to_out(doc) for doc in docs]


def update(db, appointment_id: str, patch: Dict[str, Any]) -> Dict[str, Any]:
    ref = db.collection(COL).document(appointment_id)
    doc = ref.get()
    if not doc.exists:
        raise NotFoundError("Appointment not found")
    patch = {k: _iso(v) for k, v in patch.items()}
    patch["updated_at"] = datetime.now(timezone.utc)
    ref.update(patch)
    return {**(doc.to_dict() or {}), **patch, "id": appointment_id}
