"""
# `tesland/schemas/appointment.py` — Appointment Schema Documentation

## General
Pydantic models used to create, update and list service appointments.
Field names match the Firestore `appointments` documents.

---

## Request Schemas

### `AppointmentCreate`
| Field            | Type   | Required | Description |
|------------------|--------|----------|-------------|
| service          | `str`  | ✔        | Service id (e.g. `maintenance`) |
| vehicle          | `str`  | ✔        | Vehicle id (e.g. `model-3`) |
| appointment_date | `date` | ✔        | Day of the visit |
| appointment_time | `str`  | ✔        | `HH:MM` |
| location         | `str`  | ✔        | Workshop location |
| name             | `str`  | ✔        | Contact name |
| email            | `str`  | ✔        | Contact e-mail, stored lower-cased and trimmed |
| phone            | `str`  | ✖        | Contact phone |

### `AppointmentStatusUpdate`
| Field  | Type                 | Required |
|--------|----------------------|----------|
| status | `AppointmentStatus`  | ✔        |

### `AppointmentReschedule`
| Field            | Type   | Required |
|------------------|--------|----------|
| appointment_date | `date` | ✔        |
| appointment_time | `str`  | ✔        |

---

## Enum

### `AppointmentStatus`
`pending` · `confirmed` · `completed` · `cancelled` · `rescheduled`

Active statuses (the slot counts as taken): `pending`, `confirmed`, `rescheduled`.
"""
from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class AppointmentStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    completed = "completed"
    cancelled = "cancelled"
    rescheduled = "rescheduled"


ACTIVE_STATUSES = [AppointmentStatus.pending.value, AppointmentStatus.confirmed.value, AppointmentStatus.rescheduled.value]


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class AppointmentCreate(BaseModel):
    service: str = Field(..., min_length=1)
    vehicle: str = Field(..., min_length=1)
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_PATTERN, description="HH:MM")
    location: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    email: EmailStr
    phone: Optional[str] = None
    language: Literal["hu", "en"] = "hu"

    @field_validator("email", mode="before")
    @classmethod
    def _normalize_email(cls, v):
        return normalize_email(v) if isinstance(v, str) else v


class AppointmentStatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentReschedule(BaseModel):
    appointment_date: date
    appointment_time: str = Field(..., pattern=TIME_PATTERN)


class AppointmentOut(BaseModel):
    id: str
    service: str
    vehicle: str
    appointment_date: date
    appointment_time: str
    location: str
    name: Optional[str] = None
    email: str
    phone: Optional[str] = None
    status: AppointmentStatus
    created_at: Optional[datetime] = None

    # Pydantic v2
    model_config = {"from_attributes": True}
