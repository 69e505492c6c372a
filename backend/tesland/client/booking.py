"""
# `tesland/client/booking.py` — Booking wizard

Linear four-step selection that ends in a single appointment insert:

    SERVICE → VEHICLE → SCHEDULE (date, time, location) → CONTACT → DONE

- `back()` never clears what was already chosen.
- `next()` refuses while the current step is incomplete.
- `submit()` inserts once. Success stores the confirmation and a localized `notice`,
  notifies `on_booked` listeners (a failing listener is only logged) and moves to DONE.
  Failure keeps every value, stays on CONTACT and exposes a localized `error`.
- When a device token is known the device is registered for reminder pushes after the
  insert; a failed registration does not undo the booking.
"""
import asyncio
import logging
from dataclasses import asdict, dataclass
from datetime import date
from enum import IntEnum
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from tesland.client.localization import LocalizationStore
from tesland.core.errors import SlotTakenError
from tesland.schemas.appointment import AppointmentCreate

logger = logging.getLogger("tesland.client.booking")

LOCATIONS = ("sf", "la", "ny")
TIME_SLOTS = ("09:00", "10:00", "11:00", "12:00", "13:00", "14:00", "15:00", "16:00")

Inserter = Callable[[Dict[str, Any]], Dict[str, Any]]
DeviceRegistrar = Callable[[str, str, str], Any]
BookedListener = Callable[[Dict[str, Any]], None]


class Step(IntEnum):
    SERVICE = 1
    VEHICLE = 2
    SCHEDULE = 3
    CONTACT = 4
    DONE = 5


@dataclass
class BookingSelection:
    service: Optional[str] = None
    vehicle: Optional[str] = None
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = None
    location: Optional[str] = None
    name: str = ""
    email: str = ""
    phone: str = ""


class BookingWizard:
    def __init__(self, insert: Inserter, localization: LocalizationStore,
                 register_device: Optional[DeviceRegistrar] = None):
        self._insert = insert
        self._register_device = register_device
        self._localization = localization
        self._listeners: List[BookedListener] = []
        self.selection = BookingSelection()
        self.step = Step.SERVICE
        self.error: Optional[str] = None
        self.confirmation: Optional[Dict[str, Any]] = None
        self.notice: Optional[str] = None
        self.submitting = False

    def on_booked(self, listener: BookedListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # --- selections ----------------------------------------------------------
    def select_service(self, service: str) -> None:
        self.selection.service = service

    def select_vehicle(self, vehicle: str) -> None:
        self.selection.vehicle = vehicle

    def select_schedule(self, appointment_date: date, appointment_time: str, location: str) -> None:
        if appointment_time not in TIME_SLOTS:
            raise ValueError(f"Unknown time slot: {appointment_time}")
        if location not in LOCATIONS:
            raise ValueError(f"Unknown location: {location}")
        self.selection.appointment_date = appointment_date
        self.selection.appointment_time = appointment_time
        self.selection.location = location

    def set_contact(self, name: str, email: str, phone: str) -> None:
        self.selection.name = name
        self.selection.email = email
        self.selection.phone = phone

    # --- navigation ----------------------------------------------------------
    def step_complete(self, step: Optional[Step] = None) -> bool:
        s = self.selection
        step = step or self.step
        if step is Step.SERVICE:
            return bool(s.service)
        if step is Step.VEHICLE:
            return bool(s.vehicle)
        if step is Step.SCHEDULE:
            return bool(s.appointment_date and s.appointment_time and s.location)
        if step is Step.CONTACT:
            return bool(s.name.strip() and s.email.strip() and s.phone.strip())
        return True

    def next(self) -> bool:
        # CONTACT only leaves through submit()
        if self.step >= Step.CONTACT or not self.step_complete():
            return False
        self.step = Step(self.step + 1)
        return True

    def back(self) -> bool:
        if self.step in (Step.SERVICE, Step.DONE):
            return False
        self.step = Step(self.step - 1)
        self.error = None
        return True

    def start_over(self) -> None:
        self.selection = BookingSelection()
        self.step = Step.SERVICE
        self.error = None
        self.confirmation = None
        self.notice = None

    # --- submit --------------------------------------------------------------
    async def submit(self, device_token: Optional[str] = None, platform: str = "web") -> bool:
        if self.step is not Step.CONTACT or self.submitting:
            return False
        t = self._localization.t
        if not all(self.step_complete(step) for step in (Step.SERVICE, Step.VEHICLE, Step.SCHEDULE, Step.CONTACT)):
            self.error = t["invalidRequest"]
            return False
        try:
            payload = AppointmentCreate(**asdict(self.selection), language=self._localization.language)
        except PydanticValidationError as exc:
            fields = {str(err["loc"][0]) for err in exc.errors() if err["loc"]}
            self.error = t["invalidEmail"] if "email" in fields else t["invalidRequest"]
            return False

        self.submitting = True
        self.error = None
        try:
            saved = await asyncio.to_thread(self._insert, payload.model_dump())
        except SlotTakenError:
            self.error = t["slotAlreadyTaken"]
            return False
        except Exception:
            logger.exception("Booking insert failed")
            self.error = t["bookingFailed"]
            return False
        finally:
            self.submitting = False

        self.confirmation = saved
        self.step = Step.DONE
        if device_token and self._register_device is not None:
            try:
                await asyncio.to_thread(self._register_device, saved["id"], device_token, platform)
            except Exception as exc:
                logger.warning("Push registration failed for appointment %s: %s", saved.get("id"), exc)
        self.notice = t["appointmentBookedSuccess"]
        for listener in list(self._listeners):
            try:
                listener(saved)
            except Exception:
                logger.exception("booked listener failed for appointment %s", saved.get("id"))
        return True
