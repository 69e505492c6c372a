"""
tesland/services/reminders.py - "Your appointment starts in one hour" push job.

Scheduled by APScheduler from `tesland.main`. Picks today's confirmed appointments whose
time is within REMINDER_WINDOW_MINUTES of now + 1 hour and pushes a reminder to every
device registered for them.
"""
import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from tesland.config import get_db
from tesland.i18n.translations import get_translations
from tesland.repositories import appointments, push_subscriptions
from tesland.services.push import fan_out

logger = logging.getLogger("tesland.reminders")

REMINDER_LEAD = timedelta(hours=1)
REMINDER_WINDOW_MINUTES = 10

SERVICE_NAMES = {
    "maintenance": "Annual Maintenance",
    "battery": "Battery Service",
    "brake": "Brake Service",
    "software": "Software Update",
    "body": "Body Repair",
    "warranty": "Warranty Service",
}

VEHICLE_NAMES = {
    "model-s": "Model S",
    "model-3": "Model 3",
    "model-x": "Model X",
    "model-y": "Model Y",
    "cybertruck": "Cybertruck",
    "roadster": "Roadster",
}

_TIME = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*(AM|PM)?\s*$", re.IGNORECASE)


def parse_time(value: str) -> Optional[Tuple[int, int]]:
    """Accepts `14:30` as well as the older `2:30 PM` format."""
    match = _TIME.match(value or "")
    if not match:
        return None
    hours, minutes = int(match.group(1)), int(match.group(2))
    meridiem = (match.group(3) or "").upper()
    if meridiem == "PM" and hours != 12:
        hours += 12
    elif meridiem == "AM" and hours == 12:
        hours = 0
    return hours, minutes


def is_due(appointment_time: str, target: datetime) -> bool:
    parsed = parse_time(appointment_time)
    if not parsed:
        return False
    minutes = parsed[0] * 60 + parsed[1]
    return abs(minutes - (target.hour * 60 + target.minute)) <= REMINDER_WINDOW_MINUTES


async def send_upcoming_reminders(db=None, now: Optional[datetime] = None) -> int:
    """Returns the number of push attempts made."""
    db = db or get_db()
    now = now or datetime.now()
    target = now + REMINDER_LEAD
    todays = await asyncio.to_thread(appointments.list_for_day, db, now.date(), "confirmed")
    upcoming = [a for a in todays if is_due(a.get("appointment_time", ""), target)]
    logger.info("Found %d appointments starting in ~1 hour", len(upcoming))

    attempted = 0
    for appt in upcoming:
        try:
            subs = await asyncio.to_thread(push_subscriptions.list_for_appointment, db, appt["id"])
        except Exception as exc:
            logger.error("Error fetching subscriptions for appointment %s: %s", appt["id"], exc)
            continue
        if not subs:
            continue
        t = get_translations(appt.get("language"))
        body = t["reminderBody"].format(
            service=SERVICE_NAMES.get(appt.get("service"), appt.get("service")),
            vehicle=VEHICLE_NAMES.get(appt.get("vehicle"), appt.get("vehicle")),
        )
        results = await fan_out(subs, t["reminderTitle"], body, {"appointmentId": appt["id"]})
        attempted += len(results)
    return attempted
