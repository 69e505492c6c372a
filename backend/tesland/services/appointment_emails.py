"""
tesland/services/appointment_emails.py - Customer e-mails about an appointment.

Three messages, each in the appointment's own language:

- confirmation right after booking
- reschedule notice (previous and new date/time)
- cancellation notice

Sending is best-effort: the caller's request has already succeeded, so a failed send is
logged and never raised.
"""
import html
import logging
from datetime import date
from typing import Any, Dict, Optional, Tuple

from tesland.config import settings
from tesland.core.email_utils import send_email
from tesland.i18n.translations import get_translations, resolve_language
from tesland.services.reminders import SERVICE_NAMES, VEHICLE_NAMES

logger = logging.getLogger("tesland.emails")

SERVICE_NAMES_HU = {
    "maintenance": "Éves karbantartás",
    "battery": "Akkumulátor szerviz",
    "brake": "Fékszerviz",
    "software": "Software frissítés",
    "body": "Karosszéria javítás",
    "warranty": "Garanciális szerviz",
}

LOCATION_NAMES = {
    "hu": {
        "sf": ("San Francisco Szervizközpont", "123 Tesla Blvd, SF, CA"),
        "la": ("Los Angeles Szervizközpont", "456 Electric Ave, LA, CA"),
        "ny": ("New York Szervizközpont", "789 Innovation St, NY, NY"),
    },
    "en": {
        "sf": ("San Francisco Service Center", "123 Tesla Blvd, SF, CA"),
        "la": ("Los Angeles Service Center", "456 Electric Ave, LA, CA"),
        "ny": ("New York Service Center", "789 Innovation St, NY, NY"),
    },
}

_MONTHS = {
    "hu": ("január", "február", "március", "április", "május", "június", "július",
           "augusztus", "szeptember", "október", "november", "december"),
    "en": ("January", "February", "March", "April", "May", "June", "July",
           "August", "September", "October", "November", "December"),
}
_WEEKDAYS = {
    "hu": ("hétfő", "kedd", "szerda", "csütörtök", "péntek", "szombat", "vasárnap"),
    "en": ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"),
}


def format_date(value, language: str) -> str:
    """`2026-11-03` → `Tuesday, November 3, 2026` / `2026. november 3., kedd`; unparsable input is kept."""
    try:
        day = date.fromisoformat(str(value))
    except (TypeError, ValueError):
        return str(value or "")
    month = _MONTHS[language][day.month - 1]
    weekday = _WEEKDAYS[language][day.weekday()]
    if language == "hu":
        return f"{day.year}. {month} {day.day}., {weekday}"
    return f"{weekday}, {month} {day.day}, {day.year}"


def _names(appointment: Dict[str, Any], language: str) -> Tuple[str, str, str, str]:
    service = appointment.get("service", "")
    services = SERVICE_NAMES_HU if language == "hu" else SERVICE_NAMES
    location = LOCATION_NAMES[language].get(appointment.get("location", ""),
                                            (appointment.get("location", ""), ""))
    vehicle = VEHICLE_NAMES.get(appointment.get("vehicle", ""), appointment.get("vehicle", ""))
    return services.get(service, service), vehicle, location[0], location[1]


def _layout(t, title: str, greeting: str, rows, footer: str, appointment_id: str) -> str:
    details = "".join(
        f'<tr><td style="color:#a1a1aa;padding:6px 16px 6px 0">{html.escape(label)}</td>'
        f'<td style="font-weight:500">{html.escape(value)}</td></tr>'
        for label, value in rows
    )
    manage = f"{settings.manage_url}?id={appointment_id}"
    return f"""<div style="font-family:Arial,sans-serif;max-width:600px;margin:0 auto">
      <p style="color:#e11d48;font-size:20px;font-weight:600">{html.escape(t["emailBrand"])}</p>
      <h2>{html.escape(title)}</h2>
      <p>{html.escape(greeting)}</p>
      <table>{details}</table>
      <p>{footer}</p>
      <p><a href="{html.escape(manage)}">{html.escape(t["emailManageAppointment"])}</a></p>
    </div>"""


def build_confirmation(appointment: Dict[str, Any]) -> Tuple[str, str]:
    language = resolve_language(appointment.get("language"))
    t = get_translations(language)
    service, vehicle, location, address = _names(appointment, language)
    when = format_date(appointment.get("appointment_date", ""), language)
    rows = [
        (t["emailService"], service),
        (t["emailVehicle"], f"Tesla {vehicle}"),
        (t["emailDate"], when),
        (t["emailTime"], appointment.get("appointment_time", "")),
        (t["emailLocation"], f"{location}, {address}" if address else location),
    ]
    body = _layout(t, t["emailConfirmedTitle"], t["emailConfirmedGreeting"].format(name=appointment.get("name", "")),
                   rows, html.escape(t["emailReminderNote"]), appointment.get("id", ""))
    return t["emailConfirmedSubject"].format(service=service, date=when), body


def build_update(kind: str, appointment: Dict[str, Any],
                 previous: Optional[Dict[str, Any]] = None) -> Tuple[str, str]:
    """`kind` is `reschedule` or `cancellation`; `previous` holds the old date and time for a reschedule."""
    language = resolve_language(appointment.get("language"))
    t = get_translations(language)
    service, vehicle, location, address = _names(appointment, language)
    when = format_date(appointment.get("appointment_date", ""), language)
    name = appointment.get("name", "")
    rows = [
        (t["emailService"], service),
        (t["emailVehicle"], f"Tesla {vehicle}"),
        (t["emailDate"], when),
        (t["emailTime"], appointment.get("appointment_time", "")),
        (t["emailLocation"], f"{location}, {address}" if address else location),
    ]
    if kind == "reschedule":
        if previous:
            old = f'{format_date(previous.get("appointment_date", ""), language)} {previous.get("appointment_time", "")}'
            rows.append((t["emailPreviousDateTime"], old.strip()))
        subject = t["emailRescheduledSubject"].format(service=service, date=when)
        body = _layout(t, t["emailRescheduledTitle"], t["emailRescheduledGreeting"].format(name=name),
                       rows, "", appointment.get("id", ""))
        return subject, body
    if kind == "cancellation":
        subject = t["emailCancelledSubject"].format(service=service)
        body = _layout(t, t["emailCancelledTitle"], t["emailCancelledGreeting"].format(name=name),
                       rows, "", appointment.get("id", ""))
        return subject, body
    raise ValueError(f"Unknown update e-mail kind: {kind}")


async def _deliver(appointment: Dict[str, Any], subject: str, body: str) -> bool:
    to = appointment.get("email")
    if not to:
        logger.warning("Appointment %s has no e-mail address, nothing sent", appointment.get("id"))
        return False
    try:
        await send_email(to, subject, body, sender_name=settings.email_sender_name)
    except Exception as exc:
        logger.warning("E-mail for appointment %s failed: %s", appointment.get("id"), exc)
        return False
    logger.info("E-mail '%s' sent for appointment %s", subject, appointment.get("id"))
    return True


async def send_booking_confirmation(appointment: Dict[str, Any]) -> bool:
    subject, body = build_confirmation(appointment)
    return await _deliver(appointment, subject, body)


async def send_appointment_update(kind: str, appointment: Dict[str, Any],
                                  previous: Optional[Dict[str, Any]] = None) -> bool:
    subject, body = build_update(kind, appointment, previous)
    return await _deliver(appointment, subject, body)
