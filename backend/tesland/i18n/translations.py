"""
tesland/i18n/translations.py - Hungarian and English message tables.

Only the keys used by the backend and the client state cores live here.
Each table is a read-only mapping; switching language means picking another table.
"""
from types import MappingProxyType
from typing import Literal, Mapping, Optional

Language = Literal["hu", "en"]
Translations = Mapping[str, str]

DEFAULT_LANGUAGE: Language = "hu"
LANGUAGES = ("hu", "en")

_hu = {
    # Validation
    "passwordsDoNotMatch": "A jelszavak nem egyeznek",
    "invalidEmail": "Érvénytelen e-mail cím",
    "emailTooLong": "Az e-mail cím legfeljebb 255 karakter lehet",
    "passwordTooShort": "A jelszónak legalább 6 karakter hosszúnak kell lennie",
    "passwordNeedsUppercase": "A jelszónak tartalmaznia kell nagybetűt",
    "passwordNeedsNumber": "A jelszónak tartalmaznia kell számot",
    "emailRequired": "E-mail cím megadása kötelező",
    "passwordRequired": "Jelszó megadása kötelező",

    # Auth
    "invalidCredentials": "Hibás e-mail cím vagy jelszó",
    "emailAlreadyRegistered": "Ez az e-mail cím már regisztrálva van",
    "signInFailed": "Bejelentkezés sikertelen",
    "signUpFailed": "Regisztráció sikertelen",
    "passwordResetSent": "Ha ez az e-mail cím regisztrálva van, elküldtük a jelszó-visszaállító levelet.",
    "passwordResetDone": "A jelszó sikeresen megváltozott",
    "passwordResetFailed": "A jelszó-visszaállító link érvénytelen vagy lejárt",

    # Booking
    "appointmentBookedSuccess": "Időpont sikeresen lefoglalva! A visszaigazolást e-mailben küldjük.",
    "slotAlreadyTaken": "Ez az időpont már foglalt. Kérjük, válasszon másik időpontot.",
    "bookingFailed": "Nem sikerült lefoglalni az időpontot. Kérjük, próbálja újra.",
    "appointmentNotFound": "Az időpont nem található",

    # Assistant
    "assistantRateLimited": "Túl sok kérés. Kérjük, próbálja újra később.",
    "assistantUnavailable": "Szolgáltatás ideiglenesen nem elérhető.",
    "assistantFailed": "Hiba történt a válasz generálása közben.",

    # Arrival
    "arrivalTitle": "Ügyfél megérkezett!",
    "arrivalReservation": "Foglalás",
    "arrivalGeofence": "(automatikus helymeghatározás)",
    "arrivalManual": "(manuális jelzés)",

    # Reminders
    "reminderTitle": "Közelgő Tesla szerviz időpont",
    "reminderBody": "{service} – {vehicle}: az időpontja 1 óra múlva kezdődik!",

    # Appointment e-mails
    "emailBrand": "Tesla Szerviz",
    "emailConfirmedTitle": "Időpont megerősítve!",
    "emailConfirmedGreeting": "Kedves {name}, szerviz időpontja sikeresen lefoglalva.",
    "emailConfirmedSubject": "Időpont megerősítve - {service}, {date}",
    "emailReminderNote": "Emlékeztetőt küldünk 1 órával az időpont előtt.",
    "emailCancelledTitle": "Időpont lemondva",
    "emailCancelledGreeting": "Kedves {name}, időpontja sikeresen lemondásra került.",
    "emailCancelledSubject": "Időpont lemondva - {service}",
    "emailRescheduledTitle": "Időpont átütemezve",
    "emailRescheduledGreeting": "Kedves {name}, időpontja sikeresen átütemezésre került.",
    "emailRescheduledSubject": "Időpont átütemezve - {service}, {date}",
    "emailPreviousDateTime": "Korábbi időpont",
    "emailService": "Szolgáltatás",
    "emailVehicle": "Jármű",
    "emailDate": "Dátum",
    "emailTime": "Időpont",
    "emailLocation": "Helyszín",
    "emailManageAppointment": "Időpont kezelése",

    # Partner registration
    "teslaNotConnected": "A Tesla fiók nincs összekapcsolva. Kérjük, először csatlakoztassa a Tesla fiókját a profil oldalon.",
    "partnerRegistered": "Partner fiók sikeresen regisztrálva",
    "partnerAlreadyRegistered": "A domain már regisztrálva van",
    "partnerRegistrationFailed": "A partner regisztráció sikertelen",

    # Generic
    "invalidRequest": "Érvénytelen kérés",
    "unknownError": "Ismeretlen hiba történt",
}

_en = {
    "passwordsDoNotMatch": "Passwords do not match",
    "invalidEmail": "Invalid email address",
    "emailTooLong": "Email must be at most 255 characters",
    "passwordTooShort": "Password must be at least 6 characters",
    "passwordNeedsUppercase": "Password must contain an uppercase letter",
    "passwordNeedsNumber": "Password must contain a number",
    "emailRequired": "Email is required",
    "passwordRequired": "Password is required",

    "invalidCredentials": "Invalid email or password",
    "emailAlreadyRegistered": "This email address is already registered",
    "signInFailed": "Sign in failed",
    "signUpFailed": "Registration failed",
    "passwordResetSent": "If this email is registered, a password reset email has been sent.",
    "passwordResetDone": "Your password has been changed",
    "passwordResetFailed": "The password reset link is invalid or has expired",

    "appointmentBookedSuccess": "Appointment booked successfully! Check your email for confirmation.",
    "slotAlreadyTaken": "This time slot is already booked. Please choose a different time.",
    "bookingFailed": "Failed to book the appointment. Please try again.",
    "appointmentNotFound": "Appointment not found",

    "assistantRateLimited": "Too many requests. Please try again later.",
    "assistantUnavailable": "Service temporarily unavailable.",
    "assistantFailed": "An error occurred while generating the response.",

    "arrivalTitle": "Customer arrived!",
    "arrivalReservation": "Reservation",
    "arrivalGeofence": "(automatic geolocation)",
    "arrivalManual": "(manual check-in)",

    "reminderTitle": "Upcoming Tesla Service Appointment",
    "reminderBody": "Your {service} for {vehicle} is in 1 hour!",

    "emailBrand": "Tesla Service",
    "emailConfirmedTitle": "Appointment Confirmed!",
    "emailConfirmedGreeting": "Hi {name}, your service appointment has been scheduled.",
    "emailConfirmedSubject": "Appointment Confirmed - {service} on {date}",
    "emailReminderNote": "You'll receive a reminder notification 1 hour before your appointment.",
    "emailCancelledTitle": "Appointment Cancelled",
    "emailCancelledGreeting": "Hi {name}, your appointment has been successfully cancelled.",
    "emailCancelledSubject": "Appointment Cancelled - {service}",
    "emailRescheduledTitle": "Appointment Rescheduled",
    "emailRescheduledGreeting": "Hi {name}, your appointment has been successfully rescheduled.",
    "emailRescheduledSubject": "Appointment Rescheduled - {service} to {date}",
    "emailPreviousDateTime": "Previous date/time",
    "emailService": "Service",
    "emailVehicle": "Vehicle",
    "emailDate": "Date",
    "emailTime": "Time",
    "emailLocation": "Location",
    "emailManageAppointment": "Manage Appointment",

    "teslaNotConnected": "Tesla account not connected. Please connect your Tesla account on the profile page first.",
    "partnerRegistered": "Partner account registered successfully",
    "partnerAlreadyRegistered": "Domain already registered",
    "partnerRegistrationFailed": "Partner registration failed",

    "invalidRequest": "Invalid request data",
    "unknownError": "An unknown error occurred",
}

TRANSLATIONS: Mapping[str, Translations] = MappingProxyType({
    "hu": MappingProxyType(_hu),
    "en": MappingProxyType(_en),
})


def resolve_language(value: Optional[str]) -> Language:
    """Map a language code or an Accept-Language header onto a supported language."""
    if not value:
        return DEFAULT_LANGUAGE
    code = value.split(",")[0].split(";")[0].strip().lower()[:2]
    return code if code in LANGUAGES else DEFAULT_LANGUAGE


def get_translations(language: Optional[str]) -> Translations:
    return TRANSLATIONS[resolve_language(language)]
