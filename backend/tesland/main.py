"""
# `tesland/main.py` — Application entry point

## General
Creates the FastAPI app, configures logging and CORS, registers the error handlers,
mounts the public, admin and function routers, and runs the reminder scheduler.

---

## Routers
**Public:** `/auth`, `/appointments`, `/push-subscriptions`

**Admin (prefix `/admin`, admin role required):** `/appointments`, `/push-subscriptions`

**Functions (stateless handlers):**
- `/functions/appointment-assistant`
- `/functions/notify-customer-arrival`
- `/functions/tesla-register-partner`
- `/functions/tesla-auth`

The function paths keep their own open CORS policy; `ALLOWED_ORIGINS` only restricts the rest.

---

## Background scheduler
- **Library:** APScheduler (`AsyncIOScheduler`)
- **Job:** `send_upcoming_reminders` (push reminder one hour before confirmed appointments)
- **Period:** `settings.reminder_interval_minutes` (only when `settings.reminders_enabled`)
"""
import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI

from tesland.config import settings
from tesland.core.errors import register_exception_handlers
from tesland.core.http import ApiCORSMiddleware
from tesland.routers import appointments, arrivals, assistant, auth, partner, push_subscriptions, tesla_auth
from tesland.services.reminders import send_upcoming_reminders

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("tesland")

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)

scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.reminders_enabled and not scheduler.running:
        scheduler.add_job(
            send_upcoming_reminders,
            "interval",
            minutes=settings.reminder_interval_minutes,
            id="appointment-reminders",
            replace_existing=True,
        )
        scheduler.start()
        logger.info("Reminder scheduler started")
    yield
    if scheduler.running:
        scheduler.shutdown(wait=False)


app = FastAPI(
    title="Tesland Service Booking API",
    description="Backend API for Tesla service appointment booking.",
    version="1.0.0",
    redirect_slashes=False,
    lifespan=lifespan,
)

# /functions/* stays open to every origin and answers its own preflight
app.add_middleware(
    ApiCORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)

# Include public routers
app.include_router(auth.router)
app.include_router(appointments.router)
app.include_router(push_subscriptions.router)

# Include admin routers (with prefix /admin)
app.include_router(appointments.admin_router, prefix="/admin")
app.include_router(push_subscriptions.admin_router, prefix="/admin")

# Stateless function handlers
app.include_router(assistant.router)
app.include_router(arrivals.router)
app.include_router(partner.router)
app.include_router(tesla_auth.router)


# Run the app directly with uvicorn (for development)
if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tesland.main:app", host="0.0.0.0", port=8000, reload=True)
