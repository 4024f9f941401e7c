from contextlib import asynccontextmanager, suppress
import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from salon_agenda.config import Settings, get_settings
from salon_agenda.dependencies.services import (
    get_notification_client_cached,
    get_notification_service_cached,
)
from salon_agenda.services.intervals import venue_clock
from salon_agenda.services.reminders import ReminderService
from salon_agenda.services.store import get_store

# Import routers directly from submodules
from salon_agenda.routers.admin import router as admin_router
from salon_agenda.routers.appointment import router as appointment_router
from salon_agenda.routers.availability import router as availability_router
from salon_agenda.health import router as health_router


def configure_logging() -> None:
    """Ensure application logs use the INFO level by default."""
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )
    else:
        root_logger.setLevel(logging.INFO)

# Configure logging as soon as the module is loaded
configure_logging()

logger = logging.getLogger(__name__)


async def run_reminders(settings: Settings) -> None:
    """Check for due reminders every ``reminder_interval_minutes``."""
    clock = venue_clock(settings.venue_timezone)
    reminders = ReminderService(get_store(), get_notification_service_cached())
    while True:
        try:
            await reminders.run_once(clock())
        except Exception:
            logger.exception("Reminder run failed")
        await asyncio.sleep(settings.reminder_interval_minutes * 60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manages application startup and shutdown events.
    """
    # --- Startup Logic ---
    settings = get_settings()

    # Log application settings on startup
    settings_snapshot = settings.model_dump(exclude={"notification_service_token"})
    logger.info("Application settings on startup: %s", settings_snapshot)

    # Create the shared store before any request is served.
    get_store()
    client = get_notification_client_cached()
    reminder_task = None
    if settings.reminders_enabled:
        reminder_task = asyncio.create_task(run_reminders(settings))
    logger.info("Application startup complete.")

    try:
        yield  # The application is now running
    finally:
        # --- Shutdown Logic ---
        if reminder_task is not None:
            reminder_task.cancel()
            with suppress(asyncio.CancelledError):
                await reminder_task
        await get_notification_service_cached().drain()
        logger.info("Closing notification client connection.")
        await client.close()
        logger.info("Application shutdown complete.")


# --- Application Setup ---

settings = get_settings()
app = FastAPI(
    title=settings.app_name,
    lifespan=lifespan,
    redirect_slashes=False
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[str(origin).rstrip("/") for origin in settings.cors_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- Include Routers ---

app.include_router(availability_router, prefix="/availability")
app.include_router(appointment_router, prefix="/appointments")
app.include_router(admin_router, prefix="/admin/venues")
app.include_router(health_router)
