# backend/booking_core/main.py

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .config import settings
from .errors import (
    BookingError,
    ConflictError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from .redis_client import redis_client
from .routers import (
    admin_bookings,
    availability,
    bookings,
    event_types,
    multi_resource,
    presence,
    resources,
    schedules,
)
from .services.scheduler import scheduled_jobs_loop

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

ERROR_STATUS = {
    NotFoundError: 404,
    ConflictError: 409,
    InvalidStateError: 409,
    ValidationError: 422,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(scheduled_jobs_loop())
    try:
        yield
    finally:
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass


app = FastAPI(title="Booking Core API", lifespan=lifespan)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    content = {"detail": exc.message, "code": exc.code}
    if isinstance(exc, ConflictError) and exc.resource_ids:
        content["resourceIds"] = exc.resource_ids
    return JSONResponse(status_code=status_code, content=content)


app.include_router(availability.router)
app.include_router(bookings.router)
app.include_router(multi_resource.router)
app.include_router(presence.router)
app.include_router(event_types.router)
app.include_router(admin_bookings.router)
app.include_router(resources.router)
app.include_router(event_types.admin_router)
app.include_router(schedules.router)


@app.get("/health")
def health():
    try:
        redis_ok = bool(redis_client.ping())
    except Exception as e:
        logger.warning(f"Redis ping failed: {e}")
        redis_ok = False
    return {"redis": redis_ok}
