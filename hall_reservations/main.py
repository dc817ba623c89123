import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hall_reservations.api.routes import admin_analytics, bookings, hall_images, halls
from hall_reservations.core.errors import (
    AvailabilityError,
    BlobStoreError,
    CapacityError,
    ConflictError,
    HallBookingError,
    InvalidTransitionError,
    NotFoundError,
    OverlapError,
    StoreTimeoutError,
    ValidationError,
)
from hall_reservations.core.locks import get_hall_locks
from hall_reservations.core.logging_config import get_logger

logger = get_logger()

# Most specific class first
ERROR_STATUS_CODES = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (CapacityError, 409),
    (AvailabilityError, 409),
    (OverlapError, 409),
    (InvalidTransitionError, 409),
    (ConflictError, 409),
    (StoreTimeoutError, 503),
    (BlobStoreError, 502),
]

app = FastAPI(
    title="Hall Reservations API",
    version="1.0.0",
    description="Halls, bookings, booking lifecycle and utilization statistics"
)


def status_code_for(error: HallBookingError) -> int:
    for error_cls, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_cls):
            return status_code
    return 500


@app.exception_handler(HallBookingError)
async def handle_core_error(request: Request, exc: HallBookingError):
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"ERROR: {request.url} -> {exc.kind}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": exc.kind, "detail": exc.message},
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    try:
        response = await call_next(request)
    except Exception as e:
        logger.opt(exception=e).error(f"{request.method} {request.url.path} failed: {e}")
        raise

    elapsed_ms = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


# Open CORS; the presentation layer lives elsewhere
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in (halls.router, hall_images.router, bookings.router, admin_analytics.router):
    app.include_router(router)

# Connects to Redis if configured and warns when only one worker is safe
get_hall_locks()


@app.get("/", tags=["Root"])
def root():
    return {"service": app.title, "version": app.version, "status": "ok"}
