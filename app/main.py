import logging
import os
from contextlib import asynccontextmanager
from typing import Annotated, List, Optional

from fastapi import Depends, FastAPI, Query, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session

from app.config import settings
from app.drivers import DriverService
from app.logging_utils import setup_logging, RequestLoggingMiddleware, annotate_request_log
from app.messages import MessageService
from app.metrics import get_metrics, get_metrics_content_type
from app.retention import RetentionSweeper
from app.schedules import ScheduleService
from app.schemas import (
    DriverCreateRequest,
    DriverDeleteRequest,
    ErrorResponse,
    HealthResponse,
    HistoryEntryResponse,
    MarkReadRequest,
    MessageCreateRequest,
    MessageResponse,
    ScheduleEntryResponse,
    ScheduleUpsertRequest,
    StatusMessageResponse,
)
from app.storage import SessionLocal, ServiceError, StorageError, check_db_health, dispose_db, get_db, init_db


# Setup structured JSON logging
setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    - Startup: create tables, start the retention sweeper
    - Shutdown: stop the sweeper, release the connection pool
    """
    init_db()
    sweeper = RetentionSweeper(
        SessionLocal,
        interval_seconds=settings.RETENTION_SWEEP_INTERVAL_SECONDS,
        retention_days=settings.MESSAGE_RETENTION_DAYS,
    )
    app.state.retention_sweeper = sweeper
    if settings.RETENTION_SWEEP_ENABLED:
        sweeper.start()
    yield
    await sweeper.stop()
    dispose_db()


app = FastAPI(
    title="Truck Schedule API",
    description="Driver roster, daily schedules and company/driver messaging",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

ERROR_RESPONSES = {500: {"model": ErrorResponse, "description": "Any failure"}}


# =============================================================================
# Error Handling
# =============================================================================

def error_response(description: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": description},
    )


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if isinstance(exc, StorageError):
        logger.error(f"{exc.operation} failed: {exc.__cause__ or exc}")
        annotate_request_log(request, operation=exc.operation, result="error")
    else:
        logger.warning(f"{exc.operation} rejected: {exc.description}")
        annotate_request_log(request, operation=exc.operation, result="rejected")
    return error_response(exc.description)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return error_response("Internal server error")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    logger.warning(f"Rejected request to {request.url.path}: {details}")
    annotate_request_log(request, result="validation_error")
    return error_response(f"Invalid request: {details}")


# =============================================================================
# Service Dependencies
# =============================================================================

def get_driver_service(db: Session = Depends(get_db)) -> DriverService:
    return DriverService(db, allow_duplicate_names=settings.ALLOW_DUPLICATE_DRIVER_NAMES)


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    return ScheduleService(db)


def get_message_service(db: Session = Depends(get_db)) -> MessageService:
    return MessageService(db, retention_days=settings.MESSAGE_RETENTION_DAYS)


DriverQuery = Annotated[Optional[str], Query(description="Driver name")]


# =============================================================================
# Health Check Routes
# =============================================================================

@app.get("/health/live", response_model=HealthResponse)
async def health_live() -> HealthResponse:
    """Liveness probe - always returns 200 once the app is running."""
    return HealthResponse(status="ok")


@app.get("/health/ready", response_model=HealthResponse)
def health_ready(response: Response) -> HealthResponse:
    """Readiness probe - 503 unless the database is reachable and every table exists."""
    if not check_db_health():
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        return HealthResponse(
            status="not_ready",
            reason="Database not reachable or schema not applied"
        )
    return HealthResponse(status="ready")


# =============================================================================
# Driver Routes
# =============================================================================

@app.get("/api/drivers", response_model=List[str], responses=ERROR_RESPONSES)
def list_drivers(service: DriverService = Depends(get_driver_service)) -> List[str]:
    """Names of active drivers in registration order."""
    return service.list_active()


@app.post("/api/drivers/add", response_model=StatusMessageResponse, responses=ERROR_RESPONSES)
def add_driver(
    body: DriverCreateRequest,
    request: Request,
    service: DriverService = Depends(get_driver_service),
) -> StatusMessageResponse:
    driver = service.register(body.name, body.phone, body.address)
    annotate_request_log(request, operation="drivers.register", driver_id=driver.id)
    return StatusMessageResponse(message="registered")


@app.post("/api/drivers/delete", response_model=StatusMessageResponse, responses=ERROR_RESPONSES)
def delete_driver(
    body: DriverDeleteRequest,
    request: Request,
    service: DriverService = Depends(get_driver_service),
) -> StatusMessageResponse:
    """Deactivate a driver and remove their schedule and message history."""
    service.deactivate(body.name)
    annotate_request_log(request, operation="drivers.deactivate", driver=body.name)
    return StatusMessageResponse(message=f"{body.name} deactivated")


# =============================================================================
# Schedule Routes
# =============================================================================

@app.get("/api/schedule", response_model=List[ScheduleEntryResponse], responses=ERROR_RESPONSES)
def get_schedule(
    driver: DriverQuery = None,
    service: ScheduleService = Depends(get_schedule_service),
) -> List[ScheduleEntryResponse]:
    entries = service.list_for_driver(driver)
    return [ScheduleEntryResponse.model_validate(entry) for entry in entries]


@app.post("/api/schedule", response_model=StatusMessageResponse, responses=ERROR_RESPONSES)
def save_schedule(
    body: ScheduleUpsertRequest,
    request: Request,
    service: ScheduleService = Depends(get_schedule_service),
) -> StatusMessageResponse:
    """
    Create or replace the entry for (driver, date).

    Response message is "Schedule created" or "Schedule updated".
    """
    result = service.upsert(
        driver=body.driver,
        date=body.date,
        destination=body.destination,
        cargo=body.cargo,
        truck_number=body.truck_number,
        company_message=body.company_message,
    )
    annotate_request_log(request, operation="schedule.upsert", result=result)
    return StatusMessageResponse(message=f"Schedule {result}")


@app.get("/api/history", response_model=List[HistoryEntryResponse], responses=ERROR_RESPONSES)
def get_history(
    driver: DriverQuery = None,
    service: ScheduleService = Depends(get_schedule_service),
) -> List[HistoryEntryResponse]:
    """A driver's schedule entries, most recent date first."""
    rows = service.history(driver)
    return [HistoryEntryResponse.model_validate(row) for row in rows]


# =============================================================================
# Message Routes
# =============================================================================

@app.get("/api/messages", response_model=List[MessageResponse], responses=ERROR_RESPONSES)
def list_messages(
    driver: DriverQuery = None,
    service: MessageService = Depends(get_message_service),
) -> List[MessageResponse]:
    """A driver's thread in the order messages were stored."""
    messages = service.list(driver)
    logger.debug(f"Retrieved {len(messages)} messages for driver={driver}")
    return [MessageResponse.model_validate(msg) for msg in messages]


@app.post("/api/messages", response_model=StatusMessageResponse, responses=ERROR_RESPONSES)
def send_message(
    body: MessageCreateRequest,
    request: Request,
    service: MessageService = Depends(get_message_service),
) -> StatusMessageResponse:
    stored = service.send(
        driver=body.driver,
        role=body.role,
        subject=body.subject,
        message=body.message,
        date=body.date,
    )
    annotate_request_log(request, operation="messages.send", message_id=stored.id)
    return StatusMessageResponse(message="Message sent")


@app.post("/api/messages/read", response_model=StatusMessageResponse, responses=ERROR_RESPONSES)
def mark_messages_read(
    body: MarkReadRequest,
    request: Request,
    service: MessageService = Depends(get_message_service),
) -> StatusMessageResponse:
    """Mark every driver-authored message in the thread as read."""
    count = service.mark_read(body.driver)
    annotate_request_log(request, operation="messages.mark_read", updated=count)
    return StatusMessageResponse(message="Marked as read")


# =============================================================================
# Metrics Route
# =============================================================================

@app.get("/metrics")
async def metrics() -> Response:
    """Expose Prometheus-style metrics."""
    return Response(
        content=get_metrics(),
        media_type=get_metrics_content_type()
    )


# =============================================================================
# Static Frontend
# =============================================================================

# Mounted last so the API routes above take precedence over "/".
if os.path.isdir(settings.STATIC_DIR):
    app.mount("/", StaticFiles(directory=settings.STATIC_DIR, html=True), name="static")
else:
    logger.warning(f"Static directory not found, frontend disabled: {settings.STATIC_DIR}")


def run() -> None:
    """Serve the app with uvicorn on HOST:PORT."""
    import uvicorn

    logger.info(f"Server running on http://{settings.HOST}:{settings.PORT}")
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)


if __name__ == "__main__":
    run()
