import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from symcheck.config import LOG_LEVEL
from symcheck.database import close_db, init_db
from symcheck.exceptions import (
    DialerError,
    GatewayError,
    GatewayUnreachable,
    IntakeError,
    PersistenceFailure,
    SessionStateError,
    ValidationRejected,
)
from symcheck.routers import intake, records
from symcheck.services.dialer import EmergencyDialer, TelLinkDialer
from symcheck.services.event_bus import EventBus, event_bus
from symcheck.services.gateway import AssessmentGateway
from symcheck.services.persistence import AssessmentPersistenceService
from symcheck.services.session import SessionController
from symcheck.services.store import SlotStore, SQLiteSlotStore

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_STATUS_CODES = (
    (ValidationRejected, 422),
    (SessionStateError, 409),
    (GatewayUnreachable, 503),
    (GatewayError, 502),
    (PersistenceFailure, 500),
    (DialerError, 500),
)


def build_controller(
    gateway: AssessmentGateway | None = None,
    store: SlotStore | None = None,
    bus: EventBus | None = None,
    dialer: EmergencyDialer | None = None,
) -> SessionController:
    gateway = gateway or AssessmentGateway()
    bus = bus or event_bus
    persistence = AssessmentPersistenceService(gateway, store or SQLiteSlotStore(), bus)
    return SessionController(gateway, persistence, bus, dialer or TelLinkDialer())


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting symcheck...")
    await init_db()
    logger.info("Local storage initialized")
    if getattr(app.state, "controller", None) is None:
        app.state.controller = build_controller()
    yield
    await close_db()
    logger.info("symcheck shut down")


app = FastAPI(
    title="symcheck",
    description="Symptom intake client: sessions, conversation ledger and assessment storage",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(intake.router)
app.include_router(records.router)


@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError):
    status_code = 400
    for exc_type, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            status_code = code
            break
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )
