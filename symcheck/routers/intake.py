import logging

from fastapi import APIRouter, Request

from symcheck.models.api import (
    EmergencyCallResult,
    ExportRequest,
    MessageRequest,
    MessageResult,
    ProfileUpdate,
)
from symcheck.models.assessment import ConversationHistory, HealthCheck
from symcheck.models.patient import LIST_FIELDS, PatientProfile
from symcheck.models.saved import SaveOutcome
from symcheck.services.session import SessionController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["intake"])


def get_controller(request: Request) -> SessionController:
    return request.app.state.controller


@router.get("/intake/state")
async def get_state(request: Request):
    """Current UI mode, ledger turns and escalation state."""
    return get_controller(request).snapshot()


@router.post("/intake/profile")
async def update_profile(request: Request, body: ProfileUpdate):
    """Enter profile entry (if needed) and merge the given fields into the draft."""
    controller = get_controller(request)
    draft = controller.begin_profile()
    if body.age is not None:
        draft.age = body.age
    if body.sex is not None:
        draft.sex = body.sex
    for field in LIST_FIELDS:
        for value in getattr(body, field):
            draft.add(field, value)
    return controller.snapshot()


@router.delete("/intake/profile/{field}/{index}")
async def remove_profile_item(request: Request, field: str, index: int):
    controller = get_controller(request)
    draft = controller.begin_profile()
    draft.remove(field, index)
    return controller.snapshot()


@router.post("/intake/start")
async def start_session(request: Request, body: PatientProfile | None = None):
    """Start a gateway session from the body, or from the draft when no body is sent."""
    controller = get_controller(request)
    session = await controller.start_session(body)
    return {"session_id": session.id, "mode": controller.mode.value, "created_at": session.created_at}


@router.post("/intake/message", response_model=MessageResult)
async def send_message(request: Request, body: MessageRequest):
    controller = get_controller(request)
    turn = await controller.send_message(body.message, body.severity, body.duration)
    return MessageResult(turn=turn, escalation=controller.escalation)


@router.post("/intake/save", response_model=SaveOutcome)
async def save_assessment(request: Request):
    return await get_controller(request).save_assessment()


@router.post("/intake/emergency-call", response_model=EmergencyCallResult)
async def emergency_call(request: Request):
    controller = get_controller(request)
    uri = await controller.call_emergency()
    return EmergencyCallResult(number=controller.emergency_number, uri=uri)


@router.post("/intake/end")
async def end_session(request: Request):
    controller = get_controller(request)
    controller.end_session()
    return controller.snapshot()


@router.get("/intake/history", response_model=ConversationHistory)
async def get_history(request: Request):
    return await get_controller(request).history()


@router.post("/intake/export")
async def export_conversation(request: Request, body: ExportRequest):
    return await get_controller(request).export(body.format)


@router.get("/health", response_model=HealthCheck)
async def health(request: Request):
    """Gateway liveness, passed through as-is."""
    return await get_controller(request).health()
