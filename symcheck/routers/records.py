import asyncio
import logging

from fastapi import APIRouter, Request, WebSocket, WebSocketDisconnect

from symcheck.models.saved import SavedAssessmentRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["records"])

PING_INTERVAL = 10.0


@router.get("/api/records", response_model=list[SavedAssessmentRecord])
async def list_records(request: Request):
    """Assessments saved on this device, oldest first."""
    return await request.app.state.controller.persistence.list_records()


async def _next_event(queue: asyncio.Queue) -> dict:
    try:
        return await asyncio.wait_for(queue.get(), timeout=PING_INTERVAL)
    except asyncio.TimeoutError:
        return {"type": "ping"}


@router.websocket("/ws/records")
async def records_ws(websocket: WebSocket):
    """Saved-assessments feed.

    Opens with a ``records`` event carrying the current list, then streams
    assessment_saved and notice events, with a ping after PING_INTERVAL
    seconds of silence.
    """
    controller = websocket.app.state.controller
    # subscribe first so a save racing the snapshot is still delivered
    queue = controller.bus.subscribe_all()
    try:
        await websocket.accept()
        records = await controller.persistence.list_records()
        await websocket.send_json({
            "type": "records",
            "records": [r.model_dump(mode="json") for r in records],
        })
        while True:
            await websocket.send_json(await _next_event(queue))
    except WebSocketDisconnect:
        logger.info("Records client disconnected")
    finally:
        controller.bus.unsubscribe_all(queue)
