import asyncio
import json
import os

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# In-memory DB and a fake gateway host for tests
os.environ["GATEWAY_URL"] = "http://gateway.test"
os.environ["DATABASE_PATH"] = ":memory:"
os.environ["EMERGENCY_NUMBER"] = "911"

from symcheck.database import close_db, init_db
from symcheck.main import app, build_controller
from symcheck.models.patient import PatientProfile
from symcheck.services.dialer import TelLinkDialer
from symcheck.services.event_bus import EventBus
from symcheck.services.gateway import AssessmentGateway
from symcheck.services.store import MemorySlotStore

GATEWAY_URL = "http://gateway.test"

ROUTINE_ASSESSMENT = {
    "urgency": "routine",
    "probable_conditions": [
        {
            "name": "Tension headache",
            "probability": 0.7,
            "description": "Muscle tension around the head and neck.",
            "recommendations": ["Rest", "Hydrate"],
        }
    ],
    "clarifying_questions": ["Does light bother you?"],
    "reasoning": "Mild, gradual headache without red flags.",
    "recommendations": ["Rest in a quiet room"],
    "body_systems_affected": ["nervous"],
    "disclaimer": "Not a medical diagnosis.",
}

EMERGENCY_ASSESSMENT = {
    "urgency": "emergency",
    "emergency_warning": "Possible cardiac event",
    "probable_conditions": [
        {
            "name": "Acute coronary syndrome",
            "probability": 0.8,
            "description": "Reduced blood flow to the heart.",
            "recommendations": ["Call emergency services"],
        }
    ],
    "clarifying_questions": [],
    "reasoning": "Severe chest pain of sudden onset.",
    "recommendations": ["Call emergency services now", "Chew aspirin if not allergic"],
    "body_systems_affected": ["cardiovascular"],
    "disclaimer": "Not a medical diagnosis.",
}


class GatewayStub:
    """Scripted stand-in for the remote assessment gateway.

    Queue assessments in ``assessments`` (one per message) and per-message
    ``delays`` in seconds, set a status code per operation, slow session
    starts with ``start_delay``, put a path in ``unreachable`` to simulate a
    connection failure, or in ``stream_errors`` to fail while the body is
    being read.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.assessments: list[dict] = []
        self.delays: list[float] = []
        self.start_status = 200
        self.start_delay = 0.0
        self.message_status = 200
        self.save_status = 200
        self.unreachable: set[str] = set()
        self.stream_errors: set[str] = set()
        self._session_count = 0
        self._turn = 0

    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path in self.unreachable:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.stream_errors:
            raise httpx.StreamConsumed()

        if path == "/api/symptom/start":
            if self.start_delay:
                await asyncio.sleep(self.start_delay)
            if self.start_status != 200:
                return httpx.Response(self.start_status, json={"detail": "Age must be realistic"})
            self._session_count += 1
            return httpx.Response(200, json={
                "session_id": f"sess-{self._session_count}",
                "message": "Session started",
                "created_at": "2026-01-01T00:00:00Z",
            })

        if path == "/api/symptom/message":
            body = json.loads(request.content)
            if self.delays:
                await asyncio.sleep(self.delays.pop(0))
            if self.message_status != 200:
                return httpx.Response(self.message_status, json={"detail": "analysis failed"})
            self._turn += 1
            assessment = self.assessments.pop(0) if self.assessments else ROUTINE_ASSESSMENT
            return httpx.Response(200, json={
                "session_id": body["session_id"],
                "assessment": assessment,
                "conversation_turn": self._turn,
                "timestamp": "2026-01-01T00:00:05Z",
            })

        if path == "/api/history/save":
            if self.save_status != 200:
                return httpx.Response(self.save_status, json={"detail": "storage unavailable"})
            return httpx.Response(200, json={"status": "saved"})

        if path == "/api/health":
            return httpx.Response(200, json={
                "status": "healthy",
                "services": {"database": "up", "rag": "up", "llm": "up"},
            })

        if path.startswith("/api/history/") and request.method == "GET":
            session_id = path.rsplit("/", 1)[-1]
            return httpx.Response(200, json={
                "session_id": session_id,
                "turns": [],
                "total_turns": 0,
                "created_at": "2026-01-01T00:00:00Z",
                "last_updated": "2026-01-01T00:00:00Z",
            })

        if path == "/api/history/export":
            body = json.loads(request.content)
            return httpx.Response(200, json={"session_id": body["session_id"], "format": body["format"], "data": "..."})

        return httpx.Response(404, json={"detail": "Not found"})


@pytest.fixture
def gateway_stub():
    return GatewayStub()


@pytest.fixture
def gateway(gateway_stub):
    return AssessmentGateway(base_url=GATEWAY_URL, transport=httpx.MockTransport(gateway_stub.handle))


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return MemorySlotStore()


@pytest.fixture
def dialer():
    return TelLinkDialer()


@pytest.fixture
def controller(gateway, store, bus, dialer):
    return build_controller(gateway=gateway, store=store, bus=bus, dialer=dialer)


@pytest.fixture
def profile():
    return PatientProfile(
        age=34,
        sex="female",
        medical_history=[],
        medications=[],
        allergies=["penicillin"],
    )


@pytest_asyncio.fixture
async def db():
    """Provide a fresh in-memory database for each test."""
    import symcheck.database as db_mod

    if db_mod._db is not None:
        try:
            await db_mod._db.close()
        except Exception:
            pass
    db_mod._db = None

    # Override module-level config directly (avoids fragile importlib.reload)
    db_mod.DATABASE_PATH = ":memory:"

    await init_db()
    database = await db_mod.get_db()
    yield database
    await close_db()


@pytest.fixture
def client(controller):
    """Provide a synchronous TestClient wired to the stubbed gateway."""
    app.state.controller = controller
    yield TestClient(app)
    app.state.controller = None


@pytest_asyncio.fixture
async def async_client(controller):
    """Provide an async httpx client for async HTTP tests."""
    app.state.controller = controller
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.state.controller = None
