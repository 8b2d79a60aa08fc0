"""Client for the remote assessment gateway.

The gateway owns the medical reasoning; this module only honours its JSON
contract and maps transport and HTTP failures onto the intake error taxonomy:

- transport errors and timeouts -> GatewayUnreachable
- HTTP 400/422                   -> ValidationRejected
- any other non-2xx or bad body  -> GatewayError
"""

import logging
from typing import TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from symcheck.config import GATEWAY_TIMEOUT, GATEWAY_URL
from symcheck.exceptions import GatewayError, GatewayUnreachable, ValidationRejected
from symcheck.models.assessment import (
    Assessment,
    ConversationHistory,
    HealthCheck,
    SessionStartResponse,
    SymptomResponse,
)
from symcheck.models.conversation import SymptomMessage
from symcheck.models.patient import PatientProfile

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=BaseModel)

START_PATH = "/api/symptom/start"
MESSAGE_PATH = "/api/symptom/message"
SAVE_PATH = "/api/history/save"
HEALTH_PATH = "/api/health"
HISTORY_PATH = "/api/history/{session_id}"
EXPORT_PATH = "/api/history/export"

EXPORT_FORMATS = ("json", "text")


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return str(data)[:200]


class AssessmentGateway:
    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or GATEWAY_URL).rstrip("/")
        self.timeout = GATEWAY_TIMEOUT if timeout is None else timeout
        self._transport = transport

    async def _request(self, method: str, path: str, payload: dict | None = None) -> httpx.Response:
        logger.info("Gateway request: %s %s", method, path)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
                headers={"Content-Type": "application/json"},
            ) as client:
                resp = await client.request(method, path, json=payload)
                resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            detail = _error_detail(e.response)
            logger.error("Gateway error %s on %s %s: %s", status, method, path, detail)
            if status in (400, 422):
                raise ValidationRejected(detail) from e
            raise GatewayError(f"Gateway returned HTTP {status}: {detail}", status_code=status) from e
        except (httpx.HTTPError, httpx.StreamError, httpx.InvalidURL) as e:
            logger.error("Gateway unreachable on %s %s: %s", method, path, e)
            raise GatewayUnreachable(str(e) or type(e).__name__) from e

        logger.info("Gateway response: %s %s", resp.status_code, path)
        return resp

    @staticmethod
    def _parse(response: httpx.Response, response_model: type[T]) -> T:
        try:
            return response_model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Unexpected gateway payload for %s: %s", response_model.__name__, e)
            raise GatewayError(
                f"Malformed {response_model.__name__} from gateway",
                status_code=response.status_code,
            ) from e

    async def start_session(self, profile: PatientProfile) -> SessionStartResponse:
        resp = await self._request("POST", START_PATH, profile.to_request())
        return self._parse(resp, SessionStartResponse)

    async def send_message(self, message: SymptomMessage) -> SymptomResponse:
        resp = await self._request("POST", MESSAGE_PATH, message.to_request())
        return self._parse(resp, SymptomResponse)

    async def save_assessment(self, session_id: str, assessment: Assessment) -> None:
        await self._request(
            "POST",
            SAVE_PATH,
            {"session_id": session_id, "assessment": assessment.model_dump(mode="json")},
        )

    async def health_check(self) -> HealthCheck:
        resp = await self._request("GET", HEALTH_PATH)
        return self._parse(resp, HealthCheck)

    async def get_history(self, session_id: str) -> ConversationHistory:
        resp = await self._request("GET", HISTORY_PATH.format(session_id=session_id))
        return self._parse(resp, ConversationHistory)

    async def export_conversation(self, session_id: str, fmt: str = "json") -> dict:
        if fmt not in EXPORT_FORMATS:
            raise ValidationRejected(f"Unsupported export format: {fmt}")
        resp = await self._request("POST", EXPORT_PATH, {"session_id": session_id, "format": fmt})
        try:
            return resp.json()
        except ValueError as e:
            raise GatewayError("Malformed export from gateway", status_code=resp.status_code) from e
