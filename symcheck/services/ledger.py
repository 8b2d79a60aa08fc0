import itertools
import logging
from datetime import UTC, datetime

from pydantic import ValidationError

from symcheck.exceptions import IntakeError, SubmissionInFlight, ValidationRejected
from symcheck.models.assessment import Assessment
from symcheck.models.conversation import ConversationTurn, Role, SymptomMessage
from symcheck.services.gateway import AssessmentGateway
from symcheck.models.escalation import SeverityTier
from symcheck.services.urgency import severity_tier

logger = logging.getLogger(__name__)

APOLOGY_MESSAGE = (
    "Sorry, I couldn't analyse your symptoms right now. "
    "Your message has been kept; please try again in a moment."
)


class ConversationLedger:
    """Append-only record of the turns exchanged in one session.

    A user turn is committed before the gateway is called, so it survives a
    failed request. Failures are recorded as a follow-up assistant turn; no
    committed turn is ever edited or removed. Only one submission may be in
    flight at a time.
    """

    def __init__(self, gateway: AssessmentGateway, session_id: str) -> None:
        self.gateway = gateway
        self.session_id = session_id
        self._turns: list[ConversationTurn] = []
        self._ids = itertools.count(1)
        self._pending = False
        self._last_timestamp: datetime | None = None

    def __len__(self) -> int:
        return len(self._turns)

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return tuple(self._turns)

    @property
    def pending(self) -> bool:
        return self._pending

    @property
    def latest_assessment(self) -> Assessment | None:
        for turn in reversed(self._turns):
            if turn.assessment is not None:
                return turn.assessment
        return None

    def _timestamp(self) -> datetime:
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now < self._last_timestamp:
            now = self._last_timestamp
        self._last_timestamp = now
        return now

    def _append(self, role: Role, content: str, **fields) -> ConversationTurn:
        turn = ConversationTurn(
            id=next(self._ids),
            role=role,
            content=content,
            timestamp=self._timestamp(),
            **fields,
        )
        self._turns.append(turn)
        return turn

    async def submit(
        self, text: str, severity: int, duration: str | None = None
    ) -> ConversationTurn:
        """Send one symptom message and return the assistant turn it produced.

        Raises SubmissionInFlight or ValidationRejected without touching the
        ledger. Gateway failures append an apology turn and are re-raised.
        """
        if self._pending:
            raise SubmissionInFlight("A message is already being assessed")
        try:
            message = SymptomMessage(
                session_id=self.session_id, text=text, severity=severity, duration=duration
            )
        except ValidationError as e:
            raise ValidationRejected(f"Invalid symptom message: {e.errors()[0]['msg']}") from e

        self._append(Role.USER, message.text, severity=message.severity)
        self._pending = True
        try:
            response = await self.gateway.send_message(message)
        except IntakeError as e:
            logger.error("Assessment request failed for session %s: %s", self.session_id, e)
            self._append(Role.ASSISTANT, APOLOGY_MESSAGE)
            raise
        else:
            assessment = response.assessment
            return self._append(
                Role.ASSISTANT,
                assessment.reasoning or f"Assessment complete ({assessment.urgency.value})",
                assessment=assessment,
            )
        finally:
            self._pending = False

    @staticmethod
    def severity_echo(turn: ConversationTurn) -> SeverityTier | None:
        """Visual tier for a user turn's reported severity."""
        if turn.severity is None:
            return None
        return severity_tier(turn.severity)
