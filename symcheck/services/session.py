"""Session controller: the explicit UI-mode state machine of an intake flow.

Modes:
    idle -> profileEntry -> active -> idle

``active`` is the only mode in which symptom messages may be sent or
assessments saved. Failed transitions leave the mode untouched so the caller
can retry with a corrected profile.
"""

import logging
from datetime import UTC, datetime
from enum import Enum

from symcheck.config import EMERGENCY_NUMBER
from symcheck.exceptions import IntakeError, SessionStateError, ValidationRejected
from symcheck.models.assessment import Assessment, ConversationHistory, HealthCheck
from symcheck.models.conversation import ConversationTurn, Role, Session
from symcheck.models.patient import PatientProfile, ProfileDraft
from symcheck.models.saved import SaveOutcome
from symcheck.services.dialer import EmergencyDialer
from symcheck.services.event_bus import NOTICES_TOPIC, EventBus
from symcheck.services.gateway import AssessmentGateway
from symcheck.services.ledger import ConversationLedger
from symcheck.services.persistence import AssessmentPersistenceService
from symcheck.models.escalation import EscalationState
from symcheck.services.urgency import escalation_for

logger = logging.getLogger(__name__)


class UIMode(str, Enum):
    IDLE = "idle"
    PROFILE_ENTRY = "profileEntry"
    ACTIVE = "active"


class SessionController:
    def __init__(
        self,
        gateway: AssessmentGateway,
        persistence: AssessmentPersistenceService,
        bus: EventBus,
        dialer: EmergencyDialer,
        emergency_number: str = EMERGENCY_NUMBER,
    ) -> None:
        self.gateway = gateway
        self.persistence = persistence
        self.bus = bus
        self.dialer = dialer
        self.emergency_number = emergency_number

        self.mode = UIMode.IDLE
        self.session: Session | None = None
        self.draft: ProfileDraft | None = None
        self.ledger: ConversationLedger | None = None
        self._starting = False
        self._epoch = 0

    async def _notify(self, level: str, message: str) -> None:
        await self.bus.publish(NOTICES_TOPIC, {"type": "notice", "level": level, "message": message})

    def _require_active(self) -> tuple[Session, ConversationLedger]:
        if self.mode is not UIMode.ACTIVE or self.session is None or self.ledger is None:
            raise SessionStateError(f"No active session (mode is {self.mode.value})")
        return self.session, self.ledger

    def begin_profile(self) -> ProfileDraft:
        if self.mode is UIMode.ACTIVE:
            raise SessionStateError("End the current session before entering a new profile")
        if self.mode is UIMode.IDLE or self.draft is None:
            self.draft = ProfileDraft()
        self.mode = UIMode.PROFILE_ENTRY
        return self.draft

    async def start_session(self, profile: PatientProfile | None = None) -> Session:
        if self.mode is UIMode.ACTIVE:
            raise SessionStateError("A session is already active")
        if self._starting:
            raise SessionStateError("A session is already being started")
        if profile is None:
            if self.draft is None:
                raise ValidationRejected("No patient profile to start a session with")
            profile = self.draft.freeze()

        epoch = self._epoch
        self._starting = True
        try:
            response = await self.gateway.start_session(profile)
        except IntakeError as e:
            logger.error("Failed to start session: %s", e)
            if epoch == self._epoch:
                await self._notify("error", "Failed to start session. Please try again.")
            raise
        finally:
            self._starting = False

        if epoch != self._epoch:
            logger.info("Discarding session %s, intake was reset while it started", response.session_id)
            raise SessionStateError("The intake was reset before the session started")

        self.session = Session(
            id=response.session_id,
            patient=profile,
            created_at=response.created_at or datetime.now(UTC).isoformat(),
        )
        self.ledger = ConversationLedger(self.gateway, response.session_id)
        self.draft = None
        self.mode = UIMode.ACTIVE
        logger.info("Session %s started", response.session_id)
        await self._notify("success", "Session started successfully!")
        return self.session

    async def send_message(
        self, text: str, severity: int, duration: str | None = None
    ) -> ConversationTurn:
        session, ledger = self._require_active()
        epoch = self._epoch
        try:
            turn = await ledger.submit(text, severity, duration)
        except ValidationRejected:
            raise
        except IntakeError:
            if epoch == self._epoch:
                await self._notify("error", "Failed to send message. Please try again.")
            raise

        if epoch != self._epoch:
            logger.info("Dropping assessment for ended session %s", session.id)
            raise SessionStateError("The session ended before its assessment arrived")

        if turn.assessment is not None and turn.assessment.is_emergency:
            await self._notify(
                "emergency", "Emergency detected! Please seek immediate medical attention."
            )
        else:
            await self._notify("success", "Assessment completed successfully!")
        return turn

    @property
    def turns(self) -> tuple[ConversationTurn, ...]:
        return self.ledger.turns if self.ledger is not None else ()

    @property
    def latest_assessment(self) -> Assessment | None:
        return self.ledger.latest_assessment if self.ledger is not None else None

    @property
    def escalation(self) -> EscalationState:
        return escalation_for(self.latest_assessment)

    async def save_assessment(self, assessment: Assessment | None = None) -> SaveOutcome:
        session, ledger = self._require_active()
        assessment = assessment or ledger.latest_assessment
        if assessment is None:
            raise ValidationRejected("There is no assessment to save yet")

        outcome = await self.persistence.save(session.id, assessment, session.patient)
        if outcome.saved_remotely:
            await self._notify("success", "Assessment saved.")
        else:
            await self._notify("warning", "Assessment saved on this device only.")
        return outcome

    async def call_emergency(self) -> str:
        logger.warning("Emergency call requested for session %s", self.session.id if self.session else None)
        return await self.dialer.dial(self.emergency_number)

    async def history(self) -> ConversationHistory:
        session, _ = self._require_active()
        return await self.gateway.get_history(session.id)

    async def export(self, fmt: str = "json") -> dict:
        session, _ = self._require_active()
        return await self.gateway.export_conversation(session.id, fmt)

    async def health(self) -> HealthCheck:
        return await self.gateway.health_check()

    def end_session(self) -> None:
        """Return to idle, discarding the session and its ledger. Saved records are kept.

        Replies still in flight for the discarded session are dropped when they arrive.
        """
        self._epoch += 1
        if self.session is not None:
            logger.info("Session %s ended", self.session.id)
        self.session = None
        self.ledger = None
        self.draft = None
        self.mode = UIMode.IDLE

    def snapshot(self) -> dict:
        turns = []
        for turn in self.turns:
            data = turn.model_dump(mode="json")
            if turn.role is Role.USER:
                tier = ConversationLedger.severity_echo(turn)
                data["severity_tier"] = tier.value if tier else None
            turns.append(data)
        return {
            "mode": self.mode.value,
            "session_id": self.session.id if self.session else None,
            "pending": self.ledger.pending if self.ledger else False,
            "draft": self.draft.model_dump() if self.draft else None,
            "turns": turns,
            "escalation": self.escalation.model_dump(mode="json"),
        }
