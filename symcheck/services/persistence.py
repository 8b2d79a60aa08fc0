"""Two-tier assessment persistence: remote gateway first, local slot second.

Flow:
1. Ask the gateway to save the assessment
2. On any gateway failure append a SavedAssessmentRecord to the local slot
3. Announce the new local record on the event bus
4. Raise PersistenceFailure only when the local append fails as well
"""

import asyncio
import logging

from pydantic import ValidationError

from symcheck.config import SAVED_ASSESSMENTS_SLOT
from symcheck.exceptions import IntakeError, PersistenceFailure
from symcheck.models.assessment import Assessment
from symcheck.models.patient import PatientInfo, PatientProfile
from symcheck.models.saved import SavedAssessmentRecord, SaveOutcome, SaveTier
from symcheck.services.event_bus import ASSESSMENTS_TOPIC, EventBus
from symcheck.services.gateway import AssessmentGateway
from symcheck.services.store import SlotStore

logger = logging.getLogger(__name__)


class AssessmentPersistenceService:
    def __init__(
        self,
        gateway: AssessmentGateway,
        store: SlotStore,
        bus: EventBus,
        slot: str = SAVED_ASSESSMENTS_SLOT,
    ) -> None:
        self.gateway = gateway
        self.store = store
        self.bus = bus
        self.slot = slot

    async def save(
        self,
        session_id: str,
        assessment: Assessment,
        patient: PatientProfile | None = None,
    ) -> SaveOutcome:
        try:
            await self.gateway.save_assessment(session_id, assessment)
        except IntakeError as remote_error:
            logger.warning(
                "Remote save failed for session %s (%s), falling back to local storage",
                session_id, remote_error,
            )
            return await self._save_locally(session_id, assessment, patient, remote_error)

        logger.info("Assessment for session %s saved remotely", session_id)
        return SaveOutcome(tier=SaveTier.REMOTE)

    async def _save_locally(
        self,
        session_id: str,
        assessment: Assessment,
        patient: PatientProfile | None,
        remote_error: Exception,
    ) -> SaveOutcome:
        patient_info = PatientInfo()
        if patient is not None:
            patient_info = PatientInfo(age=patient.age, sex=patient.sex.value)
        record = SavedAssessmentRecord(
            session_id=session_id,
            assessment=assessment,
            patient_info=patient_info,
        )

        try:
            await self.store.append(self.slot, record.model_dump(mode="json"))
        except Exception as local_error:
            logger.error(
                "Local save failed for session %s after remote failure: %s",
                session_id, local_error,
            )
            raise PersistenceFailure(remote_error, local_error) from local_error

        logger.info("Assessment %s for session %s saved locally", record.id, session_id)
        await self.bus.publish(ASSESSMENTS_TOPIC, {
            "type": "assessment_saved",
            "record_id": record.id,
            "session_id": session_id,
            "tier": SaveTier.LOCAL.value,
        })
        return SaveOutcome(tier=SaveTier.LOCAL, record_id=record.id, error=str(remote_error))

    async def list_records(self) -> list[SavedAssessmentRecord]:
        records = []
        for item in await self.store.get(self.slot):
            try:
                records.append(SavedAssessmentRecord.model_validate(item))
            except ValidationError:
                logger.debug("Skipping unreadable saved assessment: %r", item)
        return records

    def subscribe(self) -> asyncio.Queue:
        return self.bus.subscribe(ASSESSMENTS_TOPIC)

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self.bus.unsubscribe(ASSESSMENTS_TOPIC, queue)
