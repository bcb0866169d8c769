"""
Qualiphy Webhook Service
Applies consultation results and prescriptions to appointments
"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import UserAppointment
from ...services.sanity_service import sanity_service
from ..appointment_access.utils import utc_now
from .repository import SchedulingRepository
from .schemas import QualiphyWebhookPayload
from .utils import (
    appointment_status_for_exam,
    consultation_notes,
    parse_patient_exam_id,
    prescription_details,
    prescription_notes,
)

logger = logging.getLogger(__name__)

CONSULTATION_COMPLETE = 1
PRESCRIPTION_CONFIRMED = 2
PRESCRIPTION_TRACKING = 3


class QualiphyWebhookService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()
        self.cms = sanity_service

    async def handle_event(self, payload: QualiphyWebhookPayload) -> dict:
        logger.info(f"📥 Received Qualiphy webhook event type: {payload.event}")
        data = payload.model_dump()

        if payload.event == CONSULTATION_COMPLETE:
            appointment = self._find_appointment(payload, fallback_status="scheduled")
            await self.handle_consultation(appointment, data)
        elif payload.event == PRESCRIPTION_CONFIRMED:
            appointment = self._find_appointment(payload, fallback_status="completed")
            await self.handle_prescription(appointment, data)
        elif payload.event == PRESCRIPTION_TRACKING:
            logger.info(f"📦 Prescription tracking received: {payload.prescription_tracking}")
        else:
            logger.warning(f"⚠️ Unknown Qualiphy event type: {payload.event}")

        return {"success": True}

    def _find_appointment(self, payload: QualiphyWebhookPayload, fallback_status: str) -> UserAppointment:
        """Look up by patient exam id, then the patient's newest appointment in ``fallback_status``"""
        appointment = None
        patient_exam_id = parse_patient_exam_id(payload.patient_exam_id)
        if patient_exam_id is not None:
            appointment = self.repo.get_by_patient_exam_id(self.db, patient_exam_id)

        if not appointment and payload.patient_email:
            logger.info("🔄 No appointment found by patient_exam_id, trying email...")
            appointment = self.repo.get_latest_by_email(
                self.db,
                payload.patient_email,
                fallback_status,
                order_by_completed=fallback_status == "completed",
            )

        if not appointment:
            logger.error(
                f"❌ No appointment found for patient exam ID {payload.patient_exam_id} "
                f"or email {payload.patient_email}"
            )
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    async def handle_consultation(self, appointment: UserAppointment, data: dict) -> None:
        exam_status = data.get("exam_status")
        status = appointment_status_for_exam(exam_status)
        notes = consultation_notes(data)
        now = utc_now()

        self.repo.update(
            self.db,
            appointment,
            status=status,
            completed_at=now,
            notes=notes,
            qualiphy_exam_status=exam_status,
            qualiphy_provider_name=data.get("provider_name"),
        )
        logger.info(f"✅ Appointment {appointment.id} -> {status} ({exam_status})")

        await self._mirror(
            appointment.sanity_id,
            {
                "status": status,
                "completedDate": now.isoformat() + "Z",
                "notes": notes,
                "qualiphyExamStatus": exam_status,
                "qualiphyProviderName": data.get("provider_name"),
            },
        )

    async def handle_prescription(self, appointment: UserAppointment, data: dict) -> None:
        details = prescription_details(data)
        notes = prescription_notes(details)
        prescription_id = details.get("prescription_id")

        self.repo.update(
            self.db,
            appointment,
            notes=notes,
            prescription_id=str(prescription_id) if prescription_id is not None else None,
            prescription_details=details,
        )
        logger.info(f"✅ Prescription {prescription_id} stored on appointment {appointment.id}")

        await self._mirror(appointment.sanity_id, {"notes": notes})

    async def _mirror(self, sanity_id: Optional[str], fields: dict) -> None:
        if not sanity_id:
            return
        try:
            await self.cms.patch(sanity_id, fields)
            logger.info(f"✅ Updated CMS appointment: {sanity_id}")
        except Exception as e:
            logger.error(f"⚠️ Failed to update CMS appointment {sanity_id}: {e}")
