"""Scheduling service - books Qualiphy telehealth exams"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...services.qualiphy_service import QualiphyResponseError, qualiphy_service
from .repository import SchedulingRepository
from .schemas import ScheduleExamRequest, ScheduleExamResponse
from .utils import is_pharmacy_state, qualiphy_error_message, state_abbreviation, unsupported_state_message

logger = logging.getLogger(__name__)

DUPLICATE_SUBMISSION_MESSAGE = (
    "You have already submitted a consultation request. Only one submission is allowed per account."
)


class SchedulingService:
    """Service layer for exam booking"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()
        self.qualiphy = qualiphy_service

    async def schedule_exam(self, data: ScheduleExamRequest) -> ScheduleExamResponse:
        """
        Book a telehealth exam for the patient.

        Checks run in order: required fields, state name, pharmacy coverage,
        one submission per email, then the Qualiphy key. Each failure raises
        an HTTPException; the duplicate check carries the stored meeting url.
        """
        required = [data.firstName, data.lastName, data.email, data.phoneNumber, data.dob, data.state, data.examId]
        if any(value in (None, "") for value in required):
            raise HTTPException(status_code=400, detail="Missing required fields")

        abbreviation = state_abbreviation(data.state)
        if not abbreviation:
            raise HTTPException(status_code=400, detail="Invalid state provided")
        if not is_pharmacy_state(abbreviation):
            raise HTTPException(status_code=400, detail=unsupported_state_message(data.state))

        try:
            exam_id = int(data.examId)
        except (TypeError, ValueError):
            raise HTTPException(status_code=400, detail="Invalid exam ID")

        existing = self.repo.get_user_data_by_email(self.db, data.email)
        if existing and (existing.submission_count or 0) >= 1:
            logger.info(f"⚠️ Duplicate exam submission for {data.email} (count={existing.submission_count})")
            raise HTTPException(
                status_code=400,
                detail={"error": DUPLICATE_SUBMISSION_MESSAGE, "meetingUrl": existing.meeting_url},
            )

        if not self.qualiphy.is_available():
            logger.error("❌ QUALIPHY_API_KEY not configured")
            raise HTTPException(status_code=500, detail="Scheduling service not configured")

        payload = self.qualiphy.build_payload(
            exam_id=exam_id,
            first_name=data.firstName,
            last_name=data.lastName,
            email=data.email,
            dob=data.dob,
            phone_number=data.phoneNumber,
            state_abbreviation=abbreviation,
        )

        try:
            result = await self.qualiphy.send_exam_invite(payload)
        except QualiphyResponseError as e:
            raise HTTPException(status_code=e.status_code, detail=str(e))

        http_code = result.get("http_code")
        meeting_url = result.get("meeting_url")
        if http_code != 200 or not meeting_url:
            message = qualiphy_error_message(http_code, result.get("error_message"))
            logger.error(f"❌ Qualiphy booking failed for {data.email}: {http_code} {message}")
            raise HTTPException(status_code=http_code or 500, detail=message)

        self._record_submission(data, existing, meeting_url, result.get("meeting_uuid"))

        logger.info(f"✅ Exam {exam_id} scheduled for {data.email}")
        return ScheduleExamResponse(
            message="Appointment scheduled successfully",
            meetingUrl=meeting_url,
            meetingUuid=result.get("meeting_uuid"),
            patientExams=result.get("patient_exams"),
        )

    def _record_submission(self, data: ScheduleExamRequest, existing, meeting_url: str, meeting_uuid) -> None:
        """Store intake data; the booking already succeeded so failures are only logged"""
        fields = {
            "first_name": data.firstName,
            "last_name": data.lastName,
            "phone": data.phoneNumber,
            "state": data.state,
            "dob": data.dob,
            "meeting_url": meeting_url,
            "meeting_uuid": meeting_uuid,
        }
        try:
            if existing:
                fields["submission_count"] = (existing.submission_count or 0) + 1
                self.repo.update(self.db, existing, **fields)
            else:
                self.repo.create_user_data(self.db, email=data.email, submission_count=1, **fields)
        except Exception as e:
            self.db.rollback()
            logger.error(f"❌ Failed to store user data for {data.email}: {e}")
