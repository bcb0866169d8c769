"""Scheduling schemas - Pydantic models for validation"""

from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict


class ScheduleExamRequest(BaseModel):
    """Fields are optional so missing ones produce the storefront error envelope"""

    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phoneNumber: Optional[str] = None
    dob: Optional[str] = None
    state: Optional[str] = None
    examId: Optional[Union[int, str]] = None


class ScheduleExamResponse(BaseModel):
    success: bool = True
    message: str
    meetingUrl: Optional[str] = None
    meetingUuid: Optional[str] = None
    patientExams: Optional[Any] = None


class QualiphyWebhookPayload(BaseModel):
    """Union of the consultation (1), prescription (2) and tracking (3) events"""

    model_config = ConfigDict(extra="allow")

    event: Optional[int] = None
    patient_exam_id: Optional[Union[int, str]] = None
    patient_email: Optional[str] = None
    exam_id: Optional[Union[int, str]] = None
    exam_status: Optional[str] = None
    provider_name: Optional[str] = None
    questions_answers: list[dict] = []
    prescription_tracking: list[dict] = []
