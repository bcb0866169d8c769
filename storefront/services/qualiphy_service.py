"""
Qualiphy Service
Telehealth exam invitations through the Qualiphy exam_invite API
"""
import logging

import httpx

from ..config import QUALIPHY_API_KEY, QUALIPHY_API_URL

logger = logging.getLogger(__name__)

# Dispensing pharmacy attached to every exam invite
PHARMACY_CONFIG = {
    "pharmacy_id": "12",
    "ncpdpid": "4844824",
    "pharmacy_name": "Akina Pharmacy",
    "pharmacy_address": "23475 Rock Haven Way",
    "pharmacy_zip": "20166",
    "pharmacy_city": "Sterling",
    "pharmacy_state": "VA",
    "pharmacy_phone": "(703) 555-0199",
    "pharmacy_type": "MailOrder",
    "provider_pos_selection": 2,
    "custom_pharmacy_patient_billing": 1,
    "custom_pharmacy_delivery_method": 2,
    "custom_pharmacy": 1,
    "custom_pharmacy_patient_choice": 1,
    "custom_pharmacy_clinic_billing": "Lilys Womens",
}


class QualiphyResponseError(Exception):
    """Raised when Qualiphy answers with something other than JSON"""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.status_code = status_code


class QualiphyService:
    """Service for booking Qualiphy telehealth exams"""

    def __init__(self):
        self.api_key = QUALIPHY_API_KEY
        self.api_url = QUALIPHY_API_URL

    def is_available(self) -> bool:
        return bool(self.api_key)

    def build_payload(
        self,
        exam_id: int,
        first_name: str,
        last_name: str,
        email: str,
        dob: str,
        phone_number: str,
        state_abbreviation: str,
    ) -> dict:
        return {
            "api_key": self.api_key,
            "exams": [exam_id],
            "first_name": first_name,
            "last_name": last_name,
            "email": email,
            "dob": dob,
            "phone_number": phone_number,
            "tele_state": state_abbreviation,
            "state": state_abbreviation,
            **PHARMACY_CONFIG,
        }

    async def send_exam_invite(self, payload: dict) -> dict:
        """POST the invite and return the decoded JSON body"""
        logger.info(f"🔄 Sending Qualiphy exam invite for {payload.get('email')}")

        async with httpx.AsyncClient(timeout=30.0) as http_client:
            response = await http_client.post(
                self.api_url,
                json=payload,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "User-Agent": "Clinic-API/1.0",
                },
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            logger.error(f"❌ Qualiphy returned non-JSON response ({response.status_code}): {response.text[:200]}")
            raise QualiphyResponseError("Invalid response format from scheduling service")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"❌ Failed to parse Qualiphy response: {e}")
            raise QualiphyResponseError("Invalid response from scheduling service") from e

        logger.info(f"✅ Qualiphy responded with http_code={data.get('http_code')}")
        return data


# Global instance
qualiphy_service = QualiphyService()
