"""Scheduling utilities - state lookups and webhook note formatting"""

from typing import Optional

STATE_TO_ABBREVIATION = {
    "Alabama": "AL",
    "Alaska": "AK",
    "Arizona": "AZ",
    "Arkansas": "AR",
    "California": "CA",
    "Colorado": "CO",
    "Connecticut": "CT",
    "Delaware": "DE",
    "District of Columbia": "DC",
    "Florida": "FL",
    "Georgia": "GA",
    "Hawaii": "HI",
    "Idaho": "ID",
    "Illinois": "IL",
    "Indiana": "IN",
    "Iowa": "IA",
    "Kansas": "KS",
    "Kentucky": "KY",
    "Louisiana": "LA",
    "Maine": "ME",
    "Maryland": "MD",
    "Massachusetts": "MA",
    "Michigan": "MI",
    "Minnesota": "MN",
    "Mississippi": "MS",
    "Missouri": "MO",
    "Montana": "MT",
    "Nebraska": "NE",
    "Nevada": "NV",
    "New Hampshire": "NH",
    "New Jersey": "NJ",
    "New Mexico": "NM",
    "New York": "NY",
    "North Carolina": "NC",
    "North Dakota": "ND",
    "Ohio": "OH",
    "Oklahoma": "OK",
    "Oregon": "OR",
    "Pennsylvania": "PA",
    "Rhode Island": "RI",
    "South Carolina": "SC",
    "South Dakota": "SD",
    "Tennessee": "TN",
    "Texas": "TX",
    "Utah": "UT",
    "Vermont": "VT",
    "Virginia": "VA",
    "Washington": "WA",
    "West Virginia": "WV",
    "Wisconsin": "WI",
    "Wyoming": "WY",
}

# States the dispensing pharmacy ships to
SUPPORTED_PHARMACY_STATES = [
    "AZ", "CO", "CT", "DC", "DE", "GA", "ID", "IL", "IN", "KY",
    "MA", "MD", "NJ", "NV", "NY", "MO", "MT", "ND", "OH", "OK",
    "OR", "PA", "SD", "TN", "UT", "VA", "WA", "WI", "WV",
]

EXAM_STATUS_TO_APPOINTMENT_STATUS = {
    "Approved": "completed",
    "Deferred": "deferred",
}

QUALIPHY_ERROR_MESSAGES = {
    400: "Invalid appointment data provided",
    401: "Authentication failed with scheduling service",
    500: "Scheduling service is temporarily unavailable",
}


def state_abbreviation(state: Optional[str]) -> Optional[str]:
    """Full state name -> two letter code; codes pass through unchanged"""
    if not state:
        return None
    if state in STATE_TO_ABBREVIATION:
        return STATE_TO_ABBREVIATION[state]
    upper = state.strip().upper()
    if upper in STATE_TO_ABBREVIATION.values():
        return upper
    return None


def is_pharmacy_state(abbreviation: str) -> bool:
    return abbreviation in SUPPORTED_PHARMACY_STATES


def unsupported_state_message(state: str) -> str:
    return (
        f"Sorry, our pharmacy services are not yet available in {state}. "
        f"We currently serve: {', '.join(SUPPORTED_PHARMACY_STATES)}."
    )


def qualiphy_error_message(http_code: Optional[int], error_message: Optional[str] = None) -> str:
    if error_message:
        return error_message
    return QUALIPHY_ERROR_MESSAGES.get(http_code, "Failed to schedule appointment")


def appointment_status_for_exam(exam_status: Optional[str]) -> str:
    # "N/A" and anything unexpected still close the consultation
    return EXAM_STATUS_TO_APPOINTMENT_STATUS.get(exam_status, "completed")


def parse_patient_exam_id(value) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def consultation_notes(data: dict) -> str:
    qa_text = "\n\n".join(
        f"Q: {qa.get('question', '')}\nA: {qa.get('answer', '')}"
        for qa in data.get("questions_answers") or []
    )
    return "\n".join(
        [
            f"Consultation completed with {data.get('provider_name')}.",
            f"Status: {data.get('exam_status')}",
            f"Exam ID: {data.get('exam_id')}",
            f"Patient Exam ID: {data.get('patient_exam_id')}",
            "",
            "Questions and Answers:",
            qa_text,
        ]
    ).strip()


def prescription_details(data: dict) -> dict:
    drug = data.get("drug_details") or {}
    return {
        "drug_name": drug.get("drug_name"),
        "strength": drug.get("strength"),
        "quantity": data.get("quantity"),
        "quantity_units": data.get("quantity_units"),
        "directions": data.get("directions"),
        "duration_days": data.get("duration_days"),
        "refills": data.get("refill_amount"),
        "prescription_id": data.get("prescription_id"),
        "schedule_code": data.get("schedule_code"),
    }


def prescription_notes(details: dict) -> str:
    return "\n".join(
        [
            "Prescription details:",
            f"- Drug: {details['drug_name']} {details['strength']}",
            f"- Quantity: {details['quantity']} {details['quantity_units']}",
            f"- Directions: {details['directions']}",
            f"- Duration: {details['duration_days']} days",
            f"- Refills: {details['refills']}",
            f"- Prescription ID: {details['prescription_id']}",
            f"- Schedule: {details['schedule_code']}",
        ]
    )
