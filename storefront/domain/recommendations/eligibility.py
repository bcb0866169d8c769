"""Eligibility prefilters run before any product is scored"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class EligibilityResult:
    eligible: bool
    reason: Optional[str] = None


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def check_weight_loss(responses: dict) -> EligibilityResult:
    if responses.get("age-group") == "under-18":
        return EligibilityResult(
            False,
            "Weight loss medications are not recommended for individuals under 18 years of age. "
            "We suggest consulting with a healthcare provider for age-appropriate weight management guidance.",
        )

    if responses.get("current-weight-range") == "under-50kg" and responses.get("weight-loss-goal") in (
        "lose-11-20kg",
        "lose-20kg-plus",
    ):
        return EligibilityResult(
            False,
            "Given your current weight range of under 50kg and your weight loss goal, we recommend "
            "consulting with a healthcare provider before pursuing weight loss medications. Significant "
            "weight loss at your current weight may pose health risks.",
        )

    if "diabetes" in _as_list(responses.get("medical-conditions")):
        return EligibilityResult(
            False,
            "With your history of diabetes, we recommend consulting with your healthcare provider before "
            "starting any weight loss medication. They can help determine the safest approach for your "
            "specific health needs.",
        )

    return EligibilityResult(True)


def check_mental_health(responses: dict) -> EligibilityResult:
    """Ineligible answers end the flow; a medication mismatch only adds a note"""
    if responses.get("age-group") == "under-18":
        return EligibilityResult(
            False,
            "Our mental health services are designed for adults 18 and older. We recommend speaking with "
            "a parent or guardian about seeking support from a mental health professional who specializes "
            "in working with adolescents.",
        )

    history = _as_list(responses.get("medical-history"))
    if "bipolar" in history:
        return EligibilityResult(
            False,
            "Based on your responses, our standard anxiety treatment may not be the best fit for your needs. "
            "Bipolar disorder often requires specialized care. We recommend consulting with a psychiatrist "
            "for personalized treatment.",
        )
    if "substance-use" in history:
        return EligibilityResult(
            False,
            "Based on your responses, you may benefit from specialized care that addresses both substance "
            "use and anxiety. We recommend seeking care from a provider who specializes in dual diagnosis "
            "treatment.",
        )

    if responses.get("suicidal-thoughts") == "yes":
        return EligibilityResult(
            False,
            "Your safety is our top priority. Based on your responses, we recommend immediate consultation "
            "with a mental health professional or calling a crisis helpline for support. Our services are "
            "not designed for crisis intervention.",
        )

    preferences = responses.get("treatment-preferences")
    if responses.get("medication-openness") == "not-open" and (
        not isinstance(preferences, list) or "medication" in preferences
    ):
        return EligibilityResult(
            True,
            "We noticed that you're interested in medication support but also indicated you're not open to "
            "taking medication. Our providers can discuss non-medication options, but wanted to note this "
            "potential mismatch in expectations.",
        )

    return EligibilityResult(True)


def check_birth_control(responses: dict) -> EligibilityResult:
    if responses.get("bc-type") == "emergency":
        return EligibilityResult(
            True,
            "Based on your selection of emergency contraception, we recommend scheduling a consultation "
            "for timely guidance.",
        )
    return EligibilityResult(True)


def check_consultation(responses: dict) -> EligibilityResult:
    conditions = _as_list(responses.get("medical-conditions"))
    if any(condition in ("high-blood-pressure", "heart-disease") for condition in conditions):
        return EligibilityResult(
            False,
            "Based on your medical history, we recommend consulting with a healthcare provider before "
            "proceeding with online treatment options.",
        )
    return EligibilityResult(True)
