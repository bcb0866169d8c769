"""Recommendation service - eligibility, catalog lookup, scoring and AI explanations"""

import asyncio
import json
import logging
from typing import Optional

from ...services.openai_service import openai_service
from ...services.sanity_service import sanity_service
from . import catalogs, eligibility, scoring
from .schemas import RecommendationResponse

logger = logging.getLogger(__name__)

ERROR_EXPLANATION = "We encountered an error processing your information. Please try again later."
UNMATCHED_PRODUCT_EXPLANATION = "We couldn't match the recommended product. Please try again."

SKIN_CARE_SYSTEM_PROMPT = (
    "You are a helpful skincare consultant. Provide a personalized, encouraging explanation for why a "
    "specific skin care product is recommended based on the user's assessment responses."
)
MENTAL_HEALTH_SYSTEM_PROMPT = (
    "You are a helpful mental health consultant. Provide a personalized, encouraging explanation for why "
    "a specific anxiety management product is recommended based on the user's assessment responses."
)
CONSULTATION_SYSTEM_PROMPT = (
    "You are a helpful healthcare consultant. Provide a very brief explanation (2-3 sentences max) for "
    "why a specific product is recommended based on the user's assessment responses."
)
CONSULTATION_INSTRUCTIONS = (
    "Please enhance this explanation to be more personalized and informative, explaining why this is a "
    "good match for their specific concerns. Keep it under 3 paragraphs and maintain a professional, "
    "supportive tone."
)
BIRTH_CONTROL_SYSTEM_PROMPT = (
    "You are a women's health consultant specializing in sexual health and birth control. Analyze user "
    "preferences and recommend the single best product match based on their health profile, lifestyle "
    "needs, and preferences. If no product is a suitable match, indicate they are not eligible."
)
BIRTH_CONTROL_INSTRUCTIONS = """Respond with ONLY a JSON object containing:
1. eligible: true/false whether any product is suitable for this user
2. productId: The ID of the recommended product, or null if no product is suitable
3. explanation: A brief, personalized explanation (MAXIMUM 1 paragraph) explaining why this product is right for them OR why no product is suitable

If none of the products are suitable based on the user's health profile, set eligible to false, productId to null, and provide an explanation of why they are not eligible."""


def _not_eligible(explanation: str) -> RecommendationResponse:
    return RecommendationResponse(eligible=False, explanation=explanation)


def _empty_catalog(explanation: str) -> RecommendationResponse:
    return RecommendationResponse(eligible=True, explanation=explanation)


def _recommend(match: scoring.ProductMatch, explanation: Optional[str] = None) -> RecommendationResponse:
    return RecommendationResponse(
        eligible=True,
        recommendedProductId=match.product.get("_id"),
        explanation=explanation or match.reason,
        product=match.product,
    )


def error_response(error: Exception) -> RecommendationResponse:
    return RecommendationResponse(eligible=False, explanation=ERROR_EXPLANATION, error=str(error))


class RecommendationService:
    """One entry point per assessment quiz"""

    def __init__(self):
        self.cms = sanity_service
        self.ai = openai_service

    async def _fetch_products(self, category_slug: str) -> list[dict]:
        try:
            return await self.cms.get_products_by_category(category_slug) or []
        except Exception as e:
            logger.error(f"❌ Error fetching {category_slug} products from CMS: {e}")
            return []

    async def _enhance(
        self, system_prompt: str, responses: dict, match: scoring.ProductMatch, max_tokens: int, **kwargs
    ) -> str:
        if not self.ai.is_available():
            return match.reason
        return await asyncio.to_thread(
            self.ai.enhance_explanation,
            system_prompt,
            responses,
            match.product.get("title"),
            match.reason,
            max_tokens,
            **kwargs,
        )

    async def weight_loss(self, responses: dict) -> RecommendationResponse:
        products = await self._fetch_products(catalogs.WEIGHT_LOSS_CATEGORY)
        if not products:
            return _not_eligible("No weight loss products are currently available. Please check back later.")

        result = eligibility.check_weight_loss(responses)
        if not result.eligible:
            return _not_eligible(result.reason)

        match = scoring.match_weight_loss(responses, products)
        logger.info(f"✅ Weight loss recommendation: {match.product.get('_id')} (score {match.score})")
        return _recommend(match)

    async def hair_loss(self, responses: dict) -> RecommendationResponse:
        match = scoring.match_hair_loss(responses, catalogs.HAIR_LOSS_PRODUCTS)
        logger.info(f"✅ Hair loss recommendation: {match.product.get('_id')} (score {match.score})")
        return _recommend(match)

    async def skin_care(self, responses: dict) -> RecommendationResponse:
        products = await self._fetch_products(catalogs.SKIN_CARE_CATEGORY)
        if not products:
            return _empty_catalog("No skin care products are currently available. Please check back later.")

        match = scoring.match_skin_care(responses, products)
        explanation = await self._enhance(SKIN_CARE_SYSTEM_PROMPT, responses, match, max_tokens=300)
        logger.info(f"✅ Skin care recommendation: {match.product.get('_id')} (score {match.score})")
        return _recommend(match, explanation)

    async def mental_health(self, responses: dict) -> RecommendationResponse:
        result = eligibility.check_mental_health(responses)
        if not result.eligible:
            return _not_eligible(result.reason)

        products = await self._fetch_products(catalogs.MENTAL_HEALTH_CATEGORY)
        if not products:
            return _empty_catalog("No mental health products are currently available. Please check back later.")

        match = scoring.match_mental_health(responses, products)
        explanation = await self._enhance(MENTAL_HEALTH_SYSTEM_PROMPT, responses, match, max_tokens=100)
        if result.reason:
            # Treatment readiness mismatch note
            explanation = f"{explanation}\n\n{result.reason}"
        logger.info(f"✅ Mental health recommendation: {match.product.get('_id')} (score {match.score})")
        return _recommend(match, explanation)

    async def birth_control(self, responses: dict) -> RecommendationResponse:
        result = eligibility.check_birth_control(responses)
        if not result.eligible:
            return _not_eligible(result.reason)

        products = await self._fetch_products(catalogs.BIRTH_CONTROL_CATEGORY)
        if not products:
            return _empty_catalog("No birth control products are currently available. Please check back later.")

        if self.ai.is_available():
            response = await self._birth_control_with_ai(responses, products)
        else:
            response = _recommend(scoring.match_birth_control(responses, products))

        if response.eligible and response.recommendedProductId and result.reason:
            response.explanation = f"{result.reason} {response.explanation}"
        return response

    async def _birth_control_with_ai(self, responses: dict, products: list[dict]) -> RecommendationResponse:
        """Let the model pick from condensed summaries, falling back to scoring on any bad answer"""
        candidates = scoring.prefilter_birth_control(responses, products)
        summaries = scoring.summarize_for_prompt(candidates[: scoring.BIRTH_CONTROL_PROMPT_LIMIT])
        user_prompt = (
            f"User assessment: {json.dumps(responses)}\n\n"
            f"Available products: {json.dumps(summaries)}\n\n"
            f"{BIRTH_CONTROL_INSTRUCTIONS}"
        )

        answer = await asyncio.to_thread(
            self.ai.recommend_json, BIRTH_CONTROL_SYSTEM_PROMPT, user_prompt, 150, 0.5
        )

        if (
            not isinstance(answer, dict)
            or answer.get("eligible") is None
            or not isinstance(answer.get("explanation"), str)
        ):
            logger.warning("⚠️ AI birth control answer missing fields, using rule-based scoring")
            return _recommend(scoring.match_birth_control(responses, products))

        if not answer["eligible"]:
            return _not_eligible(answer["explanation"])

        product_id = answer.get("productId") or answer.get("recommendedProductId")
        if not product_id:
            logger.warning("⚠️ AI marked user eligible without a product id, using rule-based scoring")
            return _recommend(scoring.match_birth_control(responses, products))

        product = next((p for p in products if p.get("_id") == product_id), None)
        if product is None:
            logger.warning(f"⚠️ AI recommended unknown product: {product_id}")
            return _empty_catalog(UNMATCHED_PRODUCT_EXPLANATION)

        logger.info(f"✅ Birth control recommendation (AI): {product_id}")
        return RecommendationResponse(
            eligible=True,
            recommendedProductId=product_id,
            explanation=answer["explanation"],
            product=product,
        )

    async def consultation(self, responses: dict) -> RecommendationResponse:
        result = eligibility.check_consultation(responses)
        if not result.eligible:
            return _not_eligible(result.reason)

        concern = responses.get("main-concern")
        products = await self._fetch_products(catalogs.category_for_concern(concern))

        if not products:
            # Concern has no CMS catalog yet
            match = scoring.match_consultation(responses, catalogs.fallback_products_for_concern(concern))
            logger.info(f"✅ Consultation recommendation (static): {match.product.get('_id')}")
            return _recommend(match)

        match = scoring.match_consultation(responses, products)
        explanation = await self._enhance(
            CONSULTATION_SYSTEM_PROMPT,
            responses,
            match,
            max_tokens=100,
            extra_instructions=CONSULTATION_INSTRUCTIONS,
        )
        logger.info(f"✅ Consultation recommendation: {match.product.get('_id')} (score {match.score})")
        return _recommend(match, explanation)
