"""Recommendation router - one endpoint per assessment quiz"""

import logging

from fastapi import APIRouter, Depends

from ...rate_limiter import create_rate_limiter
from .schemas import RecommendationRequest, RecommendationResponse
from .service import RecommendationService, error_response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Recommendations"])

recommendation_rate_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="recommendations")


def get_recommendation_service() -> RecommendationService:
    """Dependency injection for RecommendationService"""
    return RecommendationService()


@router.post("/recommendations", response_model=RecommendationResponse)
async def weight_loss_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Weight loss assessment"""
    try:
        return await service.weight_loss(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing weight loss recommendation: {e}")
        return error_response(e)


@router.post("/hl-recommendations", response_model=RecommendationResponse)
async def hair_loss_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Hair loss assessment"""
    try:
        return await service.hair_loss(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing hair loss recommendation: {e}")
        return error_response(e)


@router.post("/aa-recommendations", response_model=RecommendationResponse)
async def skin_care_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Skin care assessment"""
    try:
        return await service.skin_care(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing skin care recommendation: {e}")
        return error_response(e)


@router.post("/mh-recommendations", response_model=RecommendationResponse)
async def mental_health_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Anxiety / mental health assessment"""
    try:
        return await service.mental_health(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing mental health recommendation: {e}")
        return error_response(e)


@router.post("/bc-recommendations", response_model=RecommendationResponse)
async def birth_control_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """Birth control assessment"""
    try:
        return await service.birth_control(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing birth control recommendation: {e}")
        return error_response(e)


@router.post("/consult-recommendations", response_model=RecommendationResponse)
async def consultation_recommendations(
    data: RecommendationRequest,
    _: None = Depends(recommendation_rate_limit),
    service: RecommendationService = Depends(get_recommendation_service),
):
    """General consultation"""
    try:
        return await service.consultation(data.formResponses)
    except Exception as e:
        logger.error(f"❌ Error processing consultation recommendation: {e}")
        return error_response(e)
