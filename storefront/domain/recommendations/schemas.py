"""Recommendation schemas"""

from typing import Any, Optional

from pydantic import BaseModel, Field


class RecommendationRequest(BaseModel):
    """Assessment answers keyed by question id"""

    formResponses: dict[str, Any] = Field(default_factory=dict)


class RecommendationResponse(BaseModel):
    eligible: bool
    recommendedProductId: Optional[str] = None
    explanation: str
    product: Optional[dict[str, Any]] = None
    error: Optional[str] = None
