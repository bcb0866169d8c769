"""Price comparison and sync schemas"""

from typing import Literal, Optional

from pydantic import BaseModel

PriceStatus = Literal["OK", "DIFFERENT", "MISSING", "NOT_FOUND", "ERROR"]


class PriceComparisonRow(BaseModel):
    key: str
    subscriptionId: str
    subscriptionTitle: Optional[str] = None
    variantKey: Optional[str] = None
    variantTitle: str
    cmsPrice: Optional[float] = None
    stripePrice: Optional[float] = None
    stripePriceId: Optional[str] = None
    status: PriceStatus
    statusMessage: str
    needsAction: bool
    action: Literal["none", "sync", "create"] = "none"
    error: Optional[str] = None


class PriceComparisonResponse(BaseModel):
    success: bool = True
    rows: list[PriceComparisonRow] = []
    error: Optional[str] = None


class SyncPriceRequest(BaseModel):
    subscriptionId: Optional[str] = None
    variantKey: Optional[str] = None
    action: Optional[str] = None


class SyncPriceResponse(BaseModel):
    success: bool = True
    message: str
    newPriceId: Optional[str] = None


class PlanPriceOption(BaseModel):
    variantKey: Optional[str] = None
    title: str
    price: float
    billingPeriod: Optional[str] = None
    monthlyPrice: float


class PlanPricingResponse(BaseModel):
    success: bool = True
    subscriptionId: str
    title: Optional[str] = None
    options: list[PlanPriceOption] = []
    lowestMonthlyPrice: float = 0
    bestVariantKey: Optional[str] = None
    originalPrice: float = 0
    savingsPercentage: Optional[int] = None
