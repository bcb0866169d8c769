"""
Sanity CMS Service
GROQ reads and create/patch mutations against the Sanity HTTP API
"""
import json
import logging
from typing import Any, Optional

import httpx

from ..cache import PRODUCT_CACHE_TTL, cache, product_cache_key
from ..config import SANITY_API_TOKEN, SANITY_API_VERSION, SANITY_DATASET, SANITY_PROJECT_ID

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = """
  _id,
  title,
  slug,
  price,
  description,
  mainImage,
  productType,
  administrationType,
  formulation,
  "suitableForSkinTypes": skinTypes[],
  "targetConcerns": concerns[],
  "ingredients": ingredients[]
"""

SUBSCRIPTION_FIELDS = """
  _id,
  title,
  price,
  billingPeriod,
  customBillingPeriodMonths,
  stripePriceId,
  stripeProductId,
  hasVariants,
  allowCoupons,
  appointmentAccess,
  appointmentDiscountPercentage,
  "excludedCoupons": excludedCoupons[]._ref,
  variants[]{
    _key,
    title,
    price,
    billingPeriod,
    customBillingPeriodMonths,
    stripePriceId
  }
"""

COUPON_FIELDS = """
  _id,
  code,
  description,
  discountType,
  discountValue,
  applicationType,
  "subscriptions": subscriptions[]->{ _id, title },
  variantTargets[]{ "subscriptionId": subscription._ref, variantKey },
  usageLimit,
  usageCount,
  validFrom,
  validUntil,
  isActive,
  minimumPurchaseAmount
"""

APPOINTMENT_FIELDS = """
  _id,
  title,
  price,
  description,
  duration,
  stripePriceId,
  qualiphyExamId,
  requiresSubscription
"""


class SanityError(Exception):
    """Raised when the Sanity API rejects a request"""

    pass


class SanityService:
    """Service for interacting with the Sanity content API"""

    def __init__(self):
        self.project_id = SANITY_PROJECT_ID
        self.dataset = SANITY_DATASET
        self.api_version = SANITY_API_VERSION
        self.token = SANITY_API_TOKEN

    def is_available(self) -> bool:
        return bool(self.project_id)

    @property
    def base_url(self) -> str:
        return f"https://{self.project_id}.api.sanity.io/v{self.api_version}/data"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def fetch(self, query: str, params: Optional[dict[str, Any]] = None) -> Any:
        """Run a GROQ query and return its ``result``"""
        if not self.is_available():
            raise SanityError("Sanity project is not configured")

        query_params = {"query": query}
        for name, value in (params or {}).items():
            query_params[f"${name}"] = json.dumps(value)

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.get(
                f"{self.base_url}/query/{self.dataset}",
                params=query_params,
                headers=self._headers(),
            )
            if response.status_code != 200:
                logger.error(f"❌ Sanity query failed: {response.status_code} {response.text[:200]}")
                raise SanityError(f"Sanity query failed with status {response.status_code}")
            return response.json().get("result")

    async def mutate(self, mutations: list[dict], return_documents: bool = False) -> dict:
        if not self.is_available() or not self.token:
            raise SanityError("Sanity write token is not configured")

        async with httpx.AsyncClient(timeout=30.0) as client:
            response = await client.post(
                f"{self.base_url}/mutate/{self.dataset}",
                json={"mutations": mutations},
                params={"returnDocuments": "true"} if return_documents else None,
                headers=self._headers(),
            )
            if response.status_code != 200:
                logger.error(f"❌ Sanity mutation failed: {response.status_code} {response.text[:200]}")
                raise SanityError(f"Sanity mutation failed with status {response.status_code}")
            return response.json()

    async def patch(
        self, document_id: str, set_fields: dict[str, Any], set_if_missing: Optional[dict] = None
    ) -> dict:
        """Patch a document with ``set`` (and optionally ``setIfMissing``) operations"""
        patch: dict[str, Any] = {"id": document_id, "set": set_fields}
        if set_if_missing:
            patch["setIfMissing"] = set_if_missing
        result = await self.mutate([{"patch": patch}])
        logger.info(f"✅ Patched Sanity document {document_id}: {list(set_fields.keys())}")
        return result

    async def create(self, document: dict[str, Any]) -> dict:
        """Create a document and return it as stored (``_id`` and ``_createdAt`` included)"""
        result = await self.mutate([{"create": document}], return_documents=True)
        results = result.get("results") or []
        if not results:
            raise SanityError(f"Sanity did not return the created {document.get('_type')} document")
        created = results[0].get("document") or {"_id": results[0].get("id")}
        logger.info(f"✅ Created Sanity {document.get('_type')} document {created.get('_id')}")
        return created

    async def increment(self, document_id: str, field: str, amount: int = 1) -> dict:
        patch = {"id": document_id, "setIfMissing": {field: 0}, "inc": {field: amount}}
        return await self.mutate([{"patch": patch}])

    # ========================================================================
    # Content lookups
    # ========================================================================

    async def get_products_by_category(self, category_slug: str) -> list[dict]:
        """Products referencing the given productCategory slug (cached)"""
        cache_key = product_cache_key(category_slug)
        cached = cache.get(cache_key)
        if cached is not None:
            return cached

        query = (
            '*[_type == "product" && references(*[_type=="productCategory" '
            f"&& slug.current==$slug]._id)] {{{PRODUCT_FIELDS}}}"
        )
        products = await self.fetch(query, {"slug": category_slug}) or []
        cache.set(cache_key, products, ttl=PRODUCT_CACHE_TTL)
        return products

    async def get_coupon_by_code(self, code: str) -> Optional[dict]:
        query = f'*[_type == "coupon" && code == $code][0] {{{COUPON_FIELDS}}}'
        return await self.fetch(query, {"code": code})

    async def get_subscription(self, subscription_id: str) -> Optional[dict]:
        query = f'*[_type == "subscription" && _id == $id][0] {{{SUBSCRIPTION_FIELDS}}}'
        return await self.fetch(query, {"id": subscription_id})

    async def get_appointment(self, appointment_id: str) -> Optional[dict]:
        query = f'*[_type == "appointment" && _id == $id][0] {{{APPOINTMENT_FIELDS}}}'
        return await self.fetch(query, {"id": appointment_id})

    async def get_active_subscriptions(self) -> list[dict]:
        query = (
            '*[_type == "subscription" && isActive == true && isDeleted != true] '
            f"{{{SUBSCRIPTION_FIELDS}}}"
        )
        return await self.fetch(query) or []


# Global instance
sanity_service = SanityService()
