"""Shared pytest fixtures for the storefront API tests."""

import fnmatch
import os
import time

# Configure the app before any storefront module reads its settings
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["DB_LOG_SLOW_QUERIES"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["ADMIN_EMAILS"] = "admin@lilyswomenshealth.com"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_123"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"
os.environ["SANITY_WEBHOOK_SECRET"] = "sanity-test-secret"
os.environ["QUALIPHY_API_KEY"] = "qualiphy-test-key"
os.environ["RESEND_API_KEY"] = "re_test_key"
os.environ["OPENAI_API_KEY"] = ""

import pytest  # noqa: E402
import stripe as stripe_sdk  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from jose import jwt  # noqa: E402

from storefront import rate_limiter  # noqa: E402
from storefront.cache import cache  # noqa: E402
from storefront.database import Base, SessionLocal, engine  # noqa: E402
from storefront.main import app  # noqa: E402

USER_ID = "11111111-1111-1111-1111-111111111111"
USER_EMAIL = "patient@example.com"
ADMIN_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_EMAIL = "admin@lilyswomenshealth.com"


class FakeRedis:
    """Just enough of the redis-py client for the cache and rate limiter"""

    def __init__(self):
        self.store = {}

    def ping(self):
        return True

    def get(self, key):
        return self.store.get(key)

    def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    def scan_iter(self, match="*"):
        return [key for key in list(self.store) if fnmatch.fnmatch(key, match)]

    def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
        return removed


def make_token(user_id: str, email: str, expires_in: int = 3600) -> str:
    now = int(time.time())
    claims = {
        "sub": user_id,
        "email": email,
        "aud": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    return jwt.encode(claims, os.environ["SUPABASE_JWT_SECRET"], algorithm="HS256")


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    redis = FakeRedis()
    monkeypatch.setattr(rate_limiter, "redis_client", redis)
    monkeypatch.setattr(cache, "redis_client", redis)
    return redis


@pytest.fixture(autouse=True)
def database():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token(USER_ID, USER_EMAIL)}"}


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {make_token(ADMIN_ID, ADMIN_EMAIL)}"}


@pytest.fixture
def sanity(monkeypatch):
    """Replace CMS calls with in-memory documents; records every patch and create"""
    from storefront.services.sanity_service import sanity_service

    class FakeSanity:
        def __init__(self):
            self.products = {}
            self.coupons = {}
            self.subscriptions = {}
            self.appointments = {}
            self.patches = []
            self.created = []
            self.increments = []
            self.fail_patches = False
            self.fail_creates = False

        async def get_products_by_category(self, category_slug):
            return self.products.get(category_slug, [])

        async def get_coupon_by_code(self, code):
            return self.coupons.get(code)

        async def get_subscription(self, subscription_id):
            return self.subscriptions.get(subscription_id)

        async def get_appointment(self, appointment_id):
            return self.appointments.get(appointment_id)

        async def get_active_subscriptions(self):
            return list(self.subscriptions.values())

        async def patch(self, document_id, set_fields, set_if_missing=None):
            if self.fail_patches:
                raise RuntimeError("CMS unavailable")
            self.patches.append((document_id, set_fields, set_if_missing))
            return {"results": [{"id": document_id}]}

        async def create(self, document):
            if self.fail_creates:
                raise RuntimeError("CMS unavailable")
            self.created.append(document)
            return {"_id": f"doc-{len(self.created)}", "_createdAt": "2026-01-01T00:00:00Z", **document}

        async def increment(self, document_id, field, amount=1):
            self.increments.append((document_id, field, amount))
            return {"results": [{"id": document_id}]}

    fake = FakeSanity()
    for name in (
        "get_products_by_category",
        "get_coupon_by_code",
        "get_subscription",
        "get_appointment",
        "get_active_subscriptions",
        "patch",
        "create",
        "increment",
    ):
        monkeypatch.setattr(sanity_service, name, getattr(fake, name))
    return fake


@pytest.fixture
def stripe(monkeypatch):
    """Replace the Stripe SDK wrapper with canned objects"""
    from storefront.services.stripe_service import stripe_service

    class FakeStripe:
        def __init__(self):
            self.prices = {}
            self.subscriptions = {}
            self.sessions = {}
            self.customers = {}
            self.created_products = []
            self.created_prices = []
            self.created_sessions = []
            self.subscription_updates = []
            self.cancelled = []
            self.archived = []

        async def retrieve_price(self, price_id):
            return self.prices.get(price_id)

        async def retrieve_subscription(self, subscription_id):
            return self.subscriptions.get(subscription_id, {"id": subscription_id})

        async def update_subscription(self, subscription_id, **params):
            self.subscription_updates.append((subscription_id, params))
            return {**self.subscriptions.get(subscription_id, {"id": subscription_id}), **params}

        async def cancel_subscription(self, subscription_id):
            self.cancelled.append(subscription_id)
            return {"id": subscription_id, "status": "canceled"}

        async def create_product(self, name, description=None, metadata=None):
            product = {"id": f"prod_new{len(self.created_products) + 1:04d}", "name": name, "metadata": metadata}
            self.created_products.append(product)
            return product

        async def archive_price(self, price_id):
            self.archived.append(price_id)
            return {"id": price_id, "active": False}

        async def create_price(self, product_id, unit_amount, interval, interval_count=1, metadata=None, currency="usd"):
            price = {
                "id": f"price_new{len(self.created_prices) + 1:04d}",
                "product": product_id,
                "unit_amount": unit_amount,
                "currency": currency,
                "recurring": {"interval": interval, "interval_count": interval_count},
                "metadata": metadata,
            }
            self.created_prices.append(price)
            return price

        async def get_or_create_customer(self, email, name=None, metadata=None):
            if email not in self.customers:
                self.customers[email] = {"id": f"cus_test{len(self.customers) + 1:04d}", "email": email}
            return self.customers[email]

        async def create_checkout_session(self, **params):
            session = {
                "id": f"cs_test_{len(self.created_sessions) + 1}",
                "url": f"https://checkout.stripe.com/c/pay/cs_test_{len(self.created_sessions) + 1}",
            }
            self.created_sessions.append(params)
            return session

        async def retrieve_checkout_session(self, session_id):
            if session_id not in self.sessions:
                raise stripe_sdk.InvalidRequestError(
                    f"No such checkout.session: '{session_id}'", "id", code="resource_missing"
                )
            return self.sessions[session_id]

    fake = FakeStripe()
    for name in (
        "retrieve_price",
        "retrieve_subscription",
        "update_subscription",
        "cancel_subscription",
        "create_product",
        "archive_price",
        "create_price",
        "get_or_create_customer",
        "create_checkout_session",
        "retrieve_checkout_session",
    ):
        monkeypatch.setattr(stripe_service, name, getattr(fake, name))
    return fake
