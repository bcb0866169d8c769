import pytest
import stripe as stripe_sdk

from storefront.models import UserSubscription
from storefront.services.stripe_service import stripe_service

from .conftest import ADMIN_EMAIL, ADMIN_ID, USER_EMAIL, USER_ID
from .test_subscriptions import _post_event

PLAN = {
    "_id": "plan-wl",
    "title": "Weight Loss Program",
    "price": 199,
    "billingPeriod": "monthly",
    "stripePriceId": "price_base0001",
    "stripeProductId": "prod_existing1",
    "allowCoupons": True,
    "appointmentAccess": True,
    "appointmentDiscountPercentage": 10,
    "hasVariants": True,
    "variants": [
        {
            "_key": "v3",
            "title": "3 Months",
            "price": 450,
            "billingPeriod": "three_month",
            "stripePriceId": "price_var00003",
        }
    ],
}

COUPON = {
    "_id": "coupon-welcome",
    "code": "WELCOME20",
    "isActive": True,
    "discountType": "percentage",
    "discountValue": 20,
    "applicationType": "all",
}


def _subscription(db, **fields):
    values = {"user_id": USER_ID, "user_email": USER_EMAIL, "status": "active", "is_active": True}
    values.update(fields)
    subscription = UserSubscription(**values)
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


def _create(client, headers, **payload):
    return client.post("/api/stripe/subscriptions", json=payload, headers=headers)


# ============================================================================
# Purchase
# ============================================================================


def test_create_checkout_for_variant(client, auth_headers, db_session, sanity, stripe):
    sanity.subscriptions["plan-wl"] = PLAN

    response = _create(client, auth_headers, subscriptionId="plan-wl", variantKey="v3")

    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "cs_test_1"
    assert body["url"].startswith("https://checkout.stripe.com/")
    assert body["metadata"]["price"] == 450
    assert body["metadata"]["monthlyEquivalent"] == 150
    assert body["metadata"]["couponApplied"] is False

    session = stripe.created_sessions[0]
    assert session["mode"] == "subscription"
    assert session["customer"] == "cus_test0001"
    assert session["line_items"] == [{"price": "price_var00003", "quantity": 1}]
    assert session["client_reference_id"] == USER_ID
    assert session["metadata"]["variantKey"] == "v3"
    assert "session_id={CHECKOUT_SESSION_ID}" in session["success_url"]
    assert stripe.created_prices == []

    row = db_session.query(UserSubscription).one()
    assert row.status == "pending"
    assert row.is_active is False
    assert row.stripe_session_id == "cs_test_1"
    assert row.sanity_id == "doc-1"
    assert row.billing_amount == 450
    assert row.has_appointment_access is True
    assert sanity.created[0]["_type"] == "userSubscription"
    assert sanity.increments == []


def test_create_checkout_with_coupon_uses_discounted_price(client, auth_headers, db_session, sanity, stripe):
    sanity.subscriptions["plan-wl"] = PLAN
    sanity.coupons["WELCOME20"] = COUPON

    body = _create(client, auth_headers, subscriptionId="plan-wl", couponCode="welcome20").json()

    metadata = body["metadata"]
    assert metadata["couponApplied"] is True
    assert metadata["originalPrice"] == 199
    assert metadata["discountedPrice"] == 159.2
    assert metadata["discountAmount"] == 39.8
    assert metadata["savingsPercentage"] == 20

    temp_price = stripe.created_prices[0]
    assert temp_price["unit_amount"] == 15920
    assert temp_price["metadata"]["tempPrice"] == "true"
    assert stripe.created_sessions[0]["line_items"][0]["price"] == temp_price["id"]
    assert sanity.increments == [("coupon-welcome", "usageCount", 1)]

    row = db_session.query(UserSubscription).one()
    assert row.coupon_code == "WELCOME20"
    assert row.original_price == 199
    assert row.billing_amount == 159.2


def test_purchase_then_webhook_opens_access_window(client, auth_headers, db_session, sanity, stripe):
    sanity.subscriptions["plan-wl"] = PLAN
    session_id = _create(client, auth_headers, subscriptionId="plan-wl").json()["sessionId"]

    denied = client.post("/api/appointment-access", headers=auth_headers)
    assert denied.status_code == 403

    stripe.subscriptions["sub_new"] = {"id": "sub_new", "current_period_end": 1900000000}
    _post_event(
        client,
        {
            "id": "evt_purchase_1",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": session_id,
                    "mode": "subscription",
                    "subscription": "sub_new",
                    "customer": "cus_test0001",
                    "metadata": stripe.created_sessions[0]["metadata"],
                }
            },
        },
    )

    row = db_session.query(UserSubscription).one()
    db_session.refresh(row)
    assert row.status == "active"
    assert row.stripe_subscription_id == "sub_new"

    granted = client.post("/api/appointment-access", headers=auth_headers)
    assert granted.status_code == 200
    assert granted.json()["isFirstTime"] is True


def test_coupon_ignored_when_plan_disallows_coupons(client, auth_headers, sanity, stripe):
    sanity.subscriptions["plan-wl"] = {**PLAN, "allowCoupons": False}
    sanity.coupons["WELCOME20"] = COUPON

    body = _create(client, auth_headers, subscriptionId="plan-wl", couponCode="WELCOME20").json()

    assert body["metadata"]["couponApplied"] is False
    assert stripe.created_sessions[0]["line_items"][0]["price"] == "price_base0001"


def test_invalid_coupon_fails_the_checkout(client, auth_headers, db_session, sanity, stripe):
    sanity.subscriptions["plan-wl"] = PLAN

    response = _create(client, auth_headers, subscriptionId="plan-wl", couponCode="NOPE")

    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Invalid coupon code"}
    assert stripe.created_sessions == []
    assert db_session.query(UserSubscription).count() == 0


def test_create_checkout_creates_missing_price(client, auth_headers, sanity, stripe):
    sanity.subscriptions["plan-wl"] = {**PLAN, "stripePriceId": None, "stripeProductId": None}

    _create(client, auth_headers, subscriptionId="plan-wl")

    assert stripe.created_products[0]["metadata"] == {"sanityId": "plan-wl"}
    assert stripe.created_prices[0]["unit_amount"] == 19900
    assert ("plan-wl", {"stripePriceId": "price_new0001"}, None) in sanity.patches


def test_cms_failure_still_creates_pending_row(client, auth_headers, db_session, sanity, stripe):
    sanity.subscriptions["plan-wl"] = PLAN
    sanity.fail_creates = True

    response = _create(client, auth_headers, subscriptionId="plan-wl")

    assert response.status_code == 200
    assert db_session.query(UserSubscription).one().sanity_id is None


@pytest.mark.parametrize(
    "payload, status_code, message",
    [
        ({}, 400, "Valid subscription ID is required"),
        ({"subscriptionId": "plan-missing"}, 404, "Subscription plan not found"),
        ({"subscriptionId": "plan-wl", "variantKey": "v12"}, 404, "Selected variant not found"),
    ],
)
def test_create_checkout_errors(client, auth_headers, sanity, stripe, payload, status_code, message):
    sanity.subscriptions["plan-wl"] = PLAN

    response = _create(client, auth_headers, **payload)

    assert response.status_code == status_code
    assert response.json() == {"success": False, "error": message}


def test_create_checkout_rejects_bad_cms_price(client, auth_headers, sanity, stripe):
    sanity.subscriptions["plan-wl"] = {**PLAN, "price": "free"}

    response = _create(client, auth_headers, subscriptionId="plan-wl")
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid price value in CMS"


def test_create_checkout_requires_login(client, sanity, stripe):
    response = client.post("/api/stripe/subscriptions", json={"subscriptionId": "plan-wl"})
    assert response.status_code in (401, 403)


def test_stripe_outage_is_reported(client, auth_headers, sanity, stripe, monkeypatch):
    sanity.subscriptions["plan-wl"] = PLAN

    async def unavailable(**params):
        raise stripe_sdk.APIConnectionError("Network error")

    monkeypatch.setattr(stripe_service, "create_checkout_session", unavailable)

    response = _create(client, auth_headers, subscriptionId="plan-wl")
    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to create subscription checkout"}


# ============================================================================
# Cancel and reactivate
# ============================================================================


def test_cancel_keeps_access_until_period_end(client, auth_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, stripe_subscription_id="sub_123", sanity_id="userSub-1")
    stripe.subscriptions["sub_123"] = {"id": "sub_123", "current_period_end": 1900000000}

    response = client.post(
        "/api/stripe/subscriptions/cancel", json={"subscriptionId": subscription.id}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json()["message"].startswith("Subscription cancelled successfully. You'll maintain access")
    assert stripe.subscription_updates == [("sub_123", {"cancel_at_period_end": True})]

    db_session.refresh(subscription)
    assert subscription.status == "cancelling"
    assert subscription.is_active is True
    assert subscription.end_date.year == 2030
    assert subscription.cancellation_date is not None
    assert sanity.patches[0][1]["status"] == "cancelling"


def test_cancel_without_stripe_subscription(client, auth_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session)

    body = client.post(
        "/api/stripe/subscriptions/cancel", json={"subscriptionId": subscription.id}, headers=auth_headers
    ).json()

    assert body["message"] == "Subscription cancelled successfully (no Stripe subscription found)"
    assert stripe.subscription_updates == []
    db_session.refresh(subscription)
    assert subscription.status == "cancelled"
    assert subscription.is_active is False


def test_cancel_tolerates_subscription_missing_on_stripe(
    client, auth_headers, db_session, sanity, stripe, monkeypatch
):
    subscription = _subscription(db_session, stripe_subscription_id="sub_gone")

    async def missing(subscription_id, **params):
        raise stripe_sdk.InvalidRequestError("No such subscription", "id", code="resource_missing")

    monkeypatch.setattr(stripe_service, "update_subscription", missing)

    response = client.post(
        "/api/stripe/subscriptions/cancel", json={"subscriptionId": "sub_gone"}, headers=auth_headers
    )

    assert response.status_code == 200
    db_session.refresh(subscription)
    assert subscription.status == "cancelling"


def test_cancel_someone_elses_subscription(client, auth_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, user_id="other-user", stripe_subscription_id="sub_999")

    response = client.post(
        "/api/stripe/subscriptions/cancel", json={"subscriptionId": subscription.id}, headers=auth_headers
    )

    assert response.status_code == 403
    assert response.json()["error"] == "Unauthorized to modify this subscription"
    assert stripe.subscription_updates == []


def test_admin_may_cancel_any_subscription(client, admin_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, user_id="other-user")

    response = client.post(
        "/api/stripe/subscriptions/cancel", json={"subscriptionId": subscription.id}, headers=admin_headers
    )
    assert response.status_code == 200


def test_cancel_unknown_subscription(client, auth_headers, sanity, stripe):
    response = client.post("/api/stripe/subscriptions/cancel", json={"subscriptionId": "nope"}, headers=auth_headers)
    assert response.status_code == 404

    response = client.post("/api/stripe/subscriptions/cancel", json={}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["error"] == "Subscription ID is required"


def test_reactivate_cancelling_subscription(client, auth_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, status="cancelling", stripe_subscription_id="sub_123")

    response = client.post(
        "/api/stripe/subscriptions/reactivate", json={"subscriptionId": "sub_123"}, headers=auth_headers
    )

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "message": "Subscription reactivated successfully",
        "data": {"id": subscription.id, "status": "active"},
    }
    assert stripe.subscription_updates == [("sub_123", {"cancel_at_period_end": False})]
    db_session.refresh(subscription)
    assert subscription.status == "active"
    assert subscription.cancellation_date is None


def test_reactivate_requires_cancelling_status(client, auth_headers, db_session, sanity, stripe):
    _subscription(db_session, status="active", stripe_subscription_id="sub_123")

    response = client.post(
        "/api/stripe/subscriptions/reactivate", json={"subscriptionId": "sub_123"}, headers=auth_headers
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Only subscriptions in 'cancelling' status can be reactivated"


# ============================================================================
# Status sync
# ============================================================================


def test_status_sync_activates_pending_rows(client, auth_headers, db_session, sanity, stripe):
    pending = _subscription(db_session, status="pending", is_active=False, stripe_session_id="cs_1")
    _subscription(db_session, status="pending", is_active=False, stripe_session_id="cs_2")

    body = client.post(
        "/api/stripe/subscriptions/status",
        json={"userId": USER_ID, "sessionId": "cs_1"},
        headers=auth_headers,
    ).json()

    assert body == {
        "success": True,
        "results": [{"id": pending.id, "status": "active", "message": "Status updated to active"}],
    }
    db_session.refresh(pending)
    assert pending.is_active is True


def test_status_sync_reports_already_active(client, auth_headers, db_session, sanity, stripe):
    active = _subscription(db_session)

    body = client.post("/api/stripe/subscriptions/status", json={"userId": USER_ID}, headers=auth_headers).json()

    assert body["results"] == [{"id": active.id, "status": "active", "message": "Already active"}]


@pytest.mark.parametrize(
    "payload, status_code, message",
    [
        ({}, 400, "User ID is required"),
        ({"userId": "other-user"}, 403, "Unauthorized to modify this subscription"),
        ({"userId": USER_ID}, 404, "No matching subscriptions found"),
    ],
)
def test_status_sync_errors(client, auth_headers, sanity, stripe, payload, status_code, message):
    response = client.post("/api/stripe/subscriptions/status", json=payload, headers=auth_headers)
    assert response.status_code == status_code
    assert response.json() == {"success": False, "error": message}


# ============================================================================
# Admin cancel
# ============================================================================


def test_admin_cancel_immediately(client, admin_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, user_id=ADMIN_ID, user_email=ADMIN_EMAIL, stripe_subscription_id="sub_9")

    body = client.post(
        "/api/admin/subscriptions/cancel",
        json={"subscriptionId": subscription.id, "cancelImmediately": True},
        headers=admin_headers,
    ).json()

    assert body["message"] == "Subscription cancelled immediately"
    assert body["data"]["status"] == "cancelled"
    assert body["data"]["isActive"] is False
    assert stripe.cancelled == ["sub_9"]


def test_admin_cancel_at_period_end(client, admin_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session, stripe_subscription_id="sub_9")
    stripe.subscriptions["sub_9"] = {"id": "sub_9", "items": {"data": [{"current_period_end": 1900000000}]}}

    body = client.post(
        "/api/admin/subscriptions/cancel", json={"subscriptionId": "sub_9"}, headers=admin_headers
    ).json()

    assert body["message"] == "Subscription will cancel at period end"
    assert body["data"]["status"] == "cancelling"
    assert body["data"]["endDate"].startswith("2030-")
    assert stripe.cancelled == []
    db_session.refresh(subscription)
    assert subscription.status == "cancelling"


def test_admin_cancel_needs_stripe_subscription(client, admin_headers, db_session, sanity, stripe):
    subscription = _subscription(db_session)

    response = client.post(
        "/api/admin/subscriptions/cancel", json={"subscriptionId": subscription.id}, headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["error"] == "No Stripe subscription found"


def test_admin_cancel_rejects_regular_users(client, auth_headers):
    response = client.post("/api/admin/subscriptions/cancel", json={"subscriptionId": "x"}, headers=auth_headers)
    assert response.status_code == 403
