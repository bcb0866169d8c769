import hashlib
import hmac
import json
import time

import pytest

from storefront.domain.subscriptions.utils import from_unix, map_stripe_status
from storefront.models import Order, UserAppointment, UserSubscription

from .conftest import USER_EMAIL, USER_ID

WEBHOOK_SECRET = "whsec_test_secret"


def _signed(event: dict, secret: str = WEBHOOK_SECRET, timestamp: int = None):
    payload = json.dumps(event).encode()
    timestamp = timestamp or int(time.time())
    signature = hmac.new(secret.encode(), f"{timestamp}.".encode() + payload, hashlib.sha256).hexdigest()
    return payload, f"t={timestamp},v1={signature}"


def _post_event(client, event: dict, **kwargs):
    payload, header = _signed(event, **kwargs)
    return client.post(
        "/api/stripe/webhook",
        content=payload,
        headers={"stripe-signature": header, "Content-Type": "application/json"},
    )


def _subscription(db, **fields):
    values = {"user_id": USER_ID, "user_email": USER_EMAIL, "status": "pending", "is_active": False}
    values.update(fields)
    subscription = UserSubscription(**values)
    db.add(subscription)
    db.commit()
    db.refresh(subscription)
    return subscription


# ============================================================================
# Helpers and signature checks
# ============================================================================


def test_map_stripe_status():
    assert map_stripe_status("canceled") == ("cancelled", False)
    assert map_stripe_status("past_due") == ("past_due", True)
    assert map_stripe_status("something-new") == ("something-new", False)


def test_from_unix_is_naive_utc():
    converted = from_unix(0)
    assert converted is None
    converted = from_unix(1700000000)
    assert converted.tzinfo is None
    assert converted.year == 2023


def test_tampered_payload_is_rejected(client):
    payload, header = _signed({"id": "evt_1", "type": "customer.created"})
    response = client.post(
        "/api/stripe/webhook", content=payload + b" ", headers={"stripe-signature": header}
    )
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_stale_signature_is_rejected(client):
    payload, header = _signed({"id": "evt_1", "type": "customer.created"}, timestamp=int(time.time()) - 3600)
    response = client.post("/api/stripe/webhook", content=payload, headers={"stripe-signature": header})
    assert response.status_code == 400
    assert "tolerance" in response.json()["error"]


def test_signature_from_other_secret_is_rejected(client):
    payload, header = _signed({"id": "evt_1", "type": "customer.created"}, secret="whsec_other")
    response = client.post("/api/stripe/webhook", content=payload, headers={"stripe-signature": header})
    assert response.status_code == 400


def test_webhook_requires_signature_header(client):
    response = client.post("/api/stripe/webhook", content=b"{}")
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "No Stripe signature found"}


def test_webhook_rejects_bad_signature(client):
    payload, _ = _signed({"id": "evt_1"})
    response = client.post("/api/stripe/webhook", content=payload, headers={"stripe-signature": "t=1,v1=bad"})
    assert response.status_code == 400


# ============================================================================
# Events
# ============================================================================


def test_checkout_activates_subscription(client, db_session, sanity, stripe):
    subscription = _subscription(db_session, stripe_session_id="cs_test_1", sanity_id="userSub-1")
    stripe.subscriptions["sub_123"] = {"id": "sub_123", "current_period_end": 1900000000}

    response = _post_event(
        client,
        {
            "id": "evt_checkout_1",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_test_1",
                    "mode": "subscription",
                    "subscription": "sub_123",
                    "customer": "cus_1",
                    "metadata": {"subscriptionId": "plan-wl", "userId": USER_ID},
                }
            },
        },
    )

    assert response.status_code == 200
    db_session.refresh(subscription)
    assert subscription.status == "active"
    assert subscription.is_active is True
    assert subscription.stripe_subscription_id == "sub_123"
    assert subscription.end_date == from_unix(1900000000)
    assert sanity.patches[0][0] == "userSub-1"
    assert sanity.patches[0][1]["stripeSubscriptionId"] == "sub_123"


def test_duplicate_events_are_skipped(client, db_session, sanity, stripe):
    _subscription(db_session, stripe_subscription_id="sub_9", status="active", is_active=True)
    event = {
        "id": "evt_dup",
        "type": "invoice.payment_failed",
        "data": {"object": {"subscription": "sub_9"}},
    }

    first = _post_event(client, event)
    second = _post_event(client, event)

    assert first.json()["success"] is True
    assert second.json() == {"received": True, "duplicate": True}


def test_checkout_for_one_time_appointment(client, db_session, sanity, stripe):
    subscription = _subscription(db_session, status="active", is_active=True, appointments_used=1)
    appointment = UserAppointment(user_id=USER_ID, stripe_session_id="cs_appt")
    db_session.add(appointment)
    db_session.commit()

    response = _post_event(
        client,
        {
            "id": "evt_appt",
            "type": "checkout.session.completed",
            "data": {
                "object": {
                    "id": "cs_appt",
                    "mode": "payment",
                    "payment_intent": "pi_1",
                    "metadata": {
                        "appointmentType": "oneTime",
                        "appointmentId": "appt-sanity",
                        "fromSubscription": "true",
                        "userSubscriptionId": subscription.id,
                    },
                }
            },
        },
    )

    assert response.status_code == 200
    db_session.refresh(appointment)
    db_session.refresh(subscription)
    assert appointment.status == "scheduled"
    assert appointment.payment_status == "paid"
    assert appointment.qualiphy_exam_status == "N/A"
    assert appointment.stripe_payment_intent_id == "pi_1"
    assert subscription.appointments_used == 2


def test_checkout_for_missing_appointment_fails(client, sanity, stripe):
    response = _post_event(
        client,
        {
            "id": "evt_missing",
            "type": "checkout.session.completed",
            "data": {"object": {"id": "cs_none", "metadata": {"appointmentType": "oneTime", "appointmentId": "x"}}},
        },
    )
    assert response.status_code == 500
    assert "No appointment found" in response.json()["error"]


def test_invoice_without_subscription_id(client, sanity, stripe):
    response = _post_event(
        client, {"id": "evt_inv", "type": "invoice.payment_succeeded", "data": {"object": {}}}
    )
    assert response.status_code == 400
    assert response.json()["error"] == "No subscription ID in invoice"


def test_invoice_renewal_uses_parent_subscription_details(client, db_session, sanity, stripe):
    subscription = _subscription(db_session, stripe_subscription_id="sub_new_api", status="past_due")
    stripe.subscriptions["sub_new_api"] = {
        "id": "sub_new_api",
        "items": {"data": [{"current_period_end": 1950000000}]},
    }

    response = _post_event(
        client,
        {
            "id": "evt_renew",
            "type": "invoice.payment_succeeded",
            "data": {"object": {"parent": {"subscription_details": {"subscription": "sub_new_api"}}}},
        },
    )

    assert response.status_code == 200
    db_session.refresh(subscription)
    assert subscription.status == "active"
    assert subscription.next_billing_date == from_unix(1950000000)


def test_subscription_updated_for_unknown_subscription(client, sanity, stripe):
    response = _post_event(
        client,
        {"id": "evt_upd", "type": "customer.subscription.updated", "data": {"object": {"id": "sub_x", "status": "active"}}},
    )
    assert response.status_code == 404


def test_subscription_deleted_cancels(client, db_session, sanity, stripe):
    subscription = _subscription(db_session, stripe_subscription_id="sub_del", status="active", is_active=True)

    _post_event(
        client,
        {"id": "evt_del", "type": "customer.subscription.deleted", "data": {"object": {"id": "sub_del"}}},
    )

    db_session.refresh(subscription)
    assert subscription.status == "cancelled"
    assert subscription.is_active is False
    assert subscription.end_date is not None


def test_cms_mirror_failure_does_not_fail_webhook(client, db_session, sanity, stripe):
    sanity.fail_patches = True
    subscription = _subscription(
        db_session, stripe_subscription_id="sub_m", status="active", is_active=True, sanity_id="userSub-m"
    )

    response = _post_event(
        client,
        {"id": "evt_m", "type": "customer.subscription.updated", "data": {"object": {"id": "sub_m", "status": "paused"}}},
    )

    assert response.status_code == 200
    db_session.refresh(subscription)
    assert subscription.status == "paused"
    assert subscription.is_active is False


def test_payment_intent_failure_marks_order(client, db_session, sanity, stripe):
    order = Order(customer_email=USER_EMAIL, total=59.0)
    db_session.add(order)
    db_session.commit()

    _post_event(
        client,
        {
            "id": "evt_pi",
            "type": "payment_intent.payment_failed",
            "data": {"object": {"id": "pi_fail", "metadata": {"orderId": order.id}}},
        },
    )

    db_session.refresh(order)
    assert order.payment_status == "failed"
    assert order.stripe_payment_intent_id == "pi_fail"


def test_unhandled_event_is_acknowledged(client, sanity, stripe):
    response = _post_event(client, {"id": "evt_other", "type": "customer.created", "data": {"object": {}}})
    assert response.json() == {"received": True}


# ============================================================================
# User and admin endpoints
# ============================================================================


def test_user_subscriptions_lists_own_rows(client, auth_headers, db_session):
    _subscription(db_session, plan_name="Hair Regrowth")
    _subscription(db_session, plan_name="Deleted Plan", is_deleted=True)
    _subscription(db_session, user_id="someone-else", plan_name="Not Mine")

    body = client.get("/api/user-subscriptions", headers=auth_headers).json()

    assert body["success"] is True
    assert [s["plan_name"] for s in body["subscriptions"]] == ["Hair Regrowth"]


def test_admin_update_status(client, admin_headers, db_session, sanity):
    subscription = _subscription(db_session, status="active", is_active=True, sanity_id="userSub-a")

    response = client.post(
        "/api/admin/subscriptions/update-status",
        json={"subscriptionId": subscription.id, "status": "Paused"},
        headers=admin_headers,
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["status"] == "paused"
    assert data["isActive"] is False
    assert data["cmsUpdated"] is True
    assert sanity.patches == [("userSub-a", {"status": "paused", "isActive": False}, None)]


@pytest.mark.parametrize(
    "payload, status_code, message",
    [
        ({"status": "active"}, 400, "Subscription ID is required"),
        ({"subscriptionId": "abc"}, 400, "Status is required"),
        ({"subscriptionId": "abc", "status": "bogus"}, 400, "Invalid status value"),
        ({"subscriptionId": "abc", "status": "active"}, 404, "Subscription not found"),
    ],
)
def test_admin_update_status_errors(client, admin_headers, sanity, payload, status_code, message):
    response = client.post("/api/admin/subscriptions/update-status", json=payload, headers=admin_headers)
    assert response.status_code == status_code
    assert response.json() == {"success": False, "error": message}
