from storefront.models import Order, UserAppointment, UserSubscription

from .conftest import USER_ID

SECRET_HEADERS = {"x-sanity-webhook-secret": "sanity-test-secret"}


def test_wrong_secret_is_rejected(client):
    response = client.post(
        "/api/sanity/webhook",
        json={"_id": "x", "_type": "order", "operation": "delete"},
        headers={"x-sanity-webhook-secret": "nope"},
    )
    assert response.status_code == 401
    assert response.json() == {"success": False, "error": "Unauthorized"}


def test_missing_secret_is_rejected(client):
    response = client.post("/api/sanity/webhook", json={})
    assert response.status_code == 401


def test_subscription_deletion_cascades_to_bundled_appointments(client, db_session):
    subscription = UserSubscription(user_id=USER_ID, sanity_id="userSub-1")
    bundled = UserAppointment(user_id=USER_ID, subscription_id="userSub-1", is_from_subscription=True)
    paid = UserAppointment(user_id=USER_ID, subscription_id="userSub-1", is_from_subscription=False)
    db_session.add_all([subscription, bundled, paid])
    db_session.commit()

    response = client.post(
        "/api/sanity/webhook",
        json={"_id": "userSub-1", "_type": "userSubscription", "operation": "delete"},
        headers=SECRET_HEADERS,
    )

    assert response.json() == {"success": True, "message": "Successfully marked userSubscription as deleted"}
    db_session.refresh(subscription)
    db_session.refresh(bundled)
    db_session.refresh(paid)
    assert subscription.is_deleted is True
    assert bundled.is_deleted is True
    assert paid.is_deleted is False


def test_order_deletion(client, db_session):
    order = Order(sanity_id="order-9", total=42.0)
    db_session.add(order)
    db_session.commit()

    client.post(
        "/api/sanity/webhook",
        json={"_id": "order-9", "_type": "order", "operation": "delete"},
        headers=SECRET_HEADERS,
    )

    db_session.refresh(order)
    assert order.is_deleted is True


def test_deletion_of_unmirrored_type(client):
    response = client.post(
        "/api/sanity/webhook",
        json={"_id": "prod-1", "_type": "product", "operation": "delete"},
        headers=SECRET_HEADERS,
    )
    assert response.json() == {"success": False, "message": "No action taken for document type product"}


def test_update_evicts_cached_product_lists(client, fake_redis):
    fake_redis.store["cms:products:weight-loss"] = "[]"
    fake_redis.store["cms:products:hair-loss"] = "[]"
    fake_redis.store["stripe_event:evt_1"] = "true"

    response = client.post(
        "/api/sanity/webhook",
        json={"_id": "prod-1", "_type": "product", "operation": "update"},
        headers=SECRET_HEADERS,
    )

    assert response.json() == {"success": True, "message": "Webhook received but no action taken"}
    assert list(fake_redis.store) == ["stripe_event:evt_1"]
