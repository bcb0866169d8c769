import pytest

from storefront import config, email_service
from storefront.domain.contact.service import SUCCESS_MESSAGE

FORM = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "subject": "Question about my order",
    "message": "When will my order ship? Thanks!",
}


@pytest.fixture
def outbox(monkeypatch):
    """Record outgoing contact emails instead of calling Resend"""
    sent = {"notifications": [], "replies": []}

    def send_notification(name, email, subject, message):
        sent["notifications"].append((name, email, subject, message))
        return {"id": "email_123"}

    def send_auto_reply(name, email):
        sent["replies"].append((name, email))
        return {"id": "email_456"}

    monkeypatch.setattr(email_service, "send_contact_notification", send_notification)
    monkeypatch.setattr(email_service, "send_contact_auto_reply", send_auto_reply)
    return sent


def test_valid_submission(client, outbox):
    response = client.post("/api/contact", json=FORM)

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": SUCCESS_MESSAGE, "messageId": "email_123"}
    assert outbox["notifications"] == [
        ("Jane Doe", "jane@example.com", "Question about my order", "When will my order ship? Thanks!")
    ]
    assert outbox["replies"] == [("Jane Doe", "jane@example.com")]


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "not-an-email"},
        {"message": "too short"},
        {"name": ""},
        {"subject": "x" * 201},
    ],
)
def test_invalid_form(client, outbox, overrides):
    response = client.post("/api/contact", json={**FORM, **overrides})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid form data"
    assert body["details"]
    assert outbox["notifications"] == []


def test_honeypot_is_silently_accepted(client, outbox):
    response = client.post("/api/contact", json={**FORM, "honeypot": "https://spam.example"})

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert outbox["notifications"] == []


def test_auto_reply_failure_still_succeeds(client, outbox, monkeypatch):
    def broken_reply(name, email):
        raise RuntimeError("mailbox full")

    monkeypatch.setattr(email_service, "send_contact_auto_reply", broken_reply)

    response = client.post("/api/contact", json=FORM)

    assert response.status_code == 200
    assert response.json()["messageId"] == "email_123"


def test_notification_failure(client, outbox, monkeypatch):
    def broken_notification(name, email, subject, message):
        raise RuntimeError("resend down")

    monkeypatch.setattr(email_service, "send_contact_notification", broken_notification)

    response = client.post("/api/contact", json=FORM)

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "Failed to send message. Please try again."}


def test_email_not_configured(client, outbox, monkeypatch):
    monkeypatch.setattr(config, "RESEND_API_KEY", "")

    response = client.post("/api/contact", json=FORM)

    assert response.status_code == 500
    assert response.json()["error"] == "Email service not configured"
