import pytest

from storefront.domain.recommendations import catalogs
from storefront.services.openai_service import openai_service


def test_weight_loss_without_catalog_is_not_eligible(client, sanity):
    response = client.post("/api/recommendations", json={"formResponses": {}})

    assert response.status_code == 200
    body = response.json()
    assert body["eligible"] is False
    assert body["explanation"] == "No weight loss products are currently available. Please check back later."


def test_weight_loss_ineligible_answers(client, sanity):
    sanity.products[catalogs.WEIGHT_LOSS_CATEGORY] = [{"_id": "sema", "title": "Semaglutide"}]

    response = client.post("/api/recommendations", json={"formResponses": {"age-group": "under-18"}})

    body = response.json()
    assert body["eligible"] is False
    assert body["recommendedProductId"] is None


def test_weight_loss_recommends_best_product(client, sanity):
    sanity.products[catalogs.WEIGHT_LOSS_CATEGORY] = [
        {"_id": "bup", "title": "Bupropion"},
        {"_id": "tirz", "title": "Tirzepatide"},
    ]

    response = client.post(
        "/api/recommendations", json={"formResponses": {"results-timeframe": "faster"}}
    )

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] == "tirz"
    assert body["product"]["title"] == "Tirzepatide"


def test_hair_loss_uses_static_catalog(client):
    response = client.post(
        "/api/hl-recommendations",
        json={"formResponses": {"hair-loss-pattern": "thinning-crown"}},
    )

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] == "product1"


def test_skin_care_empty_catalog(client, sanity):
    response = client.post("/api/aa-recommendations", json={"formResponses": {"skin-type": "dry"}})

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] is None
    assert "No skin care products" in body["explanation"]


def test_mental_health_appends_mismatch_note(client, sanity):
    sanity.products[catalogs.MENTAL_HEALTH_CATEGORY] = [
        {"_id": "otc", "title": "Calm Support", "productType": "OTC"},
    ]

    response = client.post(
        "/api/mh-recommendations",
        json={"formResponses": {"medication-openness": "not-open"}},
    )

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] == "otc"
    assert body["explanation"].endswith("potential mismatch in expectations.")
    assert "\n\n" in body["explanation"]


def test_emergency_birth_control_note_is_prefixed(client, sanity):
    sanity.products[catalogs.BIRTH_CONTROL_CATEGORY] = [
        {"_id": "bc1", "title": "Combined Pill", "administrationType": "oral"},
    ]

    response = client.post("/api/bc-recommendations", json={"formResponses": {"bc-type": "emergency"}})

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] == "bc1"
    assert body["explanation"].startswith("Based on your selection of emergency contraception")


@pytest.mark.parametrize(
    "answer, expected_id, expected_eligible",
    [
        ({"eligible": True, "productId": "bc2", "explanation": "Great fit."}, "bc2", True),
        ({"eligible": True, "recommendedProductId": "bc1", "explanation": "Also fine."}, "bc1", True),
        ({"eligible": False, "productId": None, "explanation": "Not suitable."}, None, False),
    ],
)
def test_birth_control_ai_answers(client, sanity, monkeypatch, answer, expected_id, expected_eligible):
    sanity.products[catalogs.BIRTH_CONTROL_CATEGORY] = [
        {"_id": "bc1", "title": "Combined Pill"},
        {"_id": "bc2", "title": "Hormonal Ring"},
    ]
    monkeypatch.setattr(openai_service, "is_available", lambda: True)
    monkeypatch.setattr(openai_service, "recommend_json", lambda *args, **kwargs: answer)

    response = client.post("/api/bc-recommendations", json={"formResponses": {}})

    body = response.json()
    assert body["eligible"] is expected_eligible
    assert body["recommendedProductId"] == expected_id
    assert body["explanation"] == answer["explanation"]


def test_birth_control_ai_unknown_product(client, sanity, monkeypatch):
    sanity.products[catalogs.BIRTH_CONTROL_CATEGORY] = [{"_id": "bc1", "title": "Combined Pill"}]
    monkeypatch.setattr(openai_service, "is_available", lambda: True)
    monkeypatch.setattr(
        openai_service,
        "recommend_json",
        lambda *args, **kwargs: {"eligible": True, "productId": "ghost", "explanation": "?"},
    )

    body = client.post("/api/bc-recommendations", json={"formResponses": {}}).json()

    assert body["eligible"] is True
    assert body["recommendedProductId"] is None
    assert body["explanation"] == "We couldn't match the recommended product. Please try again."


def test_consultation_falls_back_to_static_catalog(client, sanity):
    response = client.post(
        "/api/consult-recommendations",
        json={"formResponses": {"main-concern": "wellness"}},
    )

    body = response.json()
    assert body["eligible"] is True
    assert body["recommendedProductId"] == "product11"


def test_consultation_uses_ai_explanation(client, sanity, monkeypatch):
    sanity.products["mental-health"] = [{"_id": "calm", "title": "Calm Drops"}]
    monkeypatch.setattr(openai_service, "is_available", lambda: True)
    monkeypatch.setattr(openai_service, "enhance_explanation", lambda *args, **kwargs: "A tailored explanation.")

    body = client.post(
        "/api/consult-recommendations",
        json={"formResponses": {"main-concern": "anxiety-relief"}},
    ).json()

    assert body["recommendedProductId"] == "calm"
    assert body["explanation"] == "A tailored explanation."


def test_unexpected_failure_returns_error_payload(client, sanity, monkeypatch):
    from storefront.domain.recommendations import scoring

    def explode(*args, **kwargs):
        raise RuntimeError("scoring broke")

    monkeypatch.setattr(scoring, "match_hair_loss", explode)

    body = client.post("/api/hl-recommendations", json={"formResponses": {}}).json()

    assert body["eligible"] is False
    assert body["error"] == "scoring broke"
    assert body["explanation"].startswith("We encountered an error")
