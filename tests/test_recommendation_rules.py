from storefront.domain.recommendations import catalogs, eligibility, scoring


def _product(product_id, title, description="", product_type="prescription", administration=None, **extra):
    product = {"_id": product_id, "title": title, "description": description, "productType": product_type}
    if administration:
        product["administrationType"] = administration
    product.update(extra)
    return product


# ============================================================================
# Eligibility
# ============================================================================


def test_weight_loss_rejects_minors():
    result = eligibility.check_weight_loss({"age-group": "under-18"})
    assert result.eligible is False
    assert "under 18" in result.reason


def test_weight_loss_rejects_large_goal_at_low_weight():
    result = eligibility.check_weight_loss(
        {"current-weight-range": "under-50kg", "weight-loss-goal": "lose-20kg-plus"}
    )
    assert result.eligible is False
    assert "under 50kg" in result.reason


def test_weight_loss_allows_small_goal_at_low_weight():
    result = eligibility.check_weight_loss(
        {"current-weight-range": "under-50kg", "weight-loss-goal": "lose-1-5kg"}
    )
    assert result.eligible is True


def test_weight_loss_rejects_diabetes():
    result = eligibility.check_weight_loss({"medical-conditions": ["asthma", "diabetes"]})
    assert result.eligible is False
    assert "diabetes" in result.reason


def test_mental_health_blocks_crisis_answers():
    assert eligibility.check_mental_health({"suicidal-thoughts": "yes"}).eligible is False
    assert eligibility.check_mental_health({"medical-history": ["bipolar"]}).eligible is False
    assert eligibility.check_mental_health({"medical-history": ["substance-use"]}).eligible is False


def test_mental_health_medication_mismatch_is_only_a_note():
    result = eligibility.check_mental_health(
        {"medication-openness": "not-open", "treatment-preferences": ["medication", "therapy"]}
    )
    assert result.eligible is True
    assert "potential mismatch" in result.reason


def test_mental_health_no_note_without_mismatch():
    result = eligibility.check_mental_health(
        {"medication-openness": "not-open", "treatment-preferences": ["therapy"]}
    )
    assert result == eligibility.EligibilityResult(True)


def test_emergency_birth_control_stays_eligible_with_note():
    result = eligibility.check_birth_control({"bc-type": "emergency"})
    assert result.eligible is True
    assert "emergency contraception" in result.reason


def test_consultation_blocks_cardiac_conditions():
    assert eligibility.check_consultation({"medical-conditions": ["heart-disease"]}).eligible is False
    assert eligibility.check_consultation({"medical-conditions": ["none"]}).eligible is True


# ============================================================================
# Helpers
# ============================================================================


def test_best_match_keeps_catalog_order_on_ties():
    first = scoring.ProductMatch({"_id": "a"}, score=0)
    second = scoring.ProductMatch({"_id": "b"}, score=0)
    winner = scoring.best_match([first, second])
    assert winner.product["_id"] == "a"
    assert winner.score == 1


def test_condense_description_keeps_first_sentence():
    long_text = "Works fast for most people. " + "Extra detail follows here and keeps going. " * 5
    assert scoring.condense_description(long_text) == "Works fast for most people."
    assert scoring.condense_description("Short one") == "Short one"
    assert scoring.condense_description(None) == ""


def test_condense_description_truncates_without_punctuation():
    text = "x" * 150
    assert scoring.condense_description(text) == "x" * 100 + "..."


# ============================================================================
# Matchers
# ============================================================================


def test_weight_loss_prefers_semaglutide_for_higher_weight():
    products = [
        _product("bup", "Bupropion"),
        _product("sema", "Semaglutide Injection"),
    ]
    match = scoring.match_weight_loss({"current-weight-range": "101-120kg"}, products)
    assert match.product["_id"] == "sema"
    assert match.score == 10
    assert "Semaglutide is recommended" in match.reason


def test_weight_loss_without_signal_returns_first_product():
    products = [_product("one", "Phentermine"), _product("two", "Orlistat")]
    match = scoring.match_weight_loss({}, products)
    assert match.product["_id"] == "one"
    assert "comprehensive support for your weight loss journey" in match.reason


def test_hair_loss_receding_hairline_picks_finasteride():
    match = scoring.match_hair_loss(
        {"hair-loss-pattern": "receding-hairline", "hair-loss-duration": "2-5-years"},
        catalogs.HAIR_LOSS_PRODUCTS,
    )
    assert match.product["_id"] == "product2"
    assert match.score == 15
    assert match.reason.startswith("Based on your assessment, Finasteride Tablets is recommended because:")


def test_hair_loss_patchy_loss_picks_ketoconazole():
    match = scoring.match_hair_loss({"hair-loss-pattern": "patchy-loss"}, catalogs.HAIR_LOSS_PRODUCTS)
    assert match.product["_id"] == "product3"


def test_skin_type_filter_falls_back_when_nothing_fits():
    products = [
        _product("a", "Oil Control Gel", suitableForSkinTypes=["oily"]),
        _product("b", "Rich Cream", suitableForSkinTypes=["combination"]),
    ]
    assert scoring.filter_skin_types({"skin-type": "dry"}, products) == products
    assert scoring.filter_skin_types({"skin-type": "oily"}, products) == [products[0]]


def test_skin_care_scores_skin_type_and_concerns():
    products = [
        _product("a", "Gentle Cleanser", suitableForSkinTypes=["all"]),
        _product("b", "Clear Skin Acne Serum", suitableForSkinTypes=["oily"], targetConcerns=["acne"]),
    ]
    match = scoring.match_skin_care({"skin-type": "oily", "skin-concerns": ["acne"]}, products)
    assert match.product["_id"] == "b"
    assert "specifically formulated for oily skin" in match.reason
    assert "acne breakouts" in match.reason


def test_mental_health_otc_only_when_prescriptions_declined():
    products = [
        _product("rx", "Sertraline (SSRI)"),
        _product("otc", "Calm Sleep Melatonin", product_type="OTC"),
    ]
    filtered = scoring.filter_mental_health({"prescription-preference": "no"}, products)
    assert [p["_id"] for p in filtered] == ["otc"]


def test_mental_health_severe_anxiety_prefers_ssri():
    products = [
        _product("otc", "Calm Sleep Melatonin", product_type="OTC"),
        _product("rx", "Sertraline (SSRI)"),
    ]
    match = scoring.match_mental_health({"anxiety-severity": "severe", "treatment-goals": ["long-term"]}, products)
    assert match.product["_id"] == "rx"
    assert match.score == 20


def test_birth_control_prefilter_only_applies_to_large_catalogs():
    small = [_product(f"p{i}", f"Pill {i}", administration="Oral") for i in range(3)]
    assert scoring.prefilter_birth_control({"daily-pill": "no"}, small) == small

    large = [_product(f"p{i}", f"Pill {i}", administration="Oral") for i in range(10)]
    large += [_product(f"r{i}", f"Ring {i}", administration="Vaginal ring") for i in range(2)]
    filtered = scoring.prefilter_birth_control({"daily-pill": "no"}, large)
    assert [p["_id"] for p in filtered] == ["r0", "r1"]


def test_birth_control_prefilter_caps_at_ten():
    products = [_product(f"p{i}", f"Pill {i}") for i in range(14)]
    assert len(scoring.prefilter_birth_control({}, products)) == scoring.BIRTH_CONTROL_PROMPT_LIMIT


def test_birth_control_matches_daily_pill_preference():
    products = [
        _product("patch", "Contraceptive Patch", administration="transdermal"),
        _product("pill", "Combined Pill", administration="oral"),
    ]
    match = scoring.match_birth_control({"daily-pill": "yes", "age": "25-34"}, products)
    assert match.product["_id"] == "pill"
    assert match.score == 7
    assert "Matches your preference for oral contraceptives" in match.reason


def test_consultation_filter_reverts_when_empty():
    products = [_product("oral", "Capsules", administration="oral")]
    assert scoring.filter_consultation({"open-to-oral": "no"}, products) == products


def test_consultation_static_catalog_for_hair_goal():
    products = catalogs.fallback_products_for_concern("hair-growth")
    match = scoring.match_consultation({"main-concern": "hair-growth", "specific-goal": "regrow-hair"}, products)
    assert match.product["_id"] == "product3"
    assert "specifically formulated for hair health" in match.reason
    assert "targets hair regrowth" in match.reason


def test_unknown_concern_uses_default_catalog():
    assert catalogs.category_for_concern("something-else") == catalogs.DEFAULT_CONCERN_CATEGORY
    products = catalogs.fallback_products_for_concern("something-else")
    assert products[0]["_id"] == "product13"
