"""
Rule-based product scoring for the assessment quizzes.

Every matcher follows the same shape: optionally narrow the catalog (falling
back to the full list when a filter empties it), give each product points for
keyword matches against its title/description, collect human readable
reasons, and return the highest scoring product. Matching is always
case-insensitive. Ties keep catalog order.
"""

import re
from dataclasses import dataclass, field

BIRTH_CONTROL_PROMPT_LIMIT = 10

SKIN_CONCERN_REASONS = {
    "acne": "This product helps treat and prevent acne breakouts",
    "wrinkles": "This product helps reduce the appearance of fine lines and wrinkles",
    "hyperpigmentation": "This product helps fade dark spots and even skin tone",
    "redness": "This product helps reduce redness and irritation",
    "dry-patches": "This product provides deep hydration for dry skin",
    "uneven-tone": "This product helps even out skin tone",
    "dark-circles": "This product helps reduce the appearance of dark circles",
}

BIRTH_CONTROL_AGE_GROUPS = {
    "under-18": 0,
    "18-24": 1,
    "25-34": 2,
    "35-44": 3,
    "45-54": 4,
    "55-plus": 5,
}


@dataclass
class ProductMatch:
    product: dict
    score: int = 0
    reasons: list = field(default_factory=list)
    reason: str = ""


# ============================================================================
# Helpers
# ============================================================================


def _text(product: dict, key: str) -> str:
    value = product.get(key)
    return value.lower() if isinstance(value, str) else ""


def _mentions(text: str, *keywords: str) -> bool:
    return any(keyword in text for keyword in keywords)


def _as_list(value) -> list:
    return value if isinstance(value, list) else []


def _is_otc(product: dict) -> bool:
    return _text(product, "productType") in ("otc", "over-the-counter")


def _keep_if_any(products: list[dict], predicate) -> list[dict]:
    """Apply a filter only when it leaves at least one product"""
    kept = [p for p in products if predicate(p)]
    return kept or products


def build_reason(product: dict, reasons: list[str], fallback: str) -> str:
    title = product.get("title") or "This product"
    if reasons:
        return f"Based on your assessment, {title} is recommended because: {'. '.join(reasons)}."
    return fallback.format(title=title)


def best_match(matches: list[ProductMatch]) -> ProductMatch:
    for match in matches:
        if match.score == 0:
            match.score = 1
    # max() returns the first of equal scores
    return max(matches, key=lambda m: m.score)


def condense_description(description) -> str:
    """Shorten a description to its first sentence for prompt summaries"""
    if not description:
        return ""
    if len(description) <= 100:
        return description
    sentences = re.findall(r"[^.!?]+[.!?]+", description)
    if sentences and sentences[0].strip():
        return sentences[0].strip()
    return description[:100] + "..."


# ============================================================================
# Weight loss
# ============================================================================


def match_weight_loss(responses: dict, products: list[dict]) -> ProductMatch:
    heavy = responses.get("current-weight-range") in ("81-100kg", "101-120kg", "over-120kg")
    hungry = responses.get("hunger-frequency") in ("almost-always", "frequently") or (
        responses.get("cravings") == "frequent-cravings"
    )

    matches = []
    for product in products:
        title = _text(product, "title")
        match = ProductMatch(product)
        reason = None

        if "bupropion" in title and responses.get("eating-habits") == "emotional-eating":
            match.score += 10
            reason = (
                "Based on your responses about emotional eating patterns, we recommend Bupropion which can "
                "help address the psychological aspects of weight management while supporting metabolism."
            )
        if "semaglutide" in title and heavy:
            match.score += 10
            reason = (
                "Given your current weight range and goals, Semaglutide is recommended as it's clinically "
                "shown to be effective for significant weight reduction and metabolic improvement."
            )
        if "topiramate" in title and hungry:
            match.score += 10
            reason = (
                "Based on your responses about frequent hunger and cravings, Topiramate is recommended as it "
                "helps reduce appetite and suppress cravings."
            )
        if "tirzepatide" in title and responses.get("results-timeframe") == "faster":
            match.score += 10
            reason = (
                "Given your preference for faster results, Tirzepatide is recommended as it offers "
                "dual-action benefits for more efficient weight management."
            )

        name = product.get("title") or "This product"
        if match.score == 0:
            reason = (
                f"{name} provides comprehensive support for your weight loss journey based on your goals "
                f"and current health status."
            )
        elif reason is None:
            reason = f"{name} appears to be a good match for your weight management needs based on your assessment responses."

        match.reason = reason
        matches.append(match)

    return best_match(matches)


# ============================================================================
# Hair loss
# ============================================================================


def match_hair_loss(responses: dict, products: list[dict]) -> ProductMatch:
    pattern = responses.get("hair-loss-pattern")
    duration = responses.get("hair-loss-duration")

    matches = []
    for product in products:
        title = _text(product, "title")
        match = ProductMatch(product)

        if pattern == "thinning-crown" and "minoxidil" in title:
            match.score += 10
            match.reasons.append("Minoxidil is particularly effective for treating thinning at the crown area")
        if pattern == "receding-hairline" and "finasteride" in title:
            match.score += 10
            match.reasons.append("Finasteride is effective for treating receding hairlines by blocking DHT")
        if pattern == "overall-thinning" and _mentions(title, "minoxidil", "finasteride"):
            match.score += 8
            match.reasons.append("This treatment is effective for overall thinning hair")
        if pattern == "patchy-loss" and "ketoconazole" in title:
            match.score += 8
            match.reasons.append(
                "This treatment can help address patchy hair loss that may be related to scalp conditions"
            )

        if duration in ("less-than-6-months", "6-12-months"):
            match.score += 5
            match.reasons.append("Early intervention has shown better results for hair loss treatments")
        if duration in ("2-5-years", "more-than-5-years") and "finasteride" in title:
            match.score += 5
            match.reasons.append(
                "For longer-term hair loss, treatment that addresses the root cause (DHT) is important"
            )

        match.reason = build_reason(
            product, match.reasons, "{title} provides comprehensive support for your hair loss type and duration."
        )
        matches.append(match)

    return best_match(matches)


# ============================================================================
# Skin care
# ============================================================================


def filter_skin_types(responses: dict, products: list[dict]) -> list[dict]:
    skin_type = responses.get("skin-type")
    if not skin_type or skin_type == "normal":
        return products

    preferred = {skin_type, "all", "normal"}
    return _keep_if_any(
        products,
        lambda p: not p.get("suitableForSkinTypes") or bool(preferred & set(_as_list(p.get("suitableForSkinTypes")))),
    )


def match_skin_care(responses: dict, products: list[dict]) -> ProductMatch:
    skin_type = responses.get("skin-type")
    concerns = _as_list(responses.get("skin-concerns"))
    conditions = _as_list(responses.get("medical-conditions"))

    matches = []
    for product in filter_skin_types(responses, products):
        title = _text(product, "title")
        match = ProductMatch(product)

        if skin_type and skin_type in _as_list(product.get("suitableForSkinTypes")):
            match.score += 10
            match.reasons.append(f"This product is specifically formulated for {skin_type} skin")

        targets = _as_list(product.get("targetConcerns"))
        for concern in concerns:
            if concern in targets:
                match.score += 5
                if concern in SKIN_CONCERN_REASONS:
                    match.reasons.append(SKIN_CONCERN_REASONS[concern])

        # Benefit keyword groups
        if (skin_type == "oily" or "acne" in concerns) and _mentions(
            title, "acne", "clear", "blemish", "oil control"
        ):
            match.score += 8
        if ("wrinkles" in concerns or "dark-circles" in concerns) and _mentions(
            title, "anti-aging", "wrinkle", "retinol", "firm"
        ):
            match.score += 8
        if ("hyperpigmentation" in concerns or "uneven-tone" in concerns) and _mentions(
            title, "brightening", "vitamin c", "even", "glow"
        ):
            match.score += 8
        if (skin_type == "dry" or "dry-patches" in concerns) and _mentions(
            title, "hydrating", "moisturizing", "hyaluronic"
        ):
            match.score += 8
        if (skin_type == "sensitive" or "redness" in concerns) and _mentions(
            title, "calming", "soothing", "sensitive", "gentle"
        ):
            match.score += 8

        if conditions and conditions[0] != "none" and _mentions(title, "gentle", "sensitive", "calming"):
            match.score += 5
            match.reasons.append("This gentle formula is suitable for those with existing health conditions")

        # Lifestyle
        if responses.get("water-intake") == "less-than-1" and _mentions(title, "hydrating", "moisturizing"):
            match.score += 3
            match.reasons.append("This product provides extra hydration to complement your water intake")
        if responses.get("stress-levels") == "high" and _mentions(title, "calming", "soothing"):
            match.score += 3
            match.reasons.append("This product helps calm and soothe stressed skin")
        if responses.get("smoking-alcohol") in ("both", "smoking-only", "alcohol-only") and _mentions(
            title, "antioxidant", "repair", "vitamin c"
        ):
            match.score += 3
            match.reasons.append("This product contains antioxidants to help combat environmental stressors")
        if responses.get("sun-exposure") == "yes" and _mentions(title, "spf", "protection", "repair"):
            match.score += 4
            match.reasons.append("This product helps protect and repair skin that's frequently exposed to the sun")

        # Routine
        if responses.get("skincare-frequency") == "starting" and not _mentions(title, "advanced", "professional"):
            match.score += 4
            match.reasons.append("This product is beginner-friendly and a great addition to a new skincare routine")
        established = responses.get("skincare-frequency") == "daily" or len(
            _as_list(responses.get("current-products"))
        ) > 3
        if established and _mentions(title, "advanced", "professional", "concentrated"):
            match.score += 4
            match.reasons.append(
                "This advanced formula is well-suited for someone with an established skincare routine"
            )

        if match.score == 0:
            match.reasons.append("This product provides general skincare benefits")

        match.reason = build_reason(
            product,
            match.reasons,
            "{title} provides comprehensive support for your skin care needs based on your goals and current skin condition.",
        )
        matches.append(match)

    return best_match(matches)


# ============================================================================
# Mental health
# ============================================================================


def filter_mental_health(responses: dict, products: list[dict]) -> list[dict]:
    """Restrict to over-the-counter options when the user declines prescriptions"""
    if responses.get("prescription-preference") == "no" or responses.get("medication-openness") == "not-open":
        return _keep_if_any(products, _is_otc)
    return products


def match_mental_health(responses: dict, products: list[dict]) -> ProductMatch:
    severity = responses.get("anxiety-severity")
    symptoms = _as_list(responses.get("anxiety-symptoms"))
    previous = responses.get("previous-treatment")
    goals = _as_list(responses.get("treatment-goals"))

    matches = []
    for product in filter_mental_health(responses, products):
        title = _text(product, "title")
        match = ProductMatch(product)

        if severity == "severe" and _mentions(title, "ssri", "snri"):
            match.score += 10
            match.reasons.append("This medication is effective for managing severe anxiety")
        if severity == "mild" and _is_otc(product):
            match.score += 10
            match.reasons.append("This option is appropriate for mild anxiety and doesn't require a prescription")

        if "panic-attacks" in symptoms and _mentions(title, "benzodiazepine", "alprazolam"):
            match.score += 10
            match.reasons.append("This medication can help manage panic attacks")
        if "sleep-issues" in symptoms and _mentions(title, "sleep", "melatonin"):
            match.score += 8
            match.reasons.append("This product addresses anxiety-related sleep disturbances")

        if isinstance(previous, list):
            if "therapy" in previous and "medication" not in previous:
                match.score += 5
                match.reasons.append("This can complement your therapy experience")
            if "self-help" in previous and _is_otc(product):
                match.score += 5
                match.reasons.append("This aligns with your self-help approach")

        if "improve-sleep" in goals and _mentions(title, "sleep", "melatonin"):
            match.score += 8
            match.reasons.append("This directly addresses your goal of improving sleep")
        if "manage-specific" in goals and "as-needed" in title:
            match.score += 8
            match.reasons.append("This can be used as-needed for specific anxiety-provoking situations")
        if "long-term" in goals and _mentions(title, "ssri", "therapy"):
            match.score += 10
            match.reasons.append("This provides a sustainable, long-term approach to anxiety management")

        match.reason = build_reason(
            product,
            match.reasons,
            "{title} provides comprehensive support for your anxiety management based on your symptoms and goals.",
        )
        matches.append(match)

    return best_match(matches)


# ============================================================================
# Birth control
# ============================================================================


def _wants_libido_support(responses: dict) -> bool:
    return responses.get("natural-support") == "yes" and responses.get("libido-decrease") in (
        "frequently",
        "sometimes",
    )


def prefilter_birth_control(responses: dict, products: list[dict]) -> list[dict]:
    """Narrow large catalogs to at most ten products, skipping filters that would empty the list"""
    if len(products) <= BIRTH_CONTROL_PROMPT_LIMIT:
        return products

    filtered = list(products)
    if responses.get("daily-pill") == "no":
        filtered = _keep_if_any(
            filtered,
            lambda p: not p.get("administrationType")
            or not _mentions(_text(p, "administrationType"), "oral", "pill"),
        )
    if _wants_libido_support(responses):
        filtered = _keep_if_any(
            filtered, lambda p: "libido" in _text(p, "productType") or "libido" in _text(p, "description")
        )
    if responses.get("non-prescription") == "yes":
        filtered = _keep_if_any(filtered, _is_otc)

    return filtered[:BIRTH_CONTROL_PROMPT_LIMIT]


def summarize_for_prompt(products: list[dict]) -> list[dict]:
    return [
        {
            "id": p.get("_id"),
            "title": p.get("title"),
            "type": p.get("productType") or "Not specified",
            "method": p.get("administrationType") or "Not specified",
            "summary": condense_description(p.get("description")),
        }
        for p in products
    ]


def match_birth_control(responses: dict, products: list[dict]) -> ProductMatch:
    conditions = responses.get("medical-conditions")
    age_group = responses.get("age")

    matches = []
    for product in prefilter_birth_control(responses, products):
        title = _text(product, "title")
        description = _text(product, "description")
        method = _text(product, "administrationType")
        match = ProductMatch(product)

        if age_group and BIRTH_CONTROL_AGE_GROUPS.get(age_group, 0) > 0:
            match.score += 2

        if responses.get("daily-pill") == "yes" and "oral" in method:
            match.score += 5
            match.reasons.append("Matches your preference for oral contraceptives")
        elif responses.get("daily-pill") == "no" and "oral" not in method:
            match.score += 5
            match.reasons.append("Matches your preference for non-daily contraceptives")

        if _wants_libido_support(responses) and ("libido" in description or "libido" in title):
            match.score += 8
            match.reasons.append("Provides natural libido support as you requested")

        if responses.get("non-prescription") == "yes" and _is_otc(product):
            match.score += 7
            match.reasons.append("Non-prescription option that matches your preference")
        elif responses.get("hormonal-bc") == "yes" and not _is_otc(product):
            match.score += 7
            match.reasons.append("Prescription hormonal option that matches your preference")

        if isinstance(conditions, list):
            if "pcos" in conditions and "pcos" in description:
                match.score += 6
                match.reasons.append("May help with PCOS symptoms")
            if ("depression-anxiety" in conditions or responses.get("stress-impact") == "yes") and (
                "mood" in description
            ):
                match.score += 4
                match.reasons.append("May have fewer mood-related side effects")

        if responses.get("regular-cycle") == "no" and "regul" in description:
            match.score += 5
            match.reasons.append("May help regulate your menstrual cycle")

        history = responses.get("bc-history")
        if history == "side-effects":
            if "low" in description and "hormone" in description:
                match.score += 6
                match.reasons.append("Low-hormone option that may reduce side effects")
        elif history == "never" and "pill" in method:
            match.score += 3
            match.reasons.append("Good option for first-time birth control users")

        match.reason = build_reason(
            product, match.reasons, "{title} provides reliable birth control that aligns with your preferences."
        )
        matches.append(match)

    return best_match(matches)


# ============================================================================
# General consultation
# ============================================================================

CONCERN_KEYWORDS = {
    "weight-loss": (("weight", "metabolism"), "This product is designed for weight management"),
    "hair-growth": (("hair", "minoxidil", "biotin"), "This product is specifically formulated for hair health"),
    "anxiety-relief": (("anxiety", "stress", "calm"), "This product can help support mental wellbeing"),
    "skin-health": (("skin", "retinol", "vitamin c"), "This product contains key ingredients for skin health"),
    "cycle-control": (("cycle", "hormone", "period"), "This product is designed to support hormonal balance"),
    "wellness": (("wellness", "multivitamin"), "This product supports overall wellness"),
}

GOAL_KEYWORDS = {
    "lose-weight": (("weight", "fat"), "This aligns with your weight management goals"),
    "regrow-hair": (("regrow", "minoxidil"), "This product specifically targets hair regrowth"),
    "relieve-anxiety": (("stress", "calm"), "This product is specifically formulated to help with anxiety"),
    "improve-skin": (("glow", "radiance"), "This product is designed to enhance skin luminosity"),
    "regulate-cycle": (("balance", "regulate"), "This product specifically targets cycle regulation"),
    "enhance-wellness": (("essential", "complete"), "This product provides comprehensive wellness support"),
}

CONDITION_KEYWORDS = {
    "hormonal-imbalances": (("hormone", "balance"), "This product is suitable for those with hormonal considerations"),
    "anxiety-depression": (("stress", "mood"), "This product may help support mental wellbeing"),
    "skin-conditions": (("sensitive", "gentle"), "This product is formulated with sensitive skin in mind"),
}


def filter_consultation(responses: dict, products: list[dict]) -> list[dict]:
    """Administration route and formulation preferences; reverts to the full list when nothing survives"""
    filtered = list(products)

    if responses.get("open-to-oral") == "no":
        filtered = [p for p in filtered if not p.get("administrationType") or _text(p, "administrationType") == "topical"]
    if responses.get("open-to-topical") == "no":
        filtered = [p for p in filtered if not p.get("administrationType") or _text(p, "administrationType") == "oral"]

    preference = responses.get("product-preference")
    if preference in ("natural", "synthetic"):
        filtered = [p for p in filtered if not p.get("formulation") or _text(p, "formulation") == preference]

    return filtered or products


def match_consultation(responses: dict, products: list[dict]) -> ProductMatch:
    concern = responses.get("main-concern")
    goal = responses.get("specific-goal")
    previous = responses.get("previous-treatments")
    conditions = responses.get("health-conditions")
    activity = responses.get("activity-level")

    matches = []
    for product in filter_consultation(responses, products):
        title = _text(product, "title")
        formulation = _text(product, "formulation")
        match = ProductMatch(product, score=1)

        if concern in CONCERN_KEYWORDS:
            keywords, reason = CONCERN_KEYWORDS[concern]
            if _mentions(title, *keywords):
                match.score += 10
                match.reasons.append(reason)

        if goal and goal != concern and goal in GOAL_KEYWORDS:
            keywords, reason = GOAL_KEYWORDS[goal]
            if _mentions(title, *keywords):
                match.score += 5
                match.reasons.append(reason)

        if previous == "yes-worked":
            match.score += 2
            match.reasons.append("Based on your positive experience with previous treatments")
        elif previous == "yes-didnt-work":
            match.score += 1
            match.reasons.append("This offers a different approach than treatments you've tried before")
        elif previous == "no" and formulation in ("natural", ""):
            match.score += 3
            match.reasons.append("This is a good starting option since you haven't tried treatments before")

        if isinstance(conditions, list):
            for condition, (keywords, reason) in CONDITION_KEYWORDS.items():
                if condition in conditions and _mentions(title, *keywords):
                    match.score += 5
                    match.reasons.append(reason)

        if activity in ("very-active", "moderately-active") and _mentions(title, "energy", "performance"):
            match.score += 3
            match.reasons.append("This complements your active lifestyle")
        if activity == "sedentary" and _mentions(title, "metabolism", "boost"):
            match.score += 3
            match.reasons.append("This may help support your body with a less active lifestyle")

        if responses.get("stress-level") == "high" and _mentions(title, "calm", "stress"):
            match.score += 4
            match.reasons.append("This product may help support stress management")

        match.reason = build_reason(product, match.reasons, "{title} provides comprehensive support for your concerns.")
        matches.append(match)

    return best_match(matches)
