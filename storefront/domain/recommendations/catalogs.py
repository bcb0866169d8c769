"""Static product catalogs used when a category is not managed in the CMS"""

WEIGHT_LOSS_CATEGORY = "weight-loss"
SKIN_CARE_CATEGORY = "skin-care"
MENTAL_HEALTH_CATEGORY = "anxiety"
BIRTH_CONTROL_CATEGORY = "sexual-health-and-birth-control"

# Consultation main-concern -> CMS productCategory slug
CONCERN_CATEGORY_SLUGS = {
    "weight-loss": "weight-management",
    "hair-growth": "hair-loss",
    "anxiety-relief": "mental-health",
    "skin-health": "skin-care",
    "cycle-control": "womens-health",
    "wellness": "general-wellness",
}
DEFAULT_CONCERN_CATEGORY = "general"


def _product(
    product_id: str,
    title: str,
    slug: str,
    price: float,
    description: str,
    product_type: str,
    administration_type: str,
    formulation: str = None,
) -> dict:
    product = {
        "_id": product_id,
        "title": title,
        "slug": {"current": slug},
        "price": price,
        "description": description,
        "productType": product_type,
        "administrationType": administration_type,
    }
    if formulation:
        product["formulation"] = formulation
    return product


HAIR_LOSS_PRODUCTS = [
    _product(
        "product1",
        "Minoxidil 5% Solution",
        "minoxidil-5-solution",
        29.99,
        "Clinically proven topical solution to help regrow hair and prevent further hair loss.",
        "OTC",
        "topical",
    ),
    _product(
        "product2",
        "Finasteride Tablets",
        "finasteride-tablets",
        49.99,
        "Prescription medication that blocks DHT production to prevent hair loss at the root cause.",
        "prescription",
        "oral",
    ),
    _product(
        "product3",
        "Ketoconazole Shampoo",
        "ketoconazole-shampoo",
        19.99,
        "Anti-fungal shampoo that may help with hair loss by reducing scalp inflammation.",
        "OTC",
        "topical",
    ),
]

CONSULT_FALLBACK_PRODUCTS = {
    "weight-loss": [
        _product(
            "product1",
            "Metabolism Boost Supplement",
            "metabolism-boost-supplement",
            39.99,
            "Natural supplement designed to support healthy metabolism and weight management.",
            "OTC",
            "oral",
            "natural",
        ),
        _product(
            "product2",
            "Fat Burning Complex",
            "fat-burning-complex",
            44.99,
            "Advanced formula to support fat metabolism and energy levels.",
            "OTC",
            "oral",
            "synthetic",
        ),
    ],
    "hair-growth": [
        _product(
            "product3",
            "Minoxidil 5% Solution",
            "minoxidil-5-solution",
            29.99,
            "Clinically proven topical solution to help regrow hair and prevent further hair loss.",
            "OTC",
            "topical",
            "synthetic",
        ),
        _product(
            "product4",
            "Biotin Hair Growth Supplement",
            "biotin-hair-growth-supplement",
            32.99,
            "Nutrient-rich formula to nourish hair follicles from within.",
            "OTC",
            "oral",
            "natural",
        ),
    ],
    "anxiety-relief": [
        _product(
            "product5",
            "Calm & Clarity Supplement",
            "calm-clarity-supplement",
            36.99,
            "Natural supplement with adaptogens to support stress management and mental clarity.",
            "OTC",
            "oral",
            "natural",
        ),
        _product(
            "product6",
            "Stress Relief Formula",
            "stress-relief-formula",
            42.99,
            "Advanced formulation designed to reduce stress hormone levels and promote relaxation.",
            "OTC",
            "oral",
            "synthetic",
        ),
    ],
    "skin-health": [
        _product(
            "product7",
            "Vitamin C Brightening Serum",
            "vitamin-c-brightening-serum",
            38.99,
            "Antioxidant-rich serum that brightens skin and promotes collagen production.",
            "OTC",
            "topical",
            "natural",
        ),
        _product(
            "product8",
            "Retinol Night Cream",
            "retinol-night-cream",
            45.99,
            "Advanced anti-aging formula with retinol to reduce fine lines and wrinkles.",
            "OTC",
            "topical",
            "synthetic",
        ),
    ],
    "cycle-control": [
        _product(
            "product9",
            "Hormone Balance Supplement",
            "hormone-balance-supplement",
            39.99,
            "Natural formula designed to support hormonal balance and regular cycles.",
            "OTC",
            "oral",
            "natural",
        ),
        _product(
            "product10",
            "PMS Relief Complex",
            "pms-relief-complex",
            34.99,
            "Targeted support for PMS symptoms and cycle-related discomfort.",
            "OTC",
            "oral",
            "natural",
        ),
    ],
    "wellness": [
        _product(
            "product11",
            "Women's Daily Multivitamin",
            "womens-daily-multivitamin",
            29.99,
            "Complete daily multivitamin specifically formulated for women's health needs.",
            "OTC",
            "oral",
            "natural",
        ),
        _product(
            "product12",
            "Wellness Essentials Bundle",
            "wellness-essentials-bundle",
            79.99,
            "Comprehensive set of supplements to support overall health and wellness.",
            "OTC",
            "oral",
            "natural",
        ),
    ],
}

DEFAULT_CONSULT_PRODUCTS = [
    _product(
        "product13",
        "General Wellness Multivitamin",
        "general-wellness-multivitamin",
        24.99,
        "Complete daily multivitamin for overall health and wellness.",
        "OTC",
        "oral",
        "natural",
    ),
]


def category_for_concern(main_concern: str) -> str:
    return CONCERN_CATEGORY_SLUGS.get(main_concern, DEFAULT_CONCERN_CATEGORY)


def fallback_products_for_concern(main_concern: str) -> list[dict]:
    return [dict(p) for p in CONSULT_FALLBACK_PRODUCTS.get(main_concern, DEFAULT_CONSULT_PRODUCTS)]
