"""Order validation and totals"""

import uuid

REQUIRED_ORDER_FIELDS = (
    "email",
    "firstName",
    "lastName",
    "address",
    "city",
    "country",
    "phone",
    "paymentMethod",
    "shippingMethod",
    "cart",
)

# Flat shipping charge in USD
SHIPPING_COST = 15.0


def missing_fields(data) -> list[str]:
    missing = []
    for field in REQUIRED_ORDER_FIELDS:
        value = getattr(data, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def cart_subtotal(cart) -> float:
    return round(sum(item.price * item.quantity for item in cart), 2)


def to_cents(amount: float) -> int:
    return round(amount * 100)


def is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
    except ValueError:
        return False
    return True
