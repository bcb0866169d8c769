"""Checkout schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel


class AppointmentCheckoutRequest(BaseModel):
    appointmentId: Optional[str] = None
    subscriptionId: Optional[str] = None  # user subscription row id (UUID)
    userName: Optional[str] = None


class CartItem(BaseModel):
    productId: Optional[str] = None
    name: Optional[str] = None
    quantity: int = 1
    price: float
    image: Optional[str] = None


class OrderRequest(BaseModel):
    """Checkout form; required fields are checked by the service so the error can name them"""

    email: Optional[str] = None
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    address: Optional[str] = None
    apartment: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    postalCode: Optional[str] = None
    phone: Optional[str] = None
    paymentMethod: Optional[str] = None
    shippingMethod: Optional[str] = None
    billingAddressType: Optional[str] = None
    cart: Optional[list[CartItem]] = None
