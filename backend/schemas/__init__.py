# schemas/__init__.py
from schemas.checkout import (
    CheckoutRequest,
    CheckoutValidationError,
    Customer,
    HomeAddress,
    LineItem,
    NotificationPayload,
    PickupPoint,
    ShippingMethod,
)
from schemas.order import Order

__all__ = [
    "CheckoutRequest",
    "CheckoutValidationError",
    "Customer",
    "HomeAddress",
    "LineItem",
    "NotificationPayload",
    "Order",
    "PickupPoint",
    "ShippingMethod",
]
