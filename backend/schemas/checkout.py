# schemas/checkout.py
# ============================================================================
# ELORA CHECKOUT BACKEND - CHECKOUT & NOTIFICATION SCHEMAS
# ============================================================================
# The storefront payload has drifted over time (phone accepted or not,
# three names for the total). It is normalized exactly once, here, into a
# CheckoutRequest; the rest of the code never probes raw dicts.
# ============================================================================

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import structlog
from pydantic import BaseModel, Field, model_validator

from gateway.money import parse_amount


logger = structlog.get_logger()


# ============================================================================
# SECTION 1: ERRORS
# ============================================================================

class CheckoutValidationError(ValueError):
    """User-correctable problem with a checkout payload."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


# ============================================================================
# SECTION 2: ENUMS
# ============================================================================

class ShippingMethod(str, Enum):
    CZ_PICKUP = "cz_pickup"
    CZ_HOME = "cz_home"
    SK_PICKUP = "sk_pickup"
    SK_HOME = "sk_home"

    @property
    def is_pickup(self) -> bool:
        return self in (ShippingMethod.CZ_PICKUP, ShippingMethod.SK_PICKUP)

    @property
    def delivery(self) -> str:
        """Comgate delivery category."""
        return "PICKUP" if self.is_pickup else "DELIVERY"


SHIPPING_CHOICES = ", ".join(m.value for m in ShippingMethod)
AMOUNT_FIELDS = ("totalCzk", "amountCzk", "amount")
ADDRESS_FIELDS = ("street", "city", "zip", "country")


# ============================================================================
# SECTION 3: VALUE OBJECTS
# ============================================================================

class Customer(BaseModel):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    phone: Optional[str] = None


class PickupPoint(BaseModel):
    """Packeta pickup point"""
    point_id: str = Field(min_length=1)
    name: Optional[str] = None
    address: Optional[str] = None

    def as_payload(self) -> dict[str, Any]:
        return {"pointId": self.point_id, "name": self.name, "address": self.address}


class HomeAddress(BaseModel):
    street: str = Field(min_length=1)
    city: str = Field(min_length=1)
    zip: str = Field(min_length=1)
    country: str = Field(min_length=1)

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump()


class LineItem(BaseModel):
    name: str = Field(min_length=1)
    variant: Optional[str] = None
    qty: int = Field(default=1, ge=1)
    line_total_czk: Decimal = Field(default=Decimal(0), ge=0)

    def as_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "variant": self.variant,
            "qty": self.qty,
            "lineTotalCzk": float(self.line_total_czk),
        }


# ============================================================================
# SECTION 4: CHECKOUT REQUEST
# ============================================================================

def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _parse_items(raw: Any) -> list[LineItem]:
    # Items only feed the emails; a bad line is dropped, never fatal
    if not isinstance(raw, list):
        return []
    items = []
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            logger.warning("line_item_dropped", index=index, reason="not an object")
            continue
        name = _text(entry.get("name"))
        qty = parse_amount(entry.get("qty", 1))
        total = parse_amount(entry.get("lineTotalCzk", 0))
        if not name or qty is None or qty != qty.to_integral_value() or qty < 1 \
                or total is None or total < 0:
            logger.warning("line_item_dropped", index=index, reason="invalid fields")
            continue
        items.append(LineItem(
            name=name,
            variant=_text(entry.get("variant")),
            qty=int(qty),
            line_total_czk=total,
        ))
    return items


class CheckoutRequest(BaseModel):
    """Validated checkout payload"""
    customer: Customer
    shipping: ShippingMethod
    pickup_point: Optional[PickupPoint] = None
    address: Optional[HomeAddress] = None
    items: list[LineItem] = Field(default_factory=list)
    total_czk: Decimal = Field(gt=0)

    @model_validator(mode="after")
    def _fulfillment_matches_shipping(self) -> "CheckoutRequest":
        if self.shipping.is_pickup and (self.pickup_point is None or self.address is not None):
            raise ValueError("pickup shipping needs a pickup point and no address")
        if not self.shipping.is_pickup and (self.address is None or self.pickup_point is not None):
            raise ValueError("home shipping needs an address and no pickup point")
        return self

    @classmethod
    def from_payload(cls, payload: Any) -> "CheckoutRequest":
        """
        Normalize a raw storefront body. Checks run in a fixed order and the
        first failure is raised as CheckoutValidationError.
        """
        body = payload if isinstance(payload, dict) else {}

        full_name = _text(body.get("fullName"))
        if not full_name:
            raise CheckoutValidationError("fullName required")

        email = _text(body.get("email"))
        if not email:
            raise CheckoutValidationError("email required")

        shipping_raw = _text(body.get("shipping"))
        if not shipping_raw:
            raise CheckoutValidationError("shipping required")
        try:
            shipping = ShippingMethod(shipping_raw.lower())
        except ValueError:
            raise CheckoutValidationError(f"shipping must be one of: {SHIPPING_CHOICES}") from None

        pickup_point = None
        address = None
        if shipping.is_pickup:
            packeta = body.get("packeta") if isinstance(body.get("packeta"), dict) else {}
            point_id = _text(packeta.get("pointId"))
            if not point_id:
                raise CheckoutValidationError("packeta.pointId required")
            pickup_point = PickupPoint(
                point_id=point_id,
                name=_text(packeta.get("name")),
                address=_text(packeta.get("address")),
            )
        else:
            raw_address = body.get("address") if isinstance(body.get("address"), dict) else {}
            fields = {name: _text(raw_address.get(name)) for name in ADDRESS_FIELDS}
            if not all(fields.values()):
                raise CheckoutValidationError("address required (street, city, zip, country)")
            address = HomeAddress(**fields)

        raw_total = next(
            (body[name] for name in AMOUNT_FIELDS if _text(body.get(name)) is not None),
            None,
        )
        if raw_total is None:
            raise CheckoutValidationError("total amount required (totalCzk)")
        total = parse_amount(raw_total)
        if total is None or total <= 0:
            raise CheckoutValidationError("totalCzk must be a positive number")

        return cls(
            customer=Customer(full_name=full_name, email=email, phone=_text(body.get("phone"))),
            shipping=shipping,
            pickup_point=pickup_point,
            address=address,
            items=_parse_items(body.get("items")),
            total_czk=total,
        )

    def fulfillment_payload(self) -> dict[str, Any]:
        if self.pickup_point is not None:
            return {"packeta": self.pickup_point.as_payload()}
        return {"address": self.address.as_payload()}


# ============================================================================
# SECTION 5: GATEWAY NOTIFICATION
# ============================================================================

class NotificationPayload(BaseModel):
    """
    Untrusted Comgate callback. claimed_status is informational only; the
    paid decision always comes from a live status query.
    """
    ref_id: Optional[str] = None
    trans_id: Optional[str] = None
    claimed_status: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Any) -> "NotificationPayload":
        body = payload if isinstance(payload, dict) else {}
        return cls(
            ref_id=_text(body.get("refId")),
            trans_id=_text(body.get("transId")) or _text(body.get("transactionId")),
            claimed_status=_text(body.get("status")),
        )
