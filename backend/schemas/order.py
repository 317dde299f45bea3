# schemas/order.py
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from schemas.checkout import (
    CheckoutRequest,
    Customer,
    HomeAddress,
    LineItem,
    PickupPoint,
    ShippingMethod,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Order(BaseModel):
    """One checkout attempt. Frozen; state changes go through model_copy."""
    model_config = ConfigDict(frozen=True)

    ref_id: str
    transaction_id: str
    customer: Customer
    shipping: ShippingMethod
    pickup_point: Optional[PickupPoint] = None
    address: Optional[HomeAddress] = None
    items: list[LineItem] = Field(default_factory=list)
    total_czk: Decimal
    price_halers: int = Field(gt=0)
    paid: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
    paid_at: Optional[datetime] = None

    @computed_field
    @property
    def delivery(self) -> str:
        return self.shipping.delivery

    @classmethod
    def from_checkout(
        cls, request: CheckoutRequest, ref_id: str, transaction_id: str, price_halers: int
    ) -> "Order":
        return cls(
            ref_id=ref_id,
            transaction_id=transaction_id,
            customer=request.customer,
            shipping=request.shipping,
            pickup_point=request.pickup_point,
            address=request.address,
            items=request.items,
            total_czk=request.total_czk,
            price_halers=price_halers,
        )

    def mark_paid(self) -> "Order":
        return self.model_copy(update={"paid": True, "paid_at": _utcnow()})
