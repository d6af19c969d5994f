"""Order schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field
from pydantic.alias_generators import to_camel

from storefront.models.order import PaymentMethod
from storefront.schemas.base import CamelModel, CamelResponse


class OrderItem(CamelModel):
    product_id: str = Field(min_length=1)
    size: str | None = None
    color: str | None = None
    quantity: int = Field(gt=0, strict=True)
    price: float = Field(ge=0, strict=True)


class OrderCreate(CamelModel):
    """Order placed before payment (cash on delivery or pay later online)."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    contact_no: str = Field(min_length=1)
    address: str = Field(min_length=1)
    apartment_no: str | None = None
    city: str = Field(min_length=1)
    items: list[OrderItem] = Field(min_length=1)
    delivery_charge: float = Field(ge=0)
    total_amount: float = Field(ge=0)
    payment_method: PaymentMethod
    user_id: str | None = None


class SaveOrderRequest(CamelModel):
    """Order submitted after the client finished the gateway flow.

    Required fields are optional here so a missing one is reported as
    ``MissingFields`` rather than a schema error. ``totalAmount`` is the
    amount charged and already includes ``deliveryCharge``, which is kept
    only as a breakdown on the order.
    """

    first_name: str | None = None
    last_name: str | None = None
    contact_no: str | None = None
    address: str | None = None
    apartment_no: str | None = None
    city: str | None = None
    items: list[OrderItem] | None = None
    total_amount: float | None = Field(default=None, ge=0)
    delivery_charge: float = Field(default=0, ge=0)
    payment_intent_id: str | None = None
    coupon_code: str | None = None
    discount: float | None = Field(default=None, ge=0)
    user_id: str | None = None

    def missing_fields(self) -> list[str]:
        """Return the wire names of required fields that are absent or blank."""
        missing = [
            name
            for name in (
                "first_name",
                "last_name",
                "contact_no",
                "address",
                "city",
                "payment_intent_id",
            )
            if not (getattr(self, name) or "").strip()
        ]
        if not self.items:
            missing.append("items")
        if self.total_amount is None:
            missing.append("total_amount")
        return [to_camel(name) for name in missing]


class OrderStatusUpdate(CamelModel):
    status: str | None = None


class OrderResponse(CamelResponse):
    id: UUID
    user_id: str | None = None
    first_name: str
    last_name: str
    contact_no: str
    address: str
    apartment_no: str | None = None
    city: str
    items: list[OrderItem]
    delivery_charge: float
    total_amount: float
    payment_method: str
    coupon_code: str | None = None
    discount: float
    payment_intent_id: str | None = None
    payment_status: str
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class SaveOrderResponse(CamelModel):
    message: str
    order: OrderResponse


class OrderCreatedResponse(CamelModel):
    message: str
    order: OrderResponse
