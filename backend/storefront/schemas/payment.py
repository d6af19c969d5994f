"""Payment intent and webhook schemas."""

from uuid import UUID

from pydantic import Field

from storefront.schemas.base import CamelModel


class CartItem(CamelModel):
    product_id: str | None = None
    price: float = Field(ge=0, strict=True)
    quantity: int = Field(gt=0, strict=True)


class PaymentIntentCreate(CamelModel):
    items: list[CartItem] | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    user_id: str | None = None
    coupon_code: str | None = None
    order_id: UUID | None = None


class PaymentIntentResponse(CamelModel):
    client_secret: str
    payment_intent_id: str
    usd_subtotal: float | None = None
    amount_in_cents: int | None = None


class WebhookAck(CamelModel):
    received: bool = True
