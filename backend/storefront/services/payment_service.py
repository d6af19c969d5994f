"""Payment intent service: amount calculation, intent creation and verification."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import BusinessRuleViolation, NotFoundError, ValidationError
from storefront.models.order import PaymentStatus
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.payment import CartItem, PaymentIntentCreate
from storefront.services.coupon_service import CouponEvaluation, CouponEvaluator, to_money
from storefront.services.payment_gateway import PaymentGatewayBase, PaymentIntent

logger = logging.getLogger(__name__)


def to_minor_units(amount: Any) -> int:
    """Convert a decimal amount to integer cents, rounding half away from zero."""
    return int(to_money(amount) * 100)


def calculate_subtotal(items: Sequence[CartItem] | None) -> Decimal:
    """Sum ``price * quantity`` over the cart and round the aggregate to cents."""
    if not items:
        raise ValidationError("InvalidItems", "items array is required")
    total = sum((Decimal(str(item.price)) * item.quantity for item in items), Decimal("0"))
    return to_money(total)


@dataclass
class PaymentIntentResult:
    """Client-facing outcome of creating a payment intent."""

    client_secret: str
    payment_intent_id: str
    subtotal: Decimal
    amount_cents: int
    coupon: CouponEvaluation | None = None


class PaymentIntentService:
    """Service creating and verifying gateway payment intents.

    Nothing is persisted here except linking an intent to a pre-created order.
    """

    def __init__(self, db: Session, gateway: PaymentGatewayBase):
        self.db = db
        self.gateway = gateway
        self.order_repo = OrderRepository(db)
        self.coupon_evaluator = CouponEvaluator(db)

    def create_intent(self, data: PaymentIntentCreate) -> PaymentIntentResult:
        """Create a payment intent for a cart, optionally discounted by a coupon.

        Raises:
            ValidationError: If the cart is empty.
            BusinessRuleViolation: If the charge is below the gateway minimum or
                the coupon is rejected.
            NotFoundError: If ``order_id`` does not match an order.
        """
        subtotal = calculate_subtotal(data.items)
        charge = subtotal

        evaluation: CouponEvaluation | None = None
        if data.coupon_code and data.coupon_code.strip():
            evaluation = self.coupon_evaluator.evaluate(
                data.coupon_code, subtotal, user_id=data.user_id
            )
            charge = evaluation.final_total

        amount_cents = to_minor_units(charge)
        if amount_cents < settings.min_charge_amount_cents:
            raise BusinessRuleViolation(
                "AmountTooLow",
                f"Amount must be at least ${to_money(settings.min_charge_amount_cents / 100)}",
            )

        metadata = {"userId": data.user_id or settings.guest_user_tag}
        if evaluation:
            metadata["couponCode"] = evaluation.code

        order = None
        if data.order_id:
            order = self.order_repo.get_by_id(data.order_id)
            if not order:
                raise NotFoundError("OrderNotFound", "Order not found")
            if order.payment_status == PaymentStatus.PAID.value:
                raise BusinessRuleViolation("OrderAlreadyPaid", "Order has already been paid")
            metadata["orderId"] = str(order.id)

        currency = (data.currency or settings.default_currency).lower()
        intent = self.gateway.create_payment_intent(amount_cents, currency, metadata)

        if order:
            self.order_repo.set_payment_intent(order.id, intent.id)  # type: ignore[arg-type]

        logger.info(
            "Created payment intent %s for %d %s (user=%s)",
            intent.id,
            amount_cents,
            currency,
            metadata["userId"],
        )
        return PaymentIntentResult(
            client_secret=intent.client_secret or "",
            payment_intent_id=intent.id,
            subtotal=subtotal,
            amount_cents=amount_cents,
            coupon=evaluation,
        )

    def verify_payment(self, payment_intent_id: str) -> PaymentIntent:
        """Fetch an intent and insist that the gateway reports it succeeded.

        Raises:
            BusinessRuleViolation: ``PaymentNotConfirmed`` for any other status.
        """
        intent = self.gateway.retrieve_payment_intent(payment_intent_id)
        if not intent.succeeded:
            raise BusinessRuleViolation("PaymentNotConfirmed", "Payment not completed")
        return intent
