"""Order reconciliation service.

Two entry points write payment outcomes onto orders: the client-initiated
``save_order`` call and the gateway webhook. Both key the order by payment
intent ID and write the same terminal fields, so either may run first or
run twice.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from storefront.core.config import settings
from storefront.core.errors import BusinessRuleViolation, LimitReached, ValidationError
from storefront.models.order import Order, OrderStatus, PaymentStatus
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.coupon import normalize_code
from storefront.schemas.order import SaveOrderRequest
from storefront.services.coupon_service import CouponEvaluator
from storefront.services.payment_gateway import (
    INTENT_FAILED,
    INTENT_SUCCEEDED,
    PaymentGatewayBase,
    WebhookEvent,
)
from storefront.services.payment_service import PaymentIntentService, to_minor_units

logger = logging.getLogger(__name__)


class OrderReconciliationService:
    """Service persisting orders from confirmed payments."""

    def __init__(self, db: Session, gateway: PaymentGatewayBase):
        self.db = db
        self.order_repo = OrderRepository(db)
        self.coupon_repo = CouponRepository(db)
        self.coupon_evaluator = CouponEvaluator(db)
        self.payment_service = PaymentIntentService(db, gateway)

    def save_order(self, data: SaveOrderRequest) -> tuple[Order, bool]:
        """Persist an order after re-verifying its payment with the gateway.

        Returns:
            The order and whether it was newly created. An order already
            carrying this payment intent is reconciled and returned instead.

        Raises:
            ValidationError: ``MissingFields``.
            BusinessRuleViolation: ``PaymentNotConfirmed`` or ``AmountMismatch``.
            LimitReached: ``GlobalLimitReached`` when the coupon ran out.
        """
        missing = data.missing_fields()
        if missing:
            raise ValidationError(
                "MissingFields", f"Missing required order details: {', '.join(missing)}"
            )

        intent = self.payment_service.verify_payment(data.payment_intent_id)  # type: ignore[arg-type]

        if to_minor_units(data.total_amount) != intent.amount:
            raise BusinessRuleViolation(
                "AmountMismatch", "Order total does not match the confirmed payment amount"
            )

        existing = self.order_repo.get_by_payment_intent_id(intent.id)
        if existing:
            order = self.order_repo.mark_paid(existing.id, intent.id)  # type: ignore[arg-type]
            logger.info("Order %s already recorded for payment intent %s", existing.id, intent.id)
            return order or existing, False

        coupon_code = normalize_code(data.coupon_code) if data.coupon_code else None
        if coupon_code:
            self._redeem_coupon(coupon_code, intent.id)

        user_id = data.user_id or intent.metadata.get("userId")
        if user_id == settings.guest_user_tag:
            user_id = None

        try:
            order = self.order_repo.create(
                first_name=data.first_name,  # type: ignore[arg-type]
                last_name=data.last_name,  # type: ignore[arg-type]
                contact_no=data.contact_no,  # type: ignore[arg-type]
                address=data.address,  # type: ignore[arg-type]
                apartment_no=data.apartment_no,
                city=data.city,  # type: ignore[arg-type]
                items=[
                    item.model_dump(by_alias=True, exclude_none=True) for item in data.items or []
                ],
                total_amount=data.total_amount,  # type: ignore[arg-type]
                delivery_charge=data.delivery_charge,
                user_id=user_id,
                coupon_code=coupon_code,
                discount=data.discount if coupon_code else None,
                payment_intent_id=intent.id,
                payment_status=PaymentStatus.PAID,
                status=OrderStatus.PROCESSING,
            )
        except IntegrityError:
            # Another save for the same intent won the insert.
            self.db.rollback()
            winner = self.order_repo.get_by_payment_intent_id(intent.id)
            if winner is None:
                raise
            return winner, False

        logger.info("Saved order %s for payment intent %s", order.id, intent.id)
        return order, True

    def _redeem_coupon(self, coupon_code: str, payment_intent_id: str) -> None:
        if not self.coupon_repo.get_by_code(coupon_code):
            logger.warning(
                "Order for payment intent %s references unknown coupon %s",
                payment_intent_id,
                coupon_code,
            )
            return
        if not self.coupon_evaluator.redeem(coupon_code, commit=False):
            self.db.rollback()
            logger.error(
                "Coupon %s hit its usage limit after payment intent %s succeeded; "
                "payment needs manual reconciliation",
                coupon_code,
                payment_intent_id,
            )
            raise LimitReached("GlobalLimitReached", "Coupon usage limit has been reached")

    def apply_webhook_event(self, event: WebhookEvent) -> Order | None:
        """Apply a verified gateway notification to its order.

        Unrecognised event types and unknown orders change nothing.
        """
        if event.status not in (INTENT_SUCCEEDED, INTENT_FAILED):
            logger.warning("Unhandled webhook event type: %s", event.event_type)
            return None

        order = self._find_order(event)
        if not order:
            logger.warning(
                "No order found for webhook %s (payment intent %s)",
                event.event_type,
                event.payment_intent_id,
            )
            return None

        if event.status == INTENT_SUCCEEDED:
            updated = self.order_repo.mark_paid(order.id, event.payment_intent_id)  # type: ignore[arg-type]
        else:
            updated = self.order_repo.mark_failed(order.id)  # type: ignore[arg-type]
            logger.info(
                "Payment failed for order %s: %s", order.id, event.failure_reason or "unknown"
            )

        logger.info("Reconciled order %s from %s", order.id, event.event_type)
        return updated

    def _find_order(self, event: WebhookEvent) -> Order | None:
        order_id = event.metadata.get("orderId")
        if order_id:
            try:
                order = self.order_repo.get_by_id(UUID(str(order_id)))
            except ValueError:
                order = None
            if order:
                return order
        if event.payment_intent_id:
            return self.order_repo.get_by_payment_intent_id(event.payment_intent_id)
        return None
