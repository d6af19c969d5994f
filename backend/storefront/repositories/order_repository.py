"""Order repository for data access."""

from typing import Any
from uuid import UUID

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus


class OrderRepository:
    """Repository for Order model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        user_id: str | None = None,
    ) -> list[Order]:
        """Get all orders, newest first."""
        query = self.db.query(Order)
        if user_id:
            query = query.filter(Order.user_id == user_id)
        return query.order_by(Order.created_at.desc()).offset(skip).limit(limit).all()

    def get_by_id(self, order_id: UUID) -> Order | None:
        """Get an order by ID."""
        return self.db.query(Order).filter(Order.id == order_id).first()

    def get_by_payment_intent_id(self, payment_intent_id: str) -> Order | None:
        """Get an order by gateway payment intent ID."""
        return (
            self.db.query(Order).filter(Order.payment_intent_id == payment_intent_id).first()
        )

    def count_by_coupon(self, coupon_code: str, user_id: str | None = None) -> int:
        """Count orders that used a coupon, optionally for one user."""
        query = self.db.query(func.count(Order.id)).filter(Order.coupon_code == coupon_code)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        return query.scalar() or 0

    def create(
        self,
        first_name: str,
        last_name: str,
        contact_no: str,
        address: str,
        city: str,
        items: list[dict[str, Any]],
        total_amount: float,
        apartment_no: str | None = None,
        delivery_charge: float = 0,
        payment_method: PaymentMethod = PaymentMethod.ONLINE,
        user_id: str | None = None,
        coupon_code: str | None = None,
        discount: float | None = None,
        payment_intent_id: str | None = None,
        payment_status: PaymentStatus = PaymentStatus.UNPAID,
        status: OrderStatus = OrderStatus.PENDING,
    ) -> Order:
        """Create a new order."""
        order = Order(
            user_id=user_id,
            first_name=first_name,
            last_name=last_name,
            contact_no=contact_no,
            address=address,
            apartment_no=apartment_no or None,
            city=city,
            items=items,
            delivery_charge=delivery_charge,
            total_amount=total_amount,
            payment_method=payment_method.value,
            coupon_code=coupon_code,
            discount=discount or 0,
            payment_intent_id=payment_intent_id,
            payment_status=payment_status.value,
            status=status.value,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        return order

    def set_payment_intent(self, order_id: UUID, payment_intent_id: str) -> Order | None:
        """Attach a gateway payment intent to an order awaiting payment."""
        order = self.get_by_id(order_id)
        if not order:
            return None

        order.payment_intent_id = payment_intent_id  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(order)
        return order

    def mark_paid(self, order_id: UUID, payment_intent_id: str) -> Order | None:
        """Record a succeeded payment.

        Fulfilment only moves Pending -> Processing; later operator states
        are left alone, so re-applying the same outcome changes nothing.
        """
        updated = (
            self.db.query(Order)
            .filter(Order.id == order_id)
            .update(
                {
                    Order.payment_status: PaymentStatus.PAID.value,
                    Order.payment_intent_id: payment_intent_id,
                    Order.status: case(
                        (Order.status == OrderStatus.PENDING.value, OrderStatus.PROCESSING.value),
                        else_=Order.status,
                    ),
                },
                synchronize_session=False,
            )
        )
        self.db.commit()
        if not updated:
            return None
        return self.get_by_id(order_id)

    def mark_failed(self, order_id: UUID) -> Order | None:
        """Record a failed payment unless the order was already paid."""
        self.db.query(Order).filter(
            Order.id == order_id,
            Order.payment_status != PaymentStatus.PAID.value,
        ).update({Order.payment_status: PaymentStatus.FAILED.value}, synchronize_session=False)
        self.db.commit()
        return self.get_by_id(order_id)

    def update_status(self, order_id: UUID, status: OrderStatus) -> Order | None:
        """Set the fulfilment status of an order."""
        order = self.get_by_id(order_id)
        if not order:
            return None

        order.status = status.value  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(order)
        return order
