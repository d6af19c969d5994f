"""Order model for storefront purchases."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, Numeric, String, func

from storefront.core.database import Base
from storefront.models.shared import UUIDType, generate_uuid


class OrderStatus(str, Enum):
    """Fulfilment status. Values are capitalised on the wire."""

    PENDING = "Pending"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    FAILED = "failed"


class PaymentMethod(str, Enum):
    COD = "COD"
    ONLINE = "Online"


class Order(Base):
    """Order model - one record per checkout, items embedded as JSON."""

    __tablename__ = "orders"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    user_id = Column(String(64), nullable=True, index=True)

    # Customer / shipping
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)
    contact_no = Column(String(50), nullable=False)
    address = Column(String(500), nullable=False)
    apartment_no = Column(String(100), nullable=True)
    city = Column(String(255), nullable=False)

    items = Column(JSON, nullable=False, default=list)

    delivery_charge = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.ONLINE.value)

    # Coupon
    coupon_code = Column(String(64), nullable=True, index=True)
    discount = Column(Numeric(12, 2), nullable=False, default=0)

    # Payment
    payment_intent_id = Column(String(255), nullable=True, unique=True, index=True)
    payment_status = Column(String(20), nullable=False, default=PaymentStatus.UNPAID.value)

    status = Column(String(20), nullable=False, default=OrderStatus.PENDING.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
