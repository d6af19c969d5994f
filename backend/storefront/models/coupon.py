"""Coupon model for checkout discounts."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, func

from storefront.core.database import Base
from storefront.models.shared import UUIDType, generate_uuid


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class Coupon(Base):
    """Coupon model for checkout discounts.

    ``code`` is stored trimmed and upper-cased so lookups are case-insensitive.
    ``usage_limit`` of 0 means unlimited. ``times_used`` counts orders that
    redeemed the coupon and is only ever moved by a conditional update.
    """

    __tablename__ = "coupons"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(64), unique=True, index=True, nullable=False)

    discount_type = Column(String(20), nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)
    min_purchase = Column(Numeric(12, 2), nullable=True)
    max_discount_amount = Column(Numeric(12, 2), nullable=True)

    usage_limit = Column(Integer, nullable=False, default=0)
    per_user_limit = Column(Integer, nullable=False, default=1)
    times_used = Column(Integer, nullable=False, default=0)

    expiration_date = Column(DateTime(timezone=True), nullable=False)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
