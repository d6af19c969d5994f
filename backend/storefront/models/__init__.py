from storefront.models.coupon import Coupon, DiscountType
from storefront.models.order import Order, OrderStatus, PaymentMethod, PaymentStatus

__all__ = [
    "Coupon",
    "DiscountType",
    "Order",
    "OrderStatus",
    "PaymentMethod",
    "PaymentStatus",
]
