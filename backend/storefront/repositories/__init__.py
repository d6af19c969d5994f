from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository

__all__ = [
    "CouponRepository",
    "OrderRepository",
]
