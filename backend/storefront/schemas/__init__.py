from storefront.schemas.coupon import (
    ApplyCouponRequest,
    ApplyCouponResponse,
    CouponCreate,
    CouponRejection,
    CouponResponse,
    CouponUpdate,
)
from storefront.schemas.order import (
    OrderCreate,
    OrderCreatedResponse,
    OrderItem,
    OrderResponse,
    OrderStatusUpdate,
    SaveOrderRequest,
    SaveOrderResponse,
)
from storefront.schemas.payment import (
    CartItem,
    PaymentIntentCreate,
    PaymentIntentResponse,
    WebhookAck,
)

__all__ = [
    "ApplyCouponRequest",
    "ApplyCouponResponse",
    "CartItem",
    "CouponCreate",
    "CouponRejection",
    "CouponResponse",
    "CouponUpdate",
    "OrderCreate",
    "OrderCreatedResponse",
    "OrderItem",
    "OrderResponse",
    "OrderStatusUpdate",
    "PaymentIntentCreate",
    "PaymentIntentResponse",
    "SaveOrderRequest",
    "SaveOrderResponse",
    "WebhookAck",
]
