"""Coupon evaluation service: eligibility checks and discount calculation."""

from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy.orm import Session

from storefront.core.errors import BusinessRuleViolation, LimitReached, NotFoundError
from storefront.models.coupon import Coupon, DiscountType
from storefront.models.shared import as_utc, utc_now
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Quantize a monetary value to cents, rounding half away from zero."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_discount(
    discount_type: DiscountType | str,
    discount_value: Any,
    subtotal: Any,
    max_discount_amount: Any | None = None,
) -> Decimal:
    """Calculate the discount a coupon grants on a subtotal.

    Percentage discounts are capped by ``max_discount_amount`` when set.
    Any discount is capped by the subtotal so a total never goes negative.
    """
    subtotal_dec = to_money(subtotal)
    value = Decimal(str(discount_value))

    if DiscountType(discount_type) == DiscountType.PERCENTAGE:
        discount = subtotal_dec * value / Decimal("100")
        if max_discount_amount is not None:
            discount = min(discount, Decimal(str(max_discount_amount)))
    else:
        discount = value

    return to_money(min(discount, subtotal_dec))


@dataclass
class CouponEvaluation:
    """Result of evaluating a coupon against a cart subtotal."""

    code: str
    discount_type: DiscountType
    subtotal: Decimal
    discount: Decimal
    final_total: Decimal


class CouponEvaluator:
    """Service deciding whether a coupon applies and what it is worth."""

    def __init__(self, db: Session):
        self.db = db
        self.coupon_repo = CouponRepository(db)
        self.order_repo = OrderRepository(db)

    def evaluate(
        self,
        code: str,
        subtotal: Any,
        user_id: str | None = None,
        now: datetime | None = None,
    ) -> CouponEvaluation:
        """Validate a coupon for a cart and compute the discount.

        Checks run in order and stop at the first failure.

        Raises:
            NotFoundError: ``InvalidCoupon`` when no coupon has this code.
            BusinessRuleViolation: ``ExpiredOrInactive``, ``BelowMinimumPurchase``
                or ``LoginRequired``.
            LimitReached: ``GlobalLimitReached`` or ``PerUserLimitReached``.
        """
        coupon = self.coupon_repo.get_by_code(code)
        if not coupon:
            raise NotFoundError("InvalidCoupon", "Invalid coupon code")

        now = now or utc_now()
        if not coupon.active or now >= as_utc(coupon.expiration_date):  # type: ignore[arg-type]
            raise BusinessRuleViolation("ExpiredOrInactive", "Coupon is expired or inactive")

        subtotal_dec = to_money(subtotal)
        if coupon.min_purchase is not None and subtotal_dec < coupon.min_purchase:
            raise BusinessRuleViolation(
                "BelowMinimumPurchase",
                f"Minimum purchase of ${to_money(coupon.min_purchase)} required to use this coupon",
            )

        self._check_usage_limits(coupon, user_id or None)

        discount = calculate_discount(
            coupon.discount_type,  # type: ignore[arg-type]
            coupon.discount_value,
            subtotal_dec,
            coupon.max_discount_amount,
        )
        return CouponEvaluation(
            code=str(coupon.code),
            discount_type=DiscountType(coupon.discount_type),
            subtotal=subtotal_dec,
            discount=discount,
            final_total=subtotal_dec - discount,
        )

    def redeem(self, code: str, commit: bool = True) -> bool:
        """Count one use of a coupon, refusing once its usage limit is reached."""
        return self.coupon_repo.increment_usage(code, commit=commit)

    def _check_usage_limits(self, coupon: Coupon, user_id: str | None) -> None:
        """Advisory usage checks.

        Counts are read without a lock; ``redeem`` is the enforcing step.
        """
        code = str(coupon.code)

        if coupon.usage_limit and coupon.usage_limit > 0:
            used = max(int(coupon.times_used or 0), self.order_repo.count_by_coupon(code))
            if used >= coupon.usage_limit:
                raise LimitReached("GlobalLimitReached", "Coupon usage limit has been reached")

        if coupon.per_user_limit and coupon.per_user_limit > 0:
            if not user_id:
                raise BusinessRuleViolation(
                    "LoginRequired", "Please log in to use this coupon"
                )
            if self.order_repo.count_by_coupon(code, user_id=user_id) >= coupon.per_user_limit:
                raise LimitReached(
                    "PerUserLimitReached",
                    "You have already used this coupon the maximum number of times",
                )
