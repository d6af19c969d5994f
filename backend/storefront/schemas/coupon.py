"""Coupon schemas."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from storefront.models.coupon import DiscountType
from storefront.schemas.base import CamelModel, CamelResponse


def normalize_code(code: str) -> str:
    """Coupon codes are compared trimmed and upper-cased."""
    return code.strip().upper()


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _to_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def percentage_out_of_range(discount_type: DiscountType | str, discount_value: Any) -> bool:
    """Percentage coupons take a ``discountValue`` between 0 and 100."""
    return (
        DiscountType(discount_type) == DiscountType.PERCENTAGE
        and Decimal(str(discount_value)) > 100
    )


class CouponCreate(CamelModel):
    code: str = Field(min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: Decimal = Field(gt=0)
    min_purchase: Decimal | None = Field(default=None, ge=0)
    max_discount_amount: Decimal | None = Field(default=None, gt=0)
    usage_limit: int | None = Field(default=None, ge=0)
    per_user_limit: int | None = Field(default=None, ge=0)
    expiration_date: datetime
    active: bool = True

    @field_validator("code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        code = normalize_code(v)
        if not code:
            raise ValueError("code must not be blank")
        return code

    @field_validator(
        "min_purchase", "max_discount_amount", "usage_limit", "per_user_limit", mode="before"
    )
    @classmethod
    def _optional_blank(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("expiration_date")
    @classmethod
    def _expiration_utc(cls, v: datetime) -> datetime:
        return _to_utc(v)  # type: ignore[return-value]

    @model_validator(mode="after")
    def _check_percentage(self) -> "CouponCreate":
        if percentage_out_of_range(self.discount_type, self.discount_value):
            raise ValueError("percentage discountValue must be between 0 and 100")
        return self


class CouponUpdate(CamelModel):
    """Partial coupon update. Only fields present in the request are merged.

    ``minPurchase`` and ``maxDiscountAmount`` may be sent as null to clear
    them; every other field must carry a value when present.
    """

    discount_type: DiscountType | None = None
    discount_value: Decimal | None = Field(default=None, gt=0)
    min_purchase: Decimal | None = Field(default=None, ge=0)
    max_discount_amount: Decimal | None = Field(default=None, gt=0)
    usage_limit: int | None = Field(default=None, ge=0)
    per_user_limit: int | None = Field(default=None, ge=0)
    expiration_date: datetime | None = None
    active: bool | None = None

    @field_validator(
        "discount_type",
        "discount_value",
        "usage_limit",
        "per_user_limit",
        "expiration_date",
        "active",
    )
    @classmethod
    def _not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("value must not be null")
        return v

    @field_validator("expiration_date")
    @classmethod
    def _expiration_utc(cls, v: datetime) -> datetime:
        return _to_utc(v)  # type: ignore[return-value]


class CouponResponse(CamelResponse):
    id: UUID
    code: str
    discount_type: str
    discount_value: float
    min_purchase: float | None = None
    max_discount_amount: float | None = None
    usage_limit: int
    per_user_limit: int
    times_used: int
    expiration_date: datetime
    active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ApplyCouponRequest(CamelModel):
    code: str = Field(min_length=1)
    subtotal: float = Field(ge=0)
    user_id: str | None = None


class ApplyCouponResponse(CamelModel):
    success: bool = True
    discount: float
    discount_type: str
    final_total: float
    message: str


class CouponRejection(CamelModel):
    success: bool = False
    message: str
