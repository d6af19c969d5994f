"""Coupon repository for data access."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.orm import Session

from storefront.models.coupon import Coupon
from storefront.schemas.coupon import CouponCreate, CouponUpdate, normalize_code


class CouponRepository:
    """Repository for Coupon model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100) -> list[Coupon]:
        """Get all coupons, newest first."""
        return (
            self.db.query(Coupon)
            .order_by(Coupon.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_active(self, now: datetime) -> list[Coupon]:
        """Get coupons that are switched on and not yet expired."""
        return (
            self.db.query(Coupon)
            .filter(Coupon.active.is_(True), Coupon.expiration_date >= now)
            .order_by(Coupon.created_at.desc())
            .all()
        )

    def get_by_id(self, coupon_id: UUID) -> Coupon | None:
        """Get a coupon by ID."""
        return self.db.query(Coupon).filter(Coupon.id == coupon_id).first()

    def get_by_code(self, code: str) -> Coupon | None:
        """Get a coupon by code, case-insensitively."""
        return self.db.query(Coupon).filter(Coupon.code == normalize_code(code)).first()

    def create(self, data: CouponCreate) -> Coupon:
        """Create a new coupon.

        Optional limits fall back to the column defaults when not supplied.
        """
        values = data.model_dump(exclude_none=True)
        values["discount_type"] = data.discount_type.value
        coupon = Coupon(**values)
        self.db.add(coupon)
        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def update(self, coupon_id: UUID, data: CouponUpdate) -> Coupon | None:
        """Merge the populated fields of ``data`` into a coupon."""
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return None

        update_data = data.model_dump(exclude_unset=True)
        if update_data.get("discount_type"):
            update_data["discount_type"] = update_data["discount_type"].value

        for key, value in update_data.items():
            setattr(coupon, key, value)

        self.db.commit()
        self.db.refresh(coupon)
        return coupon

    def delete(self, coupon_id: UUID) -> bool:
        """Delete a coupon by ID."""
        coupon = self.get_by_id(coupon_id)
        if not coupon:
            return False

        self.db.delete(coupon)
        self.db.commit()
        return True

    def increment_usage(self, code: str, commit: bool = True) -> bool:
        """Count one redemption if the coupon is still below its usage limit.

        Runs as a single conditional UPDATE so two concurrent redemptions
        cannot both take the last slot. Returns False when the limit is
        already reached or the coupon does not exist.
        """
        updated = (
            self.db.query(Coupon)
            .filter(
                Coupon.code == normalize_code(code),
                or_(Coupon.usage_limit <= 0, Coupon.times_used < Coupon.usage_limit),
            )
            .update({Coupon.times_used: Coupon.times_used + 1}, synchronize_session=False)
        )
        if commit:
            self.db.commit()
        return bool(updated)
