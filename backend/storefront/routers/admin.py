"""Operator endpoints for coupons and orders."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from storefront.core.database import get_db
from storefront.models.coupon import Coupon
from storefront.models.order import Order, OrderStatus
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.coupon import (
    CouponCreate,
    CouponResponse,
    CouponUpdate,
    percentage_out_of_range,
)
from storefront.schemas.order import OrderResponse, OrderStatusUpdate

router = APIRouter()


@router.get("/coupons", response_model=list[CouponResponse], summary="List coupons")
async def list_coupons(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Coupon]:
    """List all coupons, newest first."""
    return CouponRepository(db).get_all(skip=skip, limit=limit)


@router.post(
    "/create-coupon",
    response_model=CouponResponse,
    status_code=201,
    summary="Create coupon",
    responses={
        400: {"description": "Coupon code already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_coupon(
    data: CouponCreate,
    db: Session = Depends(get_db),
) -> Coupon:
    """Create a new coupon. The code is stored trimmed and upper-cased."""
    repo = CouponRepository(db)
    if repo.get_by_code(data.code):
        raise HTTPException(status_code=400, detail="Coupon code already exists.")
    return repo.create(data)


@router.patch(
    "/coupons/{coupon_id}",
    response_model=CouponResponse,
    summary="Update coupon",
    responses={
        400: {"description": "Percentage discount out of range"},
        404: {"description": "Coupon not found"},
        422: {"description": "Validation error"},
    },
)
async def update_coupon(
    coupon_id: UUID,
    data: CouponUpdate,
    db: Session = Depends(get_db),
) -> Coupon:
    """Update the supplied fields of a coupon.

    The percentage range is checked against the coupon as it will be after
    the merge, so changing only the type or only the value is covered.
    """
    repo = CouponRepository(db)
    coupon = repo.get_by_id(coupon_id)
    if not coupon:
        raise HTTPException(status_code=404, detail="Coupon not found.")

    if percentage_out_of_range(
        data.discount_type or coupon.discount_type,
        data.discount_value if data.discount_value is not None else coupon.discount_value,
    ):
        raise HTTPException(
            status_code=400, detail="Percentage discount must be between 0 and 100."
        )
    return repo.update(coupon_id, data)  # type: ignore[return-value]


@router.delete(
    "/delete-coupon/{coupon_id}",
    summary="Delete coupon",
    responses={404: {"description": "Coupon not found"}},
)
async def delete_coupon(
    coupon_id: UUID,
    db: Session = Depends(get_db),
) -> dict[str, str]:
    """Delete a coupon."""
    if not CouponRepository(db).delete(coupon_id):
        raise HTTPException(status_code=404, detail="Coupon not found.")
    return {"message": "Coupon deleted successfully."}


@router.get("/all-orders", response_model=list[OrderResponse], summary="List orders")
async def list_orders(
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    user_id: str | None = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
) -> list[Order]:
    """List orders, newest first."""
    return OrderRepository(db).get_all(skip=skip, limit=limit, user_id=user_id)


@router.get(
    "/order-details/{order_id}",
    response_model=OrderResponse,
    summary="Get order",
    responses={404: {"description": "Order not found"}},
)
async def get_order(
    order_id: UUID,
    db: Session = Depends(get_db),
) -> Order:
    """Get an order by ID."""
    order = OrderRepository(db).get_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found.")
    return order


@router.patch(
    "/update-status/{order_id}",
    response_model=OrderResponse,
    summary="Update order status",
    responses={
        400: {"description": "Invalid or missing status"},
        404: {"description": "Order not found"},
    },
)
async def update_order_status(
    order_id: UUID,
    data: OrderStatusUpdate,
    db: Session = Depends(get_db),
) -> Order:
    """Move an order to another fulfilment status."""
    try:
        status = OrderStatus(data.status)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid or missing status.") from None

    order = OrderRepository(db).update_status(order_id, status)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found.")
    return order
