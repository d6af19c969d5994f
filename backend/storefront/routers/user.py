"""Shopper-facing order and coupon endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.core.database import get_db
from storefront.models.coupon import Coupon
from storefront.models.order import PaymentMethod
from storefront.models.shared import utc_now
from storefront.repositories.coupon_repository import CouponRepository
from storefront.repositories.order_repository import OrderRepository
from storefront.schemas.coupon import CouponResponse
from storefront.schemas.order import OrderCreate, OrderCreatedResponse, OrderResponse

router = APIRouter()


@router.post(
    "/create-order",
    response_model=OrderCreatedResponse,
    status_code=201,
    summary="Create unpaid order",
    responses={422: {"description": "Missing or invalid order data"}},
)
async def create_order(
    data: OrderCreate,
    db: Session = Depends(get_db),
) -> OrderCreatedResponse:
    """Create an order awaiting payment (cash on delivery, or online later)."""
    repo = OrderRepository(db)
    order = repo.create(
        first_name=data.first_name,
        last_name=data.last_name,
        contact_no=data.contact_no,
        address=data.address,
        apartment_no=data.apartment_no,
        city=data.city,
        items=[item.model_dump(by_alias=True, exclude_none=True) for item in data.items],
        total_amount=data.total_amount,
        delivery_charge=data.delivery_charge,
        payment_method=PaymentMethod(data.payment_method),
        user_id=data.user_id,
    )
    return OrderCreatedResponse(
        message="Order created successfully",
        order=OrderResponse.model_validate(order),
    )


@router.get(
    "/active-coupon",
    response_model=list[CouponResponse],
    summary="List active coupons",
)
async def list_active_coupons(db: Session = Depends(get_db)) -> list[Coupon]:
    """List coupons that are switched on and not yet expired."""
    return CouponRepository(db).get_active(utc_now())
