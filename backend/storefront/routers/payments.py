"""Checkout payment API endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from storefront.core.database import get_db
from storefront.core.errors import CheckoutError, SignatureVerificationError
from storefront.schemas.coupon import ApplyCouponRequest, ApplyCouponResponse, CouponRejection
from storefront.schemas.order import OrderResponse, SaveOrderRequest, SaveOrderResponse
from storefront.schemas.payment import PaymentIntentCreate, PaymentIntentResponse, WebhookAck
from storefront.services.coupon_service import CouponEvaluator
from storefront.services.order_service import OrderReconciliationService
from storefront.services.payment_gateway import PaymentGatewayBase, get_payment_gateway
from storefront.services.payment_service import PaymentIntentService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/create-payment-intent",
    response_model=PaymentIntentResponse,
    response_model_exclude_none=True,
    summary="Create payment intent",
    responses={
        400: {"description": "Invalid cart, rejected coupon or amount too low"},
        404: {"description": "Coupon or order not found"},
        409: {"description": "Coupon usage limit reached"},
        502: {"description": "Payment gateway error"},
    },
)
async def create_payment_intent(
    data: PaymentIntentCreate,
    db: Session = Depends(get_db),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> PaymentIntentResponse:
    """Create a gateway payment intent for the cart total.

    With ``couponCode`` the coupon is applied server-side and the response
    also reports the undiscounted subtotal and the charged amount in cents.
    """
    service = PaymentIntentService(db, gateway)
    try:
        result = service.create_intent(data)
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None

    response = PaymentIntentResponse(
        client_secret=result.client_secret,
        payment_intent_id=result.payment_intent_id,
    )
    if result.coupon:
        response.usd_subtotal = float(result.subtotal)
        response.amount_in_cents = result.amount_cents
    return response


@router.post(
    "/apply-coupon",
    response_model=ApplyCouponResponse,
    summary="Apply coupon to cart",
    responses={
        400: {"model": CouponRejection, "description": "Coupon cannot be applied"},
        404: {"model": CouponRejection, "description": "Invalid coupon code"},
        409: {"model": CouponRejection, "description": "Coupon usage limit reached"},
    },
)
async def apply_coupon(
    data: ApplyCouponRequest,
    db: Session = Depends(get_db),
) -> Any:
    """Validate a coupon against a cart subtotal and return the discount."""
    evaluator = CouponEvaluator(db)
    try:
        evaluation = evaluator.evaluate(data.code, data.subtotal, user_id=data.user_id)
    except CheckoutError as e:
        return JSONResponse(
            status_code=e.status_code,
            content=CouponRejection(message=e.message).model_dump(by_alias=True),
        )

    return ApplyCouponResponse(
        discount=float(evaluation.discount),
        discount_type=evaluation.discount_type.value,
        final_total=float(evaluation.final_total),
        message=f"Coupon applied! You saved ${evaluation.discount}",
    )


@router.post(
    "/save-order",
    response_model=SaveOrderResponse,
    status_code=201,
    summary="Save paid order",
    responses={
        200: {"description": "Order already recorded for this payment intent"},
        400: {"description": "Missing fields or payment not confirmed"},
        409: {"description": "Coupon usage limit reached"},
        502: {"description": "Payment gateway error"},
    },
)
async def save_order(
    data: SaveOrderRequest,
    response: Response,
    db: Session = Depends(get_db),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> SaveOrderResponse:
    """Persist an order once the gateway confirms its payment intent succeeded."""
    service = OrderReconciliationService(db, gateway)
    try:
        order, created = service.save_order(data)
    except CheckoutError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message) from None

    if not created:
        response.status_code = 200
    return SaveOrderResponse(
        message="Order saved",
        order=OrderResponse.model_validate(order),
    )


@router.post(
    "/webhook",
    response_model=WebhookAck,
    summary="Payment gateway webhook",
    responses={400: {"description": "Signature verification failed"}},
)
async def handle_webhook(
    request: Request,
    stripe_signature: str | None = Header(None, alias="Stripe-Signature"),
    db: Session = Depends(get_db),
    gateway: PaymentGatewayBase = Depends(get_payment_gateway),
) -> Any:
    """Receive payment outcome notifications from the gateway.

    The signature is checked against the raw request body before anything
    is parsed. Every verified event is acknowledged, handled or not.
    """
    payload = await request.body()

    try:
        event = gateway.construct_webhook_event(payload, stripe_signature or "")
    except SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e.message)
        return PlainTextResponse(f"Webhook Error: {e.message}", status_code=400)

    OrderReconciliationService(db, gateway).apply_webhook_event(event)
    return WebhookAck(received=True)
