"""Payment gateway abstraction layer.

Checkout talks to the gateway through ``PaymentGatewayBase`` so routers and
services never import the Stripe SDK directly.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from storefront.core.config import settings
from storefront.core.errors import (
    ExternalServiceError,
    NotFoundError,
    SignatureVerificationError,
)

logger = logging.getLogger(__name__)

INTENT_SUCCEEDED = "succeeded"
INTENT_FAILED = "failed"


@dataclass
class PaymentIntent:
    """Gateway-side record of an attempted charge."""

    id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == INTENT_SUCCEEDED


@dataclass
class WebhookEvent:
    """Result of parsing a verified webhook."""

    event_type: str
    payment_intent_id: str | None = None
    status: str | None = None
    failure_reason: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class PaymentGatewayBase(ABC):
    """Abstract base class for payment gateways."""

    @abstractmethod
    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """Create a payment intent for an amount in minor units."""
        pass  # pragma: no cover

    @abstractmethod
    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        """Fetch the current state of a payment intent."""
        pass  # pragma: no cover

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> None:
        """Verify a webhook signature over the raw request body.

        Raises:
            SignatureVerificationError: If the signature does not match.
        """
        pass  # pragma: no cover

    @abstractmethod
    def parse_webhook(self, payload: Any) -> WebhookEvent:
        """Parse a webhook payload and return structured result."""
        pass  # pragma: no cover

    def construct_webhook_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify the raw body, then parse it."""
        self.verify_webhook_signature(payload, signature)
        try:
            data = json.loads(payload)
        except ValueError as e:
            raise SignatureVerificationError("InvalidPayload", f"Invalid payload: {e}") from e
        return self.parse_webhook(data)


class StripeGateway(PaymentGatewayBase):
    """Stripe payment gateway implementation."""

    def __init__(self, api_key: str | None = None, webhook_secret: str | None = None):
        self.api_key = api_key or settings.stripe_api_key
        self.webhook_secret = webhook_secret or settings.stripe_webhook_secret
        self._stripe: Any = None

    @property
    def stripe(self) -> Any:
        """Lazy-load stripe module."""
        if self._stripe is None:
            import stripe

            stripe.api_key = self.api_key
            self._stripe = stripe
        return self._stripe

    @staticmethod
    def _to_intent(obj: Any) -> PaymentIntent:
        return PaymentIntent(
            id=obj["id"],
            status=obj["status"],
            amount=int(obj["amount"]),
            currency=obj["currency"],
            client_secret=obj.get("client_secret"),
            metadata=dict(obj.get("metadata") or {}),
        )

    def create_payment_intent(
        self,
        amount_cents: int,
        currency: str,
        metadata: dict[str, str] | None = None,
    ) -> PaymentIntent:
        """Create a card-only Stripe PaymentIntent."""
        try:
            intent = self.stripe.PaymentIntent.create(
                amount=amount_cents,
                currency=currency.lower(),
                payment_method_types=["card"],
                metadata=metadata or {},
            )
        except self.stripe.StripeError as e:
            logger.exception("Stripe PaymentIntent creation failed")
            raise ExternalServiceError(
                "GatewayError", "Failed to create payment intent"
            ) from e
        return self._to_intent(intent)

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntent:
        """Retrieve a Stripe PaymentIntent by ID."""
        try:
            intent = self.stripe.PaymentIntent.retrieve(payment_intent_id)
        except self.stripe.InvalidRequestError as e:
            raise NotFoundError("PaymentIntentNotFound", "Payment intent not found") from e
        except self.stripe.StripeError as e:
            logger.exception("Stripe PaymentIntent %s retrieval failed", payment_intent_id)
            raise ExternalServiceError(
                "GatewayError", "Failed to verify payment"
            ) from e
        return self._to_intent(intent)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> None:
        """Verify the ``Stripe-Signature`` header over the raw body.

        Only the signature is checked here; the body is parsed afterwards by
        ``parse_webhook`` so a signed but oddly shaped event never fails in
        the SDK.
        """
        if not self.webhook_secret:
            raise SignatureVerificationError(
                "InvalidSignature", "Webhook signing secret is not configured"
            )
        try:
            self.stripe.WebhookSignature.verify_header(
                payload.decode("utf-8"),
                signature,
                self.webhook_secret,
                tolerance=self.stripe.Webhook.DEFAULT_TOLERANCE,
            )
        except (ValueError, self.stripe.SignatureVerificationError) as e:
            raise SignatureVerificationError("InvalidSignature", str(e)) from e

    def parse_webhook(self, payload: Any) -> WebhookEvent:
        """Parse Stripe webhook payload.

        Missing or non-object sections read as empty, so such events are
        acknowledged as unhandled.
        """
        payload = _as_dict(payload)
        event_type = str(payload.get("type") or "")
        data_object = _as_dict(_as_dict(payload.get("data")).get("object"))

        result = WebhookEvent(
            event_type=event_type,
            metadata=_as_dict(data_object.get("metadata")),
        )

        if event_type == "payment_intent.succeeded":
            result.payment_intent_id = data_object.get("id")
            result.status = INTENT_SUCCEEDED

        elif event_type == "payment_intent.payment_failed":
            result.payment_intent_id = data_object.get("id")
            result.status = INTENT_FAILED
            last_error = _as_dict(data_object.get("last_payment_error"))
            result.failure_reason = last_error.get("message", "Payment failed")

        return result


def _as_dict(value: Any) -> dict[str, Any]:
    return dict(value) if isinstance(value, dict) else {}


def get_payment_gateway() -> PaymentGatewayBase:
    """FastAPI dependency returning the configured payment gateway."""
    return StripeGateway()
