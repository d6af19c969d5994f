"""Checkout error taxonomy.

Services raise these; routers translate them into HTTP responses with
``status_code`` and a human readable ``message``. All of them are
``ValueError`` subclasses so callers that only care about "rejected
input" can keep catching ``ValueError``.
"""


class CheckoutError(ValueError):
    """Base class for checkout failures carrying a machine readable code."""

    status_code = 400

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


class ValidationError(CheckoutError):
    """Missing or malformed input."""


class NotFoundError(CheckoutError):
    """Coupon, order or intent absent."""

    status_code = 404


class BusinessRuleViolation(CheckoutError):
    """Input is well formed but a checkout rule rejects it."""


class LimitReached(BusinessRuleViolation):
    """A coupon usage cap has been reached."""

    status_code = 409


class ExternalServiceError(CheckoutError):
    """The payment gateway failed or could not be reached."""

    status_code = 502


class SignatureVerificationError(CheckoutError):
    """A webhook payload did not match its signature."""
