"""
Razorpay client for payment orders and payment signature checks.

Implements:
- Payment order creation (amount converted to the smallest currency unit)
- Payment signature verification through the SDK utility
"""
import time
from typing import Any, Dict, Optional

import razorpay
import requests
import structlog
from fastapi import HTTPException, Request
from razorpay.errors import BadRequestError, GatewayError, ServerError, SignatureVerificationError

from config import Settings

logger = structlog.get_logger(__name__)


class PaymentGatewayError(Exception):
    """Raised when the payment gateway call fails."""

    pass


class PaymentConfigurationError(PaymentGatewayError):
    """Raised when gateway credentials are missing."""

    pass


class RazorpayGateway:
    """
    Wrapper for the Razorpay API.

    Calls are made once; failures are logged and raised as
    PaymentGatewayError without retrying.
    """

    def __init__(
        self,
        key_id: Optional[str],
        key_secret: Optional[str],
        currency: str = "INR",
        client: Optional[Any] = None,
    ) -> None:
        self.key_id = key_id
        self.key_secret = key_secret
        self.currency = currency
        if client is None and key_id and key_secret:
            client = razorpay.Client(auth=(key_id, key_secret))
        self.client = client
        # Signature checks only need the secret; they never reach the network.
        self.signature_client = (
            razorpay.Client(auth=(key_id or "", key_secret)) if key_secret else None
        )

        logger.info(
            "razorpay_gateway_initialized",
            currency=currency,
            configured=self.client is not None,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RazorpayGateway":
        return cls(
            key_id=settings.razorpay_key_id,
            key_secret=settings.razorpay_secret,
            currency=settings.payment_currency,
        )

    @staticmethod
    def to_subunits(amount: float) -> int:
        """Convert an amount in major units (rupees) to paise."""
        return int(round(amount * 100))

    def create_order(self, amount: float) -> Dict[str, Any]:
        """
        Create a Razorpay order for the given amount.

        Args:
            amount: Amount in major currency units

        Returns:
            Dict[str, Any]: Gateway order object, unmodified

        Raises:
            PaymentGatewayError: If the gateway rejects the call or is unreachable
        """
        if self.client is None:
            raise PaymentConfigurationError("Razorpay credentials are not configured")

        options = {
            "amount": self.to_subunits(amount),
            "currency": self.currency,
            "receipt": f"receipt_{int(time.time() * 1000)}",
        }
        logger.info("creating_payment_order", **options)

        try:
            order = self.client.order.create(data=options)
        except (BadRequestError, GatewayError, ServerError, requests.RequestException) as e:
            logger.error("payment_order_failed", error=str(e), error_type=type(e).__name__)
            raise PaymentGatewayError(str(e)) from e

        logger.info("payment_order_created", gateway_order_id=order.get("id"))
        return order

    def verify_signature(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check a payment signature issued by the gateway.

        Raises:
            PaymentConfigurationError: If the shared secret is not configured
        """
        if self.signature_client is None:
            raise PaymentConfigurationError("RAZORPAY_SECRET is missing")

        try:
            self.signature_client.utility.verify_payment_signature(
                {
                    "razorpay_order_id": order_id,
                    "razorpay_payment_id": payment_id,
                    "razorpay_signature": signature,
                }
            )
            verified = True
        except SignatureVerificationError:
            verified = False

        logger.info(
            "payment_signature_checked",
            gateway_order_id=order_id,
            payment_id=payment_id,
            verified=verified,
        )
        return verified


def get_gateway(request: Request) -> RazorpayGateway:
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status_code=500, detail="Payment gateway not configured")
    return gateway
