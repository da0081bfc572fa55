"""Signature helpers for Razorpay payment confirmations."""

import hmac, hashlib, logging
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


logger = logging.getLogger(__name__)


def _secret(setting_name: str) -> bytes:
    secret = getattr(settings, setting_name, "")
    if not secret:
        logger.error("%s missing in settings", setting_name)
        raise ImproperlyConfigured(f"{setting_name} setting is required to verify signatures")
    return secret.encode()


def compute_signature(message: bytes, secret: bytes) -> str:
    """Hex HMAC-SHA256 of ``message`` keyed with ``secret``."""
    return hmac.new(secret, message, hashlib.sha256).hexdigest()


def signature_matches(message: bytes, secret: bytes, received_sig: str) -> bool:
    expected = compute_signature(message, secret)
    return hmac.compare_digest(expected, (received_sig or "").strip())


def client_signature_message(intent_id: str, payment_id: str) -> bytes:
    return f"{intent_id}|{payment_id}".encode()


def verify_client_signature(intent_id: str, payment_id: str, signature: str) -> bool:
    """
    Verify the signature Checkout hands back to the browser after payment.

    Razorpay signs ``"{order_id}|{payment_id}"`` with the API key secret.
    """
    message = client_signature_message(intent_id, payment_id)
    return signature_matches(message, _secret("RAZORPAY_KEY_SECRET"), signature)


def verify_webhook_signature(raw_body: bytes, signature: str) -> bool:
    """
    Verify ``X-Razorpay-Signature`` against the raw request body.

    Webhooks use their own secret, configured separately from the API key
    secret in the Razorpay dashboard.
    """
    return signature_matches(raw_body, _secret("RAZORPAY_WEBHOOK_SECRET"), signature)
