import json
import logging

import requests
from django.conf import settings
from requests import RequestException
from requests.auth import HTTPBasicAuth

from templateshop.errors import GatewayError

logger = logging.getLogger(__name__)

COMMON_HEADERS = {"Content-Type": "application/json", "Accept": "application/json"}


def _base_url() -> str:
    return getattr(settings, "RAZORPAY_BASE_URL", "https://api.razorpay.com/v1").rstrip("/")


def _auth() -> HTTPBasicAuth:
    key_id = getattr(settings, "RAZORPAY_KEY_ID", "")
    key_secret = getattr(settings, "RAZORPAY_KEY_SECRET", "")
    if not (key_id and key_secret):
        raise GatewayError("Payment provider is not configured")
    return HTTPBasicAuth(key_id, key_secret)


def _timeout() -> float:
    return float(getattr(settings, "RAZORPAY_TIMEOUT_SECONDS", 15))


def public_key_id() -> str:
    return getattr(settings, "RAZORPAY_KEY_ID", "")


def _parse(resp, action: str) -> dict:
    try: data = resp.json()
    except ValueError: data = {"raw": resp.text}
    if resp.status_code == 200: return data
    if resp.status_code == 401: hint = "Check RAZORPAY_KEY_ID / RAZORPAY_KEY_SECRET."
    elif resp.status_code == 400: hint = "Bad request: amount/currency/receipt."
    elif resp.status_code >= 500: hint = f"Gateway error {resp.status_code}."
    else: hint = f"HTTP {resp.status_code}"
    logger.error("Razorpay %s failed: %s Response: %s", action, hint, json.dumps(data)[:800])
    raise GatewayError(f"{action} failed: {hint}")


def create_order(*, amount: int, receipt: str, notes: dict = None, currency: str = "INR") -> dict:
    """Create a Razorpay order (payment intent) for ``amount`` paise.

    Returns the decoded order object; its ``id`` is what Checkout and the
    webhook later refer to.
    """
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise GatewayError("Order amount must be a positive integer in paise")
    payload = {
        "amount": amount,
        "currency": currency,
        "receipt": receipt,
        "notes": notes or {},
    }
    try:
        resp = requests.post(
            f"{_base_url()}/orders", json=payload, headers=COMMON_HEADERS,
            auth=_auth(), timeout=_timeout(),
        )
    except RequestException as e:
        logger.exception("Razorpay create order request failed for receipt=%s", receipt)
        raise GatewayError("Payment provider request failed") from e

    data = _parse(resp, "Create order")
    if not data.get("id"):
        raise GatewayError("Invalid order response from payment provider")
    if "amount" in data and int(data["amount"]) != amount:
        logger.error(
            "Razorpay order %s amount mismatch: sent=%s got=%s", data["id"], amount, data["amount"]
        )
        raise GatewayError("Payment provider returned a different amount")
    return data


def fetch_order(order_id: str) -> dict:
    """Read a Razorpay order; ``status`` is one of created/attempted/paid."""
    try:
        resp = requests.get(
            f"{_base_url()}/orders/{order_id}", headers=COMMON_HEADERS,
            auth=_auth(), timeout=_timeout(),
        )
    except RequestException as e:
        logger.exception("Razorpay fetch order request failed for %s", order_id)
        raise GatewayError("Payment provider request failed") from e
    return _parse(resp, "Fetch order")
