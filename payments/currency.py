import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

import requests
from django.conf import settings
from requests import RequestException

from templateshop.errors import ValidationError

logger = logging.getLogger(__name__)

TWO_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.00000001")


def base_currency() -> str:
    return getattr(settings, "BASE_CURRENCY", "INR")


def _static_rate(code: str):
    raw = (getattr(settings, "STATIC_EXCHANGE_RATES", {}) or {}).get(code)
    if raw is None:
        return None
    return Decimal(str(raw))


def _api_rate(code: str):
    url = getattr(settings, "EXCHANGE_RATE_API_URL", "")
    if not url:
        return None
    try:
        resp = requests.get(
            f"{url.rstrip('/')}/{base_currency()}",
            timeout=float(getattr(settings, "EXCHANGE_RATE_TIMEOUT_SECONDS", 5)),
        )
        resp.raise_for_status()
        rate = (resp.json().get("rates") or {}).get(code)
    except (RequestException, ValueError):
        logger.warning("Exchange rate API unavailable for %s; using static rates", code, exc_info=True)
        return None
    if rate is None:
        return None
    try:
        return Decimal(str(rate))
    except InvalidOperation:
        logger.warning("Exchange rate API returned a non-numeric rate for %s: %r", code, rate)
        return None


def get_exchange_rate(code: str) -> Decimal:
    """Units of ``code`` per one unit of the base currency.

    Display-only: charges are always made in the base currency.
    """
    code = (code or "").strip().upper()
    if code == base_currency():
        return Decimal("1")
    rate = _api_rate(code)
    if rate is None:
        rate = _static_rate(code)
    if rate is None or rate <= 0:
        raise ValidationError(f"Unsupported currency: {code}", code="UNSUPPORTED_CURRENCY")
    return rate.quantize(RATE_PLACES, rounding=ROUND_HALF_UP)


def convert_minor_units(amount_minor: int, rate: Decimal) -> Decimal:
    """Convert paise to a 2-place display amount in the target currency."""
    return (Decimal(amount_minor) / 100 * rate).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
