from decimal import Decimal
from unittest.mock import MagicMock, patch

import requests
from django.test import SimpleTestCase, override_settings

from payments import currency
from templateshop.errors import ValidationError


class ExchangeRateTests(SimpleTestCase):
    def test_base_currency_is_one(self):
        self.assertEqual(currency.get_exchange_rate("INR"), Decimal("1"))
        self.assertEqual(currency.get_exchange_rate(" inr "), Decimal("1"))

    def test_static_rate(self):
        self.assertEqual(currency.get_exchange_rate("USD"), Decimal("0.012"))

    def test_unsupported(self):
        with self.assertRaises(ValidationError) as ctx:
            currency.get_exchange_rate("XYZ")
        self.assertEqual(ctx.exception.code, "UNSUPPORTED_CURRENCY")

    @override_settings(EXCHANGE_RATE_API_URL="https://rates.test/latest")
    def test_api_rate_preferred(self):
        resp = MagicMock()
        resp.json.return_value = {"rates": {"USD": 0.0119}}
        with patch("payments.currency.requests.get", return_value=resp) as get:
            rate = currency.get_exchange_rate("USD")
        self.assertEqual(rate, Decimal("0.0119"))
        self.assertEqual(get.call_args.args[0], "https://rates.test/latest/INR")

    @override_settings(EXCHANGE_RATE_API_URL="https://rates.test/latest")
    def test_api_failure_falls_back_to_static(self):
        with patch("payments.currency.requests.get", side_effect=requests.ConnectionError()):
            self.assertEqual(currency.get_exchange_rate("EUR"), Decimal("0.011"))


class ConvertTests(SimpleTestCase):
    def test_paise_to_local(self):
        self.assertEqual(currency.convert_minor_units(80000, Decimal("0.012")), Decimal("9.60"))
        self.assertEqual(currency.convert_minor_units(80000, Decimal("1")), Decimal("800.00"))

    def test_rounds_half_up(self):
        # 125 paise * 0.01 = 0.0125
        self.assertEqual(currency.convert_minor_units(125, Decimal("0.01")), Decimal("0.01"))
        self.assertEqual(currency.convert_minor_units(150, Decimal("0.01")), Decimal("0.02"))
