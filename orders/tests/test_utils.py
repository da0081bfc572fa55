import re

from django.test import RequestFactory, SimpleTestCase

from orders import utils


class OrderUtilsTests(SimpleTestCase):
    def test_order_number_format(self):
        self.assertRegex(utils.gen_order_number(), re.compile(r"^TPL\d{19}$"))

    def test_normalize_email(self):
        self.assertEqual(utils.normalize_email("  Asha@Example.COM "), "asha@example.com")
        self.assertEqual(utils.normalize_email(None), "")

    def test_client_ip_prefers_forwarded_header(self):
        rf = RequestFactory()
        req = rf.get("/", HTTP_X_FORWARDED_FOR="203.0.113.5, 10.0.0.1", REMOTE_ADDR="10.0.0.2")
        self.assertEqual(utils.client_ip(req), "203.0.113.5")
        self.assertEqual(utils.client_ip(rf.get("/", REMOTE_ADDR="10.0.0.2")), "10.0.0.2")
