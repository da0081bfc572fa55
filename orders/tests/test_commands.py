from datetime import timedelta
from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from orders.models import Order
from templateshop.errors import GatewayError
from .factories import make_order


class ExpirePendingOrdersTests(TestCase):
    def _age(self, order, hours):
        Order.objects.filter(pk=order.pk).update(created_at=timezone.now() - timedelta(hours=hours))

    def _run(self, *args):
        out = StringIO()
        call_command("expire_pending_orders", *args, stdout=out)
        return out.getvalue()

    def test_stale_unpaid_orders_are_failed(self):
        stale = make_order(gateway_order_id=None)
        fresh = make_order(gateway_order_id=None)
        self._age(stale, hours=48)

        output = self._run()

        stale.refresh_from_db()
        fresh.refresh_from_db()
        self.assertEqual(stale.status, Order.Status.FAILED)
        self.assertEqual(stale.payment_status, Order.PaymentStatus.FAILED)
        self.assertEqual(fresh.status, Order.Status.PENDING)
        self.assertIn("Checked 1, expired 1 orders.", output)

    def test_intent_paid_at_gateway_is_left_for_review(self):
        order = make_order()
        self._age(order, hours=48)
        with patch("orders.management.commands.expire_pending_orders.fetch_order",
                   return_value={"id": order.gateway_order_id, "status": "paid"}):
            output = self._run()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIn("needs review", output)

    def test_intent_still_open_at_gateway_is_expired(self):
        order = make_order()
        self._age(order, hours=48)
        with patch("orders.management.commands.expire_pending_orders.fetch_order",
                   return_value={"id": order.gateway_order_id, "status": "attempted"}):
            self._run()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.FAILED)

    def test_gateway_outage_skips_order(self):
        order = make_order()
        self._age(order, hours=48)
        with patch("orders.management.commands.expire_pending_orders.fetch_order",
                   side_effect=GatewayError("Payment provider request failed")):
            output = self._run()
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIn("skipped", output)

    def test_dry_run_changes_nothing(self):
        order = make_order(gateway_order_id=None)
        self._age(order, hours=48)
        output = self._run("--dry-run")
        order.refresh_from_db()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIn("would expire", output)

    def test_only_pending_orders_are_swept(self):
        paid = make_order(status=Order.Status.PAID, gateway_order_id=None)
        self._age(paid, hours=48)
        self._run("--older-than-minutes", "60")
        paid.refresh_from_db()
        self.assertEqual(paid.status, Order.Status.PAID)
