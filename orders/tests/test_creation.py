from decimal import Decimal
from unittest.mock import patch

from django.test import TestCase

from orders import services
from orders.models import Order, OrderItem, OrderStatusHistory
from templateshop.errors import (
    GatewayError, InvalidTemplates, NoTemplatesFound, TemplateInactive, ValidationError,
)
from .factories import create_order, make_template


class CreateOrderTests(TestCase):
    def setUp(self):
        self.planner = make_template("Budget Planner", price_inr=50000)
        self.tracker = make_template("Habit Tracker", price_inr=30000)

    def test_totals_are_summed_in_paise(self):
        created, gw = create_order([self.planner.pk, self.tracker.pk])
        order = created.order

        self.assertEqual(order.subtotal_inr, 80000)
        self.assertEqual(order.discount_inr, 0)
        self.assertEqual(order.tax_inr, 0)
        self.assertEqual(order.total_inr, 80000)
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertEqual(order.payment_status, Order.PaymentStatus.PENDING)
        self.assertEqual(order.customer_email, "asha@example.com")
        self.assertEqual(order.gateway_order_id, "order_TESTINTENT01")
        self.assertEqual(created.gateway_key_id, "rzp_test_key")
        self.assertTrue(order.order_number.startswith("TPL"))
        self.assertGreaterEqual(len(order.download_token), 43)
        self.assertEqual(order.max_downloads, 3)
        self.assertEqual(order.download_count, 0)

        gw.assert_called_once()
        kwargs = gw.call_args.kwargs
        self.assertEqual(kwargs["amount"], 80000)
        self.assertEqual(kwargs["receipt"], order.order_number)

    def test_items_snapshot_catalog_at_purchase(self):
        created, _ = create_order([self.planner.pk])
        self.planner.title = "Budget Planner v2"
        self.planner.price_inr = 99900
        self.planner.save()

        item = OrderItem.objects.get(order=created.order)
        self.assertEqual(item.template_title, "Budget Planner")
        self.assertEqual(item.price_inr, 50000)
        self.assertEqual(item.template_file_url, created.items[0].template_file_url)

    def test_duplicate_ids_produce_duplicate_items(self):
        created, _ = create_order([self.planner.pk, self.planner.pk])
        self.assertEqual(created.order.total_inr, 100000)
        self.assertEqual(created.order.items.count(), 2)

    def test_creation_is_recorded_in_history(self):
        created, _ = create_order([self.planner.pk])
        history = list(OrderStatusHistory.objects.filter(order=created.order))
        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].from_status, "")
        self.assertEqual(history[0].to_status, Order.Status.PENDING)

    def test_order_numbers_and_tokens_are_unique(self):
        first, _ = create_order([self.planner.pk], intent_id="order_A")
        second, _ = create_order([self.planner.pk], intent_id="order_B")
        self.assertNotEqual(first.order.order_number, second.order.order_number)
        self.assertNotEqual(first.order.download_token, second.order.download_token)

    def test_local_currency_is_display_only(self):
        created, gw = create_order([self.planner.pk, self.tracker.pk], currency_code="usd")
        order = created.order
        self.assertEqual(order.currency_code, "USD")
        self.assertEqual(order.exchange_rate, Decimal("0.012"))
        self.assertEqual(order.total_local, Decimal("9.60"))
        self.assertEqual(order.total_inr, 80000)
        self.assertEqual(gw.call_args.kwargs["amount"], 80000)

    def test_unsupported_currency_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            create_order([self.planner.pk], currency_code="XYZ")
        self.assertEqual(ctx.exception.code, "UNSUPPORTED_CURRENCY")
        self.assertFalse(Order.objects.exists())


class CreateOrderValidationTests(TestCase):
    def setUp(self):
        self.active = make_template(price_inr=50000)
        self.draft = make_template("Draft Sheet", price_inr=10000, status="draft")

    def test_empty_selection(self):
        with self.assertRaises(ValidationError):
            create_order([])

    def test_missing_customer_details(self):
        with self.assertRaises(ValidationError):
            create_order([self.active.pk], customer_email="  ")
        with self.assertRaises(ValidationError):
            create_order([self.active.pk], customer_name="")

    def test_no_known_templates(self):
        with self.assertRaises(NoTemplatesFound):
            create_order([9999, 9998])
        self.assertFalse(Order.objects.exists())

    def test_partially_unknown_templates(self):
        with self.assertRaises(InvalidTemplates):
            create_order([self.active.pk, 9999])
        self.assertFalse(Order.objects.exists())

    def test_inactive_template(self):
        with self.assertRaises(TemplateInactive):
            create_order([self.active.pk, self.draft.pk])
        self.assertFalse(Order.objects.exists())

    def test_archived_template(self):
        archived = make_template("Old Sheet", status="archived")
        with self.assertRaises(TemplateInactive):
            create_order([archived.pk])


class GatewayFailureTests(TestCase):
    def test_order_left_pending_without_intent(self):
        template = make_template(price_inr=50000)
        with patch(
            "payments.integrations.razorpay.create_order",
            side_effect=GatewayError("Create order failed: Gateway error 503."),
        ):
            with self.assertRaises(GatewayError):
                services.create_order(
                    template_ids=[template.pk], customer_email="asha@example.com", customer_name="Asha Rao",
                )

        order = Order.objects.get()
        self.assertEqual(order.status, Order.Status.PENDING)
        self.assertIsNone(order.gateway_order_id)
        self.assertEqual(order.items.count(), 1)


class AppendOnlyTests(TestCase):
    def test_items_cannot_be_updated(self):
        created, _ = create_order([make_template().pk])
        item = created.items[0]
        item.price_inr = 1
        with self.assertRaises(ValueError):
            item.save()
        item.refresh_from_db()
        self.assertEqual(item.price_inr, 50000)
