from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone

from orders import services
from orders.models import DownloadLog, Order, OrderStatusHistory
from templateshop.errors import (
    DownloadLimitExceeded, LinkExpired, OrderNotApproved, OrderNotFound, ValidationError,
)
from .factories import create_order, make_order, make_template, pay


class PurchaseToDownloadTests(TestCase):
    def test_full_lifecycle(self):
        admin = get_user_model().objects.create_user("reviewer", "reviewer@example.com", "pw", is_staff=True)
        created, _ = create_order([make_template(price_inr=50000).pk, make_template(price_inr=30000).pk])
        order = created.order
        self.assertEqual(order.total_inr, 80000)

        order = pay(order)
        self.assertEqual(order.status, Order.Status.PAID)
        order = services.approve_order(order.pk, admin.pk)
        self.assertEqual(order.status, Order.Status.APPROVED)

        order, items = services.authorize_download(token=order.download_token)
        self.assertEqual(order.status, Order.Status.COMPLETED)
        self.assertEqual(order.download_count, 1)
        self.assertIsNotNone(order.completed_at)
        self.assertEqual(len(items), 2)

        for expected in (2, 3):
            order, _ = services.authorize_download(token=order.download_token)
            self.assertEqual(order.download_count, expected)

        with self.assertRaises(DownloadLimitExceeded):
            services.authorize_download(token=order.download_token)

        order.refresh_from_db()
        self.assertEqual(order.download_count, 3)
        self.assertEqual(order.customer_status, "downloads used")
        logs = DownloadLog.objects.filter(order=order)
        self.assertEqual(logs.filter(outcome=DownloadLog.Outcome.SUCCESS).count(), 6)
        self.assertEqual(
            sorted(logs.filter(outcome=DownloadLog.Outcome.SUCCESS).values_list("template_id", flat=True)),
            sorted([i.template_id for i in items] * 3),
        )
        denied = logs.get(outcome=DownloadLog.Outcome.LIMIT_EXCEEDED)
        self.assertIsNone(denied.template_id)
        self.assertEqual(
            OrderStatusHistory.objects.filter(order=order, to_status=Order.Status.COMPLETED).count(), 1
        )


class AuthorizeDownloadTests(TestCase):
    def setUp(self):
        self.order = make_order(
            status=Order.Status.APPROVED,
            payment_status=Order.PaymentStatus.SUCCESS,
            download_expires_at=timezone.now() + timedelta(days=30),
        )

    def test_lookup_by_number_and_email(self):
        order, _ = services.authorize_download(order_number=self.order.order_number, email=" ASHA@example.com ")
        self.assertEqual(order.pk, self.order.pk)
        self.assertEqual(order.download_count, 1)

    def test_wrong_email_is_not_found(self):
        with self.assertRaises(OrderNotFound):
            services.authorize_download(order_number=self.order.order_number, email="someone@example.com")

    def test_unknown_token(self):
        with self.assertRaises(OrderNotFound):
            services.authorize_download(token="not-a-token")

    def test_credentials_required(self):
        with self.assertRaises(ValidationError):
            services.authorize_download()
        with self.assertRaises(ValidationError):
            services.authorize_download(order_number=self.order.order_number)

    def test_expired_link(self):
        Order.objects.filter(pk=self.order.pk).update(download_expires_at=timezone.now() - timedelta(minutes=1))
        with self.assertRaises(LinkExpired):
            services.authorize_download(token=self.order.download_token, ip_address="203.0.113.9")

        self.order.refresh_from_db()
        self.assertEqual(self.order.download_count, 0)
        self.assertEqual(self.order.status, Order.Status.APPROVED)
        log = DownloadLog.objects.get(order=self.order)
        self.assertEqual(log.outcome, DownloadLog.Outcome.EXPIRED)
        self.assertEqual(log.ip_address, "203.0.113.9")

    def test_not_yet_approved(self):
        for status in (Order.Status.PENDING, Order.Status.PAID, Order.Status.REJECTED, Order.Status.FAILED):
            order = make_order(status=status)
            with self.subTest(status=status):
                with self.assertRaises(OrderNotApproved):
                    services.authorize_download(token=order.download_token)
                order.refresh_from_db()
                self.assertEqual(order.download_count, 0)
                self.assertEqual(
                    DownloadLog.objects.get(order=order).outcome, DownloadLog.Outcome.NOT_APPROVED
                )

    def test_counter_is_checked_against_stored_value(self):
        stale = Order.objects.get(pk=self.order.pk)
        Order.objects.filter(pk=self.order.pk).update(download_count=3)

        with self.assertRaises(DownloadLimitExceeded):
            services.authorize_download(token=stale.download_token)

        self.order.refresh_from_db()
        self.assertEqual(self.order.download_count, 3)

    def test_last_download_then_limit(self):
        Order.objects.filter(pk=self.order.pk).update(download_count=2, status=Order.Status.COMPLETED)
        order, _ = services.authorize_download(token=self.order.download_token)
        self.assertEqual(order.download_count, 3)
        self.assertEqual(order.downloads_remaining, 0)
        with self.assertRaises(DownloadLimitExceeded):
            services.authorize_download(token=self.order.download_token)

    def test_success_logs_each_item(self):
        services.authorize_download(token=self.order.download_token, ip_address="203.0.113.9")
        log = DownloadLog.objects.get(order=self.order)
        self.assertEqual(log.outcome, DownloadLog.Outcome.SUCCESS)
        self.assertEqual(log.template_id, self.order.items.get().template_id)
        self.assertEqual(log.ip_address, "203.0.113.9")

    def test_user_agent_is_truncated(self):
        services.authorize_download(token=self.order.download_token, user_agent="x" * 600)
        log = DownloadLog.objects.get(order=self.order)
        self.assertEqual(len(log.user_agent), 512)
