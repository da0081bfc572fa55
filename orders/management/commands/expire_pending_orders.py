from datetime import timedelta

from django.core.management.base import BaseCommand
from django.utils import timezone

from orders.models import Order
from orders.services import abandon_pending_order
from payments.integrations.razorpay import fetch_order
from templateshop.errors import GatewayError


class Command(BaseCommand):
    help = "Mark pending orders whose payment never completed as failed"

    def add_arguments(self, parser):
        parser.add_argument("--max", type=int, default=100, help="Max orders to process")
        parser.add_argument("--older-than-minutes", type=int, default=24 * 60)
        parser.add_argument("--dry-run", action="store_true", help="Only report what would change")

    def handle(self, *args, **opts):
        cutoff = timezone.now() - timedelta(minutes=opts["older_than_minutes"])
        qs = Order.objects.filter(status=Order.Status.PENDING, created_at__lt=cutoff).order_by("created_at")[:opts["max"]]

        checked = 0
        expired = 0
        for o in qs:
            checked += 1
            if o.gateway_order_id:
                # A paid intent is left for the verifier; it needs a signed confirmation
                try:
                    remote = fetch_order(o.gateway_order_id)
                except GatewayError as e:
                    self.stdout.write(self.style.WARNING(f"{o.order_number}: {e.message}, skipped"))
                    continue
                if str(remote.get("status", "")).lower() == "paid":
                    self.stdout.write(self.style.WARNING(
                        f"{o.order_number}: paid at gateway but not confirmed here, needs review"
                    ))
                    continue

            if opts["dry_run"]:
                self.stdout.write(f"{o.order_number}: would expire")
                continue
            if abandon_pending_order(o):
                expired += 1
                self.stdout.write(self.style.SUCCESS(f"{o.order_number} -> failed"))
            else:
                self.stdout.write(f"{o.order_number}: status changed meanwhile, left as is")

        self.stdout.write(self.style.SUCCESS(f"Checked {checked}, expired {expired} orders."))
