"""Order lifecycle: creation, payment verification, approval and downloads.

Every status change goes through ``_transition``, a conditional UPDATE whose
WHERE clause carries the allowed source statuses. The affected row count
decides which concurrent caller wins; losers never mutate the row.
"""
import json
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional, Sequence

from django.conf import settings
from django.core.paginator import Paginator
from django.db import IntegrityError, transaction
from django.db.models import F, Q
from django.utils import timezone

from catalog.services import resolve_by_ids
from payments import currency
from payments.integrations import razorpay
from payments.utils import verify_client_signature, verify_webhook_signature
from templateshop.errors import (
    DownloadLimitExceeded, GatewayError, InvalidSignature, InvalidStatus, InvalidTemplates,
    LinkExpired, NoTemplatesFound, NotificationError, OrderNotApproved, OrderNotFound,
    TemplateInactive, ValidationError,
)
from . import emails
from .models import DownloadLog, Order, OrderItem, OrderStatusHistory
from .utils import download_token, gen_order_number, normalize_email

logger = logging.getLogger(__name__)

ORDER_NUMBER_ATTEMPTS = 5

WEBHOOK_PAID_EVENTS = {"payment.captured", "order.paid"}
WEBHOOK_FAILED_EVENTS = {"payment.failed"}

S = Order.Status


@dataclass
class CreatedOrder:
    order: Order
    items: List[OrderItem]
    gateway_order_id: str
    gateway_key_id: str


@dataclass
class OrderDetail:
    order: Order
    items: List[OrderItem]
    history: List[OrderStatusHistory]
    downloads: List[DownloadLog]


@dataclass
class OrderListFilters:
    status: Optional[str] = None
    payment_status: Optional[str] = None
    search: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    sort: str = "newest"
    page: int = 1
    page_size: int = 20

    SORTS = {
        "newest": ("-created_at", "-id"),
        "oldest": ("created_at", "id"),
        "amount_high": ("-total_inr", "-id"),
        "amount_low": ("total_inr", "id"),
    }


# ---------- transitions ----------

def _transition(order_pk: int, from_statuses: Sequence[str], to_status: str, *,
                changed_by_id=None, notes: str = "", ip_address=None, **changes) -> bool:
    """Move the order to ``to_status`` only if it is currently in ``from_statuses``.

    Returns False, leaving the row untouched, when the guard does not hold.
    """
    now = timezone.now()
    with transaction.atomic():
        current = (
            Order.objects.select_for_update()
            .filter(pk=order_pk)
            .values_list("status", flat=True)
            .first()
        )
        if current is None or current not in from_statuses:
            return False
        updated = Order.objects.filter(pk=order_pk, status__in=list(from_statuses)).update(
            status=to_status, updated_at=now, **changes
        )
        if not updated:
            return False
        OrderStatusHistory.objects.create(
            order_id=order_pk,
            from_status=current,
            to_status=to_status,
            changed_by_id=changed_by_id,
            notes=notes,
            ip_address=ip_address,
        )
    return True


def _notify(send, order) -> None:
    """Send after the surrounding transaction commits; failures are only logged."""
    def _run():
        try:
            send(order)
        except NotificationError:
            logger.exception("%s failed for order %s", send.__name__, order.order_number)
        except Exception:
            logger.exception("Unexpected error in %s for order %s", send.__name__, order.order_number)
    transaction.on_commit(_run)


def _fail_payment(order: Order, notes: str, ip_address=None) -> bool:
    return _transition(
        order.pk, (S.PENDING,), S.FAILED,
        payment_status=Order.PaymentStatus.FAILED, notes=notes, ip_address=ip_address,
    )


# ---------- creation ----------

def create_order(*, template_ids: Sequence[int], customer_email: str, customer_name: str,
                 customer_phone: str = "", currency_code: str = "", ip_address=None,
                 user_agent: str = "") -> CreatedOrder:
    """Price the requested templates, persist the order and open a payment intent."""
    if not template_ids:
        raise ValidationError("At least one template is required")
    email = normalize_email(customer_email)
    if not email or not (customer_name or "").strip():
        raise ValidationError("Customer email and name are required")

    templates = resolve_by_ids(template_ids)
    if not templates:
        raise NoTemplatesFound()
    if any(int(tid) not in templates for tid in template_ids):
        raise InvalidTemplates()
    resolved = [templates[int(tid)] for tid in template_ids]
    for template in resolved:
        if not template.is_active:
            raise TemplateInactive(f"Template {template.title} is not active")

    subtotal = sum(t.price_inr for t in resolved)
    discount = 0
    tax = 0
    total = subtotal - discount + tax

    code = (currency_code or currency.base_currency()).strip().upper()
    rate = currency.get_exchange_rate(code)

    order = None
    for attempt in range(ORDER_NUMBER_ATTEMPTS):
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    order_number=gen_order_number(),
                    customer_email=email,
                    customer_name=customer_name.strip(),
                    customer_phone=(customer_phone or "").strip(),
                    subtotal_inr=subtotal,
                    discount_inr=discount,
                    tax_inr=tax,
                    total_inr=total,
                    currency_code=code,
                    exchange_rate=rate,
                    total_local=currency.convert_minor_units(total, rate),
                    download_token=download_token(),
                    max_downloads=getattr(settings, "ORDERS_MAX_DOWNLOADS", 3),
                    ip_address=ip_address,
                    user_agent=(user_agent or "")[:512],
                )
                items = [
                    OrderItem.objects.create(
                        order=order,
                        template_id=t.pk,
                        template_title=t.title,
                        template_slug=t.slug,
                        template_file_url=t.file_url,
                        price_inr=t.price_inr,
                    )
                    for t in resolved
                ]
                OrderStatusHistory.objects.create(
                    order=order, to_status=S.PENDING, notes="order created", ip_address=ip_address
                )
            break
        except IntegrityError:
            if attempt == ORDER_NUMBER_ATTEMPTS - 1:
                raise
            logger.warning("Order number collision, retrying (attempt %s)", attempt + 1)

    try:
        intent = razorpay.create_order(
            amount=order.total_inr,
            receipt=order.order_number,
            notes={"order_number": order.order_number, "customer_email": order.customer_email},
        )
    except GatewayError:
        logger.error("Payment intent failed for order %s; left pending without intent", order.order_number)
        raise

    Order.objects.filter(pk=order.pk, status=S.PENDING, gateway_order_id__isnull=True).update(
        gateway_order_id=intent["id"], updated_at=timezone.now()
    )
    order.refresh_from_db()
    logger.info("Order %s created, total=%s intent=%s", order.order_number, order.total_inr, intent["id"])
    return CreatedOrder(order, items, intent["id"], razorpay.public_key_id())


# ---------- payment verification ----------

def _recovery_allowed() -> bool:
    return bool(getattr(settings, "ORDERS_ALLOW_FAILED_PAYMENT_RECOVERY", False))


def _mark_paid(order: Order, payment_id: str, signature: str, *, source: str, ip_address=None) -> Order:
    from_statuses = (S.PENDING, S.FAILED) if _recovery_allowed() else (S.PENDING,)
    won = _transition(
        order.pk, from_statuses, S.PAID,
        payment_status=Order.PaymentStatus.SUCCESS,
        gateway_payment_id=payment_id,
        gateway_signature=signature,
        paid_at=timezone.now(),
        notes=f"payment verified via {source}",
        ip_address=ip_address,
    )
    order.refresh_from_db()
    if won:
        logger.info("Order %s paid (payment=%s, via %s)", order.order_number, payment_id, source)
        _notify(emails.send_order_confirmation, order)
        return order
    if order.status in Order.PAID_OR_LATER:
        logger.info("Duplicate payment confirmation for %s via %s ignored", order.order_number, source)
        return order
    raise InvalidStatus(f"Order {order.order_number} is {order.status} and no longer accepts payment")


def verify_payment(*, gateway_order_id: str, payment_id: str, signature: str, ip_address=None) -> Order:
    """Client-side confirmation returned by Checkout."""
    signature = (signature or "").strip()
    if not (gateway_order_id and payment_id and signature):
        raise ValidationError("Order id, payment id and signature are required")

    order = Order.objects.filter(gateway_order_id=gateway_order_id).first()
    if order is None:
        raise OrderNotFound()

    if not verify_client_signature(gateway_order_id, payment_id, signature):
        logger.warning("Invalid payment signature for order %s", order.order_number)
        _fail_payment(order, "invalid payment signature", ip_address)
        raise InvalidSignature()

    return _mark_paid(order, payment_id, signature, source="client", ip_address=ip_address)


def process_webhook_event(raw_body: bytes, signature: str, ip_address=None) -> Optional[Order]:
    """Handle a Razorpay webhook delivery.

    The signature is checked before the body is even parsed. Returns the
    affected order, or None for events that carry nothing for us.
    """
    if not signature:
        raise InvalidSignature("Missing webhook signature")
    if not verify_webhook_signature(raw_body, signature):
        logger.warning("Webhook signature verification failed")
        raise InvalidSignature("Webhook signature verification failed")

    try:
        payload = json.loads(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise ValidationError("Invalid JSON")

    event = str(payload.get("event") or "")
    if event not in WEBHOOK_PAID_EVENTS | WEBHOOK_FAILED_EVENTS:
        logger.info("Webhook event %s acknowledged without action", event or "<none>")
        return None

    entities = payload.get("payload") or {}
    payment = (entities.get("payment") or {}).get("entity") or {}
    rp_order = (entities.get("order") or {}).get("entity") or {}
    gw_order_id = payment.get("order_id") or rp_order.get("id") or ""
    if not gw_order_id:
        logger.warning("Webhook event %s without an order id", event)
        return None

    order = Order.objects.filter(gateway_order_id=gw_order_id).first()
    if order is None:
        raise OrderNotFound()

    if event in WEBHOOK_FAILED_EVENTS:
        # One failed attempt; Checkout lets the customer retry on the same intent
        logger.info(
            "Payment attempt %s failed for order %s (%s)",
            payment.get("id", ""), order.order_number, payment.get("error_description", ""),
        )
        return order

    amount = payment.get("amount", rp_order.get("amount_paid"))
    try:
        mismatch = amount is not None and int(amount) != order.total_inr
    except (TypeError, ValueError):
        mismatch = True
    if mismatch:
        logger.error(
            "Webhook amount %s does not match order %s total %s", amount, order.order_number, order.total_inr
        )
        _fail_payment(order, f"paid amount {amount} does not match total", ip_address)
        order.refresh_from_db()
        return order

    # The header signs the body, not the payment; only client confirmations keep a signature
    return _mark_paid(order, payment.get("id", ""), "", source=f"webhook:{event}", ip_address=ip_address)


# ---------- approval ----------

def _get_order(order_id: int) -> Order:
    order = Order.objects.filter(pk=order_id).first()
    if order is None:
        raise OrderNotFound()
    return order


def approve_order(order_id: int, admin_id: int, ip_address=None) -> Order:
    order = _get_order(order_id)
    now = timezone.now()
    days = getattr(settings, "ORDERS_DOWNLOAD_LINK_DAYS", 30)
    if not _transition(
        order.pk, (S.PAID,), S.APPROVED,
        changed_by_id=admin_id, notes="approved", ip_address=ip_address,
        approved_by_id=admin_id, approved_at=now, download_expires_at=now + timedelta(days=days),
    ):
        order.refresh_from_db()
        raise InvalidStatus(f"Only paid orders can be approved (current status: {order.status})")
    order.refresh_from_db()
    logger.info("Order %s approved by admin %s", order.order_number, admin_id)
    _notify(emails.send_order_approval, order)
    return order


def reject_order(order_id: int, admin_id: int, reason: str, ip_address=None) -> Order:
    reason = (reason or "").strip()
    if not reason:
        raise ValidationError("Rejection reason is required")
    order = _get_order(order_id)
    if not _transition(
        order.pk, (S.PAID,), S.REJECTED,
        changed_by_id=admin_id, notes=reason, ip_address=ip_address,
        rejection_reason=reason, approved_by_id=admin_id, approved_at=timezone.now(),
    ):
        order.refresh_from_db()
        raise InvalidStatus(f"Only paid orders can be rejected (current status: {order.status})")
    order.refresh_from_db()
    logger.info("Order %s rejected by admin %s", order.order_number, admin_id)
    _notify(emails.send_order_rejection, order)
    return order


def abandon_pending_order(order: Order, notes: str = "abandoned: payment never completed") -> bool:
    """Out-of-band sweep helper; only a still-pending order is failed."""
    return _fail_payment(order, notes)


# ---------- downloads ----------

@dataclass
class _Denied:
    outcome: str
    error: Exception


def _denial(order: Order, now) -> _Denied:
    if order.status not in Order.DOWNLOADABLE:
        return _Denied(DownloadLog.Outcome.NOT_APPROVED, OrderNotApproved())
    if order.download_expires_at is not None and order.download_expires_at <= now:
        return _Denied(DownloadLog.Outcome.EXPIRED, LinkExpired())
    return _Denied(DownloadLog.Outcome.LIMIT_EXCEEDED, DownloadLimitExceeded())


def authorize_download(*, token: str = "", order_number: str = "", email: str = "",
                       ip_address=None, user_agent: str = ""):
    """Grant one download and return ``(order, items)``.

    The counter is bumped by a single guarded UPDATE, so concurrent requests
    can never push it past ``max_downloads``.
    """
    if token:
        order = Order.objects.filter(download_token=token).first()
    elif order_number and email:
        order = Order.objects.filter(order_number=order_number, customer_email=normalize_email(email)).first()
    else:
        raise ValidationError("Token or order number with email required")
    if order is None:
        raise OrderNotFound()

    user_agent = (user_agent or "")[:512]
    now = timezone.now()
    with transaction.atomic():
        granted = Order.objects.filter(
            Q(download_expires_at__isnull=True) | Q(download_expires_at__gt=now),
            pk=order.pk,
            status__in=list(Order.DOWNLOADABLE),
            download_count__lt=F("max_downloads"),
        ).update(download_count=F("download_count") + 1, updated_at=now)
        if granted:
            _transition(
                order.pk, (S.APPROVED,), S.COMPLETED,
                completed_at=now, notes="first download", ip_address=ip_address,
            )
            DownloadLog.objects.bulk_create([
                DownloadLog(
                    order=order, template_id=item.template_id, outcome=DownloadLog.Outcome.SUCCESS,
                    ip_address=ip_address, user_agent=user_agent,
                )
                for item in order.items.all()
            ])

    order.refresh_from_db()
    if not granted:
        denied = _denial(order, now)
        DownloadLog.objects.create(order=order, outcome=denied.outcome, ip_address=ip_address, user_agent=user_agent)
        logger.info("Download denied for %s: %s", order.order_number, denied.outcome)
        raise denied.error

    logger.info("Download %s/%s for %s", order.download_count, order.max_downloads, order.order_number)
    return order, list(order.items.all())


# ---------- queries ----------

def get_customer_order(order_number: str, email: str):
    if not order_number or not email:
        raise ValidationError("Order number and email required")
    order = Order.objects.filter(order_number=order_number, customer_email=normalize_email(email)).first()
    if order is None:
        raise OrderNotFound()
    return order, list(order.items.all())


def get_order_detail(order_id: int) -> OrderDetail:
    order = _get_order(order_id)
    return OrderDetail(
        order=order,
        items=list(order.items.all()),
        history=list(order.status_history.select_related("changed_by")),
        downloads=list(order.download_logs.all()),
    )


def list_orders(filters: OrderListFilters):
    qs = Order.objects.all()
    if filters.status:
        qs = qs.filter(status=filters.status)
    if filters.payment_status:
        qs = qs.filter(payment_status=filters.payment_status)
    if filters.search:
        qs = qs.filter(Q(customer_email__icontains=filters.search) | Q(order_number__icontains=filters.search))
    if filters.start_date:
        qs = qs.filter(created_at__date__gte=filters.start_date)
    if filters.end_date:
        qs = qs.filter(created_at__date__lte=filters.end_date)
    qs = qs.order_by(*OrderListFilters.SORTS[filters.sort])
    return Paginator(qs, filters.page_size).get_page(filters.page)


def list_pending_approvals(page: int = 1, page_size: int = 50):
    qs = Order.objects.filter(status=S.PAID).order_by("paid_at", "id")
    return Paginator(qs, page_size).get_page(page)
