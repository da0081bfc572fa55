import logging
from typing import List

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template import engines
from django.template.loader import render_to_string

from templateshop.errors import NotificationError

logger = logging.getLogger(__name__)


def _from_email() -> str:
    return getattr(settings, "DEFAULT_FROM_EMAIL", None) or getattr(settings, "EMAIL_HOST_USER", "")


def _fail_silently() -> bool:
    return getattr(settings, "EMAIL_FAIL_SILENTLY", False)


def _admin_recipients() -> List[str]:
    raw = getattr(settings, "ORDERS_ADMIN_EMAILS", "") or ""
    seen = set()
    uniq: List[str] = []
    for e in (v.strip() for v in raw.split(",")):
        if e and e.lower() not in seen:
            seen.add(e.lower())
            uniq.append(e)
    return uniq


def _template_exists(path: str) -> bool:
    try:
        engines["django"].get_template(path)
        return True
    except Exception:
        return False


def download_link(order) -> str:
    base = getattr(settings, "FRONTEND_URL", "").rstrip("/")
    return f"{base}/orders/download/{order.order_number}?token={order.download_token}"


def _send(subject: str, template: str, context: dict, recipients: List[str]) -> None:
    try:
        text = render_to_string(f"emails/{template}.txt", context)
    except Exception as e:
        raise NotificationError(f"Failed to render '{subject}'") from e
    msg = EmailMultiAlternatives(subject, text, _from_email(), recipients)
    if _template_exists(f"emails/{template}.html"):
        try:
            msg.attach_alternative(render_to_string(f"emails/{template}.html", context), "text/html")
        except Exception:
            logger.exception("Failed to render HTML template %s; sending text-only", template)
    try:
        msg.send(fail_silently=_fail_silently())
    except Exception as e:
        raise NotificationError(f"Failed to send '{subject}'") from e


def _context(order, **extra) -> dict:
    items = list(order.items.all())
    ctx = {
        "order": order,
        "items": items,
        "total": f"{order.total_inr / 100:.2f}",
        "lookup_url": f"{getattr(settings, 'FRONTEND_URL', '').rstrip('/')}/orders/lookup",
    }
    ctx.update(extra)
    return ctx


def send_order_confirmation(order) -> None:
    """Receipt to the customer plus a heads-up to the order admins.

    The admin copy is best-effort; only a failed customer receipt raises.
    """
    ctx = _context(order)
    _send(f"Order Confirmation - {order.order_number}", "order_confirmation", ctx, [order.customer_email])

    admins = _admin_recipients()
    if admins:
        try:
            _send(
                f"New paid order awaiting approval: {order.order_number} - INR {ctx['total']}",
                "order_admin_notification", ctx, admins,
            )
        except NotificationError:
            logger.exception("Failed to send admin notification for %s", order.order_number)


def send_order_approval(order) -> None:
    ctx = _context(
        order,
        download_link=download_link(order),
        max_downloads=order.max_downloads,
        expires_at=order.download_expires_at,
    )
    _send("Order Approved - Download Your Templates", "order_approved", ctx, [order.customer_email])


def send_order_rejection(order) -> None:
    ctx = _context(order, reason=order.rejection_reason)
    _send(f"Order Update - {order.order_number}", "order_rejected", ctx, [order.customer_email])
