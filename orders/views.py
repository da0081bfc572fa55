import json
import logging

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET, require_POST

from templateshop.errors import ServiceError
from . import services
from .forms import CreateOrderForm, OrderLookupForm, VerifyPaymentForm, first_error
from .utils import client_ip, user_agent

logger = logging.getLogger(__name__)


def _json_body(request):
    try: return json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, ValueError): return None


def _error(e: ServiceError) -> JsonResponse:
    return JsonResponse(e.as_dict(), status=e.status_code)


def _bad_request(message: str) -> JsonResponse:
    return JsonResponse({"ok": False, "code": "VALIDATION_ERROR", "error": message}, status=400)


def _iso(dt):
    return dt.isoformat() if dt else None


def item_dict(item) -> dict:
    return {
        "template_id": item.template_id,
        "title": item.template_title,
        "slug": item.template_slug,
        "file_url": item.template_file_url,
        "price_inr": item.price_inr,
    }


def order_dict(order, *, admin: bool = False) -> dict:
    data = {
        "order_number": order.order_number,
        "status": order.status,
        "status_display": order.customer_status,
        "customer_email": order.customer_email,
        "customer_name": order.customer_name,
        "subtotal_inr": order.subtotal_inr,
        "discount_inr": order.discount_inr,
        "tax_inr": order.tax_inr,
        "total_inr": order.total_inr,
        "currency_code": order.currency_code,
        "exchange_rate": str(order.exchange_rate),
        "total_local": str(order.total_local) if order.total_local is not None else None,
        "download_count": order.download_count,
        "max_downloads": order.max_downloads,
        "download_expires_at": _iso(order.download_expires_at),
        "created_at": _iso(order.created_at),
        "paid_at": _iso(order.paid_at),
    }
    if admin:
        data.update({
            "id": order.pk,
            "customer_phone": order.customer_phone,
            "payment_status": order.payment_status,
            "payment_method": order.payment_method,
            "gateway_order_id": order.gateway_order_id,
            "gateway_payment_id": order.gateway_payment_id,
            "approved_by": order.approved_by_id,
            "approved_at": _iso(order.approved_at),
            "rejection_reason": order.rejection_reason,
            "ip_address": order.ip_address,
            "user_agent": order.user_agent,
            "updated_at": _iso(order.updated_at),
            "completed_at": _iso(order.completed_at),
        })
    return data


@csrf_exempt
@require_POST
def create_order_view(request):
    body = _json_body(request)
    if body is None:
        return _bad_request("Invalid JSON body")
    form = CreateOrderForm(body)
    if not form.is_valid():
        return _bad_request(first_error(form))
    d = form.cleaned_data
    try:
        created = services.create_order(
            template_ids=d["template_ids"],
            customer_email=d["customer_email"],
            customer_name=d["customer_name"],
            customer_phone=d.get("customer_phone", ""),
            currency_code=d.get("currency_code", ""),
            ip_address=client_ip(request),
            user_agent=user_agent(request),
        )
    except ServiceError as e:
        return _error(e)

    return JsonResponse({
        "ok": True,
        "order": order_dict(created.order),
        "items": [item_dict(i) for i in created.items],
        "razorpay_order_id": created.gateway_order_id,
        "razorpay_key_id": created.gateway_key_id,
    }, status=201)


@csrf_exempt
@require_POST
def verify_payment_view(request):
    body = _json_body(request)
    if body is None:
        return _bad_request("Invalid JSON body")
    form = VerifyPaymentForm(body)
    if not form.is_valid():
        return _bad_request(first_error(form))
    d = form.cleaned_data
    try:
        order = services.verify_payment(
            gateway_order_id=d["razorpay_order_id"],
            payment_id=d["razorpay_payment_id"],
            signature=d["razorpay_signature"],
            ip_address=client_ip(request),
        )
    except ServiceError as e:
        return _error(e)

    return JsonResponse({
        "ok": True,
        "order_number": order.order_number,
        "status": order.status,
        "email": order.customer_email,
        "next_step": "awaiting_approval",
        "message": "You will receive download links via email once approved",
    })


@require_GET
def lookup_view(request):
    form = OrderLookupForm(request.GET)
    if not form.is_valid():
        return _bad_request("Order number and email required")
    try:
        order, items = services.get_customer_order(form.cleaned_data["order_number"], form.cleaned_data["email"])
    except ServiceError as e:
        return _error(e)
    return JsonResponse({"ok": True, "order": order_dict(order), "items": [item_dict(i) for i in items]})


@require_GET
def download_view(request, order_number: str = ""):
    try:
        order, items = services.authorize_download(
            token=request.GET.get("token", ""),
            order_number=order_number,
            email=request.GET.get("email", ""),
            ip_address=client_ip(request),
            user_agent=user_agent(request),
        )
    except ServiceError as e:
        return _error(e)

    return JsonResponse({
        "ok": True,
        "order_number": order.order_number,
        "download_count": order.download_count,
        "downloads_remaining": order.downloads_remaining,
        "items": [item_dict(i) for i in items],
        "message": "Download ready",
    })
