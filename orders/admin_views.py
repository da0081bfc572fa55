"""Staff-only JSON endpoints for the approval queue."""
import logging

from django.contrib.admin.views.decorators import staff_member_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_POST

from templateshop.errors import ServiceError
from . import services
from .forms import OrderListForm, RejectOrderForm, first_error
from .utils import client_ip
from .views import _bad_request, _error, _iso, _json_body, item_dict, order_dict

logger = logging.getLogger(__name__)


def _page_dict(page) -> dict:
    return {
        "ok": True,
        "orders": [order_dict(o, admin=True) for o in page.object_list],
        "page": page.number,
        "total": page.paginator.count,
        "total_pages": page.paginator.num_pages,
        "has_next": page.has_next(),
        "has_prev": page.has_previous(),
    }


@staff_member_required
@require_GET
def order_list_view(request):
    form = OrderListForm(request.GET)
    if not form.is_valid():
        return _bad_request(first_error(form))
    return JsonResponse(_page_dict(services.list_orders(form.to_filters())))


@staff_member_required
@require_GET
def pending_orders_view(request):
    try:
        page = int(request.GET.get("page", "1"))
        if page < 1: page = 1
    except ValueError:
        page = 1
    return JsonResponse(_page_dict(services.list_pending_approvals(page=page)))


@staff_member_required
@require_GET
def order_detail_view(request, order_id: int):
    try:
        detail = services.get_order_detail(order_id)
    except ServiceError as e:
        return _error(e)
    return JsonResponse({
        "ok": True,
        "order": order_dict(detail.order, admin=True),
        "items": [item_dict(i) for i in detail.items],
        "status_history": [
            {
                "from_status": h.from_status or None,
                "to_status": h.to_status,
                "changed_by": h.changed_by_id,
                "notes": h.notes,
                "ip_address": h.ip_address,
                "created_at": _iso(h.created_at),
            }
            for h in detail.history
        ],
        "downloads": [
            {
                "outcome": d.outcome,
                "template_id": d.template_id,
                "ip_address": d.ip_address,
                "user_agent": d.user_agent,
                "downloaded_at": _iso(d.downloaded_at),
            }
            for d in detail.downloads
        ],
    })


@staff_member_required
@require_POST
def approve_order_view(request, order_id: int):
    try:
        order = services.approve_order(order_id, request.user.pk, ip_address=client_ip(request))
    except ServiceError as e:
        return _error(e)
    return JsonResponse({
        "ok": True,
        "message": "Order approved and download link sent to customer",
        "order": order_dict(order, admin=True),
    })


@staff_member_required
@require_POST
def reject_order_view(request, order_id: int):
    body = _json_body(request)
    if body is None:
        return _bad_request("Invalid JSON body")
    form = RejectOrderForm(body)
    if not form.is_valid():
        return _bad_request("Rejection reason is required")
    try:
        order = services.reject_order(
            order_id, request.user.pk, form.cleaned_data["reason"], ip_address=client_ip(request)
        )
    except ServiceError as e:
        return _error(e)
    return JsonResponse({
        "ok": True,
        "message": "Order rejected and customer notified",
        "order": order_dict(order, admin=True),
    })
