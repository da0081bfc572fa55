import logging

from django.http import HttpResponse, HttpResponseBadRequest
from django.views.decorators.csrf import csrf_exempt

from templateshop.errors import InvalidSignature, InvalidStatus, OrderNotFound, ValidationError
from .services import process_webhook_event
from .utils import client_ip

logger = logging.getLogger(__name__)


@csrf_exempt
def razorpay_webhook(request):
    if request.method != "POST":
        return HttpResponseBadRequest("POST only")

    # Nothing is parsed or looked up until the signature checks out
    signature = request.headers.get("X-Razorpay-Signature", "")
    try:
        order = process_webhook_event(request.body, signature, ip_address=client_ip(request))
    except InvalidSignature:
        return HttpResponseBadRequest("invalid signature")
    except ValidationError:
        return HttpResponseBadRequest("Invalid JSON")
    except OrderNotFound:
        # Intent created outside this system or by another environment
        return HttpResponse("unknown order", status=202)
    except InvalidStatus as e:
        # Acknowledge so the provider stops retrying; the order stays as it is
        logger.error("Webhook ignored, needs review: %s", e.message)
        return HttpResponse("ignored", status=202)

    if order is None:
        return HttpResponse("ok", status=202)
    return HttpResponse("ok")
