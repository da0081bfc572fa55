import logging

from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_view(request):
    return JsonResponse({"ok": True})


def error_404_view(request, exception):
    return JsonResponse({"ok": False, "code": "NOT_FOUND", "error": "Not found"}, status=404)


def error_500_view(request):
    logger.error("Unhandled server error on %s", request.path)
    return JsonResponse({"ok": False, "code": "SERVER_ERROR", "error": "Server error"}, status=500)
