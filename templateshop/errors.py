"""Error taxonomy shared by the order and payment apps.

Every error carries a stable machine ``code``, a human ``message`` that is safe
to show to the caller, and the HTTP ``status_code`` the JSON views answer with.
"""


class ServiceError(Exception):
    code = "SERVICE_ERROR"
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = "", *, code: str = "", status_code: int = 0):
        self.message = message or self.default_message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def as_dict(self) -> dict:
        return {"ok": False, "code": self.code, "error": self.message}


class ValidationError(ServiceError):
    code = "VALIDATION_ERROR"
    status_code = 400
    default_message = "Invalid request"


class NoTemplatesFound(ValidationError):
    code = "NO_TEMPLATES"
    default_message = "No valid templates found"


class InvalidTemplates(ValidationError):
    code = "INVALID_TEMPLATES"
    default_message = "Some templates are not available"


class TemplateInactive(ValidationError):
    code = "TEMPLATE_INACTIVE"
    default_message = "Template is not available for purchase"


class NotFound(ServiceError):
    code = "NOT_FOUND"
    status_code = 404
    default_message = "Resource not found"


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class InvalidStatus(ServiceError):
    code = "INVALID_STATUS"
    status_code = 409
    default_message = "Order is not in a state that allows this action"


class OrderNotApproved(ServiceError):
    code = "ORDER_NOT_APPROVED"
    status_code = 403
    default_message = "Order not yet approved"


class InvalidSignature(ServiceError):
    code = "INVALID_SIGNATURE"
    status_code = 400
    default_message = "Payment signature verification failed"


class LinkExpired(ServiceError):
    code = "LINK_EXPIRED"
    status_code = 410
    default_message = "Download link has expired"


class DownloadLimitExceeded(ServiceError):
    code = "DOWNLOAD_LIMIT_EXCEEDED"
    status_code = 429
    default_message = "Maximum download limit reached"


class GatewayError(ServiceError):
    code = "PAYMENT_GATEWAY_ERROR"
    status_code = 502
    default_message = "Payment provider is unavailable, please retry"


class NotificationError(ServiceError):
    code = "NOTIFICATION_ERROR"
    default_message = "Notification could not be delivered"
