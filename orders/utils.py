import secrets, datetime
from django.utils import timezone

def normalize_email(email: str | None) -> str:
    return email.strip().lower() if email else ""

def download_token():
    # 32 random bytes -> 256 bits, URL-safe
    return secrets.token_urlsafe(32)

def gen_order_number():
    # e.g., TPL2601191430151230042
    now = timezone.now().astimezone(datetime.timezone.utc)
    return f"TPL{now.strftime('%y%m%d%H%M%S')}{now.microsecond // 1000:03d}{secrets.randbelow(10_000):04d}"

def client_ip(request) -> str | None:
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR", "")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.META.get("REMOTE_ADDR") or None

def user_agent(request) -> str:
    return (request.META.get("HTTP_USER_AGENT") or "")[:512]
