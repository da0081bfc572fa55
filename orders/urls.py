from django.urls import path

from . import views, webhook

app_name = "orders"
urlpatterns = [
    path("create", views.create_order_view, name="create"),
    path("verify-payment", views.verify_payment_view, name="verify_payment"),
    path("lookup", views.lookup_view, name="lookup"),
    path("download", views.download_view, name="download"),
    path("download/<str:order_number>", views.download_view, name="download_by_number"),
    # Razorpay dashboard points at https://<domain>/api/orders/webhook
    path("webhook", webhook.razorpay_webhook, name="razorpay_webhook"),
]
