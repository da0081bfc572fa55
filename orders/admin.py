from django.contrib import admin
from .models import Order, OrderItem, OrderStatusHistory, DownloadLog


class ReadOnlyInline(admin.TabularInline):
    extra = 0
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False


class OrderItemInline(ReadOnlyInline):
    model = OrderItem


class OrderStatusHistoryInline(ReadOnlyInline):
    model = OrderStatusHistory


class DownloadLogInline(ReadOnlyInline):
    model = DownloadLog


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("order_number", "status", "payment_status", "total_inr", "customer_email", "created_at", "paid_at")
    search_fields = ("order_number", "customer_email", "gateway_order_id", "gateway_payment_id")
    list_filter = ("status", "payment_status", "currency_code", "created_at")
    inlines = (OrderItemInline, OrderStatusHistoryInline, DownloadLogInline)
    exclude = ("download_token", "gateway_signature")

    # Status changes go through the approval endpoints, never through this form
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
