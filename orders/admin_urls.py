from django.urls import path

from . import admin_views

app_name = "orders_admin"
urlpatterns = [
    path("", admin_views.order_list_view, name="list"),
    path("pending", admin_views.pending_orders_view, name="pending"),
    path("<int:order_id>", admin_views.order_detail_view, name="detail"),
    path("<int:order_id>/approve", admin_views.approve_order_view, name="approve"),
    path("<int:order_id>/reject", admin_views.reject_order_view, name="reject"),
]
