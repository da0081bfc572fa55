from django.contrib import admin
from django.urls import include, path

from . import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("health", views.health_view, name="health"),
    path("api/orders/", include("orders.urls")),
    path("api/admin/orders/", include("orders.admin_urls")),
]

handler404 = "templateshop.views.error_404_view"
handler500 = "templateshop.views.error_500_view"
