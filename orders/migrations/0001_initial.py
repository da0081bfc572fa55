from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


ORDER_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("paid", "Paid"),
    ("approved", "Approved"),
    ("rejected", "Rejected"),
    ("completed", "Completed"),
    ("failed", "Failed"),
]

PAYMENT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("success", "Success"),
    ("failed", "Failed"),
]

DOWNLOAD_OUTCOME_CHOICES = [
    ("success", "Success"),
    ("not_approved", "Not approved"),
    ("expired", "Link expired"),
    ("limit_exceeded", "Limit exceeded"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("order_number", models.CharField(max_length=32, unique=True)),
                ("customer_email", models.EmailField(db_index=True, max_length=254)),
                ("customer_name", models.CharField(max_length=128)),
                ("customer_phone", models.CharField(blank=True, default="", max_length=20)),
                ("subtotal_inr", models.PositiveIntegerField(default=0)),
                ("discount_inr", models.PositiveIntegerField(default=0)),
                ("tax_inr", models.PositiveIntegerField(default=0)),
                ("total_inr", models.PositiveIntegerField(default=0)),
                ("currency_code", models.CharField(default="INR", max_length=3)),
                ("exchange_rate", models.DecimalField(decimal_places=8, default=1, max_digits=18)),
                ("total_local", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("payment_method", models.CharField(default="razorpay", max_length=32)),
                ("gateway_order_id", models.CharField(blank=True, max_length=64, null=True, unique=True)),
                ("gateway_payment_id", models.CharField(blank=True, default="", max_length=64)),
                ("gateway_signature", models.CharField(blank=True, default="", max_length=256)),
                ("status", models.CharField(choices=ORDER_STATUS_CHOICES, db_index=True, default="pending", max_length=16)),
                ("payment_status", models.CharField(choices=PAYMENT_STATUS_CHOICES, default="pending", max_length=16)),
                ("approved_at", models.DateTimeField(blank=True, null=True)),
                ("rejection_reason", models.TextField(blank=True, default="")),
                ("download_token", models.CharField(max_length=64, unique=True)),
                ("download_count", models.PositiveIntegerField(default=0)),
                ("max_downloads", models.PositiveIntegerField(default=3)),
                ("download_expires_at", models.DateTimeField(blank=True, null=True)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=512)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "approved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="reviewed_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ("-created_at",),
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("template_id", models.PositiveIntegerField()),
                ("template_title", models.CharField(max_length=200)),
                ("template_slug", models.CharField(max_length=200)),
                ("template_file_url", models.CharField(max_length=500)),
                ("price_inr", models.PositiveIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="DownloadLog",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("template_id", models.PositiveIntegerField(blank=True, null=True)),
                ("outcome", models.CharField(choices=DOWNLOAD_OUTCOME_CHOICES, max_length=16)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("user_agent", models.CharField(blank=True, default="", max_length=512)),
                ("downloaded_at", models.DateTimeField(auto_now_add=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="download_logs",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ("-downloaded_at", "-id"),
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("from_status", models.CharField(blank=True, default="", max_length=16)),
                ("to_status", models.CharField(max_length=16)),
                ("notes", models.TextField(blank=True, default="")),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "changed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ("created_at", "id"),
                "verbose_name_plural": "order status history",
            },
        ),
    ]
