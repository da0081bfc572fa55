from django.conf import settings
from django.db import models


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        APPROVED = "approved", "Approved"
        REJECTED = "rejected", "Rejected"
        COMPLETED = "completed", "Completed"
        FAILED = "failed", "Failed"

    class PaymentStatus(models.TextChoices):
        PENDING = "pending", "Pending"
        SUCCESS = "success", "Success"
        FAILED = "failed", "Failed"

    order_number = models.CharField(max_length=32, unique=True)

    customer_email = models.EmailField(db_index=True)
    customer_name = models.CharField(max_length=128)
    customer_phone = models.CharField(max_length=20, blank=True, default="")

    # money in paise
    subtotal_inr = models.PositiveIntegerField(default=0)
    discount_inr = models.PositiveIntegerField(default=0)
    tax_inr = models.PositiveIntegerField(default=0)
    total_inr = models.PositiveIntegerField(default=0)
    currency_code = models.CharField(max_length=3, default="INR")
    exchange_rate = models.DecimalField(max_digits=18, decimal_places=8, default=1)
    total_local = models.DecimalField(max_digits=14, decimal_places=2, null=True, blank=True)

    payment_method = models.CharField(max_length=32, default="razorpay")
    gateway_order_id = models.CharField(max_length=64, null=True, blank=True, unique=True)
    gateway_payment_id = models.CharField(max_length=64, blank=True, default="")
    gateway_signature = models.CharField(max_length=256, blank=True, default="")

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING, db_index=True)
    payment_status = models.CharField(
        max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )

    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.PROTECT, related_name="reviewed_orders",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True, default="")

    download_token = models.CharField(max_length=64, unique=True)
    download_count = models.PositiveIntegerField(default=0)
    max_downloads = models.PositiveIntegerField(default=3)
    download_expires_at = models.DateTimeField(null=True, blank=True)

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ("-created_at",)

    PAID_OR_LATER = (Status.PAID, Status.APPROVED, Status.REJECTED, Status.COMPLETED)
    DOWNLOADABLE = (Status.APPROVED, Status.COMPLETED)

    @property
    def downloads_remaining(self) -> int:
        return max(self.max_downloads - self.download_count, 0)

    @property
    def customer_status(self) -> str:
        """Coarse status wording shown to customers."""
        if self.status == self.Status.PENDING:
            return "awaiting payment"
        if self.status == self.Status.PAID:
            return "awaiting approval"
        if self.status == self.Status.REJECTED:
            return f"rejected: {self.rejection_reason}"
        if self.status == self.Status.FAILED:
            return "payment failed"
        if self.downloads_remaining:
            return "download ready"
        return "downloads used"

    def __str__(self):
        return f"{self.order_number} ({self.status})"


class AppendOnlyModel(models.Model):
    """Rows are written once and never updated."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValueError(f"{type(self).__name__} rows are append-only")
        super().save(*args, **kwargs)


class OrderItem(AppendOnlyModel):
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="items")
    template_id = models.PositiveIntegerField()
    template_title = models.CharField(max_length=200)
    template_slug = models.CharField(max_length=200)
    template_file_url = models.CharField(max_length=500)
    price_inr = models.PositiveIntegerField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("id",)

    def __str__(self):
        return f"{self.template_title} x1 ({self.price_inr})"


class DownloadLog(AppendOnlyModel):
    class Outcome(models.TextChoices):
        SUCCESS = "success", "Success"
        NOT_APPROVED = "not_approved", "Not approved"
        EXPIRED = "expired", "Link expired"
        LIMIT_EXCEEDED = "limit_exceeded", "Limit exceeded"

    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="download_logs")
    template_id = models.PositiveIntegerField(null=True, blank=True)
    outcome = models.CharField(max_length=16, choices=Outcome.choices)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=512, blank=True, default="")
    downloaded_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-downloaded_at", "-id")


class OrderStatusHistory(AppendOnlyModel):
    order = models.ForeignKey(Order, on_delete=models.PROTECT, related_name="status_history")
    from_status = models.CharField(max_length=16, blank=True, default="")
    to_status = models.CharField(max_length=16)
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True,
        on_delete=models.PROTECT, related_name="+",
    )
    notes = models.TextField(blank=True, default="")
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("created_at", "id")
        verbose_name_plural = "order status history"

    def __str__(self):
        return f"{self.order_id}: {self.from_status or '-'} -> {self.to_status}"
