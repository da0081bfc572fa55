from django.db import models


class Template(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_CHOICES = [
        ("draft", "Draft"),
        (STATUS_ACTIVE, "Active"),
        ("archived", "Archived"),
    ]

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    file_url = models.CharField(max_length=500)
    price_inr = models.PositiveIntegerField(help_text="Price in paise")
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default="draft", db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("title",)

    @property
    def is_active(self) -> bool:
        return self.status == self.STATUS_ACTIVE

    def __str__(self):
        return f"{self.title} ({self.status})"
