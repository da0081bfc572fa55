from django import forms

from .models import Order
from .services import OrderListFilters


class TemplateIdListField(forms.Field):
    """Accepts a JSON list of positive integers (duplicates allowed)."""

    default_error_messages = {
        "invalid": "Enter a list of template ids.",
        "empty": "At least one template is required.",
    }

    def to_python(self, value):
        if value in self.empty_values:
            return []
        if not isinstance(value, (list, tuple)):
            raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
        ids = []
        for v in value:
            if isinstance(v, bool):
                raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
            try:
                ids.append(int(v))
            except (TypeError, ValueError):
                raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
        if any(i <= 0 for i in ids):
            raise forms.ValidationError(self.error_messages["invalid"], code="invalid")
        return ids

    def validate(self, value):
        if self.required and not value:
            raise forms.ValidationError(self.error_messages["empty"], code="empty")


class CreateOrderForm(forms.Form):
    template_ids = TemplateIdListField()
    customer_email = forms.EmailField()
    customer_name = forms.CharField(max_length=128)
    customer_phone = forms.CharField(max_length=20, required=False)
    currency_code = forms.RegexField(regex=r"^[A-Za-z]{3}$", required=False)


class VerifyPaymentForm(forms.Form):
    razorpay_order_id = forms.CharField(max_length=64)
    razorpay_payment_id = forms.CharField(max_length=64)
    razorpay_signature = forms.CharField(max_length=256)


class OrderLookupForm(forms.Form):
    order_number = forms.CharField(max_length=32)
    email = forms.EmailField()


class RejectOrderForm(forms.Form):
    reason = forms.CharField(max_length=2000)


class OrderListForm(forms.Form):
    """Closed set of admin list parameters."""

    status = forms.ChoiceField(choices=Order.Status.choices, required=False)
    payment_status = forms.ChoiceField(choices=Order.PaymentStatus.choices, required=False)
    search = forms.CharField(max_length=100, required=False)
    start_date = forms.DateField(required=False)
    end_date = forms.DateField(required=False)
    sort = forms.ChoiceField(
        choices=[(k, k) for k in OrderListFilters.SORTS], required=False
    )
    page = forms.IntegerField(min_value=1, required=False)
    page_size = forms.IntegerField(min_value=1, max_value=100, required=False)

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start_date"), cleaned.get("end_date")
        if start and end and start > end:
            raise forms.ValidationError("start_date must be on or before end_date")
        return cleaned

    def to_filters(self) -> OrderListFilters:
        d = self.cleaned_data
        return OrderListFilters(
            status=d.get("status") or None,
            payment_status=d.get("payment_status") or None,
            search=(d.get("search") or "").strip(),
            start_date=d.get("start_date"),
            end_date=d.get("end_date"),
            sort=d.get("sort") or "newest",
            page=d.get("page") or 1,
            page_size=d.get("page_size") or 20,
        )


def first_error(form) -> str:
    for field, errors in form.errors.items():
        label = "" if field == "__all__" else f"{field}: "
        return f"{label}{errors[0]}"
    return "Invalid request"
