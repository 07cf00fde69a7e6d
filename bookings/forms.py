from __future__ import annotations

from datetime import timedelta
from decimal import Decimal

from django import forms
from django.db import models

from scheduling.grid import FIRST_HOUR, LAST_HOUR

DURATIONS = [
    ("1", "1 Hour"),
    ("1.5", "1.5 Hours"),
    ("2", "2 Hours"),
    ("2.5", "2.5 Hours"),
    ("3", "3 Hours"),
    ("4", "4 Hours"),
    ("5", "5 Hours"),
]


class SlotAction(models.TextChoices):
    WALK_IN = "WALK_IN", "Walk-in booking"
    BLOCK = "BLOCK", "Block slot"


def _bs(form: forms.Form) -> None:
    for bf in form.visible_fields():
        widget = bf.field.widget
        if isinstance(widget, (forms.RadioSelect, forms.CheckboxSelectMultiple)):
            continue
        if isinstance(widget, forms.CheckboxInput):
            css = "form-check-input"
        elif isinstance(widget, forms.Select):
            css = "form-select"
        else:
            css = "form-control"
        existing = widget.attrs.get("class", "")
        if css not in existing.split():
            widget.attrs["class"] = f"{existing} {css}".strip()


def _hour_only(value, label: str):
    if value.minute or value.second:
        raise forms.ValidationError(f"{label} must be on the hour")
    if not FIRST_HOUR <= value.hour <= LAST_HOUR:
        raise forms.ValidationError(f"{label} must be between {FIRST_HOUR}:00 and {LAST_HOUR}:00")
    return value


class SlotActionForm(forms.Form):
    """
    Walk-in / block request for one venue slot.

    Customer name is required for a walk-in; amount and email stay optional but are
    format-checked. BLOCK drops the walk-in fields from the payload. The backend
    remains the authority on availability.
    """

    date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}))
    start_time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time", "step": 3600}, format="%H:%M"))
    duration = forms.TypedChoiceField(choices=DURATIONS, coerce=float, initial="1")
    action = forms.ChoiceField(choices=SlotAction.choices, initial=SlotAction.WALK_IN, widget=forms.RadioSelect)
    sport = forms.ChoiceField(required=False)
    amount_paid = forms.DecimalField(
        required=False, min_value=0, max_digits=10, decimal_places=2,
        widget=forms.NumberInput(attrs={"placeholder": "0.00", "step": "0.01"}),
        error_messages={"min_value": "Amount paid cannot be negative"},
    )
    customer_name = forms.CharField(required=False, max_length=120,
                                    widget=forms.TextInput(attrs={"placeholder": "John Doe"}))
    customer_email = forms.EmailField(required=False,
                                      widget=forms.EmailInput(attrs={"placeholder": "john@example.com"}),
                                      error_messages={"invalid": "Enter a valid customer email"})

    def __init__(self, *args, sports=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["sport"].choices = [("", "Venue-wide (all sports)")] + [
            (str(s.id), s.name) for s in (sports or [])
        ]
        _bs(self)

    def clean_start_time(self):
        return _hour_only(self.cleaned_data["start_time"], "Start time")

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("action") == SlotAction.WALK_IN:
            if not (cleaned.get("customer_name") or "").strip():
                self.add_error("customer_name", "Customer name is required for a walk-in booking")
        return cleaned

    @property
    def is_block(self) -> bool:
        return self.cleaned_data.get("action") == SlotAction.BLOCK

    @property
    def slot_length(self) -> timedelta:
        return timedelta(hours=self.cleaned_data["duration"])

    def to_payload(self) -> dict:
        data = self.cleaned_data
        duration = data["duration"]
        payload = {
            "date": data["date"].isoformat(),
            "startTime": data["start_time"].strftime("%H:%M"),
            "duration": int(duration) if duration == int(duration) else duration,
            "type": data["action"],
        }
        if data.get("sport"):
            payload["sportId"] = data["sport"]
        if self.is_block:
            return payload
        payload["customerName"] = data["customer_name"].strip()
        if data.get("customer_email"):
            payload["customerEmail"] = data["customer_email"]
        amount = data.get("amount_paid")
        if amount is not None:
            payload["amountPaid"] = float(amount) if amount != amount.to_integral_value() else int(amount)
        return payload


class CancelConfirmForm(forms.Form):
    confirm = forms.BooleanField(
        required=True,
        error_messages={"required": "Please confirm the cancellation first."},
        widget=forms.CheckboxInput(attrs={"class": "form-check-input"}),
    )


class BookingRequestForm(forms.Form):
    """Player booking: date, start time, hours and optional sport."""

    date = forms.DateField(widget=forms.DateInput(attrs={"type": "date"}),
                           error_messages={"required": "Please select date, time and duration"})
    time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time", "step": 3600}, format="%H:%M"),
                           error_messages={"required": "Please select date, time and duration"})
    hours = forms.IntegerField(min_value=1, max_value=12, initial=1,
                               error_messages={"required": "Please select date, time and duration"})
    sport = forms.ChoiceField(required=False)

    def __init__(self, *args, sports=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["sport"].choices = [("", "Any sport")] + [(str(s.id), s.name) for s in (sports or [])]
        _bs(self)

    def clean_time(self):
        return _hour_only(self.cleaned_data["time"], "Start time")

    def to_payload(self, venue_id: str) -> dict:
        data = self.cleaned_data
        payload = {
            "venueId": venue_id,
            "date": data["date"].isoformat(),
            "time": data["time"].strftime("%H:%M"),
            "hours": data["hours"],
        }
        if data.get("sport"):
            payload["sportId"] = data["sport"]
        return payload

    def estimate(self, price_per_hour: Decimal) -> Decimal:
        return Decimal(price_per_hour or 0) * self.cleaned_data["hours"]
