from __future__ import annotations

from django import forms

from playlink_api.resources import DAYS_OF_WEEK

from .wizard import AMENITIES, MAX_IMAGES, POLICIES, SPORTS, Step


def _bs(field_or_bf, *, sel: bool = False, check: bool = False) -> None:
    field = getattr(field_or_bf, "field", field_or_bf)
    widget = field.widget
    classes = widget.attrs.get("class", "").split()
    wanted = "form-select" if sel else "form-control"
    if check:
        wanted = "form-check-input"
    if wanted not in classes:
        classes.append(wanted)
    widget.attrs["class"] = " ".join(c for c in classes if c)


class _BootstrapForm(forms.Form):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for bf in self.visible_fields():
            widget = bf.field.widget
            if isinstance(widget, (forms.CheckboxSelectMultiple, forms.RadioSelect)):
                continue
            _bs(
                bf,
                sel=isinstance(widget, (forms.Select, forms.SelectMultiple)),
                check=isinstance(widget, forms.CheckboxInput),
            )


# ---- Search ------------------------------------------------------------------

class VenueSearchForm(_BootstrapForm):
    name = forms.CharField(required=False, widget=forms.TextInput(attrs={"placeholder": "Venue name"}))
    location = forms.CharField(required=False, widget=forms.TextInput(attrs={"placeholder": "City or area"}))
    sport = forms.ChoiceField(
        required=False,
        choices=[("", "All sports")] + [(name, name) for _, name in SPORTS],
    )


# ---- Venue wizard ------------------------------------------------------------
# Fields are optional here; the wizard guards decide whether a step may be left.

class BasicInfoForm(_BootstrapForm):
    name = forms.CharField(required=False, max_length=120,
                           widget=forms.TextInput(attrs={"placeholder": "e.g. City Sports Complex"}))
    description = forms.CharField(required=False,
                                  widget=forms.Textarea(attrs={"rows": 3, "placeholder": "Tell us about your venue..."}))
    address = forms.CharField(required=False, max_length=200,
                              widget=forms.TextInput(attrs={"placeholder": "Street Address"}))
    city = forms.CharField(required=False, max_length=80, widget=forms.TextInput(attrs={"placeholder": "City"}))


class PricingPolicyForm(_BootstrapForm):
    price_per_hour = forms.CharField(required=False, label="Price per hour (LKR)",
                                     widget=forms.TextInput(attrs={"inputmode": "decimal", "placeholder": "2500"}))
    cancellation_policy_id = forms.TypedChoiceField(choices=POLICIES, coerce=int, initial=POLICIES[0][0],
                                                    required=False, empty_value=POLICIES[0][0],
                                                    label="Cancellation policy")


class SportsAmenitiesForm(_BootstrapForm):
    sport_ids = forms.TypedMultipleChoiceField(choices=SPORTS, coerce=int, required=False,
                                               widget=forms.CheckboxSelectMultiple, label="Sports")
    amenity_ids = forms.TypedMultipleChoiceField(choices=AMENITIES, coerce=int, required=False,
                                                 widget=forms.CheckboxSelectMultiple, label="Amenities")


class ImagesForm(_BootstrapForm):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for i in range(MAX_IMAGES):
            self.fields[f"image_url_{i}"] = forms.CharField(
                required=False, max_length=500, label=f"Image URL {i + 1}",
                widget=forms.TextInput(attrs={"placeholder": "https://", "class": "form-control"}),
            )

    @classmethod
    def initial_from(cls, data: dict) -> dict:
        urls = data.get("image_urls") or []
        return {f"image_url_{i}": url for i, url in enumerate(urls[:MAX_IMAGES])}

    def to_data(self) -> dict:
        urls = [self.cleaned_data.get(f"image_url_{i}", "") for i in range(MAX_IMAGES)]
        return {"image_urls": [u for u in urls if u.strip()] or [""]}


STEP_FORMS = {
    Step.BASIC_INFO: BasicInfoForm,
    Step.PRICING_POLICY: PricingPolicyForm,
    Step.SPORTS_AMENITIES: SportsAmenitiesForm,
    Step.IMAGES: ImagesForm,
}


def step_form(step: Step, data: dict, post=None) -> forms.Form:
    form_class = STEP_FORMS[step]
    if form_class is ImagesForm:
        initial = ImagesForm.initial_from(data)
    else:
        initial = {name: data.get(name) for name in form_class.base_fields}
    return form_class(post, initial=initial) if post is not None else form_class(initial=initial)


def step_values(form: forms.Form) -> dict:
    if isinstance(form, ImagesForm):
        return form.to_data()
    return dict(form.cleaned_data)


# ---- Reviews -----------------------------------------------------------------

class ReviewForm(_BootstrapForm):
    rating = forms.TypedChoiceField(
        choices=[(i, f"{i} star{'s' if i > 1 else ''}") for i in range(1, 6)],
        coerce=int,
        widget=forms.RadioSelect,
        error_messages={"required": "Please select a rating"},
    )
    comment = forms.CharField(required=False, max_length=1000,
                              widget=forms.Textarea(attrs={"rows": 3, "placeholder": "Share your experience..."}))


class ReviewReplyForm(_BootstrapForm):
    reply = forms.CharField(max_length=1000, widget=forms.Textarea(attrs={"rows": 2}),
                            error_messages={"required": "Reply cannot be empty"})

    def clean_reply(self):
        reply = (self.cleaned_data.get("reply") or "").strip()
        if not reply:
            raise forms.ValidationError("Reply cannot be empty")
        return reply


# ---- Pricing rules -----------------------------------------------------------

class PricingRuleForm(_BootstrapForm):
    name = forms.CharField(max_length=80, widget=forms.TextInput(attrs={"placeholder": "e.g. Weekend Peak"}))
    start_time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time"}, format="%H:%M"))
    end_time = forms.TimeField(widget=forms.TimeInput(attrs={"type": "time"}, format="%H:%M"))
    multiplier = forms.DecimalField(
        initial="1.5", max_digits=4, decimal_places=2,
        error_messages={"min_value": "Multiplier must be 1.0 or greater"},
        min_value=1,
    )
    days_of_week = forms.TypedMultipleChoiceField(
        choices=DAYS_OF_WEEK, coerce=int, required=False, widget=forms.CheckboxSelectMultiple,
        help_text="Leave empty for every day.",
    )

    def to_payload(self) -> dict:
        data = self.cleaned_data
        return {
            "name": data["name"],
            "startTime": data["start_time"].strftime("%H:%M"),
            "endTime": data["end_time"].strftime("%H:%M"),
            "multiplier": float(data["multiplier"]),
            "daysOfWeek": data.get("days_of_week") or [],
        }


class ConfirmForm(forms.Form):
    """A destructive action goes through only with this box ticked."""

    confirm = forms.BooleanField(
        required=True,
        error_messages={"required": "Please confirm to continue."},
    )
