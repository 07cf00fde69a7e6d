from django import forms


class ReportFilterForm(forms.Form):
    start = forms.DateField(required=False, widget=forms.DateInput(attrs={"type": "date", "class": "form-control"}))
    end = forms.DateField(required=False, widget=forms.DateInput(attrs={"type": "date", "class": "form-control"}))
    venue = forms.ChoiceField(required=False, widget=forms.Select(attrs={"class": "form-select"}))

    def __init__(self, *args, venues=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["venue"].choices = [("", "All venues")] + [(v.id, v.name) for v in (venues or [])]

    def clean(self):
        cleaned = super().clean()
        start, end = cleaned.get("start"), cleaned.get("end")
        if start and end and end < start:
            raise forms.ValidationError("End date must be on or after the start date.")
        return cleaned

    def to_params(self) -> dict:
        data = self.cleaned_data
        params = {}
        if data.get("start"):
            params["start"] = data["start"].isoformat()
        if data.get("end"):
            params["end"] = data["end"].isoformat()
        if data.get("venue"):
            params["venueId"] = data["venue"]
        return params
