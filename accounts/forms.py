#accounts/forms.py
import re

from django import forms

from playlink_api.resources import AccountType

PASSWORD_RULE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[\W_]).{8,}$")


def _add_bootstrap_classes(field, *, is_select=False, is_checkbox=False):
    base = field.widget.attrs.get("class", "").split()
    if is_checkbox:
        cls = "form-check-input"
    elif is_select:
        cls = "form-select"
    else:
        cls = "form-control"
    if cls not in base:
        base.append(cls)
    field.widget.attrs["class"] = " ".join(c for c in base if c)


class LoginForm(forms.Form):
    email = forms.EmailField(
        widget=forms.EmailInput(
            attrs={
                "autofocus": True,
                "autocomplete": "email",
                "class": "form-control",
                "placeholder": "Email address",
                "id": "email",
            }
        ),
        error_messages={"required": "Please enter email and password."},
    )
    password = forms.CharField(
        strip=False,
        widget=forms.PasswordInput(
            attrs={
                "autocomplete": "current-password",
                "class": "form-control",
                "placeholder": "Password",
                "id": "password",
            }
        ),
        error_messages={"required": "Please enter email and password."},
    )


class SignupForm(forms.Form):
    ACCOUNT_CHOICES = [
        (AccountType.USER, "I want to book courts"),
        (AccountType.VENUE_OWNER, "I want to list my venue"),
    ]

    full_name = forms.CharField(
        max_length=120,
        error_messages={"required": "Please enter your full name."},
        widget=forms.TextInput(attrs={"placeholder": "Full name", "autocomplete": "name"}),
    )
    email = forms.EmailField(
        error_messages={"required": "Please enter your email address."},
        widget=forms.EmailInput(attrs={"placeholder": "Email address", "autocomplete": "email"}),
    )
    city = forms.CharField(max_length=80, required=False, widget=forms.TextInput(attrs={"placeholder": "City"}))
    account_type = forms.ChoiceField(choices=ACCOUNT_CHOICES, initial=AccountType.USER, widget=forms.RadioSelect)
    password = forms.CharField(
        strip=False,
        error_messages={"required": "Please enter a password."},
        widget=forms.PasswordInput(attrs={"autocomplete": "new-password", "placeholder": "Password"}),
    )
    confirm_password = forms.CharField(
        strip=False,
        error_messages={"required": "Please confirm your password."},
        widget=forms.PasswordInput(attrs={"autocomplete": "new-password", "placeholder": "Confirm password"}),
    )
    agree_terms = forms.BooleanField(
        error_messages={"required": "You must agree to the Terms of Service and Privacy Policy to continue."},
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        for name, field in self.fields.items():
            if name == "account_type":
                continue
            _add_bootstrap_classes(field, is_checkbox=name == "agree_terms")

    def clean_full_name(self):
        name = (self.cleaned_data.get("full_name") or "").strip()
        if not name:
            raise forms.ValidationError("Please enter your full name.")
        return name

    def clean_email(self):
        return (self.cleaned_data.get("email") or "").strip().lower()

    def clean_password(self):
        password = self.cleaned_data.get("password") or ""
        if not PASSWORD_RULE.match(password):
            raise forms.ValidationError(
                "Password must match requirements: 8+ chars, 1 uppercase, 1 lowercase, 1 number, 1 special char."
            )
        return password

    def clean(self):
        cleaned = super().clean()
        password = cleaned.get("password")
        confirm = cleaned.get("confirm_password")
        if password and confirm and password != confirm:
            self.add_error("confirm_password", "Passwords do not match. Please try again.")
        return cleaned

    def to_payload(self) -> dict:
        data = self.cleaned_data
        payload = {
            "fullName": data["full_name"],
            "email": data["email"],
            "password": data["password"],
            "accountType": data["account_type"],
        }
        if data.get("city"):
            payload["city"] = data["city"]
        return payload
