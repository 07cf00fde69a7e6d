from django import forms

MIN_TOPUP = 100
PRESETS = (1000, 2000, 5000)


class TopUpForm(forms.Form):
    amount = forms.DecimalField(
        min_value=MIN_TOPUP,
        max_digits=10,
        decimal_places=2,
        widget=forms.NumberInput(attrs={"class": "form-control", "placeholder": "Enter amount", "step": "0.01"}),
        error_messages={
            "required": "Please enter an amount",
            "min_value": f"Minimum top-up amount is LKR {MIN_TOPUP}",
        },
    )

    def amount_value(self):
        amount = self.cleaned_data["amount"]
        return int(amount) if amount == amount.to_integral_value() else float(amount)
