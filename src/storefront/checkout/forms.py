"""Forms for the checkout app."""

from django import forms
from django.core.validators import RegexValidator

phone_validator = RegexValidator(
    regex=r"^\+?[0-9][0-9 ()\-]{5,22}[0-9]$",
    message="Enter a valid phone number.",
)


class BillingForm(forms.Form):
    """Billing snapshot collected at checkout.

    Validated before any transaction opens; the cleaned values are copied
    onto the order verbatim.
    """

    full_name = forms.CharField(min_length=2, max_length=200, strip=True)
    email = forms.EmailField(max_length=254)
    phone = forms.CharField(max_length=32, strip=True, validators=[phone_validator])
    address = forms.CharField(min_length=5, max_length=500, strip=True)

    def clean_phone(self) -> str:
        """Require between 7 and 15 digits, ignoring separators."""
        phone = self.cleaned_data["phone"]
        digits = sum(ch.isdigit() for ch in phone)
        if not 7 <= digits <= 15:
            raise forms.ValidationError("Phone number must contain between 7 and 15 digits.")
        return phone
