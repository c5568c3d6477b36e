from decimal import Decimal, InvalidOperation

from django import forms
from django.conf import settings
from django.core.validators import FileExtensionValidator

from .constants import SECTORS_PER_BOOKING_TYPE, BookingType, TaskStatus
from .models import (
    Booking,
    BookingSector,
    Customer,
    FareClass,
    Payment,
    PredefinedSector,
    Task,
    TourPackageBooking,
    TourProduct,
)

SECTOR_COUNT_ERRORS = {
    BookingType.ONE_WAY: "One-Way bookings must have exactly one sector.",
    BookingType.RETURN: "Return bookings must have exactly two sectors.",
}

SLIP_EXTENSIONS = ["jpg", "jpeg", "png", "gif", "webp", "pdf"]
SLIP_CONTENT_TYPES = ("image/", "application/pdf")

DATE_WIDGET = forms.DateInput(attrs={"type": "date"})


def sector_count_error(booking_type, count):
    """Message for a wrong number of sectors, or None when the count fits."""
    expected = SECTORS_PER_BOOKING_TYPE.get(booking_type)
    if expected is None or count == expected:
        return None
    return SECTOR_COUNT_ERRORS[booking_type]


# --- 1. REFERENCE DATA ---
class CustomerForm(forms.ModelForm):
    class Meta:
        model = Customer
        fields = ["company_name"]
        error_messages = {
            "company_name": {"required": "Company name is required"},
        }


class PredefinedSectorForm(forms.ModelForm):
    class Meta:
        model = PredefinedSector
        fields = ["origin_code", "destination_code", "description"]

    def _clean_code(self, field_name, label):
        code = (self.cleaned_data.get(field_name) or "").strip().upper()
        if len(code) < 3:
            raise forms.ValidationError(f"{label} code must be at least 3 characters")
        return code

    def clean_origin_code(self):
        return self._clean_code("origin_code", "Origin")

    def clean_destination_code(self):
        return self._clean_code("destination_code", "Destination")

    def clean(self):
        cleaned_data = super().clean()
        origin = cleaned_data.get("origin_code")
        destination = cleaned_data.get("destination_code")

        if origin and destination:
            duplicates = PredefinedSector.objects.filter(
                origin_code=origin, destination_code=destination
            ).exclude(pk=self.instance.pk)
            if duplicates.exists():
                # Attached to a field so the model's own unique check is skipped
                self.add_error(
                    "destination_code",
                    f"A sector with origin {origin} and destination {destination} already exists.",
                )
        return cleaned_data


class FareClassForm(forms.ModelForm):
    class Meta:
        model = FareClass
        fields = ["name", "description"]
        error_messages = {
            "name": {
                "required": "Fare class name is required.",
                "max_length": "Name cannot exceed 50 characters.",
            },
            "description": {
                "max_length": "Description cannot exceed 255 characters.",
            },
        }

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        clashes = FareClass.objects.filter(name__iexact=name)
        if self.instance.pk:
            if clashes.exclude(pk=self.instance.pk).exists():
                raise forms.ValidationError(
                    "Another fare class with this name already exists."
                )
        elif clashes.exists():
            raise forms.ValidationError("This fare class name is already taken.")
        return name


# --- 2. FLIGHT BOOKINGS ---
class BookingForm(forms.ModelForm):
    """Booking header on creation. Status and PAX come from the sectors."""

    class Meta:
        model = Booking
        fields = ["customer", "booking_type", "booking_reference", "deadline"]
        widgets = {"deadline": DATE_WIDGET}
        error_messages = {
            "booking_reference": {"required": "Booking reference is required."},
            "booking_type": {"required": "Booking type is required."},
        }


class BookingUpdateForm(forms.ModelForm):
    """Header edits after creation, including the manual status override."""

    class Meta:
        model = Booking
        fields = ["customer", "booking_reference", "status", "deadline"]
        widgets = {"deadline": DATE_WIDGET}
        error_messages = {
            "booking_reference": {"required": "Booking reference is required"},
            "status": {"required": "Booking status is required for update."},
        }


class BookingSectorForm(forms.ModelForm):
    class Meta:
        model = BookingSector
        fields = [
            "predefined_sector",
            "travel_date",
            "status",
            "fare_class",
            "flight_number",
            "num_pax",
        ]
        widgets = {"travel_date": DATE_WIDGET}
        error_messages = {
            "predefined_sector": {"required": "Please select a valid sector."},
            "status": {"required": "Sector status is required."},
            "num_pax": {"max_value": "Maximum 999 passengers."},
        }


class BookingSectorInlineFormSet(forms.BaseInlineFormSet):
    """Enforces the sector count of the parent booking's type."""

    def clean(self):
        super().clean()
        if any(self.errors):
            return

        count = 0
        for form in self.forms:
            if not hasattr(form, "cleaned_data") or not form.cleaned_data:
                continue
            if form.cleaned_data.get("DELETE"):
                continue
            count += 1

        error = sector_count_error(self.instance.booking_type, count)
        if error:
            raise forms.ValidationError(error)


# --- 3. TOUR PACKAGES ---
class TourProductForm(forms.ModelForm):
    class Meta:
        model = TourProduct
        fields = ["name", "description"]

    def clean_name(self):
        name = self.cleaned_data["name"].strip()
        if len(name) < 3:
            raise forms.ValidationError(
                "Product name must be at least 3 characters long."
            )
        return name


class TourPackageBookingForm(forms.ModelForm):
    class Meta:
        model = TourPackageBooking
        fields = [
            "customer_name",
            "tour_product",
            "status",
            "base_price_per_pax",
            "pax",
            "addons",
            "booking_date",
            "travel_start_date",
            "travel_end_date",
            "notes",
            "linked_bookings",
        ]
        widgets = {
            "booking_date": DATE_WIDGET,
            "travel_start_date": DATE_WIDGET,
            "travel_end_date": DATE_WIDGET,
            "notes": forms.Textarea(attrs={"rows": 3}),
        }
        error_messages = {
            "customer_name": {"required": "Customer name is required."},
            "tour_product": {"required": "Please select a valid tour package."},
            "pax": {"min_value": "PAX must be a positive number."},
        }

    def clean_base_price_per_pax(self):
        price = self.cleaned_data.get("base_price_per_pax")
        if price is not None and price < 0:
            raise forms.ValidationError("Price cannot be negative.")
        return price

    def clean_addons(self):
        """Normalise to [{"name": str, "amount": "12.50"}, ...]."""
        addons = self.cleaned_data.get("addons") or []
        if not isinstance(addons, list):
            raise forms.ValidationError("Add-ons must be a list.")

        cleaned = []
        for index, addon in enumerate(addons, start=1):
            if not isinstance(addon, dict):
                raise forms.ValidationError(f"Add-on #{index} must have a name and amount.")
            name = str(addon.get("name") or "").strip()
            if not name:
                raise forms.ValidationError(f"Add-on #{index} needs a name.")
            try:
                amount = Decimal(str(addon.get("amount", 0))).quantize(Decimal("0.01"))
            except (InvalidOperation, ValueError):
                raise forms.ValidationError(f"Add-on '{name}' has an invalid amount.")
            if amount < 0:
                raise forms.ValidationError(f"Add-on '{name}' cannot be negative.")
            cleaned.append({"name": name, "amount": str(amount)})
        return cleaned


# --- 4. PAYMENTS ---
class PaymentSlipForm(forms.ModelForm):
    payment_slip = forms.FileField(
        label="Payment slip",
        validators=[FileExtensionValidator(SLIP_EXTENSIONS)],
    )

    class Meta:
        model = Payment
        fields = ["payment_slip"]

    def clean_payment_slip(self):
        slip = self.cleaned_data["payment_slip"]
        max_size = settings.PAYMENT_SLIP_MAX_UPLOAD_SIZE
        if slip.size > max_size:
            raise forms.ValidationError(
                f"File is too large. Maximum size is {max_size // (1024 * 1024)} MB."
            )
        content_type = getattr(slip, "content_type", None)
        if content_type and not content_type.startswith(SLIP_CONTENT_TYPES):
            raise forms.ValidationError("Only images and PDF files are accepted.")
        return slip


class VerificationOutcomeForm(forms.Form):
    """Outcome posted by the external slip verifier: an amount or an error."""

    verified_amount = forms.DecimalField(
        required=False, max_digits=12, decimal_places=2, min_value=0
    )
    verified_payment_date = forms.DateField(required=False)
    error = forms.CharField(required=False, strip=True)

    def clean(self):
        cleaned_data = super().clean()
        amount = cleaned_data.get("verified_amount")
        error = cleaned_data.get("error")

        if amount is not None and error:
            raise forms.ValidationError(
                "Provide either a verified amount or an error, not both."
            )
        if amount is None and not error:
            raise forms.ValidationError("Provide a verified amount or an error.")
        return cleaned_data

    @property
    def is_success(self):
        return self.cleaned_data.get("verified_amount") is not None


# --- 5. TASKS ---
class TaskForm(forms.ModelForm):
    class Meta:
        model = Task
        fields = ["description", "due_date", "status", "linked_tour_booking"]
        widgets = {
            "due_date": DATE_WIDGET,
            "description": forms.Textarea(attrs={"rows": 3}),
        }
        error_messages = {
            "description": {"required": "Description is required."},
        }

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields["status"].required = False

    def clean_status(self):
        return self.cleaned_data.get("status") or TaskStatus.PENDING
