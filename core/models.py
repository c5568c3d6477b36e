# core/models.py
import logging
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import F
from django.utils import timezone
from simple_history.models import HistoricalRecords

from .constants import SECTOR_STATUSES, TOUR_BOOKING_ID_MAX_ATTEMPTS
from .constants import BookingStatus, BookingType, TaskStatus, TourPackageStatus
from .exceptions import TourBookingIdUnavailable
from .formatting import format_sector_route, format_travel_dates
from .status import classify_deadline, classify_verification, is_task_overdue
from .utils import generate_alphanumeric_id

logger = logging.getLogger(__name__)


# --- REFERENCE DATA ---
class Customer(models.Model):
    company_name = models.CharField("Company Name", max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["company_name"]

    def __str__(self):
        return self.company_name


class PredefinedSector(models.Model):
    origin_code = models.CharField("Origin", max_length=10)
    destination_code = models.CharField("Destination", max_length=10)
    description = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["origin_code", "destination_code"]
        constraints = [
            models.UniqueConstraint(
                fields=["origin_code", "destination_code"], name="unique_sector_route"
            )
        ]

    def __str__(self):
        return f"{self.origin_code}-{self.destination_code}"


class FareClass(models.Model):
    name = models.CharField(max_length=50, unique=True)
    description = models.CharField(max_length=255, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Fare Classes"

    def __str__(self):
        return self.name


# --- FLIGHT BOOKINGS ---
class Booking(models.Model):
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="bookings", db_index=True
    )
    booking_reference = models.CharField(
        "Booking Reference", max_length=50, db_index=True
    )
    booking_type = models.CharField(
        "Booking Type", max_length=10, choices=BookingType.choices
    )
    num_pax = models.IntegerField(
        "PAX", default=0, help_text="Total passengers across all sectors"
    )
    deadline = models.DateField(null=True, blank=True)

    # Rolled up from the sectors when the booking is created, then managed by hand
    status = models.CharField(
        "Booking Status",
        max_length=20,
        choices=BookingStatus.choices,
        default=BookingStatus.CONFIRMED,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.booking_reference} ({self.get_booking_type_display()})"

    def ordered_sectors(self):
        # Uses the prefetch cache when the caller prefetched sectors
        sectors = list(self.sectors.all())
        sectors.sort(key=lambda s: (s.created_at or timezone.now(), s.pk or 0))
        return sectors

    @property
    def legs(self):
        return [
            (s.predefined_sector.origin_code, s.predefined_sector.destination_code)
            for s in self.ordered_sectors()
        ]

    @property
    def route_display(self):
        return format_sector_route(self.booking_type, self.legs)

    @property
    def travel_dates_display(self):
        return format_travel_dates(
            self.booking_type, [s.travel_date for s in self.ordered_sectors()]
        )

    def deadline_status(self, now=None):
        return classify_deadline(self.deadline, now or timezone.localdate())


class BookingSector(models.Model):
    booking = models.ForeignKey(
        Booking, on_delete=models.CASCADE, related_name="sectors"
    )
    predefined_sector = models.ForeignKey(
        PredefinedSector,
        on_delete=models.PROTECT,
        related_name="booking_sectors",
        verbose_name="Sector",
    )
    travel_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=SECTOR_STATUSES)
    fare_class = models.ForeignKey(
        FareClass,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="booking_sectors",
    )
    flight_number = models.CharField(max_length=20, blank=True, null=True)
    # Zero or negative counts are allowed (adjustments)
    num_pax = models.IntegerField(
        "PAX", default=1, validators=[MaxValueValidator(999)]
    )
    created_at = models.DateTimeField(auto_now_add=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["created_at", "id"]

    def __str__(self):
        return f"{self.predefined_sector} ({self.status})"


# --- TOUR PACKAGES ---
class TourProduct(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class TourPackageBooking(models.Model):
    id = models.CharField(primary_key=True, max_length=5, editable=False)
    customer_name = models.CharField("Customer Name", max_length=255)
    tour_product = models.ForeignKey(
        TourProduct,
        on_delete=models.PROTECT,
        related_name="bookings",
        verbose_name="Tour Package",
    )
    status = models.CharField(
        max_length=30,
        choices=TourPackageStatus.choices,
        default=TourPackageStatus.OPEN,
    )

    # 1. Pricing
    base_price_per_pax = models.DecimalField(
        "Base Price / PAX", max_digits=12, decimal_places=2, default=Decimal("0.00")
    )
    pax = models.PositiveIntegerField(
        "PAX", default=1, validators=[MinValueValidator(1)]
    )
    # [{"name": "Airport transfer", "amount": "500.00"}, ...]
    addons = models.JSONField(default=list, blank=True)
    grand_total = models.DecimalField(
        "Grand Total",
        max_digits=14,
        decimal_places=2,
        default=Decimal("0.00"),
        editable=False,
    )

    # 2. Dates
    booking_date = models.DateField(null=True, blank=True)
    travel_start_date = models.DateField(null=True, blank=True)
    travel_end_date = models.DateField(null=True, blank=True)

    notes = models.TextField(blank=True, null=True)
    linked_bookings = models.ManyToManyField(
        Booking, blank=True, related_name="tour_package_bookings"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Tour Package Booking"

    def __str__(self):
        return f"{self.id} - {self.customer_name}"

    @property
    def addons_total(self):
        return sum(
            (Decimal(str(addon.get("amount") or 0)) for addon in self.addons or []),
            Decimal("0.00"),
        )

    @property
    def total_per_pax(self):
        return Decimal(str(self.base_price_per_pax or 0)) + self.addons_total

    def compute_grand_total(self):
        return (self.total_per_pax * int(self.pax or 0)).quantize(Decimal("0.01"))

    def clean(self):
        super().clean()
        if (
            self.travel_start_date
            and self.travel_end_date
            and self.travel_end_date < self.travel_start_date
        ):
            raise ValidationError(
                {"travel_end_date": "Travel end date must be on or after the start date."}
            )

    @classmethod
    def generate_id(cls):
        for attempt in range(1, TOUR_BOOKING_ID_MAX_ATTEMPTS + 1):
            candidate = generate_alphanumeric_id()
            if not cls.objects.filter(pk=candidate).exists():
                return candidate
            logger.warning(
                "Tour booking id collision on %s (attempt %s)", candidate, attempt
            )
        raise TourBookingIdUnavailable(
            f"No free booking ID after {TOUR_BOOKING_ID_MAX_ATTEMPTS} attempts"
        )

    def save(self, *args, **kwargs):
        if not self.id:
            self.id = self.generate_id()
            kwargs["force_insert"] = True
        self.grand_total = self.compute_grand_total()
        if "update_fields" in kwargs and kwargs["update_fields"] is not None:
            kwargs["update_fields"] = set(kwargs["update_fields"]) | {"grand_total"}
        super().save(*args, **kwargs)


def payment_slip_upload_to(instance, filename):
    folder = getattr(settings, "PAYMENT_SLIP_UPLOAD_TO", "payment-slips")
    return f"{folder}/{instance.tour_package_booking_id}/{uuid.uuid4().hex[:8]}_{filename}"


class Payment(models.Model):
    """One uploaded payment slip and the outcome of its verification."""

    tour_package_booking = models.ForeignKey(
        TourPackageBooking, on_delete=models.CASCADE, related_name="payments"
    )
    # Snapshot of the package status when the slip was uploaded
    status_at_payment = models.CharField(
        "Status @ Payment", max_length=30, choices=TourPackageStatus.choices
    )
    payment_slip = models.FileField(upload_to=payment_slip_upload_to, max_length=255)
    uploaded_at = models.DateTimeField(auto_now_add=True)

    # --- Verification outcome (written by the external verifier) ---
    is_verified = models.BooleanField(default=False)
    verified_amount = models.DecimalField(
        max_digits=12, decimal_places=2, null=True, blank=True
    )
    verified_payment_date = models.DateField(null=True, blank=True)
    verification_error = models.TextField(null=True, blank=True)
    verified_at = models.DateTimeField(null=True, blank=True)

    history = HistoricalRecords()

    class Meta:
        ordering = ["-uploaded_at"]

    def __str__(self):
        return f"Slip for {self.tour_package_booking_id} @ {self.status_at_payment}"

    def clean(self):
        super().clean()
        if self.is_verified and self.verification_error is not None:
            raise ValidationError(
                "A payment cannot be both verified and failed verification."
            )

    @property
    def verification(self):
        return classify_verification(self)


# --- TASKS ---
class Task(models.Model):
    description = models.TextField()
    due_date = models.DateField(null=True, blank=True)
    status = models.CharField(
        max_length=20, choices=TaskStatus.choices, default=TaskStatus.PENDING
    )
    linked_tour_booking = models.ForeignKey(
        TourPackageBooking,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="tasks",
        verbose_name="Linked Tour Booking",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    history = HistoricalRecords()

    class Meta:
        ordering = [F("due_date").asc(nulls_last=True), "-created_at"]

    def __str__(self):
        return self.description[:60]

    @property
    def is_overdue(self):
        return is_task_overdue(self.due_date, self.status, timezone.localdate())
