# core/admin.py
import logging
from datetime import timedelta

from django.contrib import admin, messages
from django.db.models import Count
from django.urls import reverse
from django.utils import timezone
from django.utils.html import format_html
from unfold.admin import ModelAdmin
from unfold.contrib.filters.admin import RangeDateFilter

from .actions import apply_sector_rollup, mark_tasks_completed
from .constants import TONE_COLORS, VERIFICATION_STATES, TaskStatus
from .formatting import format_currency, format_date
from .forms import (
    BookingForm,
    BookingSectorForm,
    BookingSectorInlineFormSet,
    BookingUpdateForm,
    CustomerForm,
    FareClassForm,
    PredefinedSectorForm,
    TaskForm,
    TourPackageBookingForm,
    TourProductForm,
)
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
from .permissions import can_delete_bookings, can_manage_payments
from .status import booking_status_tone, tour_package_status_tone

logger = logging.getLogger(__name__)

VERIFICATION_LABELS = dict(VERIFICATION_STATES)
VERIFICATION_TONES = {"verified": "success", "failed": "danger", "pending": "neutral"}


def _dot(label, tone):
    return format_html(
        '<span style="color:{}; font-weight:bold;">● {}</span>', TONE_COLORS[tone], label
    )


# --- CUSTOM FILTERS ---
class DeadlineUrgencyFilter(admin.SimpleListFilter):
    title = "Deadline"
    parameter_name = "deadline_urgency"

    def lookups(self, request, model_admin):
        return (
            ("overdue", "Overdue"),
            ("today", "Due today"),
            ("tomorrow", "Due tomorrow"),
            ("urgent", "All urgent"),
        )

    def queryset(self, request, queryset):
        today = timezone.localdate()
        tomorrow = today + timedelta(days=1)

        if self.value() == "overdue":
            return queryset.filter(deadline__lt=today)
        if self.value() == "today":
            return queryset.filter(deadline=today)
        if self.value() == "tomorrow":
            return queryset.filter(deadline=tomorrow)
        if self.value() == "urgent":
            return queryset.filter(deadline__lte=tomorrow)
        return queryset


class HideCompletedTaskFilter(admin.SimpleListFilter):
    """Completed tasks are hidden unless asked for."""

    title = "Completed tasks"
    parameter_name = "completed"

    def lookups(self, request, model_admin):
        return (("hide", "Hide completed"), ("show", "Show completed"))

    def choices(self, changelist):
        current = self.value() or "hide"
        for lookup, title in self.lookup_choices:
            yield {
                "selected": current == lookup,
                "query_string": changelist.get_query_string(
                    {self.parameter_name: lookup}
                ),
                "display": title,
            }

    def queryset(self, request, queryset):
        if self.value() == "show":
            return queryset
        return queryset.exclude(status=TaskStatus.COMPLETED)


# --- 1. REFERENCE DATA ---
@admin.register(Customer)
class CustomerAdmin(ModelAdmin):
    form = CustomerForm
    list_display = ("company_name", "booking_count", "created_at")
    search_fields = ("company_name",)

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_booking_count=Count("bookings"))

    @admin.display(description="Bookings", ordering="_booking_count")
    def booking_count(self, obj):
        return obj._booking_count


@admin.register(PredefinedSector)
class PredefinedSectorAdmin(ModelAdmin):
    form = PredefinedSectorForm
    list_display = ("route", "description", "created_at")
    search_fields = ("origin_code", "destination_code", "description")

    @admin.display(description="Sector", ordering="origin_code")
    def route(self, obj):
        return str(obj)


@admin.register(FareClass)
class FareClassAdmin(ModelAdmin):
    form = FareClassForm
    list_display = ("name", "description", "updated_at")
    search_fields = ("name",)


# --- 2. FLIGHT BOOKINGS ---
class BookingSectorInline(admin.TabularInline):
    model = BookingSector
    form = BookingSectorForm
    formset = BookingSectorInlineFormSet
    extra = 1
    min_num = 1
    max_num = 2
    verbose_name = "✈️ Sector"
    verbose_name_plural = "✈️ Sectors"


@admin.register(Booking)
class BookingAdmin(ModelAdmin):
    autocomplete_fields = ["customer"]
    inlines = [BookingSectorInline]
    list_filter_submit = True

    list_display = (
        "booking_reference",
        "customer",
        "booking_type",
        "route",
        "travel_dates",
        "num_pax",
        "status_badge",
        "deadline_display",
    )
    list_filter = (
        DeadlineUrgencyFilter,
        "status",
        "booking_type",
        ("deadline", RangeDateFilter),
        ("created_at", RangeDateFilter),
    )
    search_fields = ("booking_reference", "customer__company_name")

    def get_form(self, request, obj=None, **kwargs):
        # Status and PAX are rolled up from the sectors on creation
        kwargs["form"] = BookingUpdateForm if obj else BookingForm
        return super().get_form(request, obj, **kwargs)

    def get_fieldsets(self, request, obj=None):
        if obj is None:
            fields = ["customer", ("booking_type", "booking_reference"), "deadline"]
        else:
            fields = [
                "customer",
                ("booking_type", "booking_reference"),
                ("status", "num_pax"),
                "deadline",
                ("created_at", "updated_at"),
            ]
        return (("🧾 Booking Details", {"fields": fields}),)

    def get_readonly_fields(self, request, obj=None):
        if obj is None:
            return ()
        # The sector count is bound to the type
        return ("booking_type", "num_pax", "created_at", "updated_at")

    def get_queryset(self, request):
        return (
            super()
            .get_queryset(request)
            .select_related("customer")
            .prefetch_related("sectors__predefined_sector")
        )

    def has_delete_permission(self, request, obj=None):
        """Only managers can delete bookings."""
        base = super().has_delete_permission(request, obj)
        return base and can_delete_bookings(request.user)

    def save_related(self, request, form, formsets, change):
        super().save_related(request, form, formsets, change)
        if change:
            return

        # Runs inside the admin's transaction, together with the sectors
        booking = form.instance
        apply_sector_rollup(booking)
        booking.save(update_fields=["status", "num_pax", "updated_at"])
        logger.info(
            "Booking %s created by %s with status %s",
            booking.pk,
            request.user,
            booking.status,
        )
        self.message_user(
            request,
            f"✅ Booking status set to {booking.status} ({booking.num_pax} PAX).",
            messages.SUCCESS,
        )

    # --- UI Helpers ---
    @admin.display(description="Route")
    def route(self, obj):
        return obj.route_display

    @admin.display(description="Travel Dates")
    def travel_dates(self, obj):
        return obj.travel_dates_display

    @admin.display(description="Status", ordering="status")
    def status_badge(self, obj):
        return _dot(obj.get_status_display(), booking_status_tone(obj.status))

    @admin.display(description="Deadline", ordering="deadline")
    def deadline_display(self, obj):
        if not obj.deadline:
            return "-"
        deadline = obj.deadline_status(timezone.localdate())
        if deadline.is_urgent:
            tone = "danger" if deadline.is_overdue else "warning"
            return format_html(
                '{}<br><span style="font-size:11px; color:{};">{}</span>',
                format_date(obj.deadline),
                TONE_COLORS[tone],
                deadline.label,
            )
        return format_html(
            '{}<br><span style="font-size:11px; color:#6b7280;">{}</span>',
            format_date(obj.deadline),
            deadline.label,
        )


# --- 3. TOUR PACKAGES ---
@admin.register(TourProduct)
class TourProductAdmin(ModelAdmin):
    form = TourProductForm
    list_display = ("name", "booking_count", "state_display", "updated_at")
    search_fields = ("name", "description")

    def get_queryset(self, request):
        return super().get_queryset(request).annotate(_booking_count=Count("bookings"))

    @admin.display(description="Bookings", ordering="_booking_count")
    def booking_count(self, obj):
        return obj._booking_count

    @admin.display(description="State")
    def state_display(self, obj):
        if obj._booking_count:
            return _dot("Active", "success")
        return _dot("Draft", "neutral")


class PaymentInline(admin.TabularInline):
    """Read-only. Slips are uploaded from the tour booking page."""

    model = Payment
    fields = ("uploaded_at", "status_at_payment", "verification_badge", "slip_link")
    readonly_fields = fields
    extra = 0
    can_delete = False
    verbose_name = "💳 Payment"
    verbose_name_plural = "💳 Payments"

    def has_add_permission(self, request, obj=None):
        return False

    @admin.display(description="Verification")
    def verification_badge(self, obj):
        return verification_badge(obj)

    @admin.display(description="Slip")
    def slip_link(self, obj):
        return slip_link(obj)


class TaskInline(admin.TabularInline):
    model = Task
    form = TaskForm
    fields = ("description", "due_date", "status")
    extra = 0
    verbose_name = "📌 Task"
    verbose_name_plural = "📌 Tasks"


def verification_badge(payment):
    verification = payment.verification
    badge = _dot(VERIFICATION_LABELS[verification.state], VERIFICATION_TONES[verification.state])
    if verification.state == "verified" and verification.amount is not None:
        return format_html("{}<br><small>{}</small>", badge, format_currency(verification.amount))
    if verification.state == "failed":
        return format_html("{}<br><small>{}</small>", badge, verification.error)
    return badge


def slip_link(payment):
    if not payment.pk or not payment.payment_slip:
        return "-"
    return format_html(
        '<a href="{}" target="_blank" class="button">🧾 View slip</a>',
        reverse("payment_slip_link", args=[payment.pk]),
    )


@admin.register(TourPackageBooking)
class TourPackageBookingAdmin(ModelAdmin):
    form = TourPackageBookingForm
    autocomplete_fields = ["tour_product", "linked_bookings"]
    inlines = [PaymentInline, TaskInline]
    list_filter_submit = True

    list_display = (
        "id",
        "customer_name",
        "tour_product",
        "status_badge",
        "pax",
        "grand_total_display",
        "travel_window",
        "payment_count",
    )
    list_filter = (
        "status",
        "tour_product",
        ("travel_start_date", RangeDateFilter),
        ("created_at", RangeDateFilter),
    )
    search_fields = ("id", "customer_name", "tour_product__name", "notes")
    readonly_fields = (
        "id",
        "total_per_pax_display",
        "grand_total_display",
        "upload_slip_link",
    )

    fieldsets = (
        (
            "🧳 Booking",
            {"fields": (("id", "status"), "customer_name", "tour_product", "linked_bookings")},
        ),
        (
            "💰 Pricing",
            {
                "fields": (
                    ("base_price_per_pax", "pax"),
                    "addons",
                    ("total_per_pax_display", "grand_total_display"),
                ),
                "description": 'Add-ons as JSON: [{"name": "Airport transfer", "amount": 500}]',
            },
        ),
        (
            "📅 Dates",
            {"fields": ("booking_date", ("travel_start_date", "travel_end_date"))},
        ),
        ("📝 Notes & Payments", {"fields": ("notes", "upload_slip_link")}),
    )

    def get_queryset(self, request):
        return (
            super()
            .get_queryset(request)
            .select_related("tour_product")
            .annotate(_payment_count=Count("payments"))
        )

    def has_delete_permission(self, request, obj=None):
        """Only managers can delete tour bookings."""
        base = super().has_delete_permission(request, obj)
        return base and can_delete_bookings(request.user)

    # --- UI Helpers ---
    @admin.display(description="Status", ordering="status")
    def status_badge(self, obj):
        return _dot(obj.get_status_display(), tour_package_status_tone(obj.status))

    @admin.display(description="Grand Total", ordering="grand_total")
    def grand_total_display(self, obj):
        return format_html("<b>{}</b>", format_currency(obj.grand_total))

    @admin.display(description="Total / PAX")
    def total_per_pax_display(self, obj):
        return format_currency(obj.total_per_pax)

    @admin.display(description="Travel")
    def travel_window(self, obj):
        if not obj.travel_start_date:
            return "-"
        return f"{format_date(obj.travel_start_date)} → {format_date(obj.travel_end_date)}"

    @admin.display(description="Payments", ordering="_payment_count")
    def payment_count(self, obj):
        return obj._payment_count

    @admin.display(description="Payment Slip")
    def upload_slip_link(self, obj):
        if not obj.pk:
            return "Save the booking first to upload payment slips."
        return format_html(
            '<a href="{}" class="button">📤 Upload payment slip</a>',
            reverse("upload_payment_slip", args=[obj.pk]),
        )


# --- 4. PAYMENTS ---
@admin.register(Payment)
class PaymentAdmin(ModelAdmin):
    list_display = (
        "tour_package_booking",
        "status_at_payment",
        "uploaded_at",
        "verification_display",
        "slip_display",
    )
    list_filter = ("is_verified", "status_at_payment", ("uploaded_at", RangeDateFilter))
    list_filter_submit = True
    search_fields = ("tour_package_booking__id", "tour_package_booking__customer_name")
    readonly_fields = (
        "tour_package_booking",
        "status_at_payment",
        "uploaded_at",
        "verification_display",
        "slip_display",
        "verified_amount",
        "verified_payment_date",
        "verified_at",
        "verification_error",
    )
    fields = readonly_fields

    def get_queryset(self, request):
        return super().get_queryset(request).select_related("tour_package_booking")

    # Slips come from the upload page, outcomes from the verifier
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return super().has_delete_permission(request, obj) and can_manage_payments(
            request.user
        )

    @admin.display(description="Verification")
    def verification_display(self, obj):
        return verification_badge(obj)

    @admin.display(description="Slip")
    def slip_display(self, obj):
        return slip_link(obj)


# --- 5. TASKS ---
@admin.register(Task)
class TaskAdmin(ModelAdmin):
    form = TaskForm
    autocomplete_fields = ["linked_tour_booking"]
    list_display = (
        "short_description",
        "due_date",
        "overdue_display",
        "status",
        "linked_tour_booking",
        "created_at",
    )
    list_filter = (HideCompletedTaskFilter, "status", ("due_date", RangeDateFilter))
    list_filter_submit = True
    search_fields = ("description", "linked_tour_booking__id")
    actions = ["mark_completed"]

    @admin.display(description="Task")
    def short_description(self, obj):
        return str(obj)

    @admin.display(description="Overdue", boolean=True)
    def overdue_display(self, obj):
        return obj.is_overdue

    @admin.action(description="✅ Mark as completed")
    def mark_completed(self, request, queryset):
        result = mark_tasks_completed(queryset)
        level = messages.SUCCESS if result.success else messages.ERROR
        self.message_user(request, result.message, level)
