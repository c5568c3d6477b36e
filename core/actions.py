# core/actions.py
"""
Write operations shared by the admin, the custom views and the seed command.

Every function returns an ActionResult instead of raising, so callers can
show `message` and the per-field `errors` directly.
"""
import logging
from collections import namedtuple

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import ProtectedError
from django.utils import timezone

from .constants import TaskStatus
from .exceptions import TourBookingIdUnavailable
from .forms import (
    BookingForm,
    BookingSectorForm,
    BookingUpdateForm,
    CustomerForm,
    FareClassForm,
    PaymentSlipForm,
    PredefinedSectorForm,
    TaskForm,
    TourPackageBookingForm,
    TourProductForm,
    VerificationOutcomeForm,
    sector_count_error,
)
from .models import (
    Booking,
    Customer,
    FareClass,
    Payment,
    PredefinedSector,
    Task,
    TourPackageBooking,
    TourProduct,
)
from .slips import delete_slip_file
from .status import derive_overall_status

logger = logging.getLogger(__name__)

ActionResult = namedtuple(
    "ActionResult", ["message", "errors", "success", "object_id"], defaults=(None, False, None)
)

VALIDATION_FAILED = "Validation failed. Please check the fields."


def _ok(message, object_id=None):
    return ActionResult(message, None, True, object_id)


def _failed(message, errors=None):
    return ActionResult(message, errors, False, None)


def _form_errors(form, prefix=""):
    return {f"{prefix}{field}": list(messages) for field, messages in form.errors.items()}


def _get(model, pk):
    try:
        return model.objects.get(pk=pk)
    except (model.DoesNotExist, ValueError):
        return None


def _not_found(label, pk):
    return _failed(f"Error: {label} {pk} not found.")


def _save_form(form, label, created, on_conflict=None):
    """
    Validate and save a ModelForm inside its own savepoint. `on_conflict`
    builds the result for a unique violation that slipped past validation.
    """
    if not form.is_valid():
        return _failed(VALIDATION_FAILED, _form_errors(form))

    verb = "added" if created else "updated"
    try:
        with transaction.atomic():
            obj = form.save()
    except IntegrityError:
        logger.warning("Integrity error saving %s", label, exc_info=True)
        if on_conflict is not None:
            return on_conflict(form)
        return _failed(f"Database Error: Failed to save {label}.")
    except DatabaseError:
        logger.exception("Database error saving %s", label)
        return _failed(f"Database Error: Failed to save {label}.")

    logger.info("%s %s %s", label.capitalize(), obj.pk, verb)
    return _ok(f"Successfully {verb} {label}", obj.pk)


def _delete(model, pk, label, protected_message):
    obj = _get(model, pk)
    if obj is None:
        return _not_found(label.capitalize(), pk)

    try:
        with transaction.atomic():
            obj.delete()
    except ProtectedError:
        logger.warning("Refused to delete %s %s: still referenced", label, pk)
        return _failed(f"Database Error: {protected_message}")
    except DatabaseError:
        logger.exception("Database error deleting %s %s", label, pk)
        return _failed(f"Database Error: Failed to delete {label}.")

    logger.info("%s %s deleted", label.capitalize(), pk)
    return _ok(f"Successfully deleted {label}", pk)


# --- 1. FLIGHT BOOKINGS ---
def apply_sector_rollup(booking, sectors=None):
    """
    Stamp the rolled-up status and total PAX onto a freshly created booking.
    Runs once at creation; later sector edits leave the booking untouched.
    """
    if sectors is None:
        sectors = list(booking.sectors.all())
    booking.status = derive_overall_status(sectors)
    booking.num_pax = sum(sector.num_pax or 0 for sector in sectors)
    return booking


def create_booking(data, sectors_data):
    """Booking header plus its sectors, written in a single transaction."""
    form = BookingForm(data)
    sector_forms = [BookingSectorForm(sector) for sector in sectors_data]

    errors = {}
    if not form.is_valid():
        errors.update(_form_errors(form))
    for index, sector_form in enumerate(sector_forms):
        if not sector_form.is_valid():
            errors.update(_form_errors(sector_form, prefix=f"sectors.{index}."))

    if not sector_forms:
        errors["sectors"] = ["At least one sector is required."]
    elif "booking_type" in form.cleaned_data:
        count_error = sector_count_error(form.cleaned_data["booking_type"], len(sector_forms))
        if count_error:
            errors["sectors"] = [count_error]

    if errors:
        return _failed(VALIDATION_FAILED, errors)

    try:
        with transaction.atomic():
            booking = form.save(commit=False)
            sectors = [sector_form.save(commit=False) for sector_form in sector_forms]
            apply_sector_rollup(booking, sectors)
            booking.save()
            for sector in sectors:
                sector.booking = booking
                sector.save()
    except DatabaseError:
        logger.exception("Failed to create booking %s", data.get("booking_reference"))
        return _failed("Database Error: Failed to create booking.")

    logger.info(
        "Booking %s created with %s sector(s), status %s",
        booking.pk,
        len(sectors),
        booking.status,
    )
    return _ok("Successfully added booking", booking.pk)


def update_booking(booking_id, data):
    booking = _get(Booking, booking_id)
    if booking is None:
        return _not_found("Booking", booking_id)
    result = _save_form(BookingUpdateForm(data, instance=booking), "booking", created=False)
    if result.success:
        return _ok("Booking updated successfully", booking.pk)
    return result


def delete_booking(booking_id):
    # Sectors go with it (cascade)
    result = _delete(Booking, booking_id, "booking", "Failed to delete booking.")
    if result.success:
        return _ok("Booking deleted successfully.", booking_id)
    return result


# --- 2. REFERENCE DATA ---
def save_customer(data, customer_id=None):
    instance = None
    if customer_id is not None:
        instance = _get(Customer, customer_id)
        if instance is None:
            return _not_found("Customer", customer_id)
    return _save_form(CustomerForm(data, instance=instance), "customer", instance is None)


def delete_customer(customer_id):
    return _delete(
        Customer,
        customer_id,
        "customer",
        "Cannot delete customer because they are associated with existing bookings.",
    )


def _duplicate_sector(form):
    origin = form.cleaned_data["origin_code"]
    destination = form.cleaned_data["destination_code"]
    return _failed(
        f"Database Error: A sector with origin {origin} and destination {destination} already exists."
    )


def save_sector(data, sector_id=None):
    instance = None
    if sector_id is not None:
        instance = _get(PredefinedSector, sector_id)
        if instance is None:
            return _not_found("Sector", sector_id)

    return _save_form(
        PredefinedSectorForm(data, instance=instance),
        "sector",
        instance is None,
        on_conflict=_duplicate_sector,
    )


def delete_sector(sector_id):
    return _delete(
        PredefinedSector,
        sector_id,
        "sector",
        "Cannot delete sector because it is associated with existing booking sectors.",
    )


def save_fare_class(data, fare_class_id=None):
    instance = None
    if fare_class_id is not None:
        instance = _get(FareClass, fare_class_id)
        if instance is None:
            return _not_found("Fare class", fare_class_id)

    return _save_form(
        FareClassForm(data, instance=instance),
        "fare class",
        instance is None,
        on_conflict=lambda form: _failed(
            VALIDATION_FAILED, {"name": ["This fare class name is already taken."]}
        ),
    )


def delete_fare_class(fare_class_id):
    return _delete(
        FareClass,
        fare_class_id,
        "fare class",
        "Cannot delete fare class as it is linked to booking sectors.",
    )


# --- 3. TOUR PACKAGES ---
def save_tour_product(data, product_id=None):
    instance = None
    if product_id is not None:
        instance = _get(TourProduct, product_id)
        if instance is None:
            return _not_found("Tour product", product_id)
    return _save_form(TourProductForm(data, instance=instance), "tour product", instance is None)


def delete_tour_product(product_id):
    return _delete(
        TourProduct,
        product_id,
        "tour product",
        "Cannot delete product as it is linked to existing bookings.",
    )


def create_tour_package_booking(data):
    form = TourPackageBookingForm(data)
    if not form.is_valid():
        return _failed(VALIDATION_FAILED, _form_errors(form))

    try:
        with transaction.atomic():
            booking = form.save()
    except TourBookingIdUnavailable:
        logger.error("Could not generate a unique tour booking id")
        return _failed(
            "Database Error: Could not generate a unique booking ID. Please try again."
        )
    except DatabaseError:
        logger.exception("Failed to create tour booking")
        return _failed("Database Error: Failed to create tour booking.")

    logger.info("Tour booking %s created (grand total %s)", booking.pk, booking.grand_total)
    return _ok(f"Successfully created tour booking {booking.pk}!", booking.pk)


def update_tour_package_booking(booking_id, data):
    booking = _get(TourPackageBooking, booking_id)
    if booking is None:
        return _not_found("Tour booking", booking_id)
    result = _save_form(
        TourPackageBookingForm(data, instance=booking), "tour booking", created=False
    )
    if result.success:
        return _ok("Successfully updated tour booking!", booking.pk)
    return result


def delete_tour_package_booking(booking_id):
    # Payments cascade; their slip files are removed by the pre_delete signal
    return _delete(TourPackageBooking, booking_id, "tour booking", "Failed to delete tour booking.")


# --- 4. PAYMENTS ---
def add_payment_record(booking_id, slip_file):
    """Store the slip and snapshot the package status at upload time."""
    booking = _get(TourPackageBooking, booking_id)
    if booking is None:
        return _failed(f"Database Error: Booking with ID {booking_id} not found.")

    form = PaymentSlipForm(data={}, files={"payment_slip": slip_file})
    if not form.is_valid():
        return _failed(VALIDATION_FAILED, _form_errors(form))

    payment = form.save(commit=False)
    payment.tour_package_booking = booking
    payment.status_at_payment = booking.status
    try:
        with transaction.atomic():
            payment.save()
    except (DatabaseError, OSError):
        logger.exception("Failed to add payment record for %s", booking.pk)
        # The slip is written to storage before the INSERT
        if payment.payment_slip._committed:
            delete_slip_file(payment)
        return _failed("Database Error: Failed to add payment record.")

    logger.info("Payment %s recorded for tour booking %s", payment.pk, booking.pk)
    return _ok("Payment record added successfully.", payment.pk)


def delete_payment_record(payment_id):
    result = _delete(Payment, payment_id, "payment record", "Failed to delete payment record.")
    if result.success:
        return _ok("Payment record deleted successfully.", payment_id)
    return result


def record_verification_outcome(payment_id, data):
    """Apply the verifier's verdict, keeping verified and failed mutually exclusive."""
    payment = _get(Payment, payment_id)
    if payment is None:
        return _not_found("Payment", payment_id)

    form = VerificationOutcomeForm(data)
    if not form.is_valid():
        return _failed(VALIDATION_FAILED, _form_errors(form))

    if form.is_success:
        payment.is_verified = True
        payment.verified_amount = form.cleaned_data["verified_amount"]
        payment.verified_payment_date = form.cleaned_data.get("verified_payment_date")
        payment.verified_at = timezone.now()
        payment.verification_error = None
    else:
        payment.is_verified = False
        payment.verified_amount = None
        payment.verified_payment_date = None
        payment.verified_at = None
        payment.verification_error = form.cleaned_data["error"]

    payment.clean()
    try:
        with transaction.atomic():
            payment.save()
    except DatabaseError:
        logger.exception("Failed to record verification outcome for payment %s", payment.pk)
        return _failed("Database Error: Failed to record verification outcome.")

    logger.info(
        "Payment %s verification: %s", payment.pk, payment.verification.state
    )
    return _ok("Verification outcome recorded.", payment.pk)


# --- 5. TASKS ---
def save_task(data, task_id=None):
    instance = None
    if task_id is not None:
        instance = _get(Task, task_id)
        if instance is None:
            return _not_found("Task", task_id)
    result = _save_form(TaskForm(data, instance=instance), "task", instance is None)
    if result.success and instance is None:
        return _ok(f"Successfully created task #{result.object_id}!", result.object_id)
    return result


def delete_task(task_id):
    result = _delete(Task, task_id, "task", "Failed to delete task.")
    if result.success:
        return _ok("Success: Task deleted.", task_id)
    return result


def mark_tasks_completed(queryset):
    tasks = list(queryset.exclude(status=TaskStatus.COMPLETED))
    updated = len(tasks)
    try:
        with transaction.atomic():
            for task in tasks:
                task.status = TaskStatus.COMPLETED
                task.save(update_fields=["status", "updated_at"])
    except DatabaseError:
        logger.exception("Failed to mark %s task(s) completed", updated)
        return _failed("Database Error: Failed to update tasks.")
    logger.info("Marked %s task(s) completed", updated)
    return _ok(f"{updated} task(s) marked as completed.")
