# core/status.py
"""
Derived booking, deadline and payment states.

Everything here is a pure function of its arguments. Callers pass the
current time explicitly (see `classify_deadline`) so results never depend on
the system clock.
"""
from collections import namedtuple
from collections.abc import Mapping
from datetime import date, datetime

from django.utils import timezone

from .constants import (
    TONE_DANGER,
    TONE_INFO,
    TONE_NEUTRAL,
    TONE_SUCCESS,
    TONE_WARNING,
    VERIFICATION_FAILED,
    VERIFICATION_PENDING,
    VERIFICATION_VERIFIED,
    BookingStatus,
    TaskStatus,
    TourPackageStatus,
)

DeadlineStatus = namedtuple("DeadlineStatus", ["label", "is_overdue", "is_urgent", "days"])

VerificationStatus = namedtuple(
    "VerificationStatus", ["state", "amount", "payment_date", "verified_at", "error"]
)

NO_DEADLINE = DeadlineStatus("No deadline", False, False, None)
INVALID_DEADLINE = DeadlineStatus("(Invalid date)", False, False, None)


def _field(item, name):
    """Read `name` from a model instance or from cleaned form data."""
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


# --- 1. BOOKING STATUS ROLLUP ---
def derive_overall_status(sectors):
    """
    Any sector on the waiting list puts the whole booking on the waiting list.

    An empty sector list yields CONFIRMED; the booking forms never allow it.
    """
    for sector in sectors:
        if _field(sector, "status") == BookingStatus.WAITING_LIST:
            return BookingStatus.WAITING_LIST
    return BookingStatus.CONFIRMED


# --- 2. DEADLINE URGENCY ---
def _as_date(value):
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            return None
    return None


def _plural(count, word):
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def classify_deadline(deadline, now):
    """
    Classify a booking deadline relative to `now`.

    The deadline lasts until the end of its calendar day and `now` counts
    from the start of its day, so only calendar days matter. Unparseable
    input degrades to the "(Invalid date)" label.
    """
    if deadline is None or deadline == "":
        return NO_DEADLINE

    deadline_day = _as_date(deadline)
    today = _as_date(now)
    if deadline_day is None or today is None:
        return INVALID_DEADLINE

    days = (deadline_day - today).days

    if days < 0:
        overdue = -days
        return DeadlineStatus(
            f"Overdue by {_plural(overdue, 'day')}", True, True, overdue
        )
    if days == 0:
        return DeadlineStatus("Due today", False, True, 0)
    if days == 1:
        return DeadlineStatus("Due tomorrow", False, True, 1)
    return DeadlineStatus(f"Due in {days} days", False, False, days)


def is_task_overdue(due_date, status, now):
    """A task is overdue once its due day has passed, unless completed."""
    if due_date is None or status == TaskStatus.COMPLETED:
        return False
    due_day = _as_date(due_date)
    today = _as_date(now)
    if due_day is None or today is None:
        return False
    return due_day < today


# --- 3. STATUS TONES / BADGE VARIANTS ---
BOOKING_STATUS_TONES = {
    BookingStatus.TICKETED: TONE_SUCCESS,
    BookingStatus.CANCELLED: TONE_DANGER,
    BookingStatus.CONFIRMED: TONE_INFO,
    BookingStatus.WAITING_LIST: TONE_WARNING,
    BookingStatus.PENDING: TONE_NEUTRAL,
    BookingStatus.UNCONFIRMED: TONE_NEUTRAL,
}

TOUR_PACKAGE_STATUS_TONES = {
    TourPackageStatus.COMPLETE: TONE_SUCCESS,
    TourPackageStatus.PAID_FULL: TONE_SUCCESS,
    TourPackageStatus.PAID_FIRST_INSTALLMENT: TONE_NEUTRAL,
    TourPackageStatus.OPEN: TONE_WARNING,
    TourPackageStatus.NEGOTIATING: TONE_WARNING,
    TourPackageStatus.CLOSED: TONE_DANGER,
}

TONE_VARIANTS = {
    TONE_SUCCESS: "default",
    TONE_INFO: "default",
    TONE_NEUTRAL: "secondary",
    TONE_WARNING: "outline",
    TONE_DANGER: "destructive",
}


def booking_status_tone(status):
    return BOOKING_STATUS_TONES.get(status, TONE_NEUTRAL)


def tour_package_status_tone(status):
    return TOUR_PACKAGE_STATUS_TONES.get(status, TONE_NEUTRAL)


def status_variant(status):
    """Badge variant for a booking or tour package status."""
    if status in TOUR_PACKAGE_STATUS_TONES:
        tone = tour_package_status_tone(status)
    else:
        tone = booking_status_tone(status)
    return TONE_VARIANTS[tone]


# --- 4. PAYMENT VERIFICATION ---
def classify_verification(record):
    """
    Verified beats failed, failed beats pending.
    `record` is a Payment instance or a dict with the same field names.
    """
    if _field(record, "is_verified") is True:
        return VerificationStatus(
            VERIFICATION_VERIFIED,
            _field(record, "verified_amount"),
            _field(record, "verified_payment_date"),
            _field(record, "verified_at"),
            None,
        )
    error = _field(record, "verification_error")
    if error is not None:
        return VerificationStatus(VERIFICATION_FAILED, None, None, None, error)
    return VerificationStatus(VERIFICATION_PENDING, None, None, None, None)
