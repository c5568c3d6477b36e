# core/constants.py
from django.db import models


# Flight booking classification
class BookingType(models.TextChoices):
    ONE_WAY = "One-Way", "One-Way"
    RETURN = "Return", "Return"


# Number of sectors each booking type must carry
SECTORS_PER_BOOKING_TYPE = {
    BookingType.ONE_WAY: 1,
    BookingType.RETURN: 2,
}


# Booking state (rollup produces only CONFIRMED / WAITING_LIST)
class BookingStatus(models.TextChoices):
    CONFIRMED = "Confirmed", "Confirmed"
    WAITING_LIST = "Waiting List", "Waiting List"
    TICKETED = "Ticketed", "Ticketed"
    CANCELLED = "Cancelled", "Cancelled"
    PENDING = "Pending", "Pending"
    UNCONFIRMED = "Unconfirmed", "Unconfirmed"


# Sector-level states are a subset of BookingStatus
SECTOR_STATUSES = [
    (BookingStatus.CONFIRMED.value, BookingStatus.CONFIRMED.label),
    (BookingStatus.WAITING_LIST.value, BookingStatus.WAITING_LIST.label),
]


# Tour package lifecycle, in order. CLOSED is the terminal cancel state.
class TourPackageStatus(models.TextChoices):
    OPEN = "Open", "Open"
    NEGOTIATING = "Negotiating", "Negotiating"
    PAID_FIRST_INSTALLMENT = "Paid (1st installment)", "Paid (1st installment)"
    PAID_FULL = "Paid (Full Payment)", "Paid (Full Payment)"
    COMPLETE = "Complete", "Complete"
    CLOSED = "Closed", "Closed"


# Stats buckets used by the dashboards
TOUR_STATUSES_ACTIVE = [
    TourPackageStatus.OPEN,
    TourPackageStatus.NEGOTIATING,
    TourPackageStatus.PAID_FIRST_INSTALLMENT,
    TourPackageStatus.PAID_FULL,
]
TOUR_STATUSES_SETTLED = [TourPackageStatus.PAID_FULL, TourPackageStatus.COMPLETE]
TOUR_STATUSES_OUTSTANDING = [
    TourPackageStatus.OPEN,
    TourPackageStatus.NEGOTIATING,
    TourPackageStatus.PAID_FIRST_INSTALLMENT,
]
TOUR_STATUSES_CANCELLED = [TourPackageStatus.CLOSED]


# Tasks
class TaskStatus(models.TextChoices):
    PENDING = "Pending", "Pending"
    IN_PROGRESS = "In Progress", "In Progress"
    COMPLETED = "Completed", "Completed"


# Payment slip verification (outcome of the external verifier)
VERIFICATION_VERIFIED = "verified"
VERIFICATION_FAILED = "failed"
VERIFICATION_PENDING = "pending"

VERIFICATION_STATES = [
    (VERIFICATION_VERIFIED, "✅ Verified"),
    (VERIFICATION_FAILED, "❌ Failed"),
    (VERIFICATION_PENDING, "⏳ Pending"),
]


# Display tones for badges
TONE_SUCCESS = "success"
TONE_INFO = "info"
TONE_WARNING = "warning"
TONE_DANGER = "danger"
TONE_NEUTRAL = "neutral"

TONE_COLORS = {
    TONE_SUCCESS: "#16a34a",
    TONE_INFO: "#2563eb",
    TONE_WARNING: "#d97706",
    TONE_DANGER: "#dc2626",
    TONE_NEUTRAL: "#6b7280",
}

# Tour package booking IDs
TOUR_BOOKING_ID_LENGTH = 5
TOUR_BOOKING_ID_ALPHABET = (
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"
)
TOUR_BOOKING_ID_MAX_ATTEMPTS = 5
