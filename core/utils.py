# core/utils.py
import secrets

from django.utils import timezone

from .constants import TOUR_BOOKING_ID_ALPHABET, TOUR_BOOKING_ID_LENGTH


def generate_alphanumeric_id(length=TOUR_BOOKING_ID_LENGTH):
    """Random [A-Za-z0-9] id, e.g. 'aZ3k9'."""
    return "".join(secrets.choice(TOUR_BOOKING_ID_ALPHABET) for _ in range(length))


# Notification Badge Logic
def urgent_deadline_badge(request):
    """Sidebar badge on Bookings: deadlines that are overdue or due today."""
    from core.models import Booking

    if not request.user.is_authenticated:
        return None

    count = Booking.objects.filter(deadline__lte=timezone.localdate()).count()
    return count or None
