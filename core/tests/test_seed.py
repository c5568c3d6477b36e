import pytest
from django.core.management import call_command

from core.constants import BookingStatus
from core.models import Booking, PredefinedSector, Task, TourPackageBooking


@pytest.mark.django_db
def test_seed_creates_demo_data(django_user_model):
    call_command("seed")

    assert django_user_model.objects.filter(username="admin", is_superuser=True).exists()
    assert PredefinedSector.objects.count() == 5
    assert Booking.objects.count() == 4
    assert Booking.objects.get(booking_reference="SEED-R1").status == BookingStatus.WAITING_LIST
    assert Booking.objects.get(booking_reference="SEED-R2").num_pax == 38
    assert TourPackageBooking.objects.count() == 3
    assert Task.objects.count() == 3
