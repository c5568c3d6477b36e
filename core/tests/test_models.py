import string
from datetime import date, timedelta
from decimal import Decimal
from unittest import mock

import pytest
from django.core.exceptions import ValidationError
from django.utils import timezone

from core.constants import BookingStatus, BookingType, TaskStatus, TourPackageStatus
from core.exceptions import TourBookingIdUnavailable
from core.models import Booking, BookingSector, Payment, Task, TourPackageBooking


@pytest.mark.django_db
def test_tour_booking_id_and_grand_total(tour_booking):
    assert len(tour_booking.pk) == 5
    assert set(tour_booking.pk) <= set(string.ascii_letters + string.digits)
    # (1000 + 150) * 2
    assert tour_booking.grand_total == Decimal("2300.00")


@pytest.mark.django_db
def test_grand_total_follows_updates(tour_booking):
    tour_booking.pax = 3
    tour_booking.save(update_fields=["pax"])
    tour_booking.refresh_from_db()
    assert tour_booking.grand_total == Decimal("3450.00")


@pytest.mark.django_db
def test_tour_booking_id_collisions_give_up(tour_booking, product):
    with mock.patch("core.models.generate_alphanumeric_id", return_value=tour_booking.pk):
        with pytest.raises(TourBookingIdUnavailable):
            TourPackageBooking.objects.create(customer_name="Anna", tour_product=product)


@pytest.mark.django_db
def test_tour_booking_id_retries_after_collision(tour_booking, product):
    ids = iter([tour_booking.pk, "Zz9Zz"])
    with mock.patch("core.models.generate_alphanumeric_id", side_effect=lambda: next(ids)):
        booking = TourPackageBooking.objects.create(customer_name="Anna", tour_product=product)
    assert booking.pk == "Zz9Zz"


@pytest.mark.django_db
def test_travel_dates_must_be_ordered(product):
    booking = TourPackageBooking(
        customer_name="Anna",
        tour_product=product,
        travel_start_date=date(2025, 5, 10),
        travel_end_date=date(2025, 5, 1),
    )
    with pytest.raises(ValidationError) as excinfo:
        booking.clean()
    assert "travel_end_date" in excinfo.value.message_dict


@pytest.mark.django_db
def test_booking_route_and_dates(customer, outbound, inbound):
    booking = Booking.objects.create(
        customer=customer,
        booking_reference="RT-1",
        booking_type=BookingType.RETURN,
    )
    BookingSector.objects.create(
        booking=booking,
        predefined_sector=outbound,
        travel_date=date(2025, 4, 13),
        status=BookingStatus.CONFIRMED,
    )
    BookingSector.objects.create(
        booking=booking,
        predefined_sector=inbound,
        travel_date=date(2025, 4, 20),
        status=BookingStatus.CONFIRMED,
    )
    assert booking.route_display == "BKK-SIN-BKK"
    assert booking.travel_dates_display == "13APR-20APR"


@pytest.mark.django_db
def test_booking_deadline_status(booking):
    assert booking.deadline_status(date(2025, 3, 10)).label == "Due today"
    assert booking.deadline_status(date(2025, 3, 12)).is_overdue is True


@pytest.mark.django_db
def test_payment_cannot_be_verified_and_failed(tour_booking):
    payment = Payment(
        tour_package_booking=tour_booking,
        status_at_payment=TourPackageStatus.OPEN,
        is_verified=True,
        verification_error="Amount unreadable",
    )
    with pytest.raises(ValidationError):
        payment.clean()


@pytest.mark.django_db
def test_task_ordering_and_overdue():
    today = timezone.localdate()
    undated = Task.objects.create(description="No due date")
    later = Task.objects.create(description="Later", due_date=today + timedelta(days=5))
    late = Task.objects.create(description="Late", due_date=today - timedelta(days=1))
    done = Task.objects.create(
        description="Done", due_date=today - timedelta(days=2), status=TaskStatus.COMPLETED
    )

    assert list(Task.objects.all()) == [done, late, later, undated]
    assert late.is_overdue is True
    assert done.is_overdue is False
    assert later.is_overdue is False


@pytest.mark.django_db
def test_history_is_recorded(booking):
    booking.status = BookingStatus.TICKETED
    booking.save()
    assert booking.history.count() == 2
    assert booking.history.first().status == BookingStatus.TICKETED
