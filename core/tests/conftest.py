from datetime import date
from decimal import Decimal

import pytest

from core.constants import BookingStatus, BookingType, TourPackageStatus
from core.models import (
    Booking,
    BookingSector,
    Customer,
    FareClass,
    PredefinedSector,
    TourPackageBooking,
    TourProduct,
)

WEBHOOK_TOKEN = "test-verifier-token"


@pytest.fixture(autouse=True)
def backoffice_settings(settings, tmp_path):
    # No collectstatic in tests, and slips go to a throwaway folder
    settings.STORAGES = {
        "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
        "staticfiles": {
            "BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"
        },
    }
    settings.MEDIA_ROOT = str(tmp_path / "media")
    settings.VERIFICATION_WEBHOOK_TOKEN = WEBHOOK_TOKEN
    settings.DEFAULT_CURRENCY = "THB"
    return settings


@pytest.fixture
def customer(db):
    return Customer.objects.create(company_name="Siam Travel Co.")


@pytest.fixture
def outbound(db):
    return PredefinedSector.objects.create(origin_code="BKK", destination_code="SIN")


@pytest.fixture
def inbound(db):
    return PredefinedSector.objects.create(origin_code="SIN", destination_code="BKK")


@pytest.fixture
def economy(db):
    return FareClass.objects.create(name="Y", description="Economy")


@pytest.fixture
def product(db):
    return TourProduct.objects.create(name="Bhutan Discovery 5D4N")


@pytest.fixture
def booking(customer, outbound):
    booking = Booking.objects.create(
        customer=customer,
        booking_reference="REF-001",
        booking_type=BookingType.ONE_WAY,
        num_pax=3,
        deadline=date(2025, 3, 10),
        status=BookingStatus.CONFIRMED,
    )
    BookingSector.objects.create(
        booking=booking,
        predefined_sector=outbound,
        travel_date=date(2025, 4, 13),
        status=BookingStatus.CONFIRMED,
        num_pax=3,
    )
    return booking


@pytest.fixture
def tour_booking(product):
    return TourPackageBooking.objects.create(
        customer_name="Karma Wangchuk",
        tour_product=product,
        status=TourPackageStatus.NEGOTIATING,
        base_price_per_pax=Decimal("1000.00"),
        pax=2,
        addons=[{"name": "Visa fee", "amount": "150.00"}],
    )


@pytest.fixture
def sector_data():
    """Form data for one BookingSector row."""

    def build(sector, status=BookingStatus.CONFIRMED, pax=2, fare_class=None):
        return {
            "predefined_sector": sector.pk,
            "travel_date": "2025-04-13",
            "status": status,
            "fare_class": fare_class.pk if fare_class else "",
            "flight_number": "TG403",
            "num_pax": pax,
        }

    return build
