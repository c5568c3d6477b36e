# core/management/commands/seed.py
import logging
import os
import secrets
from datetime import timedelta

from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.actions import create_booking, create_tour_package_booking, save_task
from core.constants import BookingStatus, BookingType, TaskStatus, TourPackageStatus
from core.models import Customer, FareClass, PredefinedSector, TourProduct

logger = logging.getLogger(__name__)


def get_user():
    from django.contrib.auth import get_user_model

    return get_user_model()


SECTORS = [
    ("BKK", "SIN", "Bangkok - Singapore"),
    ("SIN", "BKK", "Singapore - Bangkok"),
    ("BKK", "HKT", "Bangkok - Phuket"),
    ("HKT", "BKK", "Phuket - Bangkok"),
    ("BKK", "PBH", "Bangkok - Paro"),
]
FARE_CLASSES = [("Y", "Economy"), ("W", "Premium Economy"), ("C", "Business")]
CUSTOMERS = ["Siam Travel Co.", "Andaman Tours", "Himalaya Journeys"]
PRODUCTS = [
    ("Bhutan Discovery 5D4N", "Paro, Thimphu and the Tiger's Nest"),
    ("Phuket Island Escape", "Beach resort with island hopping"),
    ("Customized Chiang Mai Trip", "Tailor-made northern Thailand itinerary"),
]


class Command(BaseCommand):
    help = "Seeds the database with demo data."

    def handle(self, *args, **options):
        self.stdout.write("Starting database seeding...")

        # 1. Create Superuser (Admin) and the Managers group
        User = get_user()
        u, created = User.objects.get_or_create(
            username="admin",
            defaults={
                "email": "admin@example.com",
                "is_staff": True,
                "is_superuser": True,
            },
        )
        if created:
            # Use env var or generate secure random password
            password = os.environ.get("SEED_ADMIN_PASSWORD", secrets.token_urlsafe(16))
            u.set_password(password)
            u.save()
            self.stdout.write(
                self.style.SUCCESS(f'Superuser "admin" created. Password: {password}')
            )
            self.stdout.write(
                self.style.WARNING("⚠️  Save this password now! It won't be shown again.")
            )
        else:
            self.stdout.write('Superuser "admin" already exists.')
        Group.objects.get_or_create(name="Managers")

        # 2. Reference data
        sectors = {}
        for origin, destination, description in SECTORS:
            sector, _ = PredefinedSector.objects.get_or_create(
                origin_code=origin,
                destination_code=destination,
                defaults={"description": description},
            )
            sectors[(origin, destination)] = sector
        fares = {}
        for name, description in FARE_CLASSES:
            fares[name], _ = FareClass.objects.get_or_create(
                name=name, defaults={"description": description}
            )
        customers = [
            Customer.objects.get_or_create(company_name=name)[0] for name in CUSTOMERS
        ]
        products = [
            TourProduct.objects.get_or_create(name=name, defaults={"description": text})[0]
            for name, text in PRODUCTS
        ]

        # 3. Flight bookings, deadlines spread around today
        today = timezone.localdate()
        demo_bookings = [
            (customers[0], BookingType.RETURN, "SEED-R1", -2,
             [("BKK", "SIN", BookingStatus.CONFIRMED, 12), ("SIN", "BKK", BookingStatus.WAITING_LIST, 12)]),
            (customers[1], BookingType.ONE_WAY, "SEED-O1", 0,
             [("BKK", "HKT", BookingStatus.CONFIRMED, 4)]),
            (customers[2], BookingType.RETURN, "SEED-R2", 5,
             [("BKK", "HKT", BookingStatus.CONFIRMED, 20), ("HKT", "BKK", BookingStatus.CONFIRMED, 18)]),
            (customers[2], BookingType.ONE_WAY, "SEED-O2", 1,
             [("BKK", "PBH", BookingStatus.CONFIRMED, 9)]),
        ]
        for customer, booking_type, reference, deadline_offset, legs in demo_bookings:
            sectors_data = [
                {
                    "predefined_sector": sectors[(origin, destination)].pk,
                    "travel_date": today + timedelta(days=30 + index * 5),
                    "status": status,
                    "fare_class": fares["Y"].pk,
                    "flight_number": f"TG{400 + index}",
                    "num_pax": pax,
                }
                for index, (origin, destination, status, pax) in enumerate(legs)
            ]
            result = create_booking(
                {
                    "customer": customer.pk,
                    "booking_type": booking_type,
                    "booking_reference": reference,
                    "deadline": today + timedelta(days=deadline_offset),
                },
                sectors_data,
            )
            self._report(result)

        # 4. Tour package bookings and tasks
        demo_tours = [
            ("Karma Wangchuk", products[0], TourPackageStatus.PAID_FULL, "45000", 4,
             [{"name": "Visa fee", "amount": "1500"}]),
            ("Anna Schmidt", products[1], TourPackageStatus.NEGOTIATING, "12000", 2, []),
            ("Lee Family", products[0], TourPackageStatus.COMPLETE, "42000", 3,
             [{"name": "Airport transfer", "amount": "800"}]),
        ]
        for name, product, status, price, pax, addons in demo_tours:
            result = create_tour_package_booking(
                {
                    "customer_name": name,
                    "tour_product": product.pk,
                    "status": status,
                    "base_price_per_pax": price,
                    "pax": pax,
                    "addons": addons,
                    "booking_date": today - timedelta(days=10),
                    "travel_start_date": today + timedelta(days=20),
                    "travel_end_date": today + timedelta(days=24),
                }
            )
            self._report(result)
            if result.success:
                self._report(
                    save_task(
                        {
                            "description": f"Send final itinerary to {name}",
                            "due_date": today + timedelta(days=3),
                            "status": TaskStatus.PENDING,
                            "linked_tour_booking": result.object_id,
                        }
                    )
                )

        self.stdout.write(
            self.style.SUCCESS("Database seeding complete. Go to http://localhost:8000/admin")
        )

    def _report(self, result):
        if result.success:
            self.stdout.write(f"  {result.message}")
        else:
            logger.warning("Seed step failed: %s %s", result.message, result.errors)
            self.stdout.write(self.style.WARNING(f"  {result.message} {result.errors or ''}"))
