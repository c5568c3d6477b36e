# core/stats.py
from datetime import timedelta
from decimal import Decimal

from django.db.models import Count, DecimalField, IntegerField, Q, Sum, Value
from django.db.models.functions import Coalesce, Lower, Trim, TruncDate

from .constants import (
    TOUR_STATUSES_ACTIVE,
    TOUR_STATUSES_CANCELLED,
    TOUR_STATUSES_OUTSTANDING,
    TOUR_STATUSES_SETTLED,
    BookingStatus,
    TourPackageStatus,
)
from .formatting import format_compact_amount
from .models import Booking, Customer, Task, TourPackageBooking, TourProduct


def _percent(part, whole):
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 1)


class DashboardStats:
    @staticmethod
    def _safe_sum(queryset, field_name):
        """Helper to safely sum decimals."""
        return queryset.aggregate(
            total=Coalesce(
                Sum(field_name), Value(Decimal("0.00")), output_field=DecimalField()
            )
        )["total"]

    # --- 1. FLIGHT BOOKINGS (Main dashboard) ---
    @staticmethod
    def get_booking_totals():
        total = Booking.objects.count()
        confirmed = Booking.objects.filter(status=BookingStatus.CONFIRMED).count()
        return {
            "total_bookings": total,
            "total_customers": Customer.objects.count(),
            "confirmed": confirmed,
            "confirmed_share": _percent(confirmed, total),
        }

    @staticmethod
    def get_approaching_deadlines(today):
        """Bookings whose deadline is tomorrow or earlier, soonest first."""
        return (
            Booking.objects.filter(
                deadline__isnull=False, deadline__lte=today + timedelta(days=1)
            )
            .select_related("customer")
            .prefetch_related("sectors__predefined_sector")
            .order_by("deadline", "created_at")
        )

    @staticmethod
    def get_urgent_deadline_count(today):
        """Overdue or due today."""
        return Booking.objects.filter(deadline__lte=today).count()

    @staticmethod
    def get_top_customers(limit=5):
        total = Booking.objects.count()
        customers = (
            Customer.objects.annotate(booking_count=Count("bookings"))
            .filter(booking_count__gt=0)
            .order_by("-booking_count", "company_name")[:limit]
        )
        return [
            {
                "customer": customer,
                "booking_count": customer.booking_count,
                "percentage": _percent(customer.booking_count, total),
            }
            for customer in customers
        ]

    @staticmethod
    def get_recent_booking_counts(today, days=7):
        """[(date, count), ...] for the last `days` days, oldest first, zero-filled."""
        start = today - timedelta(days=days - 1)
        rows = (
            Booking.objects.annotate(day=TruncDate("created_at"))
            .filter(day__gte=start, day__lte=today)
            .values("day")
            .annotate(count=Count("id"))
        )
        counts = {row["day"]: row["count"] for row in rows}
        return [
            (start + timedelta(days=offset), counts.get(start + timedelta(days=offset), 0))
            for offset in range(days)
        ]

    # --- 2. TOUR PACKAGES (Tasks dashboard) ---
    @staticmethod
    def get_tour_overview():
        qs = TourPackageBooking.objects.all()
        total = qs.count()
        completed = qs.filter(status=TourPackageStatus.COMPLETE).count()
        unique_customers = (
            qs.annotate(normalized=Lower(Trim("customer_name")))
            .values("normalized")
            .distinct()
            .count()
        )
        return {
            "total_revenue": DashboardStats._safe_sum(qs, "grand_total"),
            "active_bookings": qs.filter(status__in=TOUR_STATUSES_ACTIVE).count(),
            "total_customers": unique_customers,
            "completion_rate": _percent(completed, total),
        }

    @staticmethod
    def get_tour_booking_counts():
        return TourPackageBooking.objects.aggregate(
            total=Count("id"),
            confirmed=Count("id", filter=Q(status__in=TOUR_STATUSES_SETTLED)),
            pending=Count("id", filter=Q(status__in=TOUR_STATUSES_OUTSTANDING)),
            cancelled=Count("id", filter=Q(status__in=TOUR_STATUSES_CANCELLED)),
        )

    @staticmethod
    def get_tour_product_counts():
        """Products with at least one booking are active, the rest are drafts."""
        total = TourProduct.objects.count()
        active = TourProduct.objects.filter(bookings__isnull=False).distinct().count()
        return {"total": total, "active": active, "draft": total - active}

    @staticmethod
    def get_payment_amounts():
        qs = TourPackageBooking.objects.all()
        amounts = {
            "total": DashboardStats._safe_sum(qs, "grand_total"),
            "completed": DashboardStats._safe_sum(
                qs.filter(status__in=TOUR_STATUSES_SETTLED), "grand_total"
            ),
            "pending": DashboardStats._safe_sum(
                qs.filter(status__in=TOUR_STATUSES_OUTSTANDING), "grand_total"
            ),
            "failed": DashboardStats._safe_sum(
                qs.filter(status__in=TOUR_STATUSES_CANCELLED), "grand_total"
            ),
        }
        formatted = {
            f"{key}_display": format_compact_amount(value) for key, value in amounts.items()
        }
        return {**amounts, **formatted}

    @staticmethod
    def get_top_selling_packages(limit=5):
        """Products ranked by revenue, with PAX sold and a progress share of the leader."""
        products = list(
            TourProduct.objects.annotate(
                sales=Coalesce(Sum("bookings__pax"), 0, output_field=IntegerField()),
                revenue=Coalesce(
                    Sum("bookings__grand_total"),
                    Value(Decimal("0.00")),
                    output_field=DecimalField(),
                ),
                booking_count=Count("bookings"),
            )
            .filter(booking_count__gt=0)
            .order_by("-revenue", "name")[:limit]
        )
        leader = products[0].revenue if products else Decimal("0")
        for product in products:
            product.progress = (
                min(100, float(product.revenue / leader * 100)) if leader else 0
            )
        return products

    @staticmethod
    def get_recent_tasks(limit=4):
        return Task.objects.select_related("linked_tour_booking").order_by(
            "-created_at"
        )[:limit]
