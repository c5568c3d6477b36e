# core/formatting.py
"""Display helpers shared by the admin, dashboards and ledger pages."""
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.utils import timezone

from .constants import BookingType

MONTHS = ("JAN", "FEB", "MAR", "APR", "MAY", "JUN", "JUL", "AUG", "SEP", "OCT", "NOV", "DEC")

CURRENCY_SYMBOLS = {
    "THB": "฿",
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
}


def _to_date(value):
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


# --- DATES ---
def format_short_date(value):
    """13APR style, used in compact travel date columns."""
    if not value:
        return "N/A"
    day = _to_date(value)
    if day is None:
        return "N/A"
    return f"{day.day}{MONTHS[day.month - 1]}"


def format_date(value):
    """22 MAR 2019 style."""
    if not value:
        return "-"
    day = _to_date(value)
    if day is None:
        return "Invalid Date"
    return f"{day.day} {MONTHS[day.month - 1]} {day.year}"


def format_timestamp(value):
    """Mar 4, 2025, 11:44 AM in the configured time zone."""
    if not value:
        return "-"
    if not isinstance(value, datetime):
        return "Invalid Date"
    if timezone.is_aware(value):
        value = timezone.localtime(value)
    month = MONTHS[value.month - 1].capitalize()
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{month} {value.day}, {value.year}, {hour}:{value.minute:02d} {meridiem}"


def format_time_ago(value, now):
    if not value:
        return "-"
    elapsed = now - value
    hours = int(elapsed.total_seconds() // 3600)
    days = hours // 24
    if days > 0:
        return f"{days} day{'s' if days > 1 else ''} ago"
    if hours > 0:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    return "Less than an hour ago"


# --- MONEY ---
def _currency_prefix(currency):
    symbol = CURRENCY_SYMBOLS.get(currency)
    return symbol if symbol else f"{currency} "


def format_currency(amount, currency=None):
    if amount is None or amount == "":
        return "-"
    currency = currency or getattr(settings, "DEFAULT_CURRENCY", "THB")
    try:
        value = Decimal(str(amount)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        return "Invalid Amount"
    sign = "-" if value < 0 else ""
    return f"{sign}{_currency_prefix(currency)}{abs(value):,.2f}"


def format_compact_amount(amount, currency=None):
    """฿1.23M / ฿12K / ฿999 for dashboard cards."""
    currency = currency or getattr(settings, "DEFAULT_CURRENCY", "THB")
    prefix = _currency_prefix(currency)
    value = Decimal(str(amount or 0))
    if value >= 1_000_000:
        return f"{prefix}{value / 1_000_000:.2f}M"
    if value >= 1_000:
        return f"{prefix}{value / 1_000:.0f}K"
    if value == value.to_integral_value():
        return f"{prefix}{value:,.0f}"
    return f"{prefix}{value:,.2f}"


# --- SECTORS ---
def format_sector_route(booking_type, legs):
    """
    `legs` is an ordered list of (origin_code, destination_code) pairs.

    One-Way: "BKK-SIN". Return: "BKK-SIN-BKK". Anything else is listed
    leg by leg.
    """
    legs = list(legs)
    if not legs:
        return "N/A"
    if booking_type == BookingType.ONE_WAY and len(legs) == 1:
        origin, destination = legs[0]
        return f"{origin}-{destination}"
    if booking_type == BookingType.RETURN and len(legs) == 2:
        (origin, destination), (_, return_destination) = legs
        return f"{origin}-{destination}-{return_destination}"
    return ", ".join(f"{origin}-{destination}" for origin, destination in legs)


def format_travel_dates(booking_type, dates):
    """13APR for one leg, 13APR-20APR for a return trip."""
    days = sorted(d for d in (_to_date(value) for value in dates if value) if d)
    if not days:
        return "N/A"
    if booking_type == BookingType.ONE_WAY or len(days) == 1:
        return format_short_date(days[0])
    if booking_type == BookingType.RETURN:
        return f"{format_short_date(days[0])}-{format_short_date(days[1])}"
    return ", ".join(format_short_date(day) for day in days)
