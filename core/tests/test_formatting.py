from datetime import date, datetime, timedelta
from decimal import Decimal

from core.constants import BookingType
from core.formatting import (
    format_compact_amount,
    format_currency,
    format_date,
    format_sector_route,
    format_short_date,
    format_time_ago,
    format_timestamp,
    format_travel_dates,
)


def test_dates():
    assert format_short_date(date(2025, 4, 13)) == "13APR"
    assert format_short_date(None) == "N/A"
    assert format_date(date(2019, 3, 22)) == "22 MAR 2019"
    assert format_date("2019-03-22") == "22 MAR 2019"
    assert format_date(None) == "-"
    assert format_date("garbage") == "Invalid Date"


def test_timestamp():
    assert format_timestamp(datetime(2025, 3, 4, 11, 44)) == "Mar 4, 2025, 11:44 AM"
    assert format_timestamp(datetime(2025, 3, 4, 0, 5)) == "Mar 4, 2025, 12:05 AM"
    assert format_timestamp(datetime(2025, 3, 4, 15, 0)) == "Mar 4, 2025, 3:00 PM"
    assert format_timestamp(None) == "-"


def test_time_ago():
    now = datetime(2025, 3, 10, 12, 0)
    assert format_time_ago(now - timedelta(minutes=20), now) == "Less than an hour ago"
    assert format_time_ago(now - timedelta(hours=1), now) == "1 hour ago"
    assert format_time_ago(now - timedelta(hours=5), now) == "5 hours ago"
    assert format_time_ago(now - timedelta(days=1), now) == "1 day ago"
    assert format_time_ago(now - timedelta(days=3, hours=2), now) == "3 days ago"


def test_currency():
    assert format_currency(Decimal("1234.5")) == "฿1,234.50"
    assert format_currency(-5, "USD") == "-$5.00"
    assert format_currency(1, "JPY") == "JPY 1.00"
    assert format_currency(None) == "-"
    assert format_currency("abc") == "Invalid Amount"


def test_currency_follows_setting(settings):
    settings.DEFAULT_CURRENCY = "EUR"
    assert format_currency(10) == "€10.00"


def test_compact_amount():
    assert format_compact_amount(Decimal("1234567")) == "฿1.23M"
    assert format_compact_amount(12000) == "฿12K"
    assert format_compact_amount(999) == "฿999"
    assert format_compact_amount(None) == "฿0"


def test_sector_route():
    assert format_sector_route(BookingType.ONE_WAY, [("BKK", "SIN")]) == "BKK-SIN"
    assert (
        format_sector_route(BookingType.RETURN, [("BKK", "SIN"), ("SIN", "BKK")])
        == "BKK-SIN-BKK"
    )
    assert (
        format_sector_route(BookingType.RETURN, [("BKK", "SIN"), ("SIN", "HKT"), ("HKT", "BKK")])
        == "BKK-SIN, SIN-HKT, HKT-BKK"
    )
    assert format_sector_route(BookingType.ONE_WAY, []) == "N/A"


def test_travel_dates():
    assert format_travel_dates(BookingType.ONE_WAY, [date(2025, 4, 13)]) == "13APR"
    assert (
        format_travel_dates(BookingType.RETURN, [date(2025, 4, 20), date(2025, 4, 13)])
        == "13APR-20APR"
    )
    assert format_travel_dates(BookingType.RETURN, [None, date(2025, 4, 13)]) == "13APR"
    assert format_travel_dates(BookingType.ONE_WAY, []) == "N/A"
