# core/exceptions.py


class TourBookingIdUnavailable(Exception):
    """Every generated tour booking id collided with an existing one."""
