# core/permissions.py
"""
Permission helpers for Managers vs Agents.
Staff create and edit; destructive operations are reserved for Managers.
"""


def is_manager(user):
    """Check if user is a Manager (superuser or in Managers group)."""
    if not user or not user.is_authenticated:
        return False
    return user.is_superuser or user.groups.filter(name="Managers").exists()


def can_delete_bookings(user):
    """Flight bookings and tour package bookings."""
    return is_manager(user) or user.has_perm("core.delete_booking")


def can_manage_payments(user):
    """Deleting payment records and their slips."""
    return is_manager(user) or user.has_perm("core.delete_payment")
