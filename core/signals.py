# core/signals.py
from django.db.models.signals import pre_delete
from django.dispatch import receiver

from .models import Payment
from .slips import delete_slip_file


# --- PAYMENT SIGNALS ---
@receiver(pre_delete, sender=Payment)
def payment_pre_delete(sender, instance, **kwargs):
    """
    Remove the slip file before the record goes, for direct deletes and for
    cascades from a deleted tour package booking alike.
    """
    delete_slip_file(instance)
