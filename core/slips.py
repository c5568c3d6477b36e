# core/slips.py
"""
Payment slip storage helpers.

Slips live on the default file storage and are never linked directly: staff
get a signed URL that expires after PAYMENT_SLIP_URL_MAX_AGE seconds.
"""
import logging

from django.conf import settings
from django.core import signing
from django.urls import reverse

logger = logging.getLogger(__name__)

SLIP_SIGNER_SALT = "core.payment-slip"


def _signer():
    return signing.TimestampSigner(salt=SLIP_SIGNER_SALT)


def create_signed_slip_url(payment):
    """Relative URL that serves the slip until it expires, or None without a file."""
    if not payment.payment_slip:
        return None
    token = _signer().sign(str(payment.pk))
    return reverse("serve_payment_slip", args=[token])


def resolve_signed_slip(token, max_age=None):
    """
    Payment pk for a token created by `create_signed_slip_url`.
    Raises signing.SignatureExpired / signing.BadSignature.
    """
    if max_age is None:
        max_age = settings.PAYMENT_SLIP_URL_MAX_AGE
    return int(_signer().unsign(token, max_age=max_age))


def delete_slip_file(payment):
    """
    Remove the stored file. Storage failures are logged and swallowed so the
    database record can still be deleted.
    """
    slip = payment.payment_slip
    if not slip:
        return False

    name = slip.name
    try:
        slip.storage.delete(name)
    except OSError:
        logger.exception("Failed to delete payment slip file %s", name)
        return False

    logger.info("Deleted payment slip file %s", name)
    return True
