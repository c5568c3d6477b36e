import json
from datetime import timedelta

import pytest
from django.core.files.uploadedfile import SimpleUploadedFile
from django.core.signing import TimestampSigner
from django.urls import reverse
from django.utils import timezone

from core.actions import add_payment_record
from core.models import Payment
from core.slips import create_signed_slip_url, resolve_signed_slip


@pytest.fixture
def payment(tour_booking):
    slip = SimpleUploadedFile("slip.pdf", b"%PDF-1.4 test slip", content_type="application/pdf")
    return Payment.objects.get(pk=add_payment_record(tour_booking.pk, slip).object_id)


@pytest.mark.django_db
def test_healthz(client):
    response = client.get(reverse("healthz"))
    assert response.status_code == 200
    assert response.content == b"OK"


@pytest.mark.django_db
def test_dashboards_require_staff(client):
    response = client.get(reverse("dashboard"))
    assert response.status_code == 302
    assert "/admin/login/" in response["Location"]


@pytest.mark.django_db
def test_dashboard(admin_client, booking):
    booking.deadline = timezone.localdate() - timedelta(days=2)
    booking.save()

    response = admin_client.get(reverse("dashboard"))
    assert response.status_code == 200
    assert response.context["total_bookings"] == 1
    assert response.context["urgent_count"] == 1
    [row] = response.context["deadline_rows"]
    assert row["route"] == "BKK-SIN"
    assert row["deadline_label"] == "Overdue by 2 days"
    assert len(response.context["recent_counts"]) == 7
    assert response.context["recent_counts"][-1]["count"] == 1


@pytest.mark.django_db
def test_tasks_dashboard(admin_client, tour_booking):
    response = admin_client.get(reverse("tasks_dashboard"))
    assert response.status_code == 200
    assert response.context["overview"]["total_revenue_display"] == "฿2,300.00"
    assert response.context["tour_bookings"]["pending"] == 1
    assert response.context["tour_products"] == {"total": 1, "active": 1, "draft": 0}
    [top] = response.context["top_packages"]
    assert top["sales"] == 2
    assert top["progress"] == 100


@pytest.mark.django_db
def test_payments_ledger(admin_client, payment):
    response = admin_client.get(reverse("payments_ledger"))
    assert response.status_code == 200
    [row] = response.context["rows"]
    assert row["payment"] == payment
    assert row["verification_label"] == "⏳ Pending"
    assert response.context["can_delete"] is True


@pytest.mark.django_db
def test_upload_payment_slip(admin_client, tour_booking):
    url = reverse("upload_payment_slip", args=[tour_booking.pk])
    assert admin_client.get(url).status_code == 200

    slip = SimpleUploadedFile("slip.png", b"\x89PNG fake", content_type="image/png")
    response = admin_client.post(url, {"payment_slip": slip})
    assert response.status_code == 302
    assert response["Location"] == reverse(
        "admin:core_tourpackagebooking_change", args=[tour_booking.pk]
    )
    assert tour_booking.payments.count() == 1


@pytest.mark.django_db
def test_upload_rejects_other_files(admin_client, tour_booking):
    url = reverse("upload_payment_slip", args=[tour_booking.pk])
    slip = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
    response = admin_client.post(url, {"payment_slip": slip})
    assert response.status_code == 200
    assert tour_booking.payments.count() == 0


@pytest.mark.django_db
def test_slip_link_redirects_to_signed_url(admin_client, payment):
    response = admin_client.get(reverse("payment_slip_link", args=[payment.pk]))
    assert response.status_code == 302

    response = admin_client.get(response["Location"])
    assert response.status_code == 200
    assert b"".join(response.streaming_content) == b"%PDF-1.4 test slip"


@pytest.mark.django_db
def test_signed_slip_url_expires(admin_client, payment, settings):
    url = create_signed_slip_url(payment)
    settings.PAYMENT_SLIP_URL_MAX_AGE = -1
    response = admin_client.get(url)
    assert response.status_code == 403


@pytest.mark.django_db
def test_tampered_slip_url(admin_client, payment):
    token = TimestampSigner(salt="other").sign(str(payment.pk))
    response = admin_client.get(reverse("serve_payment_slip", args=[token]))
    assert response.status_code == 403


@pytest.mark.django_db
def test_delete_payment_requires_manager(client, django_user_model, payment):
    agent = django_user_model.objects.create_user("agent", password="pw", is_staff=True)
    client.force_login(agent)
    response = client.post(reverse("delete_payment", args=[payment.pk]))
    assert response.status_code == 403
    assert Payment.objects.filter(pk=payment.pk).exists()


@pytest.mark.django_db
def test_delete_payment(admin_client, payment):
    response = admin_client.post(reverse("delete_payment", args=[payment.pk]))
    assert response.status_code == 302
    assert not Payment.objects.exists()
    assert admin_client.get(reverse("delete_payment", args=[1])).status_code == 405


# --- VERIFICATION WEBHOOK ---
def _post_outcome(client, payment_id, body, token):
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    return client.post(
        reverse("verification_webhook", args=[payment_id]),
        data=json.dumps(body),
        content_type="application/json",
        headers=headers,
    )


@pytest.mark.django_db
def test_webhook_records_success(client, payment, settings):
    response = _post_outcome(
        client,
        payment.pk,
        {"verified_amount": "2300.00", "verified_payment_date": "2025-03-01"},
        settings.VERIFICATION_WEBHOOK_TOKEN,
    )
    assert response.status_code == 200
    assert response.json()["success"] is True
    payment.refresh_from_db()
    assert payment.is_verified is True


@pytest.mark.django_db
def test_webhook_records_failure(client, payment, settings):
    response = _post_outcome(
        client, payment.pk, {"error": "Slip is unreadable"}, settings.VERIFICATION_WEBHOOK_TOKEN
    )
    assert response.status_code == 200
    payment.refresh_from_db()
    assert payment.verification_error == "Slip is unreadable"


@pytest.mark.django_db
@pytest.mark.parametrize("token", [None, "wrong-token"])
def test_webhook_rejects_bad_tokens(client, payment, token):
    response = _post_outcome(client, payment.pk, {"error": "x"}, token=token)
    assert response.status_code == 401


@pytest.mark.django_db
def test_webhook_disabled_without_token(client, payment, settings):
    settings.VERIFICATION_WEBHOOK_TOKEN = ""
    response = _post_outcome(client, payment.pk, {"error": "x"}, token="")
    assert response.status_code == 401


@pytest.mark.django_db
def test_webhook_validation(client, payment, settings):
    token = settings.VERIFICATION_WEBHOOK_TOKEN
    response = _post_outcome(client, payment.pk, {"verified_amount": "1", "error": "both"}, token)
    assert response.status_code == 400
    assert response.json()["success"] is False

    response = _post_outcome(client, payment.pk, ["not", "an", "object"], token)
    assert response.status_code == 400

    response = _post_outcome(client, 999, {"error": "x"}, token)
    assert response.status_code == 404


@pytest.mark.django_db
def test_slip_tokens_round_trip(payment):
    token = create_signed_slip_url(payment).rstrip("/").rsplit("/", 1)[-1]
    assert resolve_signed_slip(token) == payment.pk
