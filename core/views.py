# core/views.py
import json
import logging
import secrets

from django.conf import settings
from django.contrib import admin, messages
from django.contrib.admin.views.decorators import staff_member_required
from django.core import signing
from django.http import (
    FileResponse,
    Http404,
    HttpResponse,
    HttpResponseForbidden,
    JsonResponse,
)
from django.shortcuts import get_object_or_404, redirect, render
from django.urls import reverse
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from .actions import add_payment_record, delete_payment_record, record_verification_outcome
from .constants import TONE_COLORS, VERIFICATION_STATES
from .formatting import format_currency, format_date, format_time_ago, format_timestamp
from .forms import PaymentSlipForm
from .models import Payment, TourPackageBooking
from .permissions import can_manage_payments
from .slips import create_signed_slip_url, resolve_signed_slip
from .stats import DashboardStats
from .status import booking_status_tone, status_variant, tour_package_status_tone

logger = logging.getLogger(__name__)

VERIFICATION_LABELS = dict(VERIFICATION_STATES)


# healthcheck for load balancers
def healthz(request):
    """Simple healthcheck for load balancers."""
    from django.db import DatabaseError, connection

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        return HttpResponse("OK", status=200)
    except DatabaseError:
        logger.exception("Healthcheck database probe failed")
        return HttpResponse("DB Error", status=503)


# --- MAIN DASHBOARD (Flight bookings) ---
@staff_member_required
def dashboard(request):
    # 1. Get Admin Context
    context = admin.site.each_context(request)
    today = timezone.localdate()

    # 2. Deadline table (tomorrow or earlier)
    deadline_rows = []
    for booking in DashboardStats.get_approaching_deadlines(today):
        deadline = booking.deadline_status(today)
        deadline_rows.append(
            {
                "booking": booking,
                "route": booking.route_display,
                "travel_dates": booking.travel_dates_display,
                "deadline": format_date(booking.deadline),
                "deadline_label": deadline.label,
                "is_overdue": deadline.is_overdue,
                "status_color": TONE_COLORS[booking_status_tone(booking.status)],
                "status_variant": status_variant(booking.status),
            }
        )

    recent_counts = DashboardStats.get_recent_booking_counts(today)
    peak = max([count for _, count in recent_counts] + [1])

    context.update(
        {
            "title": "Dashboard",
            **DashboardStats.get_booking_totals(),
            "urgent_count": DashboardStats.get_urgent_deadline_count(today),
            "top_customers": DashboardStats.get_top_customers(),
            "recent_counts": [
                {
                    "label": day.strftime("%a %d"),
                    "count": count,
                    "height": round(count * 100 / peak),
                }
                for day, count in recent_counts
            ],
            "deadline_rows": deadline_rows,
        }
    )
    return render(request, "core/dashboard.html", context)


# --- TASKS & TOUR PACKAGE STATS ---
@staff_member_required
def tasks_dashboard(request):
    context = admin.site.each_context(request)
    now = timezone.now()

    recent_tasks = [
        {
            "task": task,
            "age": format_time_ago(task.created_at, now),
            "is_overdue": task.is_overdue,
        }
        for task in DashboardStats.get_recent_tasks()
    ]
    top_packages = [
        {
            "product": product,
            "sales": product.sales,
            "revenue": format_currency(product.revenue),
            "progress": round(product.progress),
        }
        for product in DashboardStats.get_top_selling_packages()
    ]
    overview = DashboardStats.get_tour_overview()
    overview["total_revenue_display"] = format_currency(overview["total_revenue"])

    context.update(
        {
            "title": "Tasks & Tour Packages",
            "overview": overview,
            "tour_bookings": DashboardStats.get_tour_booking_counts(),
            "tour_products": DashboardStats.get_tour_product_counts(),
            "payments": DashboardStats.get_payment_amounts(),
            "top_packages": top_packages,
            "recent_tasks": recent_tasks,
        }
    )
    return render(request, "core/tasks_dashboard.html", context)


# --- PAYMENTS LEDGER ---
@staff_member_required
def payments_ledger(request):
    context = admin.site.each_context(request)
    payments = Payment.objects.select_related(
        "tour_package_booking__tour_product"
    ).order_by("-uploaded_at")

    rows = []
    for payment in payments:
        booking = payment.tour_package_booking
        verification = payment.verification
        rows.append(
            {
                "payment": payment,
                "booking": booking,
                "uploaded_at": format_timestamp(payment.uploaded_at),
                "status_color": TONE_COLORS[tour_package_status_tone(payment.status_at_payment)],
                "verification": verification,
                "verification_label": VERIFICATION_LABELS[verification.state],
                "verified_amount": format_currency(verification.amount),
                "verified_on": format_date(verification.payment_date),
            }
        )

    context.update(
        {
            "title": "Payments Ledger",
            "rows": rows,
            "can_delete": can_manage_payments(request.user),
        }
    )
    return render(request, "core/payments_ledger.html", context)


# --- PAYMENT SLIPS ---
@staff_member_required
def upload_payment_slip(request, booking_id):
    booking = get_object_or_404(TourPackageBooking, pk=booking_id)
    change_url = reverse("admin:core_tourpackagebooking_change", args=[booking.pk])

    if request.method == "POST":
        result = add_payment_record(booking.pk, request.FILES.get("payment_slip"))
        if result.success:
            messages.success(request, f"✅ {result.message}")
            return redirect(change_url)
        messages.error(request, f"❌ {result.message}")
        form = PaymentSlipForm(request.POST, request.FILES)
        form.is_valid()
    else:
        form = PaymentSlipForm()

    context = admin.site.each_context(request)
    context.update(
        {
            "title": f"Upload payment slip for {booking.pk}",
            "booking": booking,
            "form": form,
            "change_url": change_url,
            "max_size_mb": settings.PAYMENT_SLIP_MAX_UPLOAD_SIZE // (1024 * 1024),
        }
    )
    return render(request, "core/upload_payment_slip.html", context)


@staff_member_required
def payment_slip_link(request, payment_id):
    """Redirect to a freshly signed, short-lived slip URL."""
    payment = get_object_or_404(Payment, pk=payment_id)
    url = create_signed_slip_url(payment)
    if url is None:
        raise Http404("This payment has no slip file.")
    return redirect(url)


@staff_member_required
def serve_payment_slip(request, token):
    try:
        payment_id = resolve_signed_slip(token)
    except signing.SignatureExpired:
        return HttpResponseForbidden("This slip link has expired. Open it again from the payment.")
    except signing.BadSignature:
        logger.warning("Rejected slip link with a bad signature")
        return HttpResponseForbidden("Invalid slip link.")

    payment = get_object_or_404(Payment, pk=payment_id)
    try:
        slip = payment.payment_slip.open("rb")
    except FileNotFoundError:
        logger.error("Payment slip file missing for payment %s", payment.pk)
        raise Http404("Slip file not found.")
    return FileResponse(slip, filename=payment.payment_slip.name.rsplit("/", 1)[-1])


@staff_member_required
@require_POST
def delete_payment(request, payment_id):
    if not can_manage_payments(request.user):
        return HttpResponseForbidden("Only managers can delete payment records.")

    result = delete_payment_record(payment_id)
    if result.success:
        messages.success(request, f"🗑️ {result.message}")
    else:
        messages.error(request, f"❌ {result.message}")
    return redirect("payments_ledger")


# --- VERIFICATION WEBHOOK (external slip verifier) ---
def _webhook_authorized(request):
    expected = settings.VERIFICATION_WEBHOOK_TOKEN
    if not expected:
        return False
    header = request.headers.get("Authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer":
        return False
    return secrets.compare_digest(token.strip(), expected)


@csrf_exempt
@require_POST
def verification_webhook(request, payment_id):
    if not _webhook_authorized(request):
        logger.warning("Unauthorized verification callback for payment %s", payment_id)
        return JsonResponse({"success": False, "message": "Unauthorized"}, status=401)

    get_object_or_404(Payment, pk=payment_id)

    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except ValueError:
            data = None
        if not isinstance(data, dict):
            return JsonResponse({"success": False, "message": "Invalid JSON body."}, status=400)
    else:
        data = request.POST

    result = record_verification_outcome(payment_id, data)
    status = 200 if result.success else 400
    return JsonResponse(
        {"success": result.success, "message": result.message, "errors": result.errors},
        status=status,
    )
