# core/urls.py
from django.urls import path

from . import views

urlpatterns = [
    # --- Healthcheck ---
    path("healthz/", views.healthz, name="healthz"),
    # --- Dashboards ---
    path("dashboard/", views.dashboard, name="dashboard"),
    path("tasks/", views.tasks_dashboard, name="tasks_dashboard"),
    # --- Payments ---
    path("payments/", views.payments_ledger, name="payments_ledger"),
    path(
        "tour-bookings/<str:booking_id>/upload-slip/",
        views.upload_payment_slip,
        name="upload_payment_slip",
    ),
    path(
        "payments/<int:payment_id>/slip/",
        views.payment_slip_link,
        name="payment_slip_link",
    ),
    path(
        "payments/slips/<str:token>/",
        views.serve_payment_slip,
        name="serve_payment_slip",
    ),
    path(
        "payments/<int:payment_id>/delete/",
        views.delete_payment,
        name="delete_payment",
    ),
    # Called by the external slip verifier (token auth, no session)
    path(
        "payments/<int:payment_id>/verification/",
        views.verification_webhook,
        name="verification_webhook",
    ),
]
