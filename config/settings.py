"""
Django settings for config project.
"""

import os
from pathlib import Path

import dj_database_url
import sentry_sdk
from django.urls import reverse_lazy
from sentry_sdk.integrations.django import DjangoIntegration

# Initialize Sentry
SENTRY_DSN = os.environ.get("SENTRY_DSN")
if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        integrations=[DjangoIntegration()],
        traces_sample_rate=float(os.environ.get("SENTRY_TRACES_SAMPLE_RATE", "0.2")),
        send_default_pii=True,
    )

# Build paths
BASE_DIR = Path(__file__).resolve().parent.parent

# Security
SECRET_KEY = os.environ.get("DJANGO_SECRET_KEY", "django-insecure-fallback-key")
DEBUG = os.environ.get("DEBUG") == "True"
ALLOWED_HOSTS = os.environ.get("ALLOWED_HOSTS", "*").split(",")


# Application definition
INSTALLED_APPS = [
    "unfold",
    "unfold.contrib.filters",
    "simple_history",
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "django.contrib.humanize",
    "core.apps.CoreConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "simple_history.middleware.HistoryRequestMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
DATABASES = {
    "default": dj_database_url.config(
        default=os.environ.get("DATABASE_URL", "sqlite:///db.sqlite3"), conn_max_age=600
    )
}


# Password validation
AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"
    },
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]


# Internationalization
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.environ.get("TIME_ZONE", "Asia/Bangkok")
USE_I18N = True
USE_TZ = True


# Static & media files
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
MEDIA_URL = "/media/"
MEDIA_ROOT = os.environ.get("MEDIA_ROOT", os.path.join(BASE_DIR, "media"))

STORAGES = {
    # Payment slips
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# --- BACK OFFICE SETTINGS ---
DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "THB")

# Payment slips: 5 MB uploads, signed links valid for 60 seconds
PAYMENT_SLIP_MAX_UPLOAD_SIZE = int(
    os.environ.get("PAYMENT_SLIP_MAX_UPLOAD_SIZE", 5 * 1024 * 1024)
)
PAYMENT_SLIP_URL_MAX_AGE = int(os.environ.get("PAYMENT_SLIP_URL_MAX_AGE", 60))
PAYMENT_SLIP_UPLOAD_TO = "payment-slips"

# Shared secret of the external slip verifier (Bearer token). Empty disables it.
VERIFICATION_WEBHOOK_TOKEN = os.environ.get("VERIFICATION_WEBHOOK_TOKEN", "")


# --- LOGGING ---
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.environ.get("DJANGO_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
        "core": {
            "handlers": ["console"],
            "level": os.environ.get("CORE_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}


# --- UNFOLD CONFIGURATION ---
UNFOLD = {
    "SITE_TITLE": "Travel Back Office",
    "SITE_HEADER": "Back Office",
    "SITE_URL": "/",
    "SIDEBAR": {
        "show_search": True,
        "show_all_applications": False,
        "navigation": [
            {
                "title": "Operations",
                "separator": True,
                "items": [
                    {
                        "title": "📊 Dashboard",
                        "icon": "dashboard",
                        "link": reverse_lazy("dashboard"),
                    },
                    {
                        "title": "Bookings",
                        "icon": "airplane_ticket",
                        "link": reverse_lazy("admin:core_booking_changelist"),
                        "badge": "core.utils.urgent_deadline_badge",
                        "permission": lambda request: request.user.has_perm(
                            "core.view_booking"
                        ),
                    },
                    {
                        "title": "Customers",
                        "icon": "group",
                        "link": reverse_lazy("admin:core_customer_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_customer"
                        ),
                    },
                    {
                        "title": "Tasks",
                        "icon": "task_alt",
                        "link": reverse_lazy("admin:core_task_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_task"
                        ),
                    },
                ],
            },
            {
                "title": "Tour Packages",
                "separator": True,
                "items": [
                    {
                        "title": "📈 Tasks & Sales",
                        "icon": "analytics",
                        "link": reverse_lazy("tasks_dashboard"),
                    },
                    {
                        "title": "Tour Bookings",
                        "icon": "luggage",
                        "link": reverse_lazy("admin:core_tourpackagebooking_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_tourpackagebooking"
                        ),
                    },
                    {
                        "title": "Completed Tours",
                        "icon": "verified",
                        "link": "/admin/core/tourpackagebooking/?status__exact=Complete",
                        "permission": lambda request: request.user.has_perm(
                            "core.view_tourpackagebooking"
                        ),
                    },
                    {
                        "title": "Tour Products",
                        "icon": "map",
                        "link": reverse_lazy("admin:core_tourproduct_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_tourproduct"
                        ),
                    },
                    {
                        "title": "Payments Ledger",
                        "icon": "payments",
                        "link": reverse_lazy("payments_ledger"),
                    },
                ],
            },
            {
                "title": "Setup",
                "separator": True,
                "items": [
                    {
                        "title": "Sectors",
                        "icon": "route",
                        "link": reverse_lazy("admin:core_predefinedsector_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_predefinedsector"
                        ),
                    },
                    {
                        "title": "Fare Classes",
                        "icon": "sell",
                        "link": reverse_lazy("admin:core_fareclass_changelist"),
                        "permission": lambda request: request.user.has_perm(
                            "core.view_fareclass"
                        ),
                    },
                ],
            },
        ],
    },
}

# --- SECURITY HARDENING ---
if not DEBUG:
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
