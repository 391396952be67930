"""Django settings for the itinerary planner project."""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent
PROJECT_ROOT = BASE_DIR.parent

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-me-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"
ALLOWED_HOSTS = [host for host in os.getenv("DJANGO_ALLOWED_HOSTS", "").split(",") if host]

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "itinerary_planner",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
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
ASGI_APPLICATION = "config.asgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": PROJECT_ROOT / "db.sqlite3",
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "itinerary-planner-cache",
    }
}

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
        },
    },
    "loggers": {
        "itinerary_planner": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org")
OSRM_TIMEOUT_SECONDS = float(os.getenv("OSRM_TIMEOUT_SECONDS", "3"))
OSRM_RETRY_COUNT = int(os.getenv("OSRM_RETRY_COUNT", "1"))

# "osrm" or "haversine"
MATRIX_PROVIDER = os.getenv("MATRIX_PROVIDER", "osrm")
MATRIX_FALLBACK_TO_HAVERSINE = os.getenv("MATRIX_FALLBACK_TO_HAVERSINE", "0") == "1"
MATRIX_CACHE_TTL_SECONDS = int(os.getenv("MATRIX_CACHE_TTL_SECONDS", "600"))

AVERAGE_SPEED_KMH = {
    "walking": float(os.getenv("WALKING_SPEED_KMH", "5")),
    "driving": float(os.getenv("DRIVING_SPEED_KMH", "30")),
    "taxi": float(os.getenv("TAXI_SPEED_KMH", "30")),
}

DWELL_MINUTES_MIN = int(os.getenv("DWELL_MINUTES_MIN", "15"))
DWELL_MINUTES_MAX = int(os.getenv("DWELL_MINUTES_MAX", "120"))
DWELL_MINUTES_DEFAULT = int(os.getenv("DWELL_MINUTES_DEFAULT", "30"))
MIN_WINDOW_MINUTES = int(os.getenv("MIN_WINDOW_MINUTES", "120"))
MAX_ITINERARY_PLACES = int(os.getenv("MAX_ITINERARY_PLACES", "5"))

PLANNING_TIMEOUT_SECONDS = float(os.getenv("PLANNING_TIMEOUT_SECONDS", "5"))
