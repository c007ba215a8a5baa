"""
Django settings for the webhook hub.

This is the single settings file for all environments. Configuration is
driven by environment variables using django-environ, following the
12-factor app methodology. Every value has a development default so the
test suite runs without an env file (SQLite, local-memory cache).

Environment files:
    - .env.development: Development settings (read when present)
    - ENV_FILE: Explicit path to another env file

For more information on this file, see:
https://docs.djangoproject.com/en/5.2/topics/settings/
"""

import os
from datetime import timedelta
from pathlib import Path

import environ

# =============================================================================
# Path Configuration
# =============================================================================
BASE_DIR = Path(__file__).resolve().parent.parent

# =============================================================================
# Environment Configuration
# =============================================================================
env = environ.Env(
    DEBUG=(bool, False),  # Default to False for safety
    ALLOWED_HOSTS=(list, ["localhost", "127.0.0.1", "testserver"]),
    LOG_LEVEL=(str, "INFO"),
)

# Note: In Docker, env vars are passed directly; .env files are for local dev
env_file = os.environ.get("ENV_FILE", BASE_DIR.parent / ".env.development")
if Path(env_file).exists():
    environ.Env.read_env(env_file)

# =============================================================================
# Core Settings
# =============================================================================
# SECURITY WARNING: set a real SECRET_KEY in every deployed environment
SECRET_KEY = env("SECRET_KEY", default="django-insecure-payhooks-development-key")

DEBUG = env("DEBUG")

ALLOWED_HOSTS = env("ALLOWED_HOSTS")

# =============================================================================
# Application Definition
# =============================================================================
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # Local apps
    "core",
    "payhooks",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

WSGI_APPLICATION = "config.wsgi.application"
ASGI_APPLICATION = "config.asgi.application"

# =============================================================================
# Database Configuration
# =============================================================================
# The webhook dedup table lives here. PostgreSQL in deployment (psycopg3),
# SQLite for local development and tests.
DATABASES = {
    "default": env.db(
        "DATABASE_URL",
        default=f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
    ),
}

if DATABASES["default"]["ENGINE"] == "django.db.backends.postgresql":
    DATABASES["default"]["OPTIONS"] = {
        "connect_timeout": 10,
    }

# =============================================================================
# Cache Configuration
# =============================================================================
# Redis when REDIS_URL is set. Exceptions are NOT ignored: the cache dedup
# backend must see connection failures to fail closed.
REDIS_URL = env("REDIS_URL", default="")

if REDIS_URL:
    CACHES = {
        "default": {
            "BACKEND": "django_redis.cache.RedisCache",
            "LOCATION": REDIS_URL,
            "OPTIONS": {
                "CLIENT_CLASS": "django_redis.client.DefaultClient",
                "SOCKET_CONNECT_TIMEOUT": 5,
                "SOCKET_TIMEOUT": 5,
            },
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "payhooks-default",
        }
    }

# =============================================================================
# Celery Configuration
# =============================================================================
CELERY_BROKER_URL = env("CELERY_BROKER_URL", default="redis://redis:6379/1")
CELERY_RESULT_BACKEND = env("CELERY_RESULT_BACKEND", default="redis://redis:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = "UTC"
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 30 * 60  # 30 minutes

CELERY_BEAT_SCHEDULE = {
    "purge-expired-webhook-events": {
        "task": "payhooks.tasks.purge_expired_webhook_events",
        "schedule": timedelta(hours=1),
    },
}

# =============================================================================
# Stripe Configuration
# =============================================================================
# API key used by the outbound object adapter (payhooks.adapters)
STRIPE_SECRET_KEY = env("STRIPE_SECRET_KEY", default="")

# Webhook signing secrets from: https://dashboard.stripe.com/webhooks
# Comma separated; list the new secret first while rolling secrets
STRIPE_WEBHOOK_SECRET = env.list("STRIPE_WEBHOOK_SECRET", default=[])

# Maximum network retries the Stripe SDK performs for transient failures
STRIPE_MAX_RETRIES = env.int("STRIPE_MAX_RETRIES", default=3)

# =============================================================================
# Webhook Hub Configuration
# =============================================================================
# Header carrying "t=<timestamp>,v1=<hex-hmac>[,v1=...]"
WEBHOOK_SIGNATURE_HEADER = env("WEBHOOK_SIGNATURE_HEADER", default="Stripe-Signature")

# Maximum age (either direction) of the signed timestamp, for replay protection
WEBHOOK_SIGNATURE_TOLERANCE_SECONDS = env.int(
    "WEBHOOK_SIGNATURE_TOLERANCE_SECONDS", default=300
)

# How long processed event ids are remembered (Stripe retries for 3 days;
# 14 covers every common provider retry window)
WEBHOOK_DEDUP_RETENTION_DAYS = env.int("WEBHOOK_DEDUP_RETENTION_DAYS", default=14)

# "database" (WebhookEvent table) or "cache" (Redis SET NX via Django cache)
WEBHOOK_DEDUP_BACKEND = env("WEBHOOK_DEDUP_BACKEND", default="database")

# What to do when the dedup store is down: "reject" answers 503 so the
# provider retries later, "process" dispatches without deduplication
WEBHOOK_DEDUP_UNAVAILABLE_POLICY = env(
    "WEBHOOK_DEDUP_UNAVAILABLE_POLICY", default="reject"
)

# Per-handler time budget; 0 runs handlers inline without a timeout
WEBHOOK_HANDLER_TIMEOUT_MS = env.int("WEBHOOK_HANDLER_TIMEOUT_MS", default=10_000)

# HTTP status for already-seen events: 200 (already handled) or 409
WEBHOOK_DUPLICATE_STATUS = env.int("WEBHOOK_DUPLICATE_STATUS", default=200)

# Event subscribers registered at startup, in dispatch order:
# (event type pattern, dotted path to a handler class or function)
WEBHOOK_EVENT_HANDLERS = [
    ("*", "payhooks.contrib.EventAuditLogger"),
]

# Metadata providers registered at startup, in merge order:
# (object type or "*", dotted path to a provider class or function)
METADATA_PROVIDERS = [
    ("*", "payhooks.contrib.StaticMetadataProvider"),
    ("customer", "payhooks.contrib.ContextMetadataProvider"),
]

# Attributes StaticMetadataProvider adds, keyed by object type or "*"
STATIC_METADATA = {
    "*": {"metadata": {"source": env("METADATA_SOURCE", default="payhooks")}},
}

# Context keys ContextMetadataProvider copies into customer metadata
CUSTOMER_CONTEXT_METADATA_KEYS = env.list(
    "CUSTOMER_CONTEXT_METADATA_KEYS", default=["user_id"]
)

# =============================================================================
# Internationalization
# =============================================================================
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# =============================================================================
# Default Primary Key Field Type
# =============================================================================
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# =============================================================================
# Logging Configuration
# =============================================================================
LOG_LEVEL = env("LOG_LEVEL")

# Log file name determined by service (web, celery-worker, celery-beat)
LOG_FILE_NAME = env("LOG_FILE_NAME", default="django.log")
LOG_DIR = BASE_DIR / "logs"

# Ensure log directory exists (handles local development without Docker)
LOG_DIR.mkdir(parents=True, exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "file": {
            "format": "[{asctime}] {levelname} {name} {module}:{lineno} - {message}",
            "style": "{",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
        "file": {
            # Max 10MB per file, keeps 5 backups
            "level": "DEBUG",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / LOG_FILE_NAME,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "file",
            "encoding": "utf-8",
        },
    },
    "root": {
        "handlers": ["console", "file"],
        "level": LOG_LEVEL,
    },
    "loggers": {
        "django": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
        "django.request": {
            "handlers": ["console", "file"],
            "level": "ERROR",
            "propagate": False,
        },
        "celery": {
            "handlers": ["console", "file"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
}

# =============================================================================
# Security Settings (Production Only)
# =============================================================================
if not DEBUG:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = "DENY"
