from pathlib import Path
import os

# ------------------------------------------------------------------------------
# Paths
# ------------------------------------------------------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent
ROOT_DIR = BASE_DIR

# ------------------------------------------------------------------------------
# Core / Env
# Read from env with safe fallbacks for local development.
# ------------------------------------------------------------------------------
SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "change-this-in-production")
DEBUG = os.getenv("DJANGO_DEBUG", "True").lower() == "true"

ALLOWED_HOSTS = [
    *[h.strip() for h in os.getenv("DJANGO_ALLOWED_HOSTS", "127.0.0.1,localhost,testserver").split(",") if h.strip()]
]

CSRF_TRUSTED_ORIGINS = [
    *[o.strip() for o in os.getenv("DJANGO_CSRF_TRUSTED_ORIGINS", "http://127.0.0.1:8000,http://localhost:8000").split(",") if o.strip()]
]

# ------------------------------------------------------------------------------
# PlayLink backend
# Every venue, booking, wallet and session fact lives behind this REST API.
# ------------------------------------------------------------------------------
PLAYLINK_API_URL = os.getenv("PLAYLINK_API_URL", "http://localhost:3000").rstrip("/")
PLAYLINK_API_TIMEOUT = float(os.getenv("PLAYLINK_API_TIMEOUT", "10"))

# True: a failed calendar fetch renders every slot as available (with a warning).
# False: the grid is rendered disabled with an error banner.
PLAYLINK_CALENDAR_FAIL_OPEN = os.getenv("PLAYLINK_CALENDAR_FAIL_OPEN", "True").lower() == "true"

# Seconds a wizard submit lock is held for one session
PLAYLINK_SUBMIT_LOCK_SECONDS = int(os.getenv("PLAYLINK_SUBMIT_LOCK_SECONDS", "30"))

# Publishable key for the embedded payment element on the top-up page
STRIPE_PUBLISHABLE_KEY = os.getenv("STRIPE_PUBLISHABLE_KEY", "")

# ------------------------------------------------------------------------------
# Apps
# ------------------------------------------------------------------------------
INSTALLED_APPS = [
    # Django
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # 3rd party
    "whitenoise.runserver_nostatic",   # keeps runserver consistent with whitenoise

    # Your apps
    "playlink_api",
    "scheduling",
    "accounts.apps.AccountsConfig",
    "facilities",
    "bookings",
    "wallet",
    "notifications",
    "backoffice",
]

# ------------------------------------------------------------------------------
# Middleware (WhiteNoise after Security)
# ------------------------------------------------------------------------------
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "accounts.middleware.PlayLinkSessionMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "playlink.urls"
WSGI_APPLICATION = "playlink.wsgi.application"
ASGI_APPLICATION = "playlink.asgi.application"

# ------------------------------------------------------------------------------
# Templates
# ------------------------------------------------------------------------------
TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.messages.context_processors.messages",
                "accounts.context_processors.session_context",
            ],
        },
    },
]

# ------------------------------------------------------------------------------
# Database
# The site keeps no local tables; the backend is the system of record.
# ------------------------------------------------------------------------------
DATABASES = {}

# ------------------------------------------------------------------------------
# Sessions
# Backend cookies are kept server-side in the cache, never handed to the browser.
# ------------------------------------------------------------------------------
SESSION_ENGINE = "django.contrib.sessions.backends.cache"
SESSION_CACHE_ALIAS = "default"
MESSAGE_STORAGE = "django.contrib.messages.storage.fallback.FallbackStorage"

LOGIN_URL = "accounts:login"

# ------------------------------------------------------------------------------
# I18N / TZ
# ------------------------------------------------------------------------------
LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "Asia/Colombo")
USE_I18N = True
USE_TZ = True

# ------------------------------------------------------------------------------
# Static
# ------------------------------------------------------------------------------
STATIC_URL = "/static/"
STATICFILES_DIRS = [BASE_DIR / "static"]
STATIC_ROOT = ROOT_DIR / "staticfiles"

# WhiteNoise: compress + cache-bust
STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}
if DEBUG:
    STORAGES["staticfiles"] = {"BACKEND": "django.contrib.staticfiles.storage.StaticFilesStorage"}

# ------------------------------------------------------------------------------
# Security (defaults safe for dev, tighten in prod)
# ------------------------------------------------------------------------------
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG
SESSION_COOKIE_HTTPONLY = True
CSRF_COOKIE_HTTPONLY = False  # the payment element posts back with the CSRF cookie
SESSION_COOKIE_SAMESITE = "Lax"
CSRF_COOKIE_SAMESITE = "Lax"
SECURE_SSL_REDIRECT = os.getenv("DJANGO_SECURE_SSL_REDIRECT", "False").lower() == "true"
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"
SECURE_REFERRER_POLICY = "strict-origin-when-cross-origin"

# HSTS in prod only
if not DEBUG:
    SECURE_HSTS_SECONDS = int(os.getenv("DJANGO_SECURE_HSTS_SECONDS", "31536000"))
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")

DATA_UPLOAD_MAX_MEMORY_SIZE = int(os.getenv("DATA_UPLOAD_MAX_MEMORY_SIZE", 2 * 1024 * 1024))   # 2 MB

# ------------------------------------------------------------------------------
# Email (crash reports only)
# ------------------------------------------------------------------------------
DEFAULT_FROM_EMAIL = os.getenv("DEFAULT_FROM_EMAIL", "PlayLink <noreply@playlink.local>")
SERVER_EMAIL = os.getenv("SERVER_EMAIL", DEFAULT_FROM_EMAIL)

if DEBUG:
    EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
else:
    EMAIL_BACKEND = "django.core.mail.backends.smtp.EmailBackend"
    EMAIL_HOST = os.getenv("EMAIL_HOST", "smtp.gmail.com")
    EMAIL_PORT = int(os.getenv("EMAIL_PORT", "587"))
    EMAIL_USE_TLS = os.getenv("EMAIL_USE_TLS", "True").lower() == "true"
    EMAIL_HOST_USER = os.getenv("EMAIL_HOST_USER", "")
    EMAIL_HOST_PASSWORD = os.getenv("EMAIL_HOST_PASSWORD", "")

ADMINS = [("PlayLink Ops", os.getenv("ADMIN_EMAIL", "admin@example.com"))]
MANAGERS = ADMINS

# ------------------------------------------------------------------------------
# Caches (local-memory by default; Redis recommended in prod)
# Sessions and the wizard submit lock live here.
# ------------------------------------------------------------------------------
if os.getenv("REDIS_URL"):
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.redis.RedisCache",
            "LOCATION": os.getenv("REDIS_URL"),
            "TIMEOUT": 60 * 60 * 24 * 14,
        }
    }
else:
    CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "playlink-cache",
        }
    }

# ------------------------------------------------------------------------------
# Logging
# Console in dev, mails admins on 500s in prod.
# ------------------------------------------------------------------------------
LOG_LEVEL = "DEBUG" if DEBUG else "INFO"
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "[{levelname}] {asctime} {name} [{process:d}] {message}",
            "style": "{",
        },
        "simple": {"format": "[{levelname}] {message}", "style": "{"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "verbose" if not DEBUG else "simple"},
        "mail_admins": {
            "class": "django.utils.log.AdminEmailHandler",
            "level": "ERROR",
            "include_html": True,
        },
    },
    "loggers": {
        "django": {"handlers": ["console"], "level": "INFO"},
        "django.utils.autoreload": {"handlers": ["console"], "level": "WARNING", "propagate": False},
        "django.server": {"handlers": ["console"], "level": "INFO", "propagate": False},
        "django.request": {"handlers": ["console", "mail_admins"], "level": "ERROR", "propagate": False},
        # Backend traffic and app-level warnings
        "playlink_api": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "accounts": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "bookings": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "facilities": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "wallet": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "notifications": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
        "backoffice": {"handlers": ["console"], "level": LOG_LEVEL, "propagate": False},
    },
}
