"""Django settings for the book club API.

Values come from environment variables with development defaults.
"""

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int, minimum: int = 0) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_list(name: str, default: str) -> list[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


def _database(engine: str, timeout: int) -> dict:
    """Connection settings for the document store, bounded by ``timeout`` seconds."""
    if engine == "postgres":
        return {
            "ENGINE": "django.db.backends.postgresql",
            "NAME": os.getenv("POSTGRES_DB", "bookclub"),
            "USER": os.getenv("POSTGRES_USER", "postgres"),
            "PASSWORD": os.getenv("POSTGRES_PASSWORD", ""),
            "HOST": os.getenv("POSTGRES_HOST", "localhost"),
            "PORT": os.getenv("POSTGRES_PORT", "5432"),
            "OPTIONS": {"connect_timeout": timeout},
        }
    if engine != "sqlite":
        raise ValueError(f"BOOKCLUB_DB_ENGINE must be sqlite or postgres, got {engine!r}")
    return {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
        "OPTIONS": {"timeout": timeout},
    }


SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "dev-only-insecure-key")
DEBUG = _env_bool("DJANGO_DEBUG", False)
ALLOWED_HOSTS = _env_list("DJANGO_ALLOWED_HOSTS", "localhost,127.0.0.1,testserver")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "clubs",
]

MIDDLEWARE = [
    "bookclub_api.middleware.EmptyPreflightMiddleware",
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

ROOT_URLCONF = "bookclub_api.urls"
WSGI_APPLICATION = "bookclub_api.wsgi.application"

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

# Document store

BOOKCLUB_STORE_BACKEND = os.getenv("BOOKCLUB_STORE_BACKEND", "django")
BOOKCLUB_STORE_TIMEOUT_SECONDS = _env_int("BOOKCLUB_STORE_TIMEOUT_SECONDS", 5, minimum=1)

DATABASES = {
    "default": _database(os.getenv("BOOKCLUB_DB_ENGINE", "sqlite"), BOOKCLUB_STORE_TIMEOUT_SECONDS),
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Book club lifecycle

BOOKCLUB_POLL_INTERVAL_SECONDS = _env_int("BOOKCLUB_POLL_INTERVAL_SECONDS", 60, minimum=1)
BOOKCLUB_SELECTOR_MAY_RATE = _env_bool("BOOKCLUB_SELECTOR_MAY_RATE", True)
BOOKCLUB_RESELECT_AFTER_VETO = _env_bool("BOOKCLUB_RESELECT_AFTER_VETO", False)

# CORS

CORS_ALLOW_ALL_ORIGINS = True
CORS_ALLOW_METHODS = ("GET", "POST", "PATCH", "OPTIONS")
CORS_ALLOW_HEADERS = ("content-type",)

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [],
    "DEFAULT_PERMISSION_CLASSES": ["rest_framework.permissions.AllowAny"],
    "DEFAULT_RENDERER_CLASSES": ["rest_framework.renderers.JSONRenderer"],
    "DEFAULT_PARSER_CLASSES": ["rest_framework.parsers.JSONParser"],
    "EXCEPTION_HANDLER": "clubs.handlers.exceptions.api_exception_handler",
    "UNAUTHENTICATED_USER": None,
}

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "default"},
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
    "loggers": {
        "clubs": {
            "handlers": ["console"],
            "level": os.getenv("BOOKCLUB_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
