# config/settings.py
from pathlib import Path
import os
import dj_database_url

from config.saml import ID_ATTRIBUTE, attribute_mapping, build_saml_config

# === Paths ===
BASE_DIR = Path(__file__).resolve().parent.parent

# === Security / mode ===
SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
DEBUG = os.environ.get("DEBUG", "False").lower() == "true"

# Hostname exposed by the hosting platform (if any)
RENDER_HOST = os.environ.get("RENDER_EXTERNAL_HOSTNAME", "").strip()

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]
if RENDER_HOST:
    ALLOWED_HOSTS.append(RENDER_HOST)

# Django 4/5 requires the scheme in CSRF_TRUSTED_ORIGINS
CSRF_TRUSTED_ORIGINS = [f"https://{RENDER_HOST}"] if RENDER_HOST else []

BASE_URL = os.environ.get(
    "BASE_URL", f"https://{RENDER_HOST}" if RENDER_HOST else "http://localhost:8000"
)

# === Apps ===
INSTALLED_APPS = [
    # Django
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",

    # SAML service provider
    "djangosaml2",

    # Project apps
    "portal",
]

# Users are provisioned from SAML assertions
AUTH_USER_MODEL = "portal.User"

AUTHENTICATION_BACKENDS = [
    "portal.backends.SamlUserBackend",
]

# === Middleware ===
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    "djangosaml2.middleware.SamlSessionMiddleware",
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

# === Database ===
# DATABASE_URL when set (PostgreSQL in production), SQLite otherwise.
DATABASE_URL = os.environ.get("DATABASE_URL", "").strip()
DATABASES = {
    "default": dj_database_url.config(
        default=DATABASE_URL or f"sqlite:///{BASE_DIR / 'db.sqlite3'}",
        conn_max_age=600,
        ssl_require=DATABASE_URL.startswith("postgres") and not DEBUG,
    )
}

# Plain SQL migrations tracked in the `migration` table
SQL_MIGRATIONS_DIR = Path(os.environ.get("SQL_MIGRATIONS_DIR", BASE_DIR / "migrations"))

# === i18n / TZ ===
LANGUAGE_CODE = os.environ.get("LANGUAGE_CODE", "en")
LANGUAGES = [
    ("en", "English"),
    ("hu", "Magyar"),
]
TIME_ZONE = "Europe/Budapest"
USE_I18N = True
USE_TZ = True

# === Sessions / flash messages ===
SESSION_ENGINE = "django.contrib.sessions.backends.db"
MESSAGE_STORAGE = "django.contrib.messages.storage.fallback.FallbackStorage"

# === SAML (djangosaml2) ===
LOGIN_URL = "/saml2/login/"
LOGIN_REDIRECT_URL = "/"
SAML_ID_ATTRIBUTE = ID_ATTRIBUTE
SAML_DJANGO_USER_MAIN_ATTRIBUTE = "uid"
SAML_CREATE_UNKNOWN_USER = True
SAML_ATTRIBUTE_MAPPING = attribute_mapping()
SAML_SESSION_COOKIE_NAME = "saml_session"
SAML_CONFIG = build_saml_config(BASE_URL, BASE_DIR)

# === Logging ===
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "root": {
        "handlers": ["console"],
        "level": "WARNING",
    },
    "loggers": {
        "portal": {
            "level": os.environ.get("LOG_LEVEL", "INFO"),
        },
        "djangosaml2": {
            "handlers": ["console"],
            "level": os.environ.get("SAML_LOG_LEVEL", "WARNING"),
            "propagate": False,
        },
    },
}

# === Extra security in production ===
if not DEBUG and RENDER_HOST:
    SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
    SECURE_SSL_REDIRECT = True
    SESSION_COOKIE_SECURE = True
    CSRF_COOKIE_SECURE = True
    SECURE_HSTS_SECONDS = 60
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True
    SECURE_HSTS_PRELOAD = True

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
