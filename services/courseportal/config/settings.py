"""Django settings for the Course Portal.

Key idea:
- Students and admins both sign in with email + password against the portal's
  own `users` table.
- The signed-in identity (id, email, role) lives in a server-side session.

Reading order for non-developers:
1) identity + host/domain settings
2) apps + middleware
3) database + sessions
4) static files + content data
5) security flags for reverse proxy deployments
"""

from pathlib import Path
import sys

import environ

BASE_DIR = Path(__file__).resolve().parent.parent

env = environ.Env(
    DJANGO_DEBUG=(bool, False),
)

DEBUG = env.bool("DJANGO_DEBUG", default=False)

# `manage.py test` and pytest both import settings before any env file is
# read, so tests get a throwaway key instead of failing the import.
RUNNING_TESTS = (len(sys.argv) > 1 and sys.argv[1] == "test") or "pytest" in sys.modules

SECRET_KEY = (env("DJANGO_SECRET_KEY", default="") or env("SESSION_SECRET", default="")).strip()
if not SECRET_KEY:
    if not (DEBUG or RUNNING_TESTS):
        raise RuntimeError("DJANGO_SECRET_KEY (or SESSION_SECRET) is required")
    SECRET_KEY = "courseportal-local-only-" + "x" * 40


def _secret_key_looks_unsafe(secret: str) -> bool:
    normalized = secret.strip().lower()
    blocked = {
        "dev-secret",
        "changeme",
        "change_me",
        "replace_me",
        "secret",
        "password",
        "django-insecure",
    }
    if normalized in blocked or normalized.startswith("django-insecure"):
        return True
    if len(secret.strip()) < 32:
        return True
    return False


if not (DEBUG or RUNNING_TESTS) and _secret_key_looks_unsafe(SECRET_KEY):
    raise RuntimeError("DJANGO_SECRET_KEY must be a strong non-default value when DJANGO_DEBUG=0")

ALLOWED_HOSTS = [h.strip() for h in env("DJANGO_ALLOWED_HOSTS", default="localhost,127.0.0.1").split(",") if h.strip()]

# Use when serving via domain + HTTPS so Django accepts browser CSRF tokens
# coming from those origins.
CSRF_TRUSTED_ORIGINS = []
_origins = env("CSRF_TRUSTED_ORIGINS", default="")
if _origins:
    CSRF_TRUSTED_ORIGINS = [o.strip() for o in _origins.split(",") if o.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.staticfiles",
    "portal.apps.PortalConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "config.middleware.SecurityHeadersMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
    # PortalSessionMiddleware relies on sessions.
    "portal.middleware.PortalSessionMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "portal.context_processors.portal_user",
            ]
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

# Persistent disk directory (the SQLite file lives here unless DATABASE_URL
# points somewhere else).
DATA_DIR = Path(env("DATA_DIR", default=str(BASE_DIR)))

DATABASES = {
    "default": env.db(default=f"sqlite:///{DATA_DIR / 'portal.db'}")
}

# Sessions are stored in the database and keyed by an opaque cookie token.
SESSION_ENGINE = "django.contrib.sessions.backends.db"
SESSION_COOKIE_AGE = env.int("PORTAL_SESSION_TTL_HOURS", default=12) * 60 * 60
SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"

PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.PBKDF2PasswordHasher",
    "django.contrib.auth.hashers.PBKDF2SHA1PasswordHasher",
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = env("DJANGO_TIME_ZONE", default="UTC").strip() or "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"
STATICFILES_DIRS = [BASE_DIR / "static"]
STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# Syllabus + Q&A pages are plain JSON documents edited outside the app.
PORTAL_STATIC_DATA_DIR = Path(env("PORTAL_STATIC_DATA_DIR", default=str(BASE_DIR / "data")))
# Starter modules/lessons used by `manage.py seed_portal` on an empty database.
PORTAL_SEED_CONTENT_PATH = Path(
    env("PORTAL_SEED_CONTENT_PATH", default=str(BASE_DIR / "data" / "seed_content.yaml"))
)
# Lesson markdown is authored by admins; sanitizing is opt-in.
PORTAL_MARKDOWN_SANITIZE = env.bool("PORTAL_MARKDOWN_SANITIZE", default=False)

PORTAL_SEED_USERS = {
    "admin": {
        "email": env("ADMIN_SEED_EMAIL", default="admin@course.com"),
        "password": env("ADMIN_SEED_PASSWORD", default="Admin123!"),
    },
    "student": {
        "email": env("STUDENT_SEED_EMAIL", default="student@course.com"),
        "password": env("STUDENT_SEED_PASSWORD", default="Student123!"),
    },
}

_DEFAULT_CSP_POLICY = (
    "default-src 'self'; "
    "base-uri 'self'; "
    "object-src 'none'; "
    "frame-ancestors 'self'; "
    "img-src 'self' data:; "
    "frame-src 'self' https://www.youtube.com https://www.youtube-nocookie.com; "
    "style-src 'self' 'unsafe-inline'; "
    "script-src 'self' 'unsafe-inline' https://www.youtube.com;"
)
CSP_POLICY = env("DJANGO_CSP_POLICY", default=_DEFAULT_CSP_POLICY).strip()
PERMISSIONS_POLICY = env("DJANGO_PERMISSIONS_POLICY", default="camera=(), microphone=(), geolocation=()").strip()

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "root": {
        "handlers": ["console"],
        "level": env("DJANGO_LOG_LEVEL", default="INFO").strip().upper() or "INFO",
    },
}

# When behind a proxy, Django should respect forwarded proto for secure cookies.
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = env.bool("DJANGO_SESSION_COOKIE_SECURE", default=not DEBUG)
CSRF_COOKIE_SECURE = SESSION_COOKIE_SECURE

if not DEBUG:
    SECURE_SSL_REDIRECT = env.bool("DJANGO_SECURE_SSL_REDIRECT", default=False)
    SECURE_HSTS_SECONDS = env.int("DJANGO_SECURE_HSTS_SECONDS", default=0)
    SECURE_CONTENT_TYPE_NOSNIFF = True
    # YouTube embeds are framed by us, never the other way around.
    X_FRAME_OPTIONS = "DENY"
    SECURE_REFERRER_POLICY = (
        env("DJANGO_SECURE_REFERRER_POLICY", default="strict-origin-when-cross-origin").strip()
        or "strict-origin-when-cross-origin"
    )
