"""
Brickflow – Django Settings (Infrastructure Only)
=================================================
Django hosts the event store models and their migrations.
Brickflow architecture is the authority; Django does not dictate structure.
"""

import os
from pathlib import Path

# ── Paths ─────────────────────────────────────────────────────
BASE_DIR = Path(__file__).resolve().parent.parent

# ── Security ──────────────────────────────────────────────────
SECRET_KEY = os.environ.get("BRICKFLOW_SECRET_KEY", "brickflow-dev-key")

DEBUG = os.environ.get("BRICKFLOW_DEBUG", "1") == "1"

ALLOWED_HOSTS = []

# ── Installed Apps ────────────────────────────────────────────
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    # ── Brickflow Modules ─────────────────────────────────
    "core.event_store",
]

# ── Database ──────────────────────────────────────────────────
# SQLite for development. Production DB configured separately.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.environ.get("BRICKFLOW_DB", BASE_DIR / "db.sqlite3"),
    }
}

# ── Internationalization ──────────────────────────────────────
LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ── Default Primary Key ──────────────────────────────────────
# Brickflow uses UUIDs explicitly. This is a Django fallback only.
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Plant Rules ───────────────────────────────────────────────
# Read by core.config.rules.rules_from_settings().
BRICKFLOW_RULES = {
    "default_currency": "ZAR",
    "default_terms_days": 30,
    "event_source": "web",
    "role_enforced_engines": ["mining"],
}

# ── Logging ───────────────────────────────────────────────────
LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "brickflow": {
            "handlers": ["console"],
            "level": os.environ.get("BRICKFLOW_LOG_LEVEL", "INFO"),
            "propagate": False,
        },
    },
}
