# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- file-backed SQLite test database (threaded tests need real connections)
- fast password hashing
- quiet logs (WARNING and above)
"""

from __future__ import annotations

from .base import *  # noqa: F401,F403
from .base import BASE_DIR, LOGGING, SQLITE_WRITE_TIMEOUT

DEBUG = False

# File-backed so threaded tests get real connections and SQLite write locks.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": str(BASE_DIR / "test_db.sqlite3"),
        "OPTIONS": {"transaction_mode": "IMMEDIATE", "timeout": SQLITE_WRITE_TIMEOUT},
        "TEST": {"NAME": str(BASE_DIR / "test_db.sqlite3")},
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

OPERATIONS_BACKOFF_BASE = 0.0
OPERATIONS_BACKOFF_MAX = 0.0

for _logger in LOGGING["loggers"].values():
    _logger["level"] = "WARNING"
