# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- file-backed sqlite (temp dir) + locmem cache
- fast password hashing
- throttling off
- engine toggles pinned to their defaults
"""

from __future__ import annotations

import os
import tempfile

from .base import *  # noqa: F403
from .base import LOGGING, REST_FRAMEWORK

DEBUG = False
SECRET_KEY = "test-secret-key"

# File-backed so worker threads share it; IMMEDIATE makes concurrent writers queue.
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
        "OPTIONS": {"transaction_mode": "IMMEDIATE", "timeout": 20},
        "TEST": {"NAME": os.path.join(tempfile.gettempdir(), "jewelry_sales_engine_test.sqlite3")},
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "sales-engine-tests",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    "DEFAULT_THROTTLE_CLASSES": (),
}

SALES_ENGINE = {
    "CANCEL_REVERSES_CUSTOMER_STATS": True,
    "OVERPAYMENT_POLICY": "reject",
    "GRAND_TOTAL_QUANTUM": "1",
    "CACHE_TIMEOUT": 300,
}

LOGGING = {
    **LOGGING,
    "loggers": {
        name: {**cfg, "level": "WARNING"} for name, cfg in LOGGING["loggers"].items()
    },
}
