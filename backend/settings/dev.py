# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS
- sqlite + locmem cache unless DATABASE_URL / CACHE_URL are set
- engine loggers at DEBUG so every stock move and payment is visible
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])
CORS_ALLOW_CREDENTIALS = True

LOGGING = {
    **LOGGING,
    "loggers": {
        name: {**cfg, "level": "DEBUG"}
        for name, cfg in LOGGING["loggers"].items()
    },
}
