# backend/asgi.py
"""
ASGI entrypoint for the sales engine API (same settings rule as wsgi.py).
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_asgi_application()
