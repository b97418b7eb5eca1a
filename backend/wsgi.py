# backend/wsgi.py
"""
WSGI entrypoint for the sales engine API.

Uses dev settings unless DJANGO_SETTINGS_MODULE is set; deployments set it
to backend.settings.prod.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "backend.settings.dev")

application = get_wsgi_application()
