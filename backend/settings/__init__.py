# backend/settings/__init__.py
"""
Settings modules (choose one with DJANGO_SETTINGS_MODULE):
- backend.settings.dev   local development
- backend.settings.test  test runs (sqlite in memory, no throttling)
- backend.settings.prod  production (Postgres + shared cache required)

This package imports none of them.
"""
