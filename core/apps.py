# core/apps.py

"""
CORE APP CONFIG

Shared engine plumbing:
- Typed domain errors
- Unit of work (atomic boundary + post-commit hooks)
- Best-effort side effects (cache invalidation, audit events)
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "core"
    verbose_name = "Engine Core"
