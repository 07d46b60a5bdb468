"""
Django Genealogist app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class GenealogistConfig(AppConfig):
    """Genealogist application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "genealogist"
    verbose_name = _("Batch genealogy")

    def ready(self):
        """Import signal handlers when app is ready."""
        # Import handlers to register them
        from genealogist.signals import handlers  # noqa: F401
