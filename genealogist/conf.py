"""
Genealogist Settings.

Supports two formats (dict takes priority):

    # Option 1: Dict
    GENEALOGIST = {
        "BATCH_CODE_FORMAT": "{SITE}-{YYYY}-{MMDD}-{SEQ}",
        "ALLOCATION_MAX_RETRIES": 5,
    }

    # Option 2: Flat
    GENEALOGIST_BATCH_CODE_FORMAT = "{SITE}-{YYYY}-{MMDD}-{SEQ}"
    GENEALOGIST_ALLOCATION_MAX_RETRIES = 5

All settings have defaults; zero configuration is required.
"""

import threading

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


# ── Defaults ──

DEFAULTS = {
    "BATCH_CODE_FORMAT": "{SITE}-{YYYY}-{MMDD}-{SEQ}",
    "PRODUCTION_CODE_FORMAT": "PB-{YYYY}-{MMDD}-{SEQ}",
    "RECALL_CODE_FORMAT": "RC-{YYYY}-{SEQ}",
    "SEQUENCE_WIDTH": 3,
    "ALLOCATION_MAX_RETRIES": 5,
    "DEFAULT_SITE": "HQ",
    "STORE_BACKEND": "genealogist.adapters.orm.OrmGenealogyStore",
    "SALSA_NOTIFICATION_DAYS": 3,
}


# ── Accessors ──

_sentinel = object()


def get_setting(name, default=_sentinel):
    """
    Get a genealogist setting.

    Looks up in order:
    1. GENEALOGIST dict (e.g. GENEALOGIST = {"DEFAULT_SITE": "..."})
    2. Flat setting (e.g. GENEALOGIST_DEFAULT_SITE = "...")
    3. DEFAULTS
    """
    genealogist_dict = getattr(settings, "GENEALOGIST", {})
    if name in genealogist_dict:
        return genealogist_dict[name]

    flat_value = getattr(settings, f"GENEALOGIST_{name}", _sentinel)
    if flat_value is not _sentinel:
        return flat_value

    if default is not _sentinel:
        return default

    return DEFAULTS.get(name)


_store_class_lock = threading.Lock()
_store_class = None


def get_store_class():
    """
    Return the configured genealogy store class.

    The class is resolved once and cached; instances are created per
    request by get_genealogy_store().
    """
    global _store_class

    if _store_class is None:
        with _store_class_lock:
            if _store_class is None:  # double-checked
                from django.utils.module_loading import import_string

                path = get_setting("STORE_BACKEND")
                if not path:
                    raise ImproperlyConfigured(
                        "GENEALOGIST['STORE_BACKEND'] must be configured. "
                        "Example: 'genealogist.adapters.orm.OrmGenealogyStore'"
                    )
                try:
                    _store_class = import_string(path)
                except ImportError as e:
                    raise ImproperlyConfigured(
                        f"Failed to import genealogy store '{path}': {e}"
                    ) from e

    return _store_class


def get_genealogy_store(tenant_id: str | None = None):
    """Return a new store instance, scoped to a tenant when given."""
    return get_store_class()(tenant_id=tenant_id)


def reset_store_class() -> None:
    """Reset cached store class (for tests)."""
    global _store_class
    _store_class = None
