"""
Tests for Genealogist settings and store resolution (genealogist.conf).
"""

import pytest
from django.core.exceptions import ImproperlyConfigured

from genealogist.adapters import InMemoryGenealogyStore, OrmGenealogyStore
from genealogist.conf import (
    DEFAULTS,
    get_genealogy_store,
    get_setting,
    get_store_class,
    reset_store_class,
)


@pytest.fixture(autouse=True)
def fresh_store_class():
    reset_store_class()
    yield
    reset_store_class()


class TestGetSetting:
    """Lookup order: dict, flat, default."""

    def test_default(self, settings):
        settings.GENEALOGIST = {}

        assert get_setting("ALLOCATION_MAX_RETRIES") == DEFAULTS["ALLOCATION_MAX_RETRIES"]

    def test_flat_setting(self, settings):
        settings.GENEALOGIST = {}
        settings.GENEALOGIST_DEFAULT_SITE = "MAN"

        assert get_setting("DEFAULT_SITE") == "MAN"

    def test_dict_wins(self, settings):
        settings.GENEALOGIST = {"DEFAULT_SITE": "LDN"}
        settings.GENEALOGIST_DEFAULT_SITE = "MAN"

        assert get_setting("DEFAULT_SITE") == "LDN"

    def test_explicit_default(self, settings):
        settings.GENEALOGIST = {}

        assert get_setting("UNKNOWN", "fallback") == "fallback"


class TestStoreBackend:
    """Tests for STORE_BACKEND resolution."""

    def test_default_is_orm(self):
        assert get_store_class() is OrmGenealogyStore

    def test_configured_backend(self, settings):
        settings.GENEALOGIST = {"STORE_BACKEND": "genealogist.adapters.memory.InMemoryGenealogyStore"}

        store = get_genealogy_store("bakery")

        assert isinstance(store, InMemoryGenealogyStore)
        assert store.tenant_id == "bakery"

    def test_cached(self, settings):
        first = get_store_class()
        settings.GENEALOGIST = {"STORE_BACKEND": "genealogist.adapters.memory.InMemoryGenealogyStore"}

        assert get_store_class() is first

    def test_bad_path(self, settings):
        settings.GENEALOGIST = {"STORE_BACKEND": "genealogist.adapters.nowhere.Store"}

        with pytest.raises(ImproperlyConfigured):
            get_store_class()

    def test_empty_path(self, settings):
        settings.GENEALOGIST = {"STORE_BACKEND": ""}

        with pytest.raises(ImproperlyConfigured):
            get_store_class()
