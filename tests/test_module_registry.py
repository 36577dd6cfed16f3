"""
Tests for ModuleCatalog: explicit registration and lazy resolution.
"""
import pytest

from empire_core import ModuleCatalog, ModuleResolutionError
from empire_core.storage import MemoryStore


class TestRegistration:

    def test_register_and_names_keep_order(self):
        catalog = ModuleCatalog()
        catalog.register("b", MemoryStore)
        catalog.register("a", dict)
        assert catalog.names() == ["b", "a"]
        assert "a" in catalog
        assert len(catalog) == 2

    def test_decorator_registers_class(self):
        catalog = ModuleCatalog()

        @catalog.module("notifications")
        class Notifications:
            pass

        assert catalog.resolve("notifications") is Notifications

    def test_rejects_bad_entries(self):
        catalog = ModuleCatalog()
        with pytest.raises(ValueError):
            catalog.register("", dict)
        with pytest.raises(TypeError):
            catalog.register("x", "not callable")
        with pytest.raises(ValueError):
            catalog.register_path("x", "no_colon_here")

    def test_unregister(self):
        catalog = ModuleCatalog()
        catalog.register("x", dict)
        catalog.unregister("x")
        catalog.unregister("x")
        assert catalog.resolve("x") is None


class TestResolution:

    def test_import_path_is_resolved_lazily(self):
        catalog = ModuleCatalog()
        catalog.register_path("memory", "empire_core.storage:MemoryStore")
        assert catalog.resolve("memory") is MemoryStore

    def test_unregistered_name_is_absent(self):
        assert ModuleCatalog().resolve("ghost") is None

    def test_missing_package_is_absent(self):
        catalog = ModuleCatalog()
        catalog.register_path("ghost", "no_such_package_anywhere.feature:Ghost")
        assert catalog.resolve("ghost") is None

    def test_missing_attribute_is_absent(self):
        catalog = ModuleCatalog()
        catalog.register_path("ghost", "empire_core.storage:NoSuchClass")
        assert catalog.resolve("ghost") is None

    def test_non_callable_export_is_absent(self):
        catalog = ModuleCatalog()
        catalog.register_path("log", "empire_core.storage:LOG")
        assert catalog.resolve("log") is None

    def test_load_raises_for_absence(self):
        with pytest.raises(ModuleResolutionError):
            ModuleCatalog().load("ghost")
