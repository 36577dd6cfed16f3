"""
EMPIRE CORE — MODULE CATALOG
Rejestr fabryk modułów (nie instancji!).

Moduły rejestruje się jawnie przy starcie: klasą/fabryką albo ścieżką
importu ``"package.module:ClassName"`` rozwiązywaną leniwie. Brak modułu
to nie błąd: ``resolve()`` zwraca wtedy None.

Usage:
    catalog = ModuleCatalog()

    @catalog.module("notifications")
    class NotificationsModule(BaseModule):
        ...

    catalog.register_path("price-filters", "features.price_filters:PriceFiltersModule")
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .errors import ModuleResolutionError

LOG = logging.getLogger("empire.catalog")

ModuleFactory = Callable[..., Any]


class ModuleCatalog:
    """Explicit name -> factory registry used by the loader to resolve candidates."""

    def __init__(self) -> None:
        self._entries: Dict[str, Union[ModuleFactory, str]] = {}

    # --- Rejestracja ---

    def register(self, name: str, factory: ModuleFactory) -> None:
        """Registers a class or factory callable under ``name``."""
        if not name:
            raise ValueError("Module name must not be empty")
        if not callable(factory):
            raise TypeError(f"Factory for '{name}' is not callable")
        if name in self._entries:
            LOG.warning(f"[Catalog] Replacing factory for '{name}'")
        self._entries[name] = factory

    def register_path(self, name: str, import_path: str) -> None:
        """Registers a lazy ``"package.module:Attr"`` reference."""
        if not name:
            raise ValueError("Module name must not be empty")
        if ":" not in import_path:
            raise ValueError(f"Import path for '{name}' must look like 'package.module:Attr', got {import_path!r}")
        self._entries[name] = import_path

    def module(self, name: str) -> Callable[[ModuleFactory], ModuleFactory]:
        """Class decorator form of ``register``."""
        def decorator(factory: ModuleFactory) -> ModuleFactory:
            self.register(name, factory)
            return factory
        return decorator

    def unregister(self, name: str) -> None:
        self._entries.pop(name, None)

    # --- Rozwiązywanie ---

    def load(self, name: str) -> ModuleFactory:
        """Resolve ``name`` or raise ModuleResolutionError."""
        entry = self._entries.get(name)
        if entry is None:
            raise ModuleResolutionError(f"Module '{name}' is not registered")
        if not isinstance(entry, str):
            return entry

        module_path, _, attr = entry.partition(":")
        try:
            module = importlib.import_module(module_path)
        except Exception as e:
            raise ModuleResolutionError(f"Cannot import '{module_path}' for '{name}': {e}") from e

        factory = getattr(module, attr, None)
        if factory is None or not callable(factory):
            raise ModuleResolutionError(f"'{entry}' does not export a constructible module")

        self._entries[name] = factory
        return factory

    def resolve(self, name: str) -> Optional[ModuleFactory]:
        """Like ``load`` but absence and bad exports yield None."""
        try:
            return self.load(name)
        except ModuleResolutionError as e:
            LOG.info(f"[Catalog] Module '{name}' not available: {e}")
            return None

    # --- Info ---

    def names(self) -> List[str]:
        """Registered names, in registration order."""
        return list(self._entries)

    def __contains__(self, name: str) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)
