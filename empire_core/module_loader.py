# ═══════════════════════════════════════════════════════════════════════════
# EMPIRE CORE — MODULE LOADER — Ładowanie modułów per kontekst
# ═══════════════════════════════════════════════════════════════════════════
"""
Loader odpowiedzialny za:
- rozwiązywanie kandydatów przez ModuleCatalog
- bramkowanie po kontekście (ContextPermissionTable)
- tworzenie instancji z wstrzykniętymi zależnościami
- inicjalizację i rejestrację (loader + bus)

Lifecycle (per loader, one loader per execution context):
    1. set_context()        UNINITIALIZED -> CONTEXT_BOUND
    2. auto_load_modules()  CONTEXT_BOUND -> LOADING -> READY, emits modules:ready
    3. unload_modules()     READY -> CONTEXT_BOUND, emits modules:unloaded

A candidate that is missing, gated out, or fails to construct or initialize
is skipped without affecting its siblings.
"""

import asyncio
import inspect
import logging
from typing import Any, Dict, Iterable, List, Optional

from .event_bus import EventBus
from .messaging import MessageChannel
from .module_registry import ModuleCatalog, ModuleFactory
from .storage import SettingsStore
from .types import ContextLike, ContextPermissionTable, ExecutionContext, LoaderState

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

LOG = logging.getLogger("empire.loader")

EVENT_MODULES_READY = "modules:ready"
EVENT_MODULES_UNLOADED = "modules:unloaded"


class ModuleLoader:
    """
    Translates candidate module names into live, initialized instances.

    Args:
        event_bus: bus shared by every module of this context
        catalog: explicit registry the candidates are resolved from
        permissions: context permission table (unlisted names run everywhere)
        candidates: names to try, in order; defaults to the catalog's names
        store: settings store handed to modules through the loader
        channel: message channel handed to modules through the loader
        init_timeout: optional bound (seconds) on each module's init()
    """

    def __init__(
        self,
        event_bus: EventBus,
        catalog: Optional[ModuleCatalog] = None,
        *,
        permissions: Optional[ContextPermissionTable] = None,
        candidates: Optional[Iterable[str]] = None,
        store: Optional[SettingsStore] = None,
        channel: Optional[MessageChannel] = None,
        init_timeout: Optional[float] = None,
    ) -> None:
        self.event_bus = event_bus
        self.catalog = catalog if catalog is not None else ModuleCatalog()
        self.permissions = permissions if permissions is not None else ContextPermissionTable()
        self._candidates = list(candidates) if candidates is not None else None
        self.store = store
        self.channel = channel
        self.init_timeout = init_timeout

        self.context = ExecutionContext.UNKNOWN
        self.state = LoaderState.UNINITIALIZED
        self._modules: Dict[str, Any] = {}

    # ─────────────────────────────────────────────────────────────────────
    # CONTEXT
    # ─────────────────────────────────────────────────────────────────────

    def set_context(self, context: ContextLike) -> None:
        """Bind this loader to an execution context (background, content, popup)."""
        self.context = ExecutionContext.parse(context)
        self.state = LoaderState.CONTEXT_BOUND
        LOG.info(f"[ModuleLoader] Context set to '{self.context.value}'")

    def should_load_in_context(self, name: str) -> bool:
        return self.permissions.allows(name, self.context)

    def candidates(self) -> List[str]:
        if self._candidates is not None:
            return list(self._candidates)
        return self.catalog.names()

    # ─────────────────────────────────────────────────────────────────────
    # LOADING
    # ─────────────────────────────────────────────────────────────────────

    async def auto_load_modules(self) -> int:
        """
        Load every candidate for the current context, one after another.

        Returns:
            number of modules loaded by this call
        """
        if self.state is LoaderState.UNINITIALIZED:
            LOG.warning("[ModuleLoader] No context set, loading as 'unknown'")

        self.state = LoaderState.LOADING
        LOG.info(f"[ModuleLoader] Auto-loading modules for '{self.context.value}' context...")

        loaded_count = 0
        for name in self.candidates():
            try:
                if await self.try_load_module(name):
                    loaded_count += 1
            except Exception as e:
                LOG.error(f"[ModuleLoader] Unexpected error loading '{name}': {e}", exc_info=True)

        self.state = LoaderState.READY
        LOG.info(f"[ModuleLoader] Loaded {loaded_count} module(s) for '{self.context.value}'")

        await self.event_bus.emit(EVENT_MODULES_READY, {
            "context": self.context.value,
            "loaded_count": loaded_count,
        })
        return loaded_count

    async def try_load_module(self, name: str) -> bool:
        """Resolve ``name`` through the catalog and load it. Absence is not an error."""
        factory = self.catalog.resolve(name)
        if factory is None:
            LOG.info(f"[ModuleLoader] Module '{name}' not found, skipping")
            return False
        return await self.load_module(name, factory)

    async def load_module(self, name: str, factory: ModuleFactory) -> bool:
        """Gate, construct, initialize and register one module. A name already loaded is skipped."""
        if not self.should_load_in_context(name):
            LOG.debug(f"[ModuleLoader] '{name}' not allowed in '{self.context.value}', skipping")
            return False
        if name in self._modules:
            LOG.warning(f"[ModuleLoader] '{name}' already loaded in '{self.context.value}', skipping")
            return False

        instance = None
        try:
            LOG.info(f"[ModuleLoader] Loading '{name}' in '{self.context.value}'")

            instance = factory(
                event_bus=self.event_bus,
                context=self.context,
                module_loader=self,
            )

            init = getattr(instance, "init", None)
            if callable(init):
                result = init()
                if inspect.isawaitable(result):
                    if self.init_timeout is not None:
                        await asyncio.wait_for(result, timeout=self.init_timeout)
                    else:
                        await result

            self._modules[name] = instance
            self.event_bus.register_module(name, instance)

            LOG.info(f"[ModuleLoader] '{name}' loaded successfully")
            return True

        except Exception as e:
            LOG.error(f"[ModuleLoader] Failed to load '{name}': {e!r}", exc_info=True)
            if instance is not None:
                await self._discard(name, instance)
            return False

    async def _discard(self, name: str, instance: Any) -> None:
        """Best-effort cleanup of a module whose init failed half-way."""
        cleanup = getattr(instance, "cleanup", None)
        if not callable(cleanup):
            return
        try:
            result = cleanup()
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            LOG.warning(f"[ModuleLoader] Cleanup of failed module '{name}' raised: {e}")

    # ─────────────────────────────────────────────────────────────────────
    # UNLOADING
    # ─────────────────────────────────────────────────────────────────────

    async def unload_modules(self) -> int:
        """Run cleanup() on every loaded module, newest first."""
        unloaded = 0
        for name, instance in reversed(list(self._modules.items())):
            cleanup = getattr(instance, "cleanup", None)
            try:
                if callable(cleanup):
                    result = cleanup()
                    if inspect.isawaitable(result):
                        await result
                unloaded += 1
                LOG.info(f"[ModuleLoader] '{name}' unloaded")
            except Exception as e:
                LOG.error(f"[ModuleLoader] Error unloading '{name}': {e}", exc_info=True)

        self._modules.clear()
        if self.state is not LoaderState.UNINITIALIZED:
            self.state = LoaderState.CONTEXT_BOUND

        await self.event_bus.emit(EVENT_MODULES_UNLOADED, {
            "context": self.context.value,
            "unloaded_count": unloaded,
        })
        return unloaded

    # ─────────────────────────────────────────────────────────────────────
    # ACCESSORS
    # ─────────────────────────────────────────────────────────────────────

    def get_module(self, name: str) -> Optional[Any]:
        return self._modules.get(name)

    def get_modules(self) -> List[Any]:
        """Snapshot of all loaded instances, in load order."""
        return list(self._modules.values())

    def module_names(self) -> List[str]:
        return list(self._modules)
