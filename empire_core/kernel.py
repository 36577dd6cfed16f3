"""
EMPIRE CORE — Kernel
Jeden kernel na kontekst wykonania: posiada własny EventBus i ModuleLoader
i wstrzykuje je do modułów (zamiast globalnych singletonów).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from .config import KernelConfig
from .event_bus import EventBus
from .messaging import MessageChannel
from .module_loader import ModuleLoader
from .module_registry import ModuleCatalog, ModuleFactory
from .storage import SettingsStore
from .types import ContextLike, ExecutionContext

LOG = logging.getLogger("empire.kernel")

MESSAGE_EVENT_PREFIX = "message:"


class Kernel:
    """
    Serce jednego kontekstu. Umożliwia:
    - rejestrowanie modułów w katalogu
    - start (auto-load modułów dla kontekstu)
    - stop (cleanup modułów)
    - odbiór wiadomości z innych kontekstów

    The channel belongs to the caller: one LocalChannel may serve several
    kernels, so stop() only unbinds this context and never closes it.
    Close an HttpChannel with ``await channel.close()`` after stop().
    """

    def __init__(
        self,
        context: ContextLike,
        *,
        config: Optional[KernelConfig] = None,
        catalog: Optional[ModuleCatalog] = None,
        store: Optional[SettingsStore] = None,
        channel: Optional[MessageChannel] = None,
    ) -> None:
        self.context = ExecutionContext.parse(context)
        self.config = config or KernelConfig()
        self.event_bus = EventBus(handler_timeout=self.config.handler_timeout)
        self.catalog = self.config.build_catalog(catalog)
        self.store = store if store is not None else self.config.build_store()
        self.channel = channel
        self.loader = ModuleLoader(
            self.event_bus,
            self.catalog,
            permissions=self.config.permissions(),
            store=self.store,
            channel=self.channel,
            init_timeout=self.config.init_timeout,
        )
        self._ready = False

    # --- Rejestracja modułów ---

    def register_module(self, name: str, factory: ModuleFactory) -> None:
        self.catalog.register(name, factory)

    # --- Start / stop ---

    async def start(self) -> int:
        """Bind the context, load its modules and return how many loaded."""
        if self._ready:
            LOG.debug(f"[Kernel] '{self.context.value}' already started")
            return len(self.loader.get_modules())

        self.loader.set_context(self.context)
        if self.channel is not None:
            self.channel.bind(self.context, self.handle_message)

        loaded = await self.loader.auto_load_modules()
        self._ready = True
        LOG.info(f"[Kernel] '{self.context.value}' ready with {loaded} module(s)")
        return loaded

    async def stop(self) -> None:
        if not self._ready:
            return
        if self.channel is not None:
            self.channel.unbind(self.context)
        await self.loader.unload_modules()
        self._ready = False
        LOG.info(f"[Kernel] '{self.context.value}' stopped")

    @property
    def is_ready(self) -> bool:
        return self._ready

    # --- Wiadomości z innych kontekstów ---

    async def handle_message(self, message: Dict[str, Any]) -> Optional[Any]:
        """
        Receiving side of the message channel.

        Emits ``message:<type>`` with the message data; the first non-None
        handler result is the response.
        """
        message_type = message.get("type") if isinstance(message, dict) else None
        if not message_type:
            LOG.warning(f"[Kernel] Ignoring message without type: {message!r}")
            return None

        data = message.get("data") or {}
        results = await self.event_bus.emit(f"{MESSAGE_EVENT_PREFIX}{message_type}", data)
        for result in results:
            if result is not None:
                return result
        return None

    # --- Info ---

    def get_module(self, name: str) -> Optional[Any]:
        return self.loader.get_module(name)

    def info(self) -> Dict[str, Any]:
        return {
            "context": self.context.value,
            "ready": self._ready,
            "state": self.loader.state.value,
            "registered_modules": self.catalog.names(),
            "loaded_modules": self.loader.module_names(),
            "events": self.event_bus.get_events(),
        }
