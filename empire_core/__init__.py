# ═══════════════════════════════════════════════════════════════════════════
# EMPIRE CORE — Unified Module Exports
# ═══════════════════════════════════════════════════════════════════════════
"""
EMPIRE CORE: module kernel for multi-context hosts.

Main exports:
  - EventBus: publish/subscribe broker
  - BaseModule: lifecycle contract for feature modules
  - ModuleLoader, ModuleCatalog: context-aware loading
  - Kernel: one per execution context, wires everything together

Usage:
    from empire_core import Kernel, BaseModule

    class NotificationsModule(BaseModule):
        async def init(self):
            await super().init()
            self.listen("price:drop", self.on_price_drop)

    kernel = Kernel("background")
    kernel.register_module("notifications", NotificationsModule)
    await kernel.start()
"""

from .base_module import BaseModule, Debounced
from .config import DEFAULT_CONTEXT_RULES, KernelConfig, load_config
from .errors import (
    KernelError,
    MessagingError,
    ModuleResolutionError,
    NoReceiverError,
    StoreUnavailableError,
)
from .event_bus import EventBus
from .kernel import Kernel
from .messaging import HttpChannel, LocalChannel, MessageChannel
from .module_loader import EVENT_MODULES_READY, EVENT_MODULES_UNLOADED, ModuleLoader
from .module_registry import ModuleCatalog
from .storage import JsonFileStore, MemoryStore, SettingsStore
from .types import (
    ContextPermissionTable,
    ContextRule,
    DeliveryOutcome,
    EmitResult,
    ExecutionContext,
    LoaderState,
    Subscription,
)

__version__ = "1.0.0"

__all__ = [
    # Core
    "EventBus",
    "BaseModule",
    "Debounced",
    "ModuleLoader",
    "ModuleCatalog",
    "Kernel",

    # Types
    "ExecutionContext",
    "ContextRule",
    "ContextPermissionTable",
    "Subscription",
    "DeliveryOutcome",
    "EmitResult",
    "LoaderState",

    # Capabilities
    "SettingsStore",
    "MemoryStore",
    "JsonFileStore",
    "MessageChannel",
    "LocalChannel",
    "HttpChannel",

    # Config
    "KernelConfig",
    "load_config",
    "DEFAULT_CONTEXT_RULES",

    # Errors
    "KernelError",
    "ModuleResolutionError",
    "StoreUnavailableError",
    "MessagingError",
    "NoReceiverError",

    # Events
    "EVENT_MODULES_READY",
    "EVENT_MODULES_UNLOADED",

    # Version
    "__version__",
]
