# ═══════════════════════════════════════════════════════════════════════════
# EMPIRE CORE — BASE MODULE — Kontrakt modułu
# ═══════════════════════════════════════════════════════════════════════════
"""
Base class for all feature modules.

Każdy moduł:
- dziedziczy z BaseModule
- dostaje event_bus, context i module_loader w konstruktorze
- nadpisuje init() / cleanup() jeśli potrzebuje
- subskrybuje eventy wyłącznie przez listen() (auto-cleanup)

Usage:
    class NotificationsModule(BaseModule):
        async def init(self):
            await super().init()
            self.listen("price:drop", self.on_price_drop)

        async def on_price_drop(self, data):
            await self.send_message("SHOW_NOTIFICATION", {"item": data["item"]})
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional, Union

from .event_bus import EventBus, Unsubscribe
from .messaging import MessageChannel
from .storage import SettingsStore
from .types import ContextLike, ExecutionContext

LOG = logging.getLogger("empire.module")

DEFAULT_DEBOUNCE_MS = 300


def derive_module_name(cls: type) -> str:
    """``KeychainMonitorModule`` -> ``keychainmonitor``."""
    explicit = getattr(cls, "module_name", None)
    if explicit:
        return explicit
    name = cls.__name__
    if name.endswith("Module") and len(name) > len("Module"):
        name = name[: -len("Module")]
    return name.lower()


# ═══════════════════════════════════════════════════════════════════════════
# DEBOUNCE
# ═══════════════════════════════════════════════════════════════════════════

class Debounced:
    """
    Call wrapper that fires ``func`` once calls stop for ``wait`` seconds.

    One pending timer per wrapper; every call cancels and reschedules it
    with the latest arguments. Must be called from inside a running loop.
    """

    def __init__(self, func: Callable[..., Any], wait: float, logger: logging.Logger = LOG):
        self._func = func
        self._wait = wait
        self._logger = logger
        self._handle: Optional[asyncio.TimerHandle] = None
        self._task: Optional[asyncio.Future] = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self._wait, self._fire, args, kwargs)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        try:
            result = self._func(*args, **kwargs)
        except Exception as e:
            self._logger.error(f"Debounced call to {self._func!r} failed: {e}")
            return
        if inspect.isawaitable(result):
            self._task = asyncio.ensure_future(result)
            self._task.add_done_callback(self._report)

    def _report(self, task: "asyncio.Future") -> None:
        if self._task is task:
            self._task = None
        if not task.cancelled() and task.exception() is not None:
            self._logger.error(f"Debounced call to {self._func!r} failed: {task.exception()}")


# ═══════════════════════════════════════════════════════════════════════════
# BASE MODULE
# ═══════════════════════════════════════════════════════════════════════════

class BaseModule:
    """
    Standard interface for all feature modules.

    Name is derived from the class (``module_name`` class attribute wins).
    Settings live in memory until ``save_settings()`` persists them.
    """

    module_name: Optional[str] = None

    def __init__(
        self,
        event_bus: EventBus,
        context: ContextLike = ExecutionContext.UNKNOWN,
        module_loader: Any = None,
        *,
        store: Optional[SettingsStore] = None,
        channel: Optional[MessageChannel] = None,
    ):
        self.name = derive_module_name(type(self))
        self.event_bus = event_bus
        self.context = ExecutionContext.parse(context)
        self.module_loader = module_loader
        self._store = store
        self._channel = channel

        self.is_enabled = True
        self.event_listeners: List[Unsubscribe] = []
        self.settings: Dict[str, Any] = {}

        self.logger = logging.getLogger(f"empire.module.{self.name}")
        self.logger.debug(f"Creating {self.name} for {self.context.value}")

    # ─────────────────────────────────────────────────────────────────────
    # CAPABILITIES
    # ─────────────────────────────────────────────────────────────────────

    @property
    def store(self) -> Optional[SettingsStore]:
        return self._store or getattr(self.module_loader, "store", None)

    @property
    def channel(self) -> Optional[MessageChannel]:
        return self._channel or getattr(self.module_loader, "channel", None)

    @property
    def settings_key(self) -> str:
        return f"{self.name}_settings"

    # ─────────────────────────────────────────────────────────────────────
    # LIFECYCLE (override in subclass)
    # ─────────────────────────────────────────────────────────────────────

    async def init(self) -> None:
        """Load persisted settings. Subclasses call ``await super().init()``."""
        self.logger.info(f"{self.name}: Initializing...")
        await self.load_settings()
        self.logger.info(f"{self.name}: Initialized")

    async def cleanup(self) -> None:
        """Drop every subscription made through ``listen()``."""
        self.logger.info(f"{self.name}: Cleaning up ({len(self.event_listeners)} listener(s))")
        for unsubscribe in self.event_listeners:
            if callable(unsubscribe):
                unsubscribe()
        self.event_listeners = []

    # ─────────────────────────────────────────────────────────────────────
    # EVENTS
    # ─────────────────────────────────────────────────────────────────────

    def listen(self, event_name: str, handler: Union[str, Callable[[Any], Any]]) -> Unsubscribe:
        """
        Subscribe with this module as owner; tracked for ``cleanup()``.

        ``handler`` may be a callable or the name of a method on this module.
        """
        if isinstance(handler, str):
            method = getattr(self, handler, None)
            if method is None:
                self.logger.error(f"{self.name}: No handler method '{handler}' for '{event_name}'")
            handler = method
        unsubscribe = self.event_bus.on(event_name, handler, self.name)
        self.event_listeners.append(unsubscribe)
        return unsubscribe

    async def emit(self, event_name: str, data: Optional[Dict[str, Any]] = None):
        """Emit with ``source`` and ``context`` stamped onto the payload."""
        payload = dict(data or {})
        payload["source"] = self.name
        payload["context"] = self.context.value
        return await self.event_bus.emit(event_name, payload)

    # ─────────────────────────────────────────────────────────────────────
    # SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    def get_setting(self, key: str, default: Any = None) -> Any:
        value = self.settings.get(key)
        return default if value is None else value

    def set_setting(self, key: str, value: Any) -> None:
        self.settings[key] = value

    async def load_settings(self) -> None:
        """Merge persisted settings into the cache. Never raises."""
        store = self.store
        if store is None:
            self.logger.debug(f"{self.name}: No settings store, using defaults")
            return
        try:
            result = await store.get([self.settings_key])
            saved = result.get(self.settings_key) or {}
            self.settings.update(saved)
            self.logger.debug(f"{self.name}: Loaded {len(saved)} setting(s)")
        except Exception as e:
            self.logger.warning(f"{self.name}: Could not load settings: {e}")

    async def save_settings(self) -> None:
        """Persist the whole settings cache. Never raises."""
        store = self.store
        if store is None:
            self.logger.warning(f"{self.name}: No settings store, settings not saved")
            return
        try:
            await store.set({self.settings_key: dict(self.settings)})
            self.logger.debug(f"{self.name}: Saved settings")
        except Exception as e:
            self.logger.error(f"{self.name}: Failed to save settings: {e}")

    # ─────────────────────────────────────────────────────────────────────
    # MESSAGING / LOOKUP
    # ─────────────────────────────────────────────────────────────────────

    async def send_message(self, message_type: str, data: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        """Send to other contexts. Returns None when nobody answers."""
        channel = self.channel
        if channel is None:
            self.logger.debug(f"{self.name}: No message channel, '{message_type}' dropped")
            return None
        payload = dict(data or {})
        payload["source"] = self.name
        payload["context"] = self.context.value
        try:
            return await channel.send({"type": message_type, "data": payload})
        except Exception as e:
            self.logger.debug(f"{self.name}: Could not send '{message_type}': {e}")
            return None

    def is_context(self, context: ContextLike) -> bool:
        try:
            return self.context == ExecutionContext.parse(context)
        except ValueError:
            return False

    def get_module(self, name: str) -> Optional[Any]:
        if self.module_loader is None:
            return None
        return self.module_loader.get_module(name)

    # ─────────────────────────────────────────────────────────────────────
    # UTILITIES
    # ─────────────────────────────────────────────────────────────────────

    def debounce(self, func: Callable[..., Any], wait_ms: int = DEFAULT_DEBOUNCE_MS) -> Debounced:
        return Debounced(func, wait_ms / 1000.0, self.logger)

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}@{self.context.value}>"
