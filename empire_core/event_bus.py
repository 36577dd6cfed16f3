# ═══════════════════════════════════════════════════════════════════════════
# EMPIRE CORE — EVENT BUS — Magistrala Zdarzeń
# ═══════════════════════════════════════════════════════════════════════════
"""
Event Bus z:
- Publish/Subscribe po nazwie eventu
- Sekwencyjnym dostarczaniem (w kolejności rejestracji)
- Izolacją błędów per subskrybent
- Rejestrem modułów do lookupu po nazwie

Usage:
    bus = EventBus()
    unsubscribe = bus.on("price:updated", handler, "notifications")
    results = await bus.emit("price:updated", {"item": "AK-47"})
    unsubscribe()
"""

import asyncio
import inspect
import logging
from typing import Any, Callable, Dict, List, Optional

from .types import DeliveryOutcome, EmitResult, Subscription

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

LOG = logging.getLogger("empire.eventbus")

Unsubscribe = Callable[[], None]


def _noop() -> None:
    return None


# ═══════════════════════════════════════════════════════════════════════════
# EVENT BUS CORE
# ═══════════════════════════════════════════════════════════════════════════

class EventBus:
    """
    Centralna magistrala zdarzeń jednego kontekstu wykonania.

    Subscriptions are identified by handler identity, not equality: passing a
    fresh lambda to ``on`` means only the returned unsubscribe closure can
    remove it again.

    Args:
        handler_timeout: optional bound (seconds) on each awaited handler.
            A handler that does not settle in time counts as failed.
    """

    def __init__(self, handler_timeout: Optional[float] = None):
        self._listeners: Dict[str, List[Subscription]] = {}
        self._modules: Dict[str, Any] = {}
        self.handler_timeout = handler_timeout

    # ─────────────────────────────────────────────────────────────────────
    # SUBSCRIBE / UNSUBSCRIBE
    # ─────────────────────────────────────────────────────────────────────

    def on(self, event_name: str, callback: Callable[[Any], Any], owner: str = "unknown") -> Unsubscribe:
        """
        Register a listener.

        Returns:
            zero-argument closure removing exactly this subscription
        """
        if not event_name or not isinstance(event_name, str):
            LOG.error(f"[EventBus] {owner} tried to listen with invalid event name {event_name!r}")
            return _noop
        if not callable(callback):
            LOG.error(f"[EventBus] {owner} tried to listen for '{event_name}' with a non-callable handler")
            return _noop

        subscription = Subscription(event_name=event_name, handler=callback, owner=owner)
        self._listeners.setdefault(event_name, []).append(subscription)
        LOG.debug(f"[EventBus] {owner} listening for '{event_name}'")

        def unsubscribe() -> None:
            self._remove(event_name, subscription)

        return unsubscribe

    def off(self, event_name: str, callback: Callable[[Any], Any]) -> None:
        """Remove the first subscription whose handler is ``callback``."""
        if not isinstance(event_name, str):
            LOG.error(f"[EventBus] off() called with invalid event name {event_name!r}")
            return
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        for index, sub in enumerate(listeners):
            if sub.handler is callback:
                del listeners[index]
                LOG.debug(f"[EventBus] {sub.owner} stopped listening for '{event_name}'")
                return

    def _remove(self, event_name: str, subscription: Subscription) -> None:
        listeners = self._listeners.get(event_name)
        if not listeners:
            return
        for index, sub in enumerate(listeners):
            if sub is subscription:
                del listeners[index]
                LOG.debug(f"[EventBus] {sub.owner} unsubscribed from '{event_name}'")
                return

    # ─────────────────────────────────────────────────────────────────────
    # EMIT
    # ─────────────────────────────────────────────────────────────────────

    async def emit(self, event_name: str, payload: Any = None) -> EmitResult:
        """
        Deliver ``payload`` to every subscriber of ``event_name``.

        Subscribers run one at a time in registration order; the list is
        snapshotted first, so subscribing or unsubscribing from inside a
        handler only affects later emissions. A failing subscriber is logged
        and skipped.
        """
        if not isinstance(event_name, str):
            LOG.error(f"[EventBus] emit() called with invalid event name {event_name!r}")
            return EmitResult()

        if payload is None:
            payload = {}

        snapshot = list(self._listeners.get(event_name, ()))
        LOG.debug(f"[EventBus] Emitting '{event_name}' to {len(snapshot)} listener(s)")

        outcomes: List[DeliveryOutcome] = []
        for sub in snapshot:
            outcomes.append(await self._deliver(event_name, sub, payload))

        return EmitResult(outcomes)

    async def _deliver(self, event_name: str, sub: Subscription, payload: Any) -> DeliveryOutcome:
        try:
            result = sub.handler(payload)
            if inspect.isawaitable(result):
                if self.handler_timeout is not None:
                    result = await asyncio.wait_for(result, timeout=self.handler_timeout)
                else:
                    result = await result
            return DeliveryOutcome(owner=sub.owner, ok=True, result=result)
        except asyncio.TimeoutError as e:
            if self.handler_timeout is not None:
                LOG.error(
                    f"[EventBus] {sub.owner} timed out after {self.handler_timeout}s handling '{event_name}'"
                )
            else:
                LOG.error(f"[EventBus] Error in {sub.owner} for '{event_name}': {e!r}")
            return DeliveryOutcome(owner=sub.owner, ok=False, error=e)
        except Exception as e:
            LOG.error(f"[EventBus] Error in {sub.owner} for '{event_name}': {e}", exc_info=True)
            return DeliveryOutcome(owner=sub.owner, ok=False, error=e)

    # ─────────────────────────────────────────────────────────────────────
    # MODULE REGISTRY
    # ─────────────────────────────────────────────────────────────────────

    def register_module(self, name: str, instance: Any) -> None:
        """Register a live module under ``name``. Overwrites silently."""
        self._modules[name] = instance
        LOG.info(f"[EventBus] Registered module '{name}'")

    def get_module(self, name: str) -> Optional[Any]:
        return self._modules.get(name)

    def modules(self) -> Dict[str, Any]:
        return dict(self._modules)

    # ─────────────────────────────────────────────────────────────────────
    # DIAGNOSTICS
    # ─────────────────────────────────────────────────────────────────────

    def get_events(self) -> Dict[str, List[str]]:
        """Owner labels per event name, in registration order (a copy)."""
        return {name: [sub.owner for sub in subs] for name, subs in self._listeners.items()}

    def listener_count(self, event_name: str) -> int:
        return len(self._listeners.get(event_name, ()))
