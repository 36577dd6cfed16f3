"""
EMPIRE CORE — MESSAGING
Inter-context message channel capability.

Message shape::

    {"type": "PRICE_UPDATE", "data": {..., "source": "<module>", "context": "<ctx>"}}

``send`` returns the receiver's response (or None). A missing receiver is
reported with NoReceiverError; callers in the kernel treat it as normal.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Optional

import httpx

from .errors import MessagingError, NoReceiverError
from .types import ContextLike, ExecutionContext

LOG = logging.getLogger("empire.messaging")

Receiver = Callable[[Dict[str, Any]], Awaitable[Any]]

MESSAGES_PATH = "/api/v1/messages"
DEFAULT_TIMEOUT = 10.0


class MessageChannel(ABC):
    """Abstract channel between isolated execution contexts."""

    @abstractmethod
    async def send(self, message: Dict[str, Any]) -> Optional[Any]:
        """Deliver ``message`` to the other side and return its response."""

    def bind(self, context: ContextLike, receiver: Receiver) -> None:
        """Attach the receiving side of ``context``. Channels that receive out of process ignore it."""

    def unbind(self, context: ContextLike) -> None:
        """Detach the receiving side of ``context``."""

    async def close(self) -> None:
        """Release transport resources."""


class LocalChannel(MessageChannel):
    """
    Routes messages between kernels living in the same process.

    A message goes to every bound context except the sender's (taken from
    ``data.context``); the first non-None response wins.
    """

    def __init__(self):
        self._receivers: Dict[ExecutionContext, Receiver] = {}

    def bind(self, context: ContextLike, receiver: Receiver) -> None:
        self._receivers[ExecutionContext.parse(context)] = receiver
        LOG.debug(f"[Messaging] Context '{ExecutionContext.parse(context).value}' bound")

    def unbind(self, context: ContextLike) -> None:
        self._receivers.pop(ExecutionContext.parse(context), None)

    async def send(self, message: Dict[str, Any]) -> Optional[Any]:
        sender = (message.get("data") or {}).get("context")
        targets = [
            (ctx, receiver) for ctx, receiver in self._receivers.items()
            if ctx.value != sender
        ]
        if not targets:
            raise NoReceiverError(f"No receiver for message '{message.get('type')}'")

        response = None
        for _, receiver in targets:
            result = await receiver(message)
            if response is None and result is not None:
                response = result
        return response


class HttpChannel(MessageChannel):
    """
    Sends messages to another context's kernel endpoint over HTTP.

    Args:
        endpoint: base URL of the peer, e.g. ``http://127.0.0.1:8765``
        timeout: request timeout in seconds
        transport: optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def send(self, message: Dict[str, Any]) -> Optional[Any]:
        url = f"{self.endpoint}{MESSAGES_PATH}"
        try:
            response = await self._client.post(url, json=message)
        except httpx.HTTPError as e:
            raise MessagingError(f"Cannot reach {url}: {e}") from e

        if response.status_code == 404:
            raise NoReceiverError(f"No receiver at {url}")
        try:
            response.raise_for_status()
            body = response.json()
        except (httpx.HTTPStatusError, ValueError) as e:
            raise MessagingError(f"Bad response from {url}: {e}") from e

        return body.get("response") if isinstance(body, dict) else None

    async def close(self) -> None:
        await self._client.aclose()
