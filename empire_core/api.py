# ═══════════════════════════════════════════════════════════════════════════
# EMPIRE CORE — REST API — Message endpoint & diagnostics
# ═══════════════════════════════════════════════════════════════════════════
"""
HTTP surface of one context's kernel.

Endpoints:
    /health              - Health check
    /api/v1/modules      - Loaded modules
    /api/v1/events       - EventBus subscriptions (owner labels)
    /api/v1/messages     - Receive a message from another context

Other contexts talk to this endpoint through HttpChannel.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import FastAPI
from pydantic import BaseModel, Field

from .kernel import Kernel

# ═══════════════════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════

LOG = logging.getLogger("empire.api")

API_PREFIX = "/api/v1"

# ═══════════════════════════════════════════════════════════════════════════
# PYDANTIC MODELS
# ═══════════════════════════════════════════════════════════════════════════

class MessageRequest(BaseModel):
    """Message from another context"""
    type: str = Field(..., min_length=1)
    data: Dict[str, Any] = Field(default_factory=dict)

class MessageResponse(BaseModel):
    """Receiver's answer"""
    response: Optional[Any] = None

class ModuleEntry(BaseModel):
    name: str
    module_name: Optional[str] = None
    enabled: bool = True

class ModulesResponse(BaseModel):
    context: str
    state: str
    modules: List[ModuleEntry]

# ═══════════════════════════════════════════════════════════════════════════
# APP FACTORY
# ═══════════════════════════════════════════════════════════════════════════

def create_app(kernel: Kernel) -> FastAPI:
    """Build the app for ``kernel``; the lifespan starts and stops it."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        LOG.info(f"[API] Starting kernel for '{kernel.context.value}'")
        await kernel.start()
        yield
        LOG.info(f"[API] Stopping kernel for '{kernel.context.value}'")
        await kernel.stop()

    app = FastAPI(
        title="Empire Core",
        description=f"Kernel endpoint for the '{kernel.context.value}' context",
        lifespan=lifespan,
    )
    app.state.kernel = kernel

    @app.get("/health")
    async def health():
        """Health check"""
        return {"status": "ok", "context": kernel.context.value, "ready": kernel.is_ready}

    @app.get(f"{API_PREFIX}/modules", response_model=ModulesResponse)
    async def list_modules():
        """Loaded modules of this context"""
        entries = []
        for name in kernel.loader.module_names():
            instance = kernel.loader.get_module(name)
            entries.append(ModuleEntry(
                name=name,
                module_name=getattr(instance, "name", None),
                enabled=bool(getattr(instance, "is_enabled", True)),
            ))
        return ModulesResponse(
            context=kernel.context.value,
            state=kernel.loader.state.value,
            modules=entries,
        )

    @app.get(f"{API_PREFIX}/events")
    async def list_events() -> Dict[str, List[str]]:
        """Owner labels per event"""
        return kernel.event_bus.get_events()

    @app.post(f"{API_PREFIX}/messages", response_model=MessageResponse)
    async def receive_message(request: MessageRequest):
        """Deliver a message from another context into this kernel"""
        response = await kernel.handle_message({"type": request.type, "data": request.data})
        return MessageResponse(response=response)

    return app
