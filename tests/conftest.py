"""
Pytest configuration and shared fixtures for kernel tests.
"""
import pytest

from empire_core import BaseModule, EventBus, MemoryStore, ModuleCatalog, ModuleLoader


# === SAMPLE MODULES ===

class EchoModule(BaseModule):
    """Odpowiada na 'echo' tekstem z prefiksem."""

    async def init(self):
        await super().init()
        self.listen("echo", self.on_echo)

    async def on_echo(self, data):
        return f"{self.get_setting('prefix', '[echo]')} {data.get('msg', '')}"


class BrokenModule(BaseModule):
    """Moduł który zawsze się wywala przy init."""

    async def init(self):
        self.listen("echo", self.on_echo)
        raise RuntimeError("Simulated crash!")

    def on_echo(self, data):
        return "broken"


class RecorderModule(BaseModule):
    """Zapisuje wszystkie payloady 'ping'."""

    async def init(self):
        await super().init()
        self.received = []
        self.listen("ping", self.on_ping)

    def on_ping(self, data):
        self.received.append(data)
        return self.name


class PlainFeature:
    """Not a BaseModule, no init(): still loadable."""

    def __init__(self, event_bus, context, module_loader):
        self.event_bus = event_bus
        self.context = context
        self.module_loader = module_loader


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def catalog():
    catalog = ModuleCatalog()
    catalog.register("echo", EchoModule)
    catalog.register("recorder", RecorderModule)
    return catalog


@pytest.fixture
def loader(bus, catalog, store):
    return ModuleLoader(bus, catalog, store=store)
