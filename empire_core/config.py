"""
EMPIRE CORE — CONFIG
Konfiguracja kernela ładowana z YAML.

Example (config/kernel.yaml)::

    features:
      notifications: features.notifications:NotificationsModule
    context_rules:
      notifications: [background, content]
    handler_timeout: null
    settings_path: data/settings.json
    log_level: INFO
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml

from .errors import KernelError
from .module_registry import ModuleCatalog
from .storage import JsonFileStore, MemoryStore, SettingsStore
from .types import ContextPermissionTable

LOG = logging.getLogger("empire.config")

DEFAULT_CONFIG_PATH = Path("config/kernel.yaml")

DEFAULT_CONTEXT_RULES: Dict[str, List[str]] = {
    "keychain-monitor": ["background"],
    "item-targets": ["background"],
    "theme-system": ["content", "popup"],
    "notifications": ["background", "content"],
    "price-filters": ["background"],
}


@dataclass
class KernelConfig:
    """Konfiguracja kernela."""
    features: Dict[str, str] = field(default_factory=dict)
    context_rules: Dict[str, List[str]] = field(default_factory=lambda: dict(DEFAULT_CONTEXT_RULES))
    handler_timeout: Optional[float] = None
    init_timeout: Optional[float] = None
    settings_path: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KernelConfig":
        features = data.get("features") or {}
        if not isinstance(features, dict):
            raise KernelError("'features' must map module names to 'package.module:Attr' paths")

        rules = data.get("context_rules")
        if rules is None:
            rules = dict(DEFAULT_CONTEXT_RULES)
        if not isinstance(rules, dict):
            raise KernelError("'context_rules' must map module names to context lists")

        return cls(
            features={str(k): str(v) for k, v in features.items()},
            context_rules={str(k): _context_names(v, str(k)) for k, v in rules.items()},
            handler_timeout=_optional_float(data.get("handler_timeout"), "handler_timeout"),
            init_timeout=_optional_float(data.get("init_timeout"), "init_timeout"),
            settings_path=data.get("settings_path"),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "features": dict(self.features),
            "context_rules": {k: list(v) for k, v in self.context_rules.items()},
            "handler_timeout": self.handler_timeout,
            "init_timeout": self.init_timeout,
            "settings_path": self.settings_path,
            "log_level": self.log_level,
        }

    # --- Budowanie komponentów ---

    def permissions(self) -> ContextPermissionTable:
        """Context permission table. Unknown context names raise ValueError."""
        return ContextPermissionTable.from_mapping(self.context_rules)

    def build_catalog(self, catalog: Optional[ModuleCatalog] = None) -> ModuleCatalog:
        catalog = catalog if catalog is not None else ModuleCatalog()
        for name, import_path in self.features.items():
            if name not in catalog:
                catalog.register_path(name, import_path)
        return catalog

    def build_store(self) -> SettingsStore:
        if self.settings_path:
            return JsonFileStore(self.settings_path)
        return MemoryStore()


def _context_names(value: Any, module: str) -> List[str]:
    """`echo: background` is shorthand for `echo: [background]`."""
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise KernelError(f"Context rule for '{module}' must be a list of context names, got {value!r}")
    return [str(v) for v in value]


def _optional_float(value: Any, key: str) -> Optional[float]:
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise KernelError(f"'{key}' must be a number of seconds, got {value!r}") from None
    if value <= 0:
        raise KernelError(f"'{key}' must be positive, got {value}")
    return value


def load_config(path: Union[str, Path, None] = None) -> KernelConfig:
    """Ładuje konfigurację. Brak pliku = domyślna konfiguracja."""
    config_file = Path(path) if path else DEFAULT_CONFIG_PATH
    if not config_file.exists():
        LOG.info(f"[Config] {config_file} not found, using defaults")
        return KernelConfig()

    try:
        data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise KernelError(f"Invalid YAML in {config_file}: {e}") from e

    if not isinstance(data, dict):
        raise KernelError(f"{config_file} must contain a mapping")

    LOG.debug(f"[Config] Loaded {config_file}")
    return KernelConfig.from_dict(data)
