from __future__ import annotations
import logging
import threading
from dataclasses import dataclass, field
from importlib import import_module
from typing import Any, Callable, Dict, List, Mapping, Tuple, Type

from chatgate.core.errors import ConfigurationError, ProviderNotFound, UnsupportedProviderKind
from chatgate.core.ports import Provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderConfig:
    kind: str
    model: str
    credential: str = field(repr=False)
    options: Mapping[str, Any] = field(default_factory=dict)


class ProviderRegistry:
    """
    Alias -> live provider mapping.

    Adapter classes register per vendor kind with the ``kind`` decorator;
    instances are built per alias with ``register``. Build happens outside the
    lock and the provider goes in paired with its config in one assignment, so
    readers never see a half-built or mismatched entry.
    """

    _kinds: Dict[str, Type] = {}

    @classmethod
    def kind(cls, name: str) -> Callable[[Type], Type]:
        name = name.lower()
        def deco(klass: Type) -> Type:
            cls._kinds[name] = klass
            return klass
        return deco

    @classmethod
    def adapter_for(cls, kind: str) -> Type:
        key = (kind or "").lower()
        if key not in cls._kinds:
            raise UnsupportedProviderKind(kind)
        return cls._kinds[key]

    @classmethod
    def ensure_imports(cls) -> None:
        """
        Import built-in adapters so their @kind decorators run.
        Call once at bootstrap before register().
        """
        import_module("chatgate.providers.openai_adapter")
        import_module("chatgate.providers.groq_adapter")
        import_module("chatgate.providers.anthropic_adapter")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[Provider, ProviderConfig]] = {}

    def register(self, alias: str, config: ProviderConfig) -> Provider:
        Adapter = self.adapter_for(config.kind)
        if not (config.credential or "").strip():
            raise ConfigurationError(f"API key not found for provider: {config.kind}")

        provider = Adapter.create(config=config)
        with self._lock:
            replaced = alias in self._entries
            self._entries[alias] = (provider, config)
        if replaced:
            logger.info("Re-registered provider %s -> %s/%s", alias, config.kind, config.model)
        return provider

    def unregister(self, alias: str) -> None:
        with self._lock:
            self._entries.pop(alias, None)

    def entry(self, alias: str) -> Tuple[Provider, ProviderConfig]:
        """Provider and the config it was built from, read as one pair."""
        found = self._entries.get(alias)
        if found is None:
            raise ProviderNotFound(alias, self.list_aliases())
        return found

    def resolve(self, alias: str) -> Provider:
        return self.entry(alias)[0]

    def config_for(self, alias: str) -> ProviderConfig:
        return self.entry(alias)[1]

    def list_aliases(self) -> List[str]:
        with self._lock:
            return list(self._entries)

    def __contains__(self, alias: object) -> bool:
        return alias in self._entries

    def __len__(self) -> int:
        return len(self._entries)
