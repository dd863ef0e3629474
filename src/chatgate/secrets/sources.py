# src/chatgate/secrets/sources.py

from __future__ import annotations
from typing import Protocol, Optional, Dict, Iterable, List, Union
import os

import keyring as _keyring
from keyring.errors import KeyringError

# Default lookup per provider kind when the YAML mapping says nothing
DEFAULT_MAPPING: Dict[str, Dict[str, str]] = {
    "openai": {"api_key": "OPENAI_API_KEY"},
    "groq": {"api_key": "GROQ_API_KEY"},
    "anthropic": {"api_key": "ANTHROPIC_API_KEY"},
}


class SecretSource(Protocol):
    def get(self, service: str) -> Optional[str]: ...


class EnvSource:
    def get(self, service: str) -> Optional[str]:
        # 1) exact env var name
        val = os.getenv(service)
        if val and val.strip():
            return val.strip()
        # 2) derived names
        for key in (f"{service.upper()}_API_KEY", service.upper()):
            val = os.getenv(key)
            if val and val.strip():
                return val.strip()
        return None


class SystemKeyringSource:
    def get(self, service: str) -> Optional[str]:
        try:
            cred = _keyring.get_credential(service, None)
            if cred and getattr(cred, "password", None):
                return cred.password.strip()
            for account in ("API_KEY", service, "default"):
                val = _keyring.get_password(service, account)
                if val:
                    return val.strip()
        except KeyringError:
            # no usable backend on this machine
            return None
        return None


_ALLOWED_METHODS = {"env", "keyring"}


def _normalise_methods(method: Union[str, Iterable[str]]) -> List[str]:
    if isinstance(method, str):
        methods = [method]
    else:
        methods = list(method)
    norm = []
    for m in methods:
        key = str(m).strip().lower()
        if key not in _ALLOWED_METHODS:
            raise ValueError(f"Unknown secrets method '{m}'. Allowed: {sorted(_ALLOWED_METHODS)}")
        if key not in norm:
            norm.append(key)
    return norm


def build_secret_sources(method: Union[str, Iterable[str]]) -> List[SecretSource]:
    sources: List[SecretSource] = []
    for name in _normalise_methods(method):
        if name == "env":
            sources.append(EnvSource())
        elif name == "keyring":
            sources.append(SystemKeyringSource())
    return sources


class SecretsResolver:
    """
    Resolve provider credentials using one or more methods in order.
    mapping: per-provider map of names -> service/env-key, merged over DEFAULT_MAPPING
      e.g. { "groq": { "api_key": "MY_GROQ_KEY" } }
    """
    def __init__(self, method: Union[str, Iterable[str]] = "env", mapping: Dict[str, Dict[str, str]] | None = None):
        self._sources = build_secret_sources(method)
        self._map: Dict[str, Dict[str, str]] = {k: dict(v) for k, v in DEFAULT_MAPPING.items()}
        for provider, names in (mapping or {}).items():
            self._map.setdefault(provider, {}).update(names or {})

    def secret(self, provider: str, name: str = "api_key") -> Optional[str]:
        service = self._map.get(provider, {}).get(name, provider)
        for src in self._sources:
            val = src.get(service)
            if val:
                return val
        return None

    def configured(self, provider: str) -> bool:
        return bool(self.secret(provider))
