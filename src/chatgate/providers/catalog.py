from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from chatgate.core.errors import ConfigurationError, ProviderNotFound, UnsupportedProviderKind
from chatgate.providers.registry import ProviderConfig, ProviderRegistry

logger = logging.getLogger(__name__)

VENDOR_NAMES = {"openai": "OpenAI", "groq": "Groq", "anthropic": "Anthropic"}


@dataclass(frozen=True)
class CatalogEntry:
    alias: str
    kind: str
    model: str
    display_name: str


DEFAULT_CATALOG: List[CatalogEntry] = [
    CatalogEntry("gpt-4o", "openai", "gpt-4o", "GPT-4o"),
    CatalogEntry("gpt-4o-mini", "openai", "gpt-4o-mini", "GPT-4o Mini"),
    CatalogEntry("gpt-4-turbo", "openai", "gpt-4-turbo", "GPT-4 Turbo"),
    CatalogEntry("llama-8b", "groq", "llama-3.1-8b-instant", "Llama 3.1 8B (Fast & Free)"),
    CatalogEntry("llama-70b", "groq", "llama-3.3-70b-versatile", "Llama 3.3 70B (Powerful)"),
    CatalogEntry("gpt-oss-120b", "groq", "openai/gpt-oss-120b", "GPT-OSS 120B (OpenAI on Groq)"),
    CatalogEntry("gpt-oss-20b", "groq", "openai/gpt-oss-20b", "GPT-OSS 20B (OpenAI on Groq)"),
    CatalogEntry("claude-sonnet", "anthropic", "claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
    CatalogEntry("claude-haiku", "anthropic", "claude-3-haiku-20240307", "Claude 3 Haiku"),
    CatalogEntry("claude-opus", "anthropic", "claude-3-opus-20240229", "Claude 3 Opus"),
]

DEFAULT_RECOMMENDATIONS: Dict[str, str] = {
    "free": "llama-8b",
    "fastest": "llama-8b",
    "most_capable": "llama-70b",
    "reasoning": "claude-sonnet",
}


def parse_catalog(raw: Optional[Iterable[Mapping[str, Any]]]) -> List[CatalogEntry]:
    """Catalog from the YAML 'catalog' list; None means the built-in one."""
    if raw is None:
        return list(DEFAULT_CATALOG)
    entries: List[CatalogEntry] = []
    for item in raw:
        try:
            alias = str(item["alias"])
            kind = str(item["kind"]).lower()
            model = str(item["model"])
        except KeyError as e:
            raise ConfigurationError(f"Catalog entry missing key {e}: {dict(item)}") from e
        entries.append(CatalogEntry(alias, kind, model, str(item.get("display_name") or alias)))
    return entries


def register_catalog(
    registry: ProviderRegistry,
    catalog: Iterable[CatalogEntry],
    credential_for: Callable[[str], Optional[str]],
    options: Optional[Mapping[str, Mapping[str, Any]]] = None,
) -> List[str]:
    """
    Register every catalog entry whose kind has a credential.
    Entries that cannot be built are skipped with a warning; this never raises
    for missing credentials or unknown kinds.
    """
    options = options or {}
    added: List[str] = []
    for entry in catalog:
        config = ProviderConfig(
            kind=entry.kind,
            model=entry.model,
            credential=credential_for(entry.kind) or "",
            options=dict(options.get(entry.kind) or {}),
        )
        try:
            registry.register(entry.alias, config)
        except (ConfigurationError, UnsupportedProviderKind) as e:
            logger.warning("Skipped provider %s: %s", entry.alias, e)
            continue
        logger.info("Added provider: %s (%s/%s)", entry.alias, entry.kind, entry.model)
        added.append(entry.alias)
    return added


def available_models(registry: ProviderRegistry, catalog: Iterable[CatalogEntry]) -> List[Dict[str, str]]:
    """Catalog rows for the aliases currently registered, in registry order."""
    names = {e.alias: e.display_name for e in catalog}
    rows: List[Dict[str, str]] = []
    for alias in registry.list_aliases():
        try:
            kind = registry.config_for(alias).kind
        except ProviderNotFound:
            # unregistered between snapshot and lookup
            continue
        rows.append({
            "id": alias,
            "displayName": names.get(alias, alias),
            "providerName": VENDOR_NAMES.get(kind, kind),
            "status": "available",
        })
    return rows
