from __future__ import annotations
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .config_loader import load_config
from .core.gateway import ChatGateway
from .providers.catalog import (
    DEFAULT_RECOMMENDATIONS,
    VENDOR_NAMES,
    CatalogEntry,
    parse_catalog,
    register_catalog,
)
from .providers.registry import ProviderRegistry
from .secrets.sources import SecretsResolver
from .storage.conversations import ConversationStore

logger = logging.getLogger(__name__)

FALLBACK_SYSTEM_PROMPT = "You are a helpful assistant. Provide clear, concise, and helpful responses."


@dataclass
class AppContext:
    """Everything a request handler needs; built once per process."""
    registry: ProviderRegistry
    gateway: ChatGateway
    catalog: List[CatalogEntry]
    provider_status: Dict[str, bool]
    store: Optional[ConversationStore] = None
    recommendations: Dict[str, str] = field(default_factory=dict)
    cfg: Dict[str, Any] = field(default_factory=dict)


def _system_prompt(cfg: Dict[str, Any]) -> Optional[str]:
    gateway_cfg = cfg.get("gateway") or {}
    if "system_prompt" in gateway_cfg:
        # explicit null disables the default prompt
        return gateway_cfg["system_prompt"] or None
    sys_prompt_path = Path(__file__).resolve().parent / "prompts" / "system.txt"
    if sys_prompt_path.exists():
        return sys_prompt_path.read_text(encoding="utf-8").strip()
    return FALLBACK_SYSTEM_PROMPT


def build_store(cfg: Dict[str, Any], repo_root: Path) -> Optional[ConversationStore]:
    backend = cfg["storage"]["backend"]
    if backend == "none":
        return None
    if backend == "memory":
        return ConversationStore(root_dir=None)
    cdir = Path(cfg["storage"]["conversations_dir"])
    return ConversationStore(root_dir=cdir if cdir.is_absolute() else (repo_root / cdir).resolve())


def build_context(config_path: Path, repo_root: Optional[Path] = None) -> AppContext:
    """
    Composition root: load .env and YAML, register every catalog alias that
    has a credential, and open the conversation store.
    """
    load_dotenv()
    config_path = Path(config_path)
    cfg = load_config(config_path)
    repo_root = repo_root or Path(__file__).resolve().parents[2]

    # ----- Secrets -----
    secrets_cfg = cfg.get("secrets") or {}
    resolver = SecretsResolver(method=secrets_cfg.get("method", "env"), mapping=secrets_cfg.get("mapping") or {})
    provider_status = {kind: resolver.configured(kind) for kind in VENDOR_NAMES}

    # ----- Providers -----
    ProviderRegistry.ensure_imports()
    registry = ProviderRegistry()
    catalog = parse_catalog(cfg.get("catalog"))
    added = register_catalog(registry, catalog, resolver.secret, options=cfg.get("providers") or {})
    if not added:
        logger.warning("No providers registered; set at least one of %s",
                       ", ".join(f"{k.upper()}_API_KEY" for k in VENDOR_NAMES))

    default_model = (cfg.get("gateway") or {}).get("default_model")
    if default_model and default_model not in registry:
        logger.warning("Default model '%s' is not registered; using first available alias", default_model)

    # ----- Storage -----
    store = build_store(cfg, repo_root)
    provider_status["storage"] = store is not None

    gateway = ChatGateway(
        registry,
        store,
        default_model=default_model,
        system_prompt=_system_prompt(cfg),
        word_delay=float(cfg["runtime"]["word_delay"]),
    )

    recommendations = dict(cfg.get("recommendations") or DEFAULT_RECOMMENDATIONS)
    return AppContext(
        registry=registry,
        gateway=gateway,
        catalog=catalog,
        provider_status=provider_status,
        store=store,
        recommendations=recommendations,
        cfg=cfg,
    )
