# src/chatgate/config_loader.py

from __future__ import annotations
from pathlib import Path
from typing import Any, Dict
import yaml

from chatgate.core.errors import ConfigurationError


class ConfigError(ConfigurationError):
    pass


def _require(d: Dict[str, Any], dotted: str, typ: type) -> Any:
    cur: Any = d
    for k in dotted.split("."):
        if not isinstance(cur, dict) or k not in cur:
            raise ConfigError(f"Missing config key: {dotted}")
        cur = cur[k]
    if typ is bool and not isinstance(cur, bool):
        raise ConfigError(f"'{dotted}' must be a boolean")
    if typ is str and not isinstance(cur, str):
        raise ConfigError(f"'{dotted}' must be a string")
    if typ is float and (isinstance(cur, bool) or not isinstance(cur, (int, float))):
        raise ConfigError(f"'{dotted}' must be a number")
    return cur


def _optional_section(raw: Dict[str, Any], key: str, typ: type) -> None:
    val = raw.get(key)
    if val is not None and not isinstance(val, typ):
        raise ConfigError(f"'{key}' must be a {'mapping' if typ is dict else 'list'}")


def load_config(path: Path) -> Dict[str, Any]:
    if not path or not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    raw = yaml.safe_load(path.read_text())
    if not isinstance(raw, dict) or not raw:
        raise ConfigError(f"Config is empty or invalid YAML: {path}")

    # Validate required keys (no defaults here)
    _require(raw, "storage.backend", str)            # 'file' or 'none'
    _require(raw, "storage.conversations_dir", str)  # path string
    delay = _require(raw, "runtime.word_delay", float)
    if delay < 0:
        raise ConfigError("'runtime.word_delay' must be >= 0")

    for key in ("gateway", "providers", "recommendations", "secrets", "logging"):
        _optional_section(raw, key, dict)
    _optional_section(raw, "catalog", list)

    default_model = (raw.get("gateway") or {}).get("default_model")
    if default_model is not None and not isinstance(default_model, str):
        raise ConfigError("'gateway.default_model' must be a string")

    # Normalise enumerations
    backend = str(raw["storage"]["backend"]).lower()
    if backend not in ("file", "memory", "none"):
        raise ConfigError(f"Unknown storage.backend '{backend}' (expected 'file', 'memory' or 'none').")
    raw["storage"]["backend"] = backend
    raw["providers"] = {str(k).lower(): (v or {}) for k, v in (raw.get("providers") or {}).items()}

    # Leave paths as provided; resolve them later in bootstrap
    return raw
