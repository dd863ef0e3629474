# tests/unit/test_config_loader.py

from __future__ import annotations
from pathlib import Path
from textwrap import dedent

import pytest

import fakes  # noqa: F401

from chatgate.config_loader import load_config, ConfigError
from chatgate.core.errors import ConfigurationError


def write_yaml(p: Path, text: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(dedent(text).lstrip("\n").rstrip() + "\n", encoding="utf-8")
    return p


def test_load_config_ok(tmp_path: Path):
    cfg = write_yaml(
        tmp_path / "config" / "default.yaml",
        """
        gateway: { default_model: llama-8b }
        storage: { backend: FILE, conversations_dir: conversations }
        runtime: { word_delay: 0 }
        providers: { Anthropic: { max_tokens: 512 } }
        """,
    )
    data = load_config(cfg)
    assert data["storage"]["backend"] == "file"    # normalised
    assert data["providers"] == {"anthropic": {"max_tokens": 512}}
    # loader leaves paths as provided (bootstrap resolves them)
    assert data["storage"]["conversations_dir"] == "conversations"


def test_load_config_missing_key(tmp_path: Path):
    cfg = write_yaml(
        tmp_path / "config" / "default.yaml",
        """
        storage: { backend: file }          # missing conversations_dir
        runtime: { word_delay: 0.03 }
        """,
    )
    with pytest.raises(ConfigError):
        load_config(cfg)


def test_load_config_type_error(tmp_path: Path):
    cfg = write_yaml(
        tmp_path / "config" / "default.yaml",
        """
        storage: { backend: file, conversations_dir: c }
        runtime: { word_delay: "fast" }   # wrong type
        """,
    )
    with pytest.raises(ConfigError):
        load_config(cfg)


def test_unknown_backend_and_bad_catalog(tmp_path: Path):
    cfg = write_yaml(
        tmp_path / "a.yaml",
        """
        storage: { backend: postgres, conversations_dir: c }
        runtime: { word_delay: 0 }
        """,
    )
    with pytest.raises(ConfigError):
        load_config(cfg)

    cfg = write_yaml(
        tmp_path / "b.yaml",
        """
        storage: { backend: none, conversations_dir: c }
        runtime: { word_delay: 0 }
        catalog: { alias: nope }
        """,
    )
    # ConfigError is a ConfigurationError
    with pytest.raises(ConfigurationError):
        load_config(cfg)


def test_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")
