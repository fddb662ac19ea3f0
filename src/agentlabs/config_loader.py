# src/agentlabs/config_loader.py

from __future__ import annotations
import os
from pathlib import Path
from typing import Any, Dict, Iterator, Mapping, Optional
import yaml

from .core.errors import ConfigurationError

ENV_PREFIX = "AGENTLABS_"
DEFAULT_CONFIG = Path("config/appsettings.yaml")


class ConfigError(ConfigurationError):
    pass


def _flatten(node: Any, prefix: str, out: Dict[str, str]) -> None:
    if isinstance(node, dict):
        for k, v in node.items():
            key = f"{prefix}:{k}" if prefix else str(k)
            _flatten(v, key, out)
    elif isinstance(node, list):
        for i, v in enumerate(node):
            _flatten(v, f"{prefix}:{i}", out)
    elif node is not None:
        if isinstance(node, bool):
            node = "true" if node else "false"
        out[prefix.lower()] = str(node)


def _env_overrides(environ: Mapping[str, str], prefix: str = ENV_PREFIX) -> Dict[str, str]:
    # AGENTLABS_OLLAMA__MODEL=llama3.3:70b  ->  ollama:model
    out: Dict[str, str] = {}
    for name, value in environ.items():
        if not name.upper().startswith(prefix) or value == "":
            continue
        out[name[len(prefix):].replace("__", ":").lower()] = value
    return out


class Settings:
    """
    Read-only view over configuration, addressed by colon-separated key paths
    such as 'AI:Provider' or 'Ollama:Endpoint'. Lookups are case-insensitive.
    """

    def __init__(self, values: Optional[Mapping[str, Any]] = None, source: Optional[Path] = None):
        flat: Dict[str, str] = {}
        for k, v in (values or {}).items():
            if isinstance(v, (dict, list)):
                _flatten(v, str(k), flat)
            elif v is not None:
                flat[str(k).lower()] = str(v)
        self._values = flat
        self.source = source

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], source: Optional[Path] = None) -> "Settings":
        flat: Dict[str, str] = {}
        _flatten(dict(data), "", flat)
        return cls(flat, source=source)

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        val = self._values.get(key.lower())
        if val is None or val.strip() == "":
            return default
        return val.strip()

    def __getitem__(self, key: str) -> Optional[str]:
        return self.get(key)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and self.get(key) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def section(self, name: str) -> Dict[str, str]:
        pre = name.lower() + ":"
        return {k[len(pre):]: v for k, v in self._values.items() if k.startswith(pre)}

    def with_overrides(self, overrides: Mapping[str, Optional[str]]) -> "Settings":
        merged = dict(self._values)
        for k, v in overrides.items():
            if v is not None:
                merged[k.lower()] = str(v)
        return Settings(merged, source=self.source)


def load_settings(path: Optional[Path] = None, environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load YAML or JSON (appsettings.json shape) and overlay AGENTLABS_* env vars.
    A missing file is fatal.
    """
    path = Path(path) if path else DEFAULT_CONFIG
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config is not a mapping: {path}")

    settings = Settings.from_mapping(raw, source=path)
    env = os.environ if environ is None else environ
    return settings.with_overrides(_env_overrides(env))
