# src/agentlabs/resolver.py
"""
Provider resolution: turn Settings into exactly one chat client.

    settings = load_settings(Path("config/appsettings.yaml"))
    client = resolve(settings)       # OpenAIChatClient | OllamaChatClient | EchoChatClient
    print(describe(settings))        # "Ollama (llama3.3:70b)"

Nothing here touches the network; clients connect lazily on first request.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union
from urllib.parse import urlparse

from .config_loader import Settings
from .core.errors import ConfigurationError, UnsupportedProviderError
from .core.ports import ChatClient
from .providers.registry import ProviderRegistry
from .secrets.sources import SecretsResolver

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "OpenAI"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_ECHO_MODEL = "echo-lorem"


class ProviderKind(str, Enum):
    OPENAI = "openai"
    OLLAMA = "ollama"
    OLLAMA_IMAGE = "ollamaimage"
    ECHO = "echo"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @property
    def section(self) -> str:
        # Settings section holding this provider's keys
        return _LABELS[self]

    @classmethod
    def parse(cls, value: Optional[str]) -> "ProviderKind":
        raw = (value or DEFAULT_PROVIDER).strip()
        try:
            return cls(raw.lower())
        except ValueError:
            raise UnsupportedProviderError(raw, [_LABELS[k] for k in cls]) from None


_LABELS = {
    ProviderKind.OPENAI: "OpenAI",
    ProviderKind.OLLAMA: "Ollama",
    ProviderKind.OLLAMA_IMAGE: "OllamaImage",
    ProviderKind.ECHO: "Echo",
}


@dataclass(frozen=True)
class OpenAIConfig:
    api_key: str
    model: str = DEFAULT_OPENAI_MODEL
    base_url: Optional[str] = None
    organization: Optional[str] = None
    kind: ProviderKind = ProviderKind.OPENAI


@dataclass(frozen=True)
class OllamaConfig:
    endpoint: str
    model: str
    kind: ProviderKind = ProviderKind.OLLAMA


@dataclass(frozen=True)
class EchoConfig:
    model: str = DEFAULT_ECHO_MODEL
    token_delay: float = 0.0
    kind: ProviderKind = ProviderKind.ECHO


ProviderConfig = Union[OpenAIConfig, OllamaConfig, EchoConfig]


def is_absolute_uri(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


def _secrets_resolver(settings: Settings) -> SecretsResolver:
    mapping = {}
    for key, service in settings.section("Secrets:Mapping").items():
        provider, _, name = key.partition(":")
        if name:
            mapping.setdefault(provider, {})[name] = service
    return SecretsResolver(method=settings.get("Secrets:Method", "env"), mapping=mapping)


def _openai_config(settings: Settings) -> OpenAIConfig:
    api_key = settings.get("OpenAI:ApiKey") or _secrets_resolver(settings).secret("openai", "api_key")
    if not api_key:
        raise ConfigurationError.from_errors(["OpenAI:ApiKey not found in configuration"])
    return OpenAIConfig(
        api_key=api_key,
        model=settings.get("OpenAI:Model", DEFAULT_OPENAI_MODEL),
        base_url=settings.get("OpenAI:BaseUrl"),
        organization=settings.get("OpenAI:Organization"),
    )


def _ollama_config(settings: Settings, kind: ProviderKind) -> OllamaConfig:
    section = kind.section
    endpoint = settings.get(f"{section}:Endpoint")
    model = settings.get(f"{section}:Model")

    errors: List[str] = []
    if endpoint is None:
        errors.append(f"{section}:Endpoint not found in configuration")
    elif not is_absolute_uri(endpoint):
        errors.append(f"Invalid {section} endpoint URI: {endpoint}")
    if model is None:
        errors.append(f"{section}:Model not found in configuration")
    if errors:
        raise ConfigurationError.from_errors(errors)
    return OllamaConfig(endpoint=endpoint, model=model, kind=kind)


def _echo_config(settings: Settings) -> EchoConfig:
    delay = settings.get("Echo:TokenDelay", "0")
    try:
        token_delay = float(delay)
    except ValueError:
        raise ConfigurationError.from_errors([f"'Echo:TokenDelay' must be a number, got {delay!r}"]) from None
    return EchoConfig(model=settings.get("Echo:Model", DEFAULT_ECHO_MODEL), token_delay=token_delay)


def load_provider_config(settings: Settings) -> ProviderConfig:
    """Validate the active provider's settings into a typed config (or raise ConfigurationError)."""
    kind = ProviderKind.parse(settings.get("AI:Provider"))
    if kind is ProviderKind.OPENAI:
        return _openai_config(settings)
    if kind in (ProviderKind.OLLAMA, ProviderKind.OLLAMA_IMAGE):
        return _ollama_config(settings, kind)
    return _echo_config(settings)


def resolve(settings: Settings) -> ChatClient:
    config = load_provider_config(settings)
    client = ProviderRegistry.build(config.kind.value, config)
    logger.info("resolved provider %s with model %s", config.kind.label, config.model)
    return client


def describe(settings: Settings) -> str:
    """Human-readable 'Provider (model)' label; never raises."""
    raw = (settings.get("AI:Provider") or DEFAULT_PROVIDER).strip()
    try:
        kind = ProviderKind.parse(raw)
    except UnsupportedProviderError:
        return f"{raw} (unsupported)"

    if kind is ProviderKind.OPENAI:
        model = settings.get("OpenAI:Model", DEFAULT_OPENAI_MODEL)
    elif kind is ProviderKind.ECHO:
        model = settings.get("Echo:Model", DEFAULT_ECHO_MODEL)
    else:
        model = settings.get(f"{kind.section}:Model", "model not set")
    return f"{kind.label} ({model})"
