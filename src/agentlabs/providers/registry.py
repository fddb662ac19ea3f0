# src/agentlabs/providers/registry.py
from __future__ import annotations
from typing import Any, Callable, Dict, List, Type
from importlib import import_module

_BUILTINS = (
    "agentlabs.providers.openai_adapter",
    "agentlabs.providers.ollama_adapter",
    "agentlabs.providers.echo",
)


class ProviderRegistry:
    """Chat-client classes keyed by lower-cased provider name."""

    _classes: Dict[str, Type] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[Type], Type]:
        key = name.lower()

        def deco(klass: Type) -> Type:
            cls._classes[key] = klass
            return klass
        return deco

    @classmethod
    def get(cls, name: str) -> Type:
        try:
            return cls._classes[name.lower()]
        except KeyError:
            raise KeyError(f"Provider '{name}' not registered") from None

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._classes)

    @classmethod
    def ensure_imports(cls) -> None:
        """Import the built-in chat clients so their @register decorators run."""
        for module in _BUILTINS:
            import_module(module)

    @classmethod
    def build(cls, name: str, config: Any) -> Any:
        cls.ensure_imports()
        return cls.get(name).create(config)
