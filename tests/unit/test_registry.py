# tests/unit/test_registry.py

from __future__ import annotations
import sys
from pathlib import Path

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.providers.registry import ProviderRegistry  # type: ignore


def test_registry_register_and_get():
    @ProviderRegistry.register("Dummy")
    class DummyClient:
        model = "dummy"

        @classmethod
        def create(cls, config):
            return cls()

    # Case-insensitive lookup
    assert ProviderRegistry.get("dummy") is DummyClient
    assert ProviderRegistry.get("DUMMY") is DummyClient


def test_registry_unknown_raises():
    try:
        ProviderRegistry.get("does-not-exist")
        assert False, "Expected KeyError"
    except KeyError:
        pass


def test_builtins_register_on_import():
    ProviderRegistry.ensure_imports()
    names = ProviderRegistry.names()
    for name in ("openai", "ollama", "ollamaimage", "echo"):
        assert name in names


def test_build_creates_from_config():
    class Config:
        model = "echo-lorem"
        token_delay = 0.0

    client = ProviderRegistry.build("ECHO", Config())
    assert client.model == "echo-lorem"
