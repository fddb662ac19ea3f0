# tests/unit/test_secrets_sources.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

import agentlabs.secrets.sources as src  # type: ignore
from agentlabs.secrets.sources import (  # type: ignore
    SecretsResolver,
    build_secret_sources,
)


def test_method_string_and_list(monkeypatch):
    # exact env var name via mapping
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    r1 = SecretsResolver(method="env", mapping={"openai": {"api_key": "OPENAI_API_KEY"}})
    assert r1.secret("openai") == "sk-env"

    # service name -> derived env var
    r2 = SecretsResolver(method=["env"], mapping={"openai": {"api_key": "openai"}})
    assert r2.secret("openai") == "sk-env"


def test_comma_separated_methods_are_deduplicated():
    sources = build_secret_sources("env, keyring,env")
    assert [type(s).__name__ for s in sources] == ["EnvSource", "SystemKeyringSource"]


def test_unknown_method_raises():
    with pytest.raises(ValueError):
        build_secret_sources("nope")


def test_missing_secret_is_none(monkeypatch):
    monkeypatch.delenv("NOT_SET_ANYWHERE", raising=False)
    r = SecretsResolver(method="env", mapping={"ollama": {"api_key": "NOT_SET_ANYWHERE"}})
    assert r.secret("ollama") is None


def test_keyring_then_env(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")

    class FakeKeyring:
        def get_credential(self, service, _):
            class Cred:
                password = "sk-from-keyring"
            return Cred()
        def get_password(self, *args, **kwargs):
            return None

    monkeypatch.setattr(src, "_keyring", FakeKeyring(), raising=True)

    r = SecretsResolver(method=["keyring", "env"], mapping={"openai": {"api_key": "openai"}})
    assert r.secret("openai") == "sk-from-keyring"

    # Now make keyring miss -> env wins
    class KR2:
        def get_credential(self, *_): return None
        def get_password(self, *_): return None
    monkeypatch.setattr(src, "_keyring", KR2(), raising=True)

    r2 = SecretsResolver(method=["keyring", "env"], mapping={"openai": {"api_key": "openai"}})
    assert r2.secret("openai") == "sk-from-env"


def test_keyring_backend_errors_fall_through(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-from-env")

    class Broken:
        def get_credential(self, *_):
            raise src.KeyringError("no backend")
        def get_password(self, *_):
            raise src.KeyringError("no backend")

    monkeypatch.setattr(src, "_keyring", Broken(), raising=True)
    r = SecretsResolver(method="keyring,env", mapping={"openai": {"api_key": "openai"}})
    assert r.secret("openai") == "sk-from-env"
