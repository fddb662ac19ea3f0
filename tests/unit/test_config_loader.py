# tests/unit/test_config_loader.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest
from textwrap import dedent

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.config_loader import ConfigError, Settings, load_settings  # type: ignore


def write_file(p: Path, text: str) -> Path:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(dedent(text).lstrip("\n").rstrip() + "\n", encoding="utf-8")
    return p


def test_load_yaml_key_paths(tmp_path: Path):
    cfg = write_file(
        tmp_path / "config" / "appsettings.yaml",
        """
        AI: { Provider: Ollama }
        Ollama: { Endpoint: "http://localhost:11434", Model: "llama3.3:70b" }
        Runtime: { Stream: true }
        """,
    )
    s = load_settings(cfg, environ={})
    assert s.get("AI:Provider") == "Ollama"
    assert s.get("Ollama:Model") == "llama3.3:70b"
    assert s.get("Runtime:Stream") == "true"
    assert s.source == cfg


def test_load_appsettings_json(tmp_path: Path):
    cfg = write_file(
        tmp_path / "appsettings.json",
        """
        {"AI": {"Provider": "OpenAI"}, "OpenAI": {"ApiKey": "sk-test", "Model": "gpt-4o"}}
        """,
    )
    s = load_settings(cfg, environ={})
    assert s["OpenAI:ApiKey"] == "sk-test"
    assert s["OpenAI:Model"] == "gpt-4o"


def test_lookups_are_case_insensitive():
    s = Settings.from_mapping({"OpenAI": {"Model": "gpt-4o-mini"}})
    assert s.get("openai:model") == "gpt-4o-mini"
    assert s.get("OPENAI:MODEL") == "gpt-4o-mini"
    assert "OpenAI:Model" in s
    assert s.get("OpenAI:ApiKey") is None


def test_blank_and_null_values_read_as_missing():
    s = Settings.from_mapping({"OpenAI": {"ApiKey": None, "Model": "  "}})
    assert s.get("OpenAI:ApiKey") is None
    assert s.get("OpenAI:Model", "fallback") == "fallback"


def test_env_overrides_file(tmp_path: Path):
    cfg = write_file(tmp_path / "appsettings.yaml", "AI: { Provider: OpenAI }")
    s = load_settings(cfg, environ={"AGENTLABS_AI__PROVIDER": "Ollama", "AGENTLABS_OLLAMA__MODEL": "phi3", "OTHER": "x"})
    assert s.get("AI:Provider") == "Ollama"
    assert s.get("Ollama:Model") == "phi3"
    assert s.get("other") is None


def test_missing_file_is_fatal(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_settings(tmp_path / "nope.yaml", environ={})


def test_non_mapping_is_rejected(tmp_path: Path):
    cfg = write_file(tmp_path / "appsettings.yaml", "- just\n- a list")
    with pytest.raises(ConfigError):
        load_settings(cfg, environ={})


def test_section_lists_children():
    s = Settings.from_mapping({"Secrets": {"Mapping": {"openai": {"api_key": "MY_KEY"}}}})
    assert s.section("Secrets:Mapping") == {"openai:api_key": "MY_KEY"}
