# tests/unit/test_bootstrap.py

from __future__ import annotations
import sys
from pathlib import Path

# Ensure "src" is importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from agentlabs.bootstrap import DEFAULT_INSTRUCTIONS, build_agent, load_app_settings, transcripts_dir  # type: ignore
from agentlabs.config_loader import Settings  # type: ignore
from agentlabs.providers.echo import EchoChatClient  # type: ignore


def test_build_agent_echo(echo_config: Path, tmp_path: Path):
    settings = load_app_settings(echo_config)
    agent = build_agent(settings)

    assert isinstance(agent.chat_client, EchoChatClient)
    assert agent.name == "Tester"
    assert agent.instructions == DEFAULT_INSTRUCTIONS
    assert transcripts_dir(settings) == tmp_path / "sessions"


def test_relative_transcripts_dir_follows_config_file(tmp_path: Path):
    cfg = tmp_path / "config" / "appsettings.yaml"
    cfg.parent.mkdir(parents=True)
    cfg.write_text("Storage: { TranscriptsDir: ../sessions }\n", encoding="utf-8")
    settings = load_app_settings(cfg)
    assert transcripts_dir(settings) == (tmp_path / "sessions").resolve()
    assert transcripts_dir(settings, repo_root=tmp_path / "a" / "b") == (tmp_path / "a" / "sessions").resolve()


def test_no_transcripts_dir_keeps_threads_in_memory():
    assert transcripts_dir(Settings.from_mapping({})) is None
