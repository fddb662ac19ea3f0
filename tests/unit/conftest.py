# tests/unit/conftest.py

from __future__ import annotations
from pathlib import Path
from textwrap import dedent

import pytest


@pytest.fixture
def echo_config(tmp_path: Path, monkeypatch) -> Path:
    """Settings file selecting the offline echo provider with file-backed transcripts."""
    for name in ("AGENTLABS_AI__PROVIDER", "AGENTLABS_STORAGE__TRANSCRIPTSDIR"):
        monkeypatch.delenv(name, raising=False)
    cfg = tmp_path / "config" / "appsettings.yaml"
    cfg.parent.mkdir(parents=True)
    cfg.write_text(
        dedent(
            f"""
            AI:
              Provider: Echo
            Echo:
              TokenDelay: 0
            Agent:
              Name: Tester
            Storage:
              TranscriptsDir: "{tmp_path / 'sessions'}"
            Runtime:
              Stream: true
            Labs:
              SnapshotPath: "{tmp_path / 'snap.json'}"
            """
        ),
        encoding="utf-8",
    )
    return cfg
