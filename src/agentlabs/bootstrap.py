from __future__ import annotations
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

from .agents.agent import ChatClientAgent
from .config_loader import Settings, load_settings
from .resolver import resolve

DEFAULT_INSTRUCTIONS = "You're a helpful AI."


def load_app_settings(config_path: Optional[Path] = None) -> Settings:
    """
    Composition root entry: pull .env into the environment, then read the
    config file with AGENTLABS_* overrides applied.
    """
    load_dotenv()
    return load_settings(config_path)


def transcripts_dir(settings: Settings, repo_root: Optional[Path] = None) -> Optional[Path]:
    """Storage:TranscriptsDir, resolved against the repo root when relative; None keeps threads in memory."""
    raw = settings.get("Storage:TranscriptsDir")
    if not raw:
        return None
    path = Path(raw)
    if path.is_absolute():
        return path
    root = repo_root or (settings.source.resolve().parent if settings.source else Path.cwd())
    return (root / path).resolve()


def build_agent(settings: Settings) -> ChatClientAgent:
    return ChatClientAgent(
        resolve(settings),
        instructions=settings.get("Agent:Instructions", DEFAULT_INSTRUCTIONS),
        name=settings.get("Agent:Name", "Assistant"),
    )
