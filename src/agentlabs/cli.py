from __future__ import annotations
from pathlib import Path
from typing import Any, Callable, Optional
import logging

import typer

from .bootstrap import build_agent, load_app_settings, transcripts_dir
from .config_loader import DEFAULT_CONFIG, Settings
from .core.errors import ConfigurationError
from .logging_setup import configure_from_settings
from .resolver import describe as describe_provider

app = typer.Typer(add_completion=False, no_args_is_help=True, help="Agent labs: one chat-client abstraction, many features.")

logger = logging.getLogger(__name__)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(DEFAULT_CONFIG, "--config", "-c", help="YAML/JSON settings file"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Overrides Logging:Level"),
):
    ctx.obj = {"config": config, "log_level": log_level}


def _settings(ctx: typer.Context) -> Settings:
    try:
        settings = load_app_settings(ctx.obj["config"])
        configure_from_settings(settings, log_level=ctx.obj["log_level"])
    except (FileNotFoundError, ConfigurationError) as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(1)
    return settings


def _run_lab(ctx: typer.Context, lab: Callable[..., Any], **kwargs: Any) -> Any:
    settings = _settings(ctx)
    try:
        return lab(settings, **kwargs)
    except ConfigurationError as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(1)


@app.command()
def describe(ctx: typer.Context):
    """Print the active provider and model."""
    typer.echo(describe_provider(_settings(ctx)))


@app.command()
def simple(ctx: typer.Context, prompt: Optional[str] = typer.Option(None, help="Question to ask")):
    """Lab 01: streamed answer from a single agent."""
    from .labs import simple as lab
    _run_lab(ctx, lab.run, **({"prompt": prompt} if prompt else {}))


@app.command()
def images(ctx: typer.Context, url: Optional[str] = typer.Option(None, help="Image URL")):
    """Lab 02: text plus image input."""
    from .labs import images as lab
    _run_lab(ctx, lab.run, image_url=url)


@app.command()
def multiturn(ctx: typer.Context):
    """Lab 03: two turns sharing one thread."""
    from .labs import multiturn as lab
    _run_lab(ctx, lab.run)


@app.command()
def tools(ctx: typer.Context):
    """Lab 04: function calling."""
    from .labs import function_tools as lab
    _run_lab(ctx, lab.run)


@app.command()
def approval(ctx: typer.Context):
    """Lab 05: human approval before a tool runs."""
    from .labs import approval as lab
    _run_lab(ctx, lab.run)


@app.command()
def structured(ctx: typer.Context):
    """Lab 06: pydantic-validated structured output."""
    from .labs import structured as lab
    _run_lab(ctx, lab.run)


@app.command()
def multiagent(ctx: typer.Context):
    """Lab 07: an agent used as another agent's tool."""
    from .labs import multiagent as lab
    _run_lab(ctx, lab.run)


@app.command()
def persist(ctx: typer.Context, path: Optional[Path] = typer.Option(None, help="Where to write the thread snapshot")):
    """Lab 08: save a thread and resume it."""
    from .labs import persistence as lab
    _run_lab(ctx, lab.run, snapshot_path=path)


@app.command()
def observability(ctx: typer.Context, log_file: Optional[str] = typer.Option(None, help="Also write JSON log lines (with trace ids) here")):
    """Lab 09: telemetry spans and metrics."""
    from .labs import observability as lab
    _run_lab(ctx, lab.run, log_file=log_file)


@app.command()
def middleware(ctx: typer.Context):
    """Lab 10: run and function middleware."""
    from .labs import interception as lab
    _run_lab(ctx, lab.run)


@app.command()
def chat(ctx: typer.Context, resume: Optional[str] = typer.Option(None, help="Session id to resume")):
    """Interactive chat with a transcript-backed thread."""
    settings = _settings(ctx)
    try:
        agent = build_agent(settings)
    except ConfigurationError as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(1)

    thread = agent.new_thread(root_dir=transcripts_dir(settings), session_id=resume or settings.get("Storage:Resume"))
    use_stream = settings.get("Runtime:Stream", "true").lower() == "true"

    print(f"Using: {describe_provider(settings)}")
    print("Type /help for commands. Ctrl+C to quit.")
    while True:
        try:
            user_input = input("you> ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if not user_input:
            continue

        if user_input in ("/exit", "/quit"):
            print("Bye.")
            return

        if user_input == "/help":
            print("Commands: /help, /id, /save <path>, /exit, /quit")
            continue

        if user_input == "/id":
            print(thread.id)
            continue

        if user_input.startswith("/save"):
            target = user_input[len("/save"):].strip() or f"{thread.id}.json"
            print(f"Saved to {thread.save(Path(target))}")
            continue

        if use_stream:
            gen = agent.run_stream(user_input, thread)
            try:
                for update in gen:
                    if update.text:
                        print(update.text, end="", flush=True)
                print("")
            except KeyboardInterrupt:
                # Closing persists the partial reply on the thread
                gen.close()
                print("\n[stream interrupted]")
        else:
            print(agent.run(user_input, thread).text)


@app.command()
def serve(
    ctx: typer.Context,
    host: str = typer.Option("127.0.0.1"),
    port: int = typer.Option(8000),
):
    """Expose the configured agent over HTTP."""
    from .web.app import run
    settings = _settings(ctx)
    try:
        run(settings=settings, host=host, port=port)
    except ConfigurationError as e:
        typer.echo(f"[config] {e}", err=True)
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
