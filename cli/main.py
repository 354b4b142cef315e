#!/usr/bin/env python3
"""
chatgate CLI - chat with any configured LLM provider from the terminal

Features:
- Named models from a YAML settings file (config/settings.yaml)
- Streaming or blocking replies through one canonical interface
- Image attachments
- Ctrl-C stops a running reply
"""

import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

import typer
from rich.console import Console
from rich.table import Table

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from chatgate import __version__
from chatgate.entities import (
    SUPPORTED_PROVIDERS,
    ContentPart,
    GenericOptions,
    Message,
    Providers,
    Role,
)
from chatgate.models import resolve_client
from chatgate.services import CallbackSink, ChatEvent, ChatEventKind, StopSignalBus
from chatgate.services.chat_controller import ChatController, ChatRequest, ChatState
from chatgate.utils.config_loader import get_settings_loader
from chatgate.utils.content_cache import FileContentCache
from chatgate.utils.exceptions import ChatGatewayError
from chatgate.utils.logger import setup_logger

app = typer.Typer(help="chatgate - one chat interface for OpenAI, Claude, Ollama, Gemini and more")
console = Console()
err_console = Console(stderr=True)

STOP_SCOPE = "cli"


def load_env():
    """Load environment variables from config/.env"""
    env_path = Path(__file__).parent.parent / "config" / ".env"
    if env_path.exists():
        load_dotenv(env_path)


def merge_options(options: GenericOptions, **overrides) -> GenericOptions:
    """Overlay CLI flags on the stored options JSON."""
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if not overrides:
        return options
    try:
        data = json.loads(options.options or "{}")
    except ValueError:
        # Leave malformed options alone so the client reports them
        return options
    if not isinstance(data, dict):
        return options
    data.update(overrides)
    return GenericOptions(provider=options.provider, options=json.dumps(data, ensure_ascii=False))


def build_messages(
    prompt: str,
    system: Optional[str],
    images: List[Path],
    provider: Providers,
) -> List[Message]:
    messages: List[Message] = []
    # Claude takes the system prompt as an option, not a message
    if system and provider != Providers.CLAUDE:
        messages.append(Message.system(system))

    content = [ContentPart.text(prompt)]
    for image in images:
        content.append(ContentPart.image(str(image.resolve())))
    messages.append(Message(role=Role.USER, content=content))
    return messages


def print_event(event: ChatEvent):
    if event.kind == ChatEventKind.DATA:
        console.print(event.text, end="", markup=False, highlight=False, soft_wrap=True)
    elif event.kind == ChatEventKind.STOPPED:
        console.print("\n[yellow]![/yellow] Stopped")
    elif event.kind == ChatEventKind.ERROR:
        console.print(f"\n[bold red]✗ {event.text}[/bold red]")
    elif event.kind == ChatEventKind.DONE:
        console.print()


@app.command()
def chat(
    model: str = typer.Argument(..., help="Model name from the settings file"),
    prompt: str = typer.Option(..., "--prompt", "-p", help="User message"),
    system: Optional[str] = typer.Option(None, "--system", "-s", help="System prompt"),
    image: List[Path] = typer.Option([], "--image", "-i", help="Image to attach (repeatable)"),
    stream: Optional[bool] = typer.Option(None, "--stream/--no-stream", help="Override the model's stream option"),
    settings: Optional[Path] = typer.Option(None, "--settings", help="Settings YAML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """
    Send one prompt to a configured model and print the reply.

    Examples:
        chatgate chat gpt --prompt "Hello"

        chatgate chat claude -p "Describe this" --image photo.jpg --stream
    """
    load_env()
    setup_logger(level=logging.DEBUG if verbose else logging.WARNING, log_dir="logs" if verbose else None)

    try:
        loader = get_settings_loader(settings)
        entry = loader.get_model(model)
        provider = Providers.parse(entry.config.provider)

        for path in image:
            if not path.exists():
                console.print(f"[bold red]✗ Image not found: {path}[/bold red]")
                raise typer.Exit(code=1)

        claude_system = system if provider == Providers.CLAUDE else None
        request = ChatRequest(
            messages=build_messages(prompt, system, image, provider),
            config=entry.config,
            options=merge_options(entry.options, stream=stream, system=claude_system),
            settings=loader.get_global_settings(),
            proxy=loader.get_proxy(),
            content_cache=FileContentCache(Path.cwd()),
        )
    except ChatGatewayError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)

    if verbose:
        err_console.print(f"[green]✓[/green] Using model [cyan]{model}[/cyan] ({provider.value})")

    bus = StopSignalBus()
    controller = ChatController(CallbackSink(print_event), bus, scope=STOP_SCOPE)
    controller.start(request)

    outcome = controller.outcome()
    while outcome.state == ChatState.RUNNING:
        try:
            outcome = controller.wait(timeout=0.2)
        except KeyboardInterrupt:
            bus.emit_stop(STOP_SCOPE)
            outcome = controller.wait(timeout=5)

    if verbose and outcome.reply.has_usage:
        reply = outcome.reply
        err_console.print(
            f"[dim]tokens: prompt={reply.prompt_tokens} "
            f"completion={reply.completion_tokens} total={reply.total_tokens}[/dim]"
        )

    if outcome.state == ChatState.FAILED:
        if verbose and outcome.error is not None:
            import traceback
            err_console.print("".join(traceback.format_exception(
                type(outcome.error), outcome.error, outcome.error.__traceback__
            )))
        raise typer.Exit(code=1)


@app.command()
def models(
    model: str = typer.Argument(..., help="Model name from the settings file"),
    settings: Optional[Path] = typer.Option(None, "--settings", help="Settings YAML file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose output"),
):
    """List the models advertised by a configured provider."""
    load_env()
    setup_logger(level=logging.DEBUG if verbose else logging.WARNING, log_dir=None)

    try:
        loader = get_settings_loader(settings)
        entry = loader.get_model(model)
        with resolve_client(entry.config, loader.get_proxy()) as client:
            remote_models = client.list_models()
    except ChatGatewayError as e:
        console.print(f"[bold red]✗ {e}[/bold red]")
        raise typer.Exit(code=1)

    table = Table(title=f"{entry.config.provider} models")
    table.add_column("Model ID", style="cyan")
    for remote in remote_models:
        table.add_row(remote.id)
    console.print(table)


@app.command()
def providers():
    """Show the supported provider identifiers."""
    for provider in SUPPORTED_PROVIDERS:
        console.print(f"  • {provider.value}")


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold cyan]chatgate[/bold cyan] v{__version__}")


if __name__ == "__main__":
    app()
