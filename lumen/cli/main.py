"""Lumen CLI: run completions and render prompts from the shell.

Usage:

    lumen complete "Tell me a joke" --stream
    lumen complete "Summarize this" --system "Be brief" --model gpt-4o-mini
    lumen render "Hello {{ name }}" --var name=World
    lumen models
    lumen metrics
"""

from __future__ import annotations

import asyncio
import sys
from typing import List, NoReturn, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from lumen.errors import LumenError

app = typer.Typer(
    name="lumen",
    help="Lumen: LLM completions through a middleware pipeline",
    no_args_is_help=True,
)
console = Console()


def _parse_vars(pairs: List[str]) -> dict[str, str]:
    bindings: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"Expected name=value, got {pair!r}", param_hint="--var")
        bindings[name] = value
    return bindings


def _fail(exc: LumenError) -> NoReturn:
    rprint(f"\n[bold red]✗  {escape(str(exc))}[/bold red]\n")
    raise typer.Exit(1)


@app.command()
def complete(
    prompt: str = typer.Argument(..., help="User prompt to complete"),
    system: Optional[str] = typer.Option(None, "--system", "-s", help="System message"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model override"),
    stream: bool = typer.Option(False, "--stream", help="Print chunks as they arrive"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the response cache"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix added to the answer"),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t"),
    max_tokens: Optional[int] = typer.Option(None, "--max-tokens"),
) -> None:
    """Run a completion against the configured provider."""
    # Lazy imports to speed up CLI
    from lumen.config import get_settings
    from lumen.core.engine import Lumen
    from lumen.middleware import CacheMiddleware, LoggingMiddleware, PrefixMiddleware
    from lumen.models.schemas import CompletionOptions, Message
    from lumen.providers import create_provider
    from lumen.services.log_config import configure_logging

    settings = get_settings()
    configure_logging(settings.logging, file=sys.stderr)

    try:
        provider = create_provider(settings)
    except LumenError as exc:
        _fail(exc)

    lumen = Lumen(provider)
    lumen.use(LoggingMiddleware(log_content=settings.logging.log_content))
    if settings.cache.enabled and not no_cache:
        lumen.use(CacheMiddleware.from_settings(settings.cache))
    if prefix:
        lumen.use(PrefixMiddleware(prefix))

    messages = [Message.system(system)] if system else []
    messages.append(Message.user(prompt))
    options = CompletionOptions(
        model=model or provider.default_model,
        temperature=temperature,
        max_tokens=max_tokens,
    )

    async def _run() -> None:
        try:
            if stream:
                async for chunk in lumen.complete_stream_messages(messages, options):
                    console.print(chunk.text, end="", markup=False, highlight=False)
                    if chunk.is_complete:
                        console.print()
            else:
                response = await lumen.complete_messages(messages, options)
                console.print(response.text, markup=False, highlight=False)
                if response.usage is not None:
                    rprint(
                        f"[dim]tokens: {response.usage.prompt_tokens} prompt, "
                        f"{response.usage.completion_tokens} completion[/dim]"
                    )
        finally:
            await provider.close()

    try:
        asyncio.run(_run())
    except LumenError as exc:
        _fail(exc)


@app.command()
def render(
    template: str = typer.Argument(..., help="Template text with {{ name }} placeholders"),
    var: List[str] = typer.Option([], "--var", "-v", help="Binding as name=value (repeatable)"),
) -> None:
    """Render a prompt template."""
    from lumen.templates import PromptTemplate

    try:
        rendered = PromptTemplate(template).format(_parse_vars(var))
    except LumenError as exc:
        _fail(exc)
    console.print(rendered, markup=False, highlight=False)


@app.command()
def models() -> None:
    """List the configured provider's models."""
    from lumen.config import get_settings
    from lumen.providers import create_provider

    try:
        provider = create_provider(get_settings())
    except LumenError as exc:
        _fail(exc)

    table = Table(title=f"{provider.name} models")
    table.add_column("Model", style="cyan")
    table.add_column("Default", style="green")

    for name in provider.available_models:
        table.add_row(name, "✓" if name == provider.default_model else "")

    console.print(table)


@app.command()
def metrics() -> None:
    """Print Prometheus metrics for this process."""
    from lumen.services.metrics import get_metrics_text

    typer.echo(get_metrics_text().decode("utf-8"))


if __name__ == "__main__":
    app()
