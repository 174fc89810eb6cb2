"""Click CLI — loads config, builds the assistant, answers and audits a question."""

import asyncio
import logging
import sys
import uuid

import click
from dotenv import load_dotenv
from rich.logging import RichHandler
from rich.markup import escape
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from config.config_loader import AppConfig, load_config
from aegis.assistant import Assistant, build_all_backends, build_assistant
from aegis.backends.base import ModelBackend
from aegis.errors import ConfigurationError
from aegis.healthcheck import run_health_checks
from aegis.models import ConversationMessage, Done, ModelResponse, ProgressEvent, Token
from aegis.output import console, format_progress, print_answer, print_report, print_sources

logger = logging.getLogger(__name__)


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )


def _load_config_or_exit() -> AppConfig:
    try:
        return load_config()
    except (FileNotFoundError, ConfigurationError) as exc:
        console.print(f"[bold red]Config error:[/bold red] {escape(str(exc))}")
        sys.exit(1)


async def _stream_answer(assistant: Assistant, question: str) -> ModelResponse:
    """Print fragments as they arrive; a replacing Done reprints the whole answer."""
    shown_partial = False
    async for event in assistant.answer_stream(question):
        if isinstance(event, Token):
            console.print(event.text, end="", markup=False, highlight=False)
            shown_partial = True
        elif isinstance(event, Done):
            if event.replaces_partial or not shown_partial:
                if shown_partial:
                    console.print("\n[yellow]Stream interrupted; showing the consensus answer instead.[/yellow]")
                print_answer(event.response)
            else:
                console.print()
                print_sources(event.response)
            return event.response
    raise click.ClickException("Answer stream ended without a result")


async def _run_ask(config: AppConfig, question: str, stream: bool, audit: bool) -> None:
    assistant = build_assistant(config)
    try:
        if assistant.is_demo:
            console.print("[yellow]Demo mode:[/yellow] consensus backends are not configured.")

        if stream:
            response = await _stream_answer(assistant, question)
        else:
            with console.status("Querying backends..."):
                response = await assistant.answer(question)
            print_answer(response)

        if not audit:
            return

        history = [
            ConversationMessage(id=uuid.uuid4().hex[:7], role="user", content=question),
            ConversationMessage(
                id=uuid.uuid4().hex[:7],
                role="assistant",
                content=response.content,
                backend=response.backend,
                sources=response.sources,
            ),
        ]
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            TimeElapsedColumn(),
            console=console,
            transient=True,
        ) as progress:
            audit_task = progress.add_task("Running risk audit...", total=None)

            def on_progress(event: ProgressEvent) -> None:
                progress.update(audit_task, description=format_progress(event))

            report = await assistant.audit(response.content, history, on_progress)
        print_report(report)
    finally:
        await assistant.aclose()


async def _run_check(backends: dict[str, ModelBackend]) -> dict[str, tuple[bool, str]]:
    try:
        return await run_health_checks(backends)
    finally:
        for backend in backends.values():
            await backend.aclose()


@click.group()
@click.option("--verbose", is_flag=True, help="Enable DEBUG-level logging")
def main(verbose: bool) -> None:
    """Aegis Veritas -- multi-model consensus answers with a risk audit.

    \b
    Examples:
      aegis ask "What is the boiling point of water at altitude?"
      aegis ask "Summarize the causes of inflation" --stream
      aegis ask "What is 2+2?" --no-audit
      aegis check
    """
    load_dotenv()
    _setup_logging(verbose)


@main.command()
@click.argument("question")
@click.option("--stream", is_flag=True, help="Stream the primary backend's answer as it is generated")
@click.option("--no-audit", "skip_audit", is_flag=True, help="Skip the risk audit of the answer")
def ask(question: str, stream: bool, skip_audit: bool) -> None:
    """Answer QUESTION by multi-model consensus, then audit the answer."""
    config = _load_config_or_exit()
    asyncio.run(_run_ask(config, question, stream=stream, audit=not skip_audit))


@main.command()
def check() -> None:
    """Ping every backend that has credentials."""
    config = _load_config_or_exit()
    backends = build_all_backends(config)
    if not backends:
        console.print("[bold red]Error:[/bold red] No backends available. Check API keys in .env.")
        sys.exit(1)

    console.print("\n[bold]Checking backends...[/bold]")
    results: dict[str, tuple[bool, str]] = asyncio.run(_run_check(backends))

    failed = 0
    for name in sorted(results):
        ok, err = results[name]
        if ok:
            console.print(f"  [green]OK  [/green] {name}")
        else:
            short_err = err.splitlines()[0][:120] if err else "unknown error"
            console.print(f"  [red]FAIL[/red] {name}: {escape(short_err)}")
            failed += 1

    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
