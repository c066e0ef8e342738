import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape

from reddidna.client import PersonaServiceClient
from reddidna.config import Settings
from reddidna.formatter import format_loading, format_report
from reddidna.orchestrator import AcquisitionOrchestrator, Failed, Pending, State

load_dotenv()
app = typer.Typer()
console = Console()


def _notify(message: str) -> None:
    console.print(f"[bold red]{escape(message)}[/]")


async def _run(
    settings: Settings,
    user: str,
    *,
    output: Optional[Path],
    output_dir: Path,
    download: bool,
    sources: bool,
) -> int:
    async with PersonaServiceClient(settings) as client, \
            AcquisitionOrchestrator(client, settings, notify=_notify) as orchestrator:
        identity = orchestrator.submit(user)
        if identity is None:
            console.print(f"[bold red]Error:[/] {escape(orchestrator.validation_error or '')}")
            return 1

        with console.status("[bold green]Contacting persona service...") as status:
            def _show(state: State) -> None:
                if isinstance(state, Pending):
                    status.update(f"[bold orange3]{escape(format_loading(state.identity, state.frame))}")

            unsubscribe = orchestrator.subscribe(_show)
            _show(orchestrator.state)
            state = await orchestrator.wait()
            unsubscribe()

        if isinstance(state, Failed):
            console.print("[bold red]Generation Failed[/]")
            console.print(escape(state.message))
            console.print("[dim]Run the command again to retry.[/]")
            return 1
        if orchestrator.report is None:
            console.print("[dim]No persona data could be generated.[/]")
            return 1

        md = format_report(identity, orchestrator.report, show_sources=sources)
        if output:
            output.write_text(md)
            console.print(f"[bold green]✓[/] Report saved to [cyan]{output}[/]")
        else:
            console.print(Markdown(md))

        if download:
            path = await orchestrator.export(output_dir)
            if path is not None:
                console.print(f"[bold green]✓[/] Downloaded [cyan]{path}[/]")
    return 0


@app.command()
def generate(
    user: str = typer.Argument(help="Reddit username, u/name, or profile link"),
    base_url: Optional[str] = typer.Option(None, "--base-url", "-u", help="Persona service address (default: $REDDIDNA_API_BASE_URL)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Save the Markdown report to file instead of printing"),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-d", help="Where --download saves the report file"),
    download: bool = typer.Option(False, "--download/--no-download", help="Also download the service-rendered report"),
    sources: bool = typer.Option(False, "--sources", "-s", help="Append the cited evidence for every field"),
    strict: Optional[bool] = typer.Option(None, "--strict/--permissive", help="Only accept reddit.com/user/<name> links"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log state transitions"),
):
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    try:
        settings = Settings.from_env(base_url=base_url, strict_identity=strict)
    except ValueError as exc:
        console.print(f"[bold red]Error:[/] invalid configuration: {escape(str(exc))}")
        raise typer.Exit(1)

    code = asyncio.run(_run(
        settings, user,
        output=output, output_dir=output_dir, download=download, sources=sources,
    ))
    if code:
        raise typer.Exit(code)
