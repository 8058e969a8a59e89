"""CLI entry point for rolescout.

Provides commands:
  - discover: Run the full escalation pipeline for one subject
  - known-for: Print the titles a subject is best known for
  - verify: Verify a single (title, character) role claim
  - config: Manage API keys
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from rolescout.config import (
    KEY_NAMES,
    ConfigurationError,
    DiscoveryConfig,
    get_api_key,
    load_discovery_config,
    lookup_api_key,
    set_api_key,
)
from rolescout.models import CandidateRole, PipelineRunResult, SourceTag

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="rolescout - discover and verify the notable roles of a performer",
    rich_markup_mode="rich",
)
console = Console()

config_app = typer.Typer(help="Manage configuration (API keys)")
app.add_typer(config_app, name="config")


def _setup_logging(verbose: bool = False, debug_log: Path | None = None) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )
    if debug_log is not None:
        debug_log.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(debug_log)
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        pkg_logger = logging.getLogger("rolescout")
        pkg_logger.addHandler(fh)
        pkg_logger.setLevel(logging.DEBUG)


def _load_config(config_path: Path | None) -> DiscoveryConfig:
    try:
        return load_discovery_config(config_path)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:8] + "*" * (len(value) - 8)
    return value[:2] + "*" * max(1, len(value) - 2)


def display_result(result: PipelineRunResult) -> None:
    """Render a run result as a Rich table plus a summary panel."""
    table = Table(title=f"Notable roles: {result.subject}")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Character", style="cyan")
    table.add_column("Title", style="bold")
    table.add_column("Medium")
    table.add_column("Source")
    table.add_column("Confidence")
    table.add_column("Franchise", style="magenta")

    for rank, role in enumerate(result.roles, start=1):
        confidence = role.verification.confidence.value if role.verification else "-"
        table.add_row(
            str(rank),
            role.character or "-",
            role.title,
            role.medium.value,
            role.source_tag.value,
            confidence,
            role.franchise_name or "",
        )
    console.print(table)

    lines = [
        f"[bold]Tier:[/bold] {result.tier.value}",
        f"[bold]Cost:[/bold] {result.cost:.4f}",
        f"[bold]Known for:[/bold] {', '.join(result.known_for) or '-'}",
        f"[bold]Rejected:[/bold] {len(result.rejected)}",
        f"[bold]Path:[/bold] {' | '.join(result.transitions) or '-'}",
    ]
    if result.red_flags and result.red_flags.has_red_flags:
        lines.append("[bold red]Red flags:[/bold red]")
        lines.extend(f"  - {flag.description}" for flag in result.red_flags.flags)
    style = "yellow" if result.tier.value == "generic_fallback" else "green"
    console.print(Panel("\n".join(lines), title="Summary", border_style=style))


@app.command()
def discover(
    name: Annotated[str, typer.Argument(help="Performer name")],
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the run result as JSON"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to discovery config JSON"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Debug-level console logging"),
    ] = False,
    debug_log: Annotated[
        Path | None,
        typer.Option("--debug-log", help="Also write debug logs to this file"),
    ] = None,
    max_primary: Annotated[
        int | None,
        typer.Option("--max-primary", min=1, help="Cap on primary-source candidates"),
    ] = None,
) -> None:
    """Discover up to five verified notable roles for NAME."""
    from rolescout.pipeline.orchestrator import RoleDiscoveryOrchestrator

    _setup_logging(verbose, debug_log)
    config = _load_config(config_path)
    if max_primary is not None:
        config.max_primary_results = max_primary

    async def _run() -> PipelineRunResult:
        async with RoleDiscoveryOrchestrator(config) as orchestrator:
            return await orchestrator.discover_roles(name)

    result = asyncio.run(_run())

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2))
    else:
        display_result(result)


@app.command("known-for")
def known_for(
    name: Annotated[str, typer.Argument(help="Performer name")],
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to discovery config JSON"),
    ] = None,
) -> None:
    """Print the titles NAME is best known for, from the encyclopedia lead."""
    from rolescout.discovery.known_for import KnownForExtractor
    from rolescout.sources.wikipedia import WikipediaSource

    _setup_logging()
    config = _load_config(config_path)

    async def _run() -> list[str]:
        async with WikipediaSource(
            base_url=config.wikipedia_base_url,
            timeout=config.http_timeout,
            user_agent=config.user_agent,
        ) as wikipedia:
            extractor = KnownForExtractor(wikipedia, limit=config.thresholds.max_known_for)
            return await extractor.extract(name)

    titles = asyncio.run(_run())
    if not titles:
        console.print(f"[yellow]No known-for titles found for {name}.[/yellow]")
        raise typer.Exit(code=1)
    for i, title in enumerate(titles, start=1):
        console.print(f"{i}. [bold]{title}[/bold]")


@app.command()
def verify(
    name: Annotated[str, typer.Argument(help="Performer name")],
    title: Annotated[str, typer.Option("--title", "-t", help="Title of the work")],
    character: Annotated[
        str | None,
        typer.Option("--character", help="Character played"),
    ] = None,
    emergency: Annotated[
        bool,
        typer.Option("--emergency", help="Use lenient emergency-recovery verification"),
    ] = False,
    require_search: Annotated[
        bool,
        typer.Option("--require-search", help="Fail unless a search API key is configured"),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to discovery config JSON"),
    ] = None,
) -> None:
    """Verify that NAME played CHARACTER in TITLE."""
    from rolescout.sources.llm import MistralJudge
    from rolescout.sources.serp import SerpSearchClient
    from rolescout.verification.verifier import CostMeter, RoleVerifier

    _setup_logging()
    config = _load_config(config_path)
    if require_search and not config.serp_api_key:
        try:
            config.serp_api_key = get_api_key("serp")
        except RuntimeError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(code=1)
    role = CandidateRole(
        title=title,
        character=character,
        source_tag=SourceTag.EMERGENCY_RECOVERY if emergency else SourceTag.KNOWN_FOR,
    )

    async def _run():
        async with SerpSearchClient(
            config.serp_api_key,
            base_url=config.serp_base_url,
            timeout=config.http_timeout,
            requests_per_second=config.search_rate_limit,
        ) as search:
            judge = MistralJudge(
                config.mistral_api_key, model=config.judge_model, timeout=config.judge_timeout
            )
            cost = CostMeter(budget=config.cost_budget)
            verifier = RoleVerifier(
                search,
                judge,
                cost_meter=cost,
                thresholds=config.thresholds,
                query_delay=config.query_delay,
            )
            if not (verifier.search_available or verifier.judge_available):
                console.print(
                    "[yellow]Warning:[/yellow] no search or judge key configured; "
                    "result will be unverified"
                )
            result = await verifier.verify(name, role, lenient=emergency)
            return result, cost

    result, cost = asyncio.run(_run())
    colour = "green" if result.is_valid else "red"
    verdict = "VALID" if result.is_valid else "INVALID"
    console.print(
        Panel(
            f"[bold {colour}]{verdict}[/bold {colour}] ({result.confidence.value})\n"
            f"[bold]Reason:[/bold] {result.reason}\n"
            f"[bold]Code:[/bold] {result.code.value}\n"
            f"[bold]Character found:[/bold] {result.discovered_character or '-'}\n"
            f"[dim]Cost: {cost.total:.4f} ({cost.web_queries} searches, "
            f"{cost.judge_calls} judge calls)[/dim]",
            title=role.label,
        )
    )
    if not result.is_valid:
        raise typer.Exit(code=2)


@config_app.command("set-key")
def set_key(
    provider: Annotated[
        str,
        typer.Argument(help="Provider: tmdb, serp or mistral"),
    ],
    value: Annotated[str, typer.Argument(help="API key to store in the system keyring")],
) -> None:
    """Store an API key in the system keyring (service: rolescout)."""
    if provider not in KEY_NAMES:
        console.print(
            f"[red]Error:[/red] unknown provider {provider!r}; "
            f"choose one of {', '.join(KEY_NAMES)}"
        )
        raise typer.Exit(code=1)
    if not value or value.strip() == "":
        console.print("[red]Error:[/red] API key cannot be empty")
        raise typer.Exit(code=1)

    try:
        set_api_key(provider, value.strip())
    except Exception as e:
        console.print(f"[red]Error:[/red] Failed to store API key: {e}")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] {provider} API key stored in system keyring")


@config_app.command("show")
def show() -> None:
    """Show which API keys are configured (masked)."""
    table = Table(title="API keys")
    table.add_column("Provider", style="cyan")
    table.add_column("Key")
    table.add_column("Environment variable", style="dim")
    for provider, (_, env_var) in KEY_NAMES.items():
        api_key = lookup_api_key(provider)
        shown = f"[green]{_mask(api_key)}[/green]" if api_key else "[yellow]not set[/yellow]"
        table.add_row(provider, shown, env_var)
    console.print(table)
