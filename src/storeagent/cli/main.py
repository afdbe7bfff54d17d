"""storeagent CLI implementation.

Provides the command-line interface for asking the commerce assistant,
inspecting the tool catalog and serving the assistant over MCP.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from storeagent.agent.factory import (
    create_assistant,
    create_gateway,
    create_metrics_store,
    resolve_assistant_config,
)
from storeagent.config import CLIOverrides, ConfigLoader, FileConfig
from storeagent.exceptions import StoreAgentError
from storeagent.metrics.store import MetricsStore
from storeagent.models.assistant import AskResult, ToolDescriptor
from storeagent.models.chart import ChartSpec
from storeagent.models.config import AgentSettings, LLMConfig
from storeagent.models.metrics import AssistantTurn
from storeagent.providers.factory import ProviderRegistry

app = typer.Typer(
    name="storeagent",
    help="Tool-calling commerce assistant with numeric answer validation.",
    no_args_is_help=True,
)

console = Console()


@dataclass
class AskOptions:
    """Resolved settings for one ask command."""

    llm_config: LLMConfig
    settings: AgentSettings
    wants_chart: bool
    chart_type: str
    title: str | None


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


@app.command()
def ask(  # noqa: PLR0913 - Typer requires CLI args as function parameters
    prompt: Annotated[str, typer.Argument(help="Question for the assistant.")],
    chart: Annotated[
        bool,
        typer.Option("--chart", help="Build a chart from the answer or the latest tool data."),
    ] = False,
    chart_type: Annotated[
        str,
        typer.Option("--chart-type", help="Chart type: 'bar' or 'line'."),
    ] = "bar",
    title: Annotated[
        str | None,
        typer.Option("--title", help="Chart title."),
    ] = None,
    category: Annotated[
        str | None,
        typer.Option(
            "--category",
            help="Assistant specialisation: products, customers, orders, promotions.",
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print the full result as JSON."),
    ] = False,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to storeagent.yaml configuration file."),
    ] = None,
    provider: Annotated[
        str | None,
        typer.Option("--provider", "-p", help="LLM provider (e.g., 'gemini', 'openai', 'ollama')."),
    ] = None,
    model: Annotated[
        str | None,
        typer.Option("--model", "-m", help="Model name for the planner."),
    ] = None,
    base_url: Annotated[
        str | None,
        typer.Option("--base-url", "-u", help="Base URL for LLM API."),
    ] = None,
    max_steps: Annotated[
        int | None,
        typer.Option("--max-steps", min=1, help="Maximum plan/tool steps per question."),
    ] = None,
    show_metrics: Annotated[
        bool,
        typer.Option("--show-metrics", help="Print the metrics summary after the answer."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable verbose output."),
    ] = False,
) -> None:
    """Ask the assistant a question.

    Examples:
        storeagent ask "How many orders were placed in the last 7 days?"

        storeagent ask "Orders per month this year" --chart --chart-type line

        storeagent ask "Low stock variants" -p ollama -m llama3.2 -u http://localhost:11434
    """
    _configure_logging(verbose)

    overrides = CLIOverrides(
        provider=provider,
        model=model,
        base_url=base_url,
        max_steps=max_steps,
        category=category,
    )

    try:
        file_config = ConfigLoader.load_config(config_file)
        store = create_metrics_store(file_config)
        llm_config, settings = resolve_assistant_config(file_config, overrides)
        if not as_json:
            console.print(
                f"[blue]Provider: {llm_config.provider}, Model: {llm_config.model}[/blue]"
            )
        agent_options = AskOptions(
            llm_config=llm_config,
            settings=settings,
            wants_chart=chart,
            chart_type=chart_type,
            title=title,
        )
        result = asyncio.run(_ask(file_config, store, prompt, agent_options))
    except StoreAgentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    if as_json:
        console.print_json(json.dumps(result.model_dump(mode="json", by_alias=True)))
    else:
        _display_result(result, store.get_turn(result.turn_id) if result.turn_id else None)

    if show_metrics:
        console.print("\n[bold]Metrics:[/bold]")
        console.print_json(json.dumps(store.get_summary().to_document()))


async def _ask(
    file_config: FileConfig | None,
    store: MetricsStore,
    prompt: str,
    options: AskOptions,
) -> AskResult:
    """Connect to the tool server and run one question."""
    async with create_gateway(file_config) as gateway:
        agent = create_assistant(gateway, store, options.llm_config, options.settings)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
            transient=True,
        ) as progress:
            progress.add_task("Thinking...", total=None)
            return await agent.ask(
                prompt,
                wants_chart=options.wants_chart,
                chart_type=options.chart_type,
                chart_title=options.title,
            )


def _display_result(result: AskResult, turn: AssistantTurn | None) -> None:
    """Display the answer, tool steps, chart and validation checks."""
    console.print(Panel(result.answer or "", title="Answer"))

    if result.history:
        console.print("\n[bold]Tool calls:[/bold]")
        for entry in result.history:
            failed = isinstance(entry.tool_result, dict) and entry.tool_result.get("isError")
            status = "[red]failed[/red]" if failed else "[green]ok[/green]"
            console.print(f"  -> {entry.tool_name}({entry.tool_args}) {status}")

    if result.chart is not None:
        _display_chart(result.chart)

    if turn is not None and turn.validations:
        table = Table(title="Answer Validation")
        table.add_column("Label", style="cyan")
        table.add_column("Answer", justify="right")
        table.add_column("Tool", justify="right")
        table.add_column("Status", justify="center")
        for check in turn.validations:
            status = "[green]OK[/green]" if check.ok else "[red]MISMATCH[/red]"
            table.add_row(
                check.label,
                "-" if check.ai is None else f"{check.ai:g}",
                "-" if check.tool is None else f"{check.tool:g}",
                status,
            )
        console.print(table)


def _display_chart(chart: ChartSpec) -> None:
    """Render a chart spec as a table with proportional bars."""
    table = Table(title=f"{chart.title} ({chart.chart})")
    table.add_column(chart.x_key, style="cyan")
    table.add_column(chart.y_key, justify="right")
    table.add_column("")

    values = [row.get(chart.y_key, 0) for row in chart.data]
    peak = max((v for v in values if isinstance(v, int | float)), default=0)
    for row, value in zip(chart.data, values, strict=True):
        width = int(30 * value / peak) if isinstance(value, int | float) and peak > 0 else 0
        table.add_row(str(row.get(chart.x_key, "")), str(value), "█" * max(width, 0))
    console.print(table)


@app.command()
def tools(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to storeagent.yaml configuration file."),
    ] = None,
) -> None:
    """List the tools offered by the configured MCP server."""
    try:
        file_config = ConfigLoader.load_config(config_file)
        catalog = asyncio.run(_list_tools(file_config))
    except StoreAgentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e

    table = Table(title="Available Tools")
    table.add_column("Tool", style="cyan")
    table.add_column("Parameters")
    table.add_column("Description")
    for tool in sorted(catalog, key=lambda t: t.name):
        params = ", ".join((tool.input_schema.get("properties") or {}).keys())
        table.add_row(tool.name, params, tool.description or "")
    console.print(table)


async def _list_tools(file_config: FileConfig | None) -> list[ToolDescriptor]:
    async with create_gateway(file_config) as gateway:
        return await gateway.list_tools()


@app.command()
def providers() -> None:
    """List available LLM providers."""
    available = ProviderRegistry.list_providers()

    table = Table(title="Available Providers")
    table.add_column("Provider", style="cyan")
    table.add_column("Default model")

    for provider_name in available:
        table.add_row(provider_name, ProviderRegistry.default_model(provider_name) or "")

    console.print(table)


@app.command()
def serve(
    config_file: Annotated[
        Path | None,
        typer.Option("--config", "-c", help="Path to storeagent.yaml configuration file."),
    ] = None,
) -> None:
    """Run the assistant as an MCP server over stdio.

    Exposes the ask_assistant and get_metrics_summary tools.
    """
    from storeagent.server import run_server  # noqa: PLC0415

    # Logs go to stderr; stdout carries the MCP protocol
    logging.basicConfig(level=logging.INFO, handlers=[logging.StreamHandler()], force=True)
    try:
        run_server(config_file)
    except StoreAgentError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1) from e


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
