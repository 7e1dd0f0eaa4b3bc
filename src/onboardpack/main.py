"""Main CLI entry point for onboardpack.

Usage:
    onboardpack generate ./my-repo
    onboardpack generate ./my-repo --skip-local -o ./docs
    onboardpack generate ./my-repo --cloud-endpoint https://x.openai.azure.com --cloud-api-key KEY
    onboardpack status
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from onboardpack import __version__
from onboardpack.config import GenerationRequest, OnboardpackConfig, load_config
from onboardpack.logging import setup_logging
from onboardpack.pipeline.engine import PipelineRunError
from onboardpack.pipeline.orchestrator import OnboardingOrchestrator
from onboardpack.pipeline.progress import ProgressInfo
from onboardpack.providers.base import ProviderError, ProviderStatus
from onboardpack.providers.factory import create_provider

app = typer.Typer(
    name="onboardpack",
    help="Generate onboarding documentation packs for source repositories",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration file (TOML format)",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
]
EndpointOption = Annotated[
    Optional[str],
    typer.Option("--endpoint", "-e", help="Local inference endpoint (skips discovery)"),
]
ModelOption = Annotated[
    Optional[str],
    typer.Option("--model", "-m", help="Local model alias or identifier"),
]


def _load(config_path: Path | None, verbose: bool) -> OnboardpackConfig:
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/red] {e}")
        raise typer.Exit(code=1)

    if verbose:
        config.logging.level = "DEBUG"
    setup_logging(config.logging)
    return config


def _print_status(display_name: str, status: ProviderStatus) -> None:
    table = Table(title=display_name, show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    state = "[green]online[/green]" if status.available else "[red]unavailable[/red]"
    table.add_row("Status", state)
    table.add_row("Endpoint", status.endpoint)
    table.add_row("Active model", status.active_model or "-")
    table.add_row("Models", ", ".join(status.models) or "-")
    if status.cached_models:
        table.add_row(
            "Cached",
            "\n".join(f"{m.alias} ({m.model_id}, {m.device})" for m in status.cached_models),
        )
    console.print(table)


@app.command()
def generate(
    repo: Annotated[
        Path,
        typer.Argument(help="Repository to analyze", exists=True, file_okay=False, resolve_path=True),
    ],
    output: Annotated[
        Optional[Path],
        typer.Option("--output", "-o", help="Output directory (default: REPO/docs)"),
    ] = None,
    endpoint: EndpointOption = None,
    model: ModelOption = None,
    skip_local: Annotated[
        bool,
        typer.Option("--skip-local", help="Do not call a model; use deterministic content"),
    ] = False,
    cloud_endpoint: Annotated[
        Optional[str],
        typer.Option("--cloud-endpoint", help="Cloud inference endpoint URL"),
    ] = None,
    cloud_api_key: Annotated[
        Optional[str],
        typer.Option("--cloud-api-key", help="Cloud inference API key", envvar="FOUNDRY_CLOUD_API_KEY"),
    ] = None,
    cloud_model: Annotated[
        Optional[str],
        typer.Option("--cloud-model", help="Cloud model or deployment name"),
    ] = None,
    agent: Annotated[
        bool,
        typer.Option("--agent", help="Use an agentic session backend"),
    ] = False,
    agent_model: Annotated[
        Optional[str],
        typer.Option("--agent-model", help="Model requested for the agentic session"),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
    config_path: ConfigOption = None,
) -> None:
    """Analyze a repository and write its onboarding pack."""
    config = _load(config_path, verbose)
    request = GenerationRequest(
        repo_path=repo,
        output_dir=output,
        endpoint=endpoint,
        model=model,
        cloud_endpoint=cloud_endpoint,
        cloud_api_key=cloud_api_key,
        cloud_model=cloud_model,
        use_agent=agent,
        agent_model=agent_model,
        skip_local_model=True if skip_local else None,
        verbose=verbose,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("[dim]{task.fields[detail]}"),
        console=console,
        transient=not verbose,
    ) as progress:
        bar = progress.add_task("Starting", total=100, detail="")

        def on_progress(info: ProgressInfo) -> None:
            progress.update(
                bar,
                completed=info.progress,
                description=f"[{info.step_number}/{info.total_steps}] {info.step_name}",
                detail=info.detail or "",
            )

        orchestrator = OnboardingOrchestrator(config, request, on_progress=on_progress)
        try:
            pack = asyncio.run(orchestrator.run())
        except PipelineRunError as e:
            progress.stop()
            console.print(f"[red]Generation failed at step {e.step_id}:[/red] {e.message}")
            raise typer.Exit(code=1)
        except ProviderError as e:
            progress.stop()
            console.print(f"[red]Provider error:[/red] {e}")
            raise typer.Exit(code=1)

    console.print(f"[green]Onboarding pack written to[/green] {request.resolved_output_dir}")
    for path in orchestrator.written_files:
        console.print(f"  [dim]-[/dim] {path.name}")
    if pack.technologies:
        names = ", ".join(t.name for t in pack.technologies)
        console.print(f"[cyan]Detected technologies:[/cyan] {names}")


@app.command()
def status(
    endpoint: EndpointOption = None,
    model: ModelOption = None,
    config_path: ConfigOption = None,
) -> None:
    """Check the local inference service and print what it reports."""
    config = _load(config_path, verbose=False)
    request = GenerationRequest(repo_path=Path.cwd(), endpoint=endpoint, model=model)

    async def check() -> tuple[str, ProviderStatus]:
        provider = create_provider(config, request)
        try:
            return provider.display_name, await provider.check_status()
        finally:
            await provider.close()

    display_name, provider_status = asyncio.run(check())
    _print_status(display_name, provider_status)
    if not provider_status.available:
        raise typer.Exit(code=1)


@app.command()
def version() -> None:
    """Print the onboardpack version."""
    console.print(f"onboardpack {__version__}")


if __name__ == "__main__":
    app()
