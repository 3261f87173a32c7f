"""CLI entry point using Typer."""

from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from fixture_proxy import __version__
from fixture_proxy.config import Settings

app = typer.Typer(
    name="fixture-proxy",
    help="Caching reverse proxy: record backend responses once, replay them offline.",
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
)

console = Console()


def load_settings(**overrides) -> Settings:
    """Build settings from CLI flags layered over env vars and defaults.

    Flags left unset (``None``) fall through to ``FIXTURE_PROXY_*`` variables.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        return Settings(**values)
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        raise typer.Exit(2)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold blue]fixture-proxy[/bold blue] version {__version__}")


@app.command()
def start(
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Run server on this port"),
    proxy_port: Optional[int] = typer.Option(
        None, "--proxy-port", "-P", help="Proxy to server on this port"
    ),
    skip_cache: bool = typer.Option(
        False,
        "--skip-cache",
        "-s",
        help="Always forward requests to proxied server, overwriting any existing cache",
    ),
    cache_dir: Optional[Path] = typer.Option(
        None, "--cache-dir", "-d", help="Directory for cached responses"
    ),
    cached_header: Optional[list[str]] = typer.Option(
        None,
        "--cached-header",
        "-H",
        help="Request header that is part of the cache key (repeatable)",
    ),
    graphql_path: Optional[str] = typer.Option(
        None, "--graphql-path", help="Path prefix keyed by GraphQL operationName"
    ),
    host: Optional[str] = typer.Option(None, "--host", help="Address to listen on"),
    upstream_host: Optional[str] = typer.Option(
        None, "--upstream-host", help="Host of the proxied server"
    ),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING, ERROR"),
):
    """
    Start the caching proxy.

    Example:
        fixture-proxy start -p 1234 -P 7001 -d fixtures
        fixture-proxy start --skip-cache   # re-record everything
    """
    from fixture_proxy.server.main import run_server

    settings = load_settings(
        port=port,
        proxy_port=proxy_port,
        skip_cache=True if skip_cache else None,
        cache_dir=cache_dir,
        cached_headers=cached_header or None,
        graphql_path=graphql_path,
        host=host,
        upstream_host=upstream_host,
        log_level=log_level,
    )

    try:
        settings.cache_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        console.print(f"[red]Cannot create cache dir {settings.cache_dir}: {e}[/red]")
        raise typer.Exit(1)

    mode = "[yellow]skipping cache[/yellow]" if settings.skip_cache else "[cyan]replay[/cyan]"
    console.print(Panel.fit(
        f"[bold green]fixture-proxy[/bold green]\n\n"
        f"Listening:  [bold]{settings.listen_url}[/bold]\n"
        f"Upstream:   [dim]{settings.upstream_url}[/dim]\n"
        f"Cache dir:  [dim]{settings.cache_dir}[/dim]\n"
        f"Mode:       {mode}\n\n"
        f"proxying from {settings.port} to {settings.proxy_port}"
        f"{' skipping cache' if settings.skip_cache else ''}\n\n"
        "[dim]Ctrl+C to stop[/dim]",
        title="Proxy Server",
    ))

    try:
        run_server(settings)
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopped.[/yellow]")


@app.command()
def config():
    """Show current configuration."""
    settings = load_settings()

    console.print("[bold]Configuration[/bold]\n")
    console.print(f"Listen: {settings.listen_url}")
    console.print(f"Upstream: {settings.upstream_url}")
    console.print(f"Skip cache: {settings.skip_cache}")
    console.print(f"Cache dir: {settings.cache_dir}")
    console.print(f"Cached headers: {', '.join(settings.cached_headers) or '(none)'}")
    console.print(f"GraphQL path: {settings.graphql_path}")
    console.print(f"Log level: {settings.log_level}")


def main():
    app()


if __name__ == "__main__":
    main()
