"""Nixify CLI - Command-line interface for Nixify."""

from pathlib import Path
from typing import Optional

import filelock
import typer
from rich.console import Console
from rich.table import Table

from nixify import __version__
from nixify.cache import CachedEntry
from nixify.config import NixifyConfig
from nixify.errors import ConfigError, FetchFailure
from nixify.hashing import sha256_file
from nixify.pipeline import Pipeline
from nixify.preload import PreloadResult
from nixify.store_path import DEFAULT_STORE_ROOT, compute_fixed_output_store_path
from nixify.util import setup_logging

app = typer.Typer(
    name="nixify",
    help="Content-addressed caching of locked packages for the Nix store",
    no_args_is_help=True,
    pretty_exceptions_enable=False,
)
console = Console()


@app.callback()
def callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Suppress non-error output"),
) -> None:
    """Nixify - Content-addressed caching of locked packages."""
    setup_logging(verbose=verbose, quiet=quiet)


def load_config(path: Path) -> NixifyConfig:
    try:
        return NixifyConfig.load(path)
    except ConfigError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def run_pipeline(pipeline: Pipeline, **kwargs):
    """Run the pipeline, turning expected failures into exit status 1."""
    try:
        return pipeline.run(**kwargs)
    except FetchFailure as e:
        console.print(f"[red]Error: could not fetch {e.package} ({e.phase}): {e.reason}[/red]")
        raise typer.Exit(1)
    except filelock.Timeout:
        console.print(f"[red]Error: another run is using {pipeline.config.cache_root}[/red]")
        raise typer.Exit(1)


def print_preload(result: Optional[PreloadResult]) -> None:
    if result is None:
        console.print("[dim]Preloading skipped[/dim]")
        return
    
    if result.ok:
        console.print(f"[green]✓[/green] Preloaded {result.preloaded} packages into the store")
    else:
        console.print(f"[yellow]⚠[/yellow] Preloaded {result.preloaded} packages before failing")
    if result.skipped:
        console.print(f"  Already in store: {result.skipped}")


@app.command()
def version() -> None:
    """Show Nixify version."""
    console.print(f"Nixify version {__version__}")


@app.command()
def init(
    path: Path = typer.Argument(Path.cwd(), help="Project root directory"),
) -> None:
    """Write a default configuration for a project."""
    config = NixifyConfig.create_default(path)
    config.save()
    console.print(f"[green]✓[/green] Configuration written to {config.config_path}")


@app.command()
def run(
    path: Path = typer.Argument(Path.cwd(), help="Project root directory"),
    preload: Optional[bool] = typer.Option(None, "--preload/--no-preload", help="Force preloading on or off"),
    manifest: Optional[Path] = typer.Option(None, "--manifest", "-o", help="Manifest output path"),
) -> None:
    """Collect cache entries, write the manifest and preload the store."""
    config = load_config(path)
    if manifest is not None:
        config.manifest_path = str(manifest)
    
    result = run_pipeline(Pipeline(config), preload=preload)
    
    console.print(f"[green]✓[/green] Manifest written to {result.manifest_path}")
    console.print(f"  Cached packages: {len(result.cached)}")
    console.print(f"  Local packages: {len(result.local)}")
    print_preload(result.preload)
    
    if result.preload is not None and not result.preload.ok:
        raise typer.Exit(1)


@app.command()
def collect(
    path: Path = typer.Argument(Path.cwd(), help="Project root directory"),
) -> None:
    """Show locked packages and their cache files."""
    config = load_config(path)
    result = run_pipeline(Pipeline(config), collect_only=True)
    
    if not result.entries:
        console.print("[yellow]No packages found.[/yellow]")
        return
    
    table = Table(title="Cache Entries")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Source", style="dim")
    table.add_column("SHA-256", style="green")
    
    for entry in result.entries:
        if isinstance(entry, CachedEntry):
            table.add_row(entry.name, entry.cache_file, entry.sha256 or "-")
        else:
            table.add_row(entry.name, entry.path, "[dim]local[/dim]")
    
    console.print(table)


@app.command()
def preload(
    path: Path = typer.Argument(Path.cwd(), help="Project root directory"),
) -> None:
    """Preload cached packages into the store without writing the manifest."""
    config = load_config(path)
    result = run_pipeline(Pipeline(config), preload=True, write=False)
    print_preload(result.preload)
    
    if result.preload is not None and not result.preload.ok:
        raise typer.Exit(1)


@app.command(name="store-path")
def store_path(
    name: str = typer.Argument(..., help="Store name"),
    digest: str = typer.Argument(..., help="Content digest (hex)"),
    algo: str = typer.Option("sha256", "--algo", help="Hash algorithm of the digest"),
    store_root: str = typer.Option(DEFAULT_STORE_ROOT, "--store-root", help="Store directory"),
) -> None:
    """Print the store path of a fixed-output artifact."""
    console.print(compute_fixed_output_store_path(name, algo, digest, store_root), highlight=False)


@app.command(name="hash")
def hash_file(
    file: Path = typer.Argument(..., help="File to hash"),
    name: Optional[str] = typer.Option(None, "--name", help="Also print the store path for this name"),
    store_root: str = typer.Option(DEFAULT_STORE_ROOT, "--store-root", help="Store directory"),
) -> None:
    """Print the SHA-256 of a file."""
    digest = sha256_file(file)
    if digest is None:
        console.print(f"[red]Error: {file} does not exist[/red]")
        raise typer.Exit(1)
    
    console.print(digest, highlight=False)
    if name:
        console.print(compute_fixed_output_store_path(name, "sha256", digest, store_root), highlight=False)


def main() -> None:
    """Main entry point for the CLI."""
    app()
