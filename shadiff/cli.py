"""shadiff CLI — the main entry point for registry generation."""

import asyncio
import logging

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from shadiff import __version__
from shadiff.constants import CONFIG_FILE, NEXTJS_STRATEGIES

console = Console()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@click.group()
@click.version_option(version=__version__)
def main():
    """shadiff — generate a shadcn/ui registry item for a whole project.

    Scans a local directory or a remote Git repository, classifies every
    file, and writes a single registry JSON document that can be installed
    as a component bundle.
    """


# ── Generate ─────────────────────────────────────────────────────────


@main.command()
@click.option("--root-dir", "-r", default=None, help="Root directory to scan")
@click.option("--output", "-o", default=None, help="Output file path (e.g., public/registry.json)")
@click.option("--author", "-a", default=None, help="Author information")
@click.option(
    "--nextjs-app-strategy",
    type=click.Choice(list(NEXTJS_STRATEGIES)),
    default=None,
    help="Next.js app directory strategy",
)
@click.option("--remote-url", default=None, help="Remote repository URL")
@click.option("--remote-branch", default=None, help="Remote repository branch")
@click.option(
    "--remote-token",
    default=None,
    envvar="SHADIFF_REMOTE_TOKEN",
    help="Authentication token for private repos",
)
@click.option("--sort-files", is_flag=True, help="Sort files by path for reproducible output")
@click.option("--config", "config_path", default=CONFIG_FILE, show_default=True, help="Configuration file")
@click.option("--verbose", "-v", is_flag=True, help="Show every processed file")
def generate(
    root_dir: str | None,
    output: str | None,
    author: str | None,
    nextjs_app_strategy: str | None,
    remote_url: str | None,
    remote_branch: str | None,
    remote_token: str | None,
    sort_files: bool,
    config_path: str,
    verbose: bool,
):
    """Generate the registry from project files.

    Settings come from the configuration file when it exists; command-line
    options override them.
    """
    from shadiff.config import load_config, merge_options
    from shadiff.errors import ShadiffError
    from shadiff.generators.registry_generator import RegistryGenerator

    _configure_logging(verbose)
    console.print("\n[bold blue]shadiff[/] — Starting registry generation\n")

    try:
        options = merge_options(
            load_config(config_path),
            {
                "rootDir": root_dir,
                "outputFile": output,
                "author": author,
                "nextjsAppStrategy": nextjs_app_strategy,
                "remoteUrl": remote_url,
                "remoteBranch": remote_branch,
                "remoteToken": remote_token,
                "sortFiles": sort_files or None,
            },
        )
        generator = RegistryGenerator(options)
        item = asyncio.run(generator.run())
    except (ShadiffError, OSError) as e:
        console.print("\n[bold red]Registry generation failed:[/]")
        console.print(f"  [red]{e}[/]")
        raise SystemExit(1)

    table = Table(title=f"Registry ({len(item.files)} files)")
    table.add_column("Type", style="cyan")
    table.add_column("Files", justify="right", style="green")
    for registry_type, count in sorted(item.files_by_type().items()):
        table.add_row(registry_type, str(count))
    console.print(table)

    console.print(f"  Dependencies: {len(item.dependencies)}")
    console.print(f"  Dev dependencies: {len(item.dev_dependencies)}")
    if item.registry_dependencies:
        console.print(f"  Registry dependencies: {', '.join(item.registry_dependencies)}")
    console.print(f"\n[green]Registry written to:[/] {generator.output_path}")


# ── Init ─────────────────────────────────────────────────────────────


@main.command()
@click.option("--config", "config_path", default=CONFIG_FILE, show_default=True, help="Configuration file")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def init(config_path: str, force: bool):
    """Write a configuration file with the default settings."""
    from pathlib import Path

    from shadiff.config import write_default_config

    if Path(config_path).exists() and not force:
        console.print(f"[yellow]{config_path} already exists.[/] Use --force to overwrite it.")
        raise SystemExit(1)

    path = write_default_config(config_path)
    console.print(f"[green]Configuration file created:[/] {path}")


if __name__ == "__main__":
    main()
