"""Click CLI for imgvariants — expand source images into cached variants."""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, Any

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from imgvariants.config.hierarchy import load_config_hierarchy
from imgvariants.config.loader import build_config, load_presets_yaml
from imgvariants.errors.exceptions import ImgVariantsError

if TYPE_CHECKING:
    from imgvariants.cache.manager import VariantCache

console = Console()
error_console = Console(stderr=True)


def _setup_logging(verbosity: int, log_level: str | None = None) -> None:
    """Configure logging from the configured level, raised by -v flags."""
    level = _parse_log_level(log_level)
    if verbosity == 1:
        level = min(level, logging.INFO)
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=error_console, show_time=False, show_path=False)],
    )


def _parse_log_level(name: str | None) -> int:
    if name is None:
        return logging.WARNING
    return logging.getLevelNamesMapping().get(str(name).upper(), logging.WARNING)


def _parse_output(value: str) -> Any:
    """An --output is a preset name or a JSON output spec object."""
    if value.lstrip().startswith("{"):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            raise click.BadParameter(f"Invalid JSON output spec: {e}") from e
    return value


def _resolve_config(preset_file: str | None, **overrides: Any) -> dict[str, Any]:
    raw = load_config_hierarchy(**overrides)
    if preset_file:
        raw["presets"] = {**raw.get("presets", {}), **load_presets_yaml(preset_file)}
    return raw


@click.group()
@click.version_option(package_name="imgvariants")
def cli() -> None:
    """imgvariants — Expand images into cached, multiplexed variants."""


@cli.command()
@click.argument("input_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output-dir", type=click.Path(file_okay=False), help="Directory for emitted files.")
@click.option("--output", "outputs", multiple=True, help="Preset name or JSON output spec (repeatable).")
@click.option("--preset-file", type=click.Path(exists=True), help="YAML file with a 'presets' mapping.")
@click.option("--manifest", type=click.Path(dir_okay=False), help="Write the result list to this file.")
@click.option("--synthetic", is_flag=True, default=False, help="Dry run: no transform, no cache.")
@click.option("--no-emit", is_flag=True, default=False, help="Do not write variant files.")
@click.option("--cache-dir", type=click.Path(file_okay=False), help="Cache directory.")
@click.option("--no-cache", is_flag=True, default=False, help="Disable caching.")
@click.option("-v", "--verbose", count=True, help="Increase verbosity (-v info, -vv debug).")
def expand(
    input_path: str,
    output_dir: str | None,
    outputs: tuple[str, ...],
    preset_file: str | None,
    manifest: str | None,
    synthetic: bool,
    no_emit: bool,
    cache_dir: str | None,
    no_cache: bool,
    verbose: int,
) -> None:
    """Expand INPUT_PATH into its variants."""
    from imgvariants.core import ImgVariants
    from imgvariants.imaging.result import serialize_results

    emit_file = "synthetic" if synthetic else ("disabled" if no_emit else None)
    try:
        raw = _resolve_config(
            preset_file,
            output_dir=output_dir,
            emit_file=emit_file,
            cache_dir=cache_dir,
            cache_disabled=True if no_cache else None,
        )
        config = build_config(raw)
    except (ImgVariantsError, FileNotFoundError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    _setup_logging(verbose, raw.get("log_level"))

    requested = [_parse_output(o) for o in outputs] or None
    expander = ImgVariants(config=config)
    try:
        results = asyncio.run(expander.expand_async(input_path, outputs=requested))
    except (ImgVariantsError, OSError, ValueError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)
    finally:
        expander.close()

    text = serialize_results(results)
    if manifest:
        Path(manifest).write_text(text, encoding="utf-8")
        console.print(f"[green]Wrote {len(results)} variant(s) to {manifest}[/green]")
    else:
        click.echo(text)


@cli.command("presets")
@click.option("--preset-file", type=click.Path(exists=True), help="YAML file with a 'presets' mapping.")
def list_presets(preset_file: str | None) -> None:
    """List configured presets."""
    try:
        raw = _resolve_config(preset_file)
    except (ImgVariantsError, FileNotFoundError) as e:
        error_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    table = Table(title="Configured Presets", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Fields")

    for name, preset in raw.get("presets", {}).items():
        fields = ", ".join(f"{k}={v}" for k, v in preset.items())
        table.add_row(name, fields or "-")

    console.print(table)


@cli.group()
def cache() -> None:
    """Cache management commands."""


def _open_cache(cache_dir: str | None) -> VariantCache:
    from imgvariants.cache.manager import VariantCache

    config = build_config(load_config_hierarchy(cache_dir=cache_dir))
    if config.cache_dir is None:
        error_console.print("[yellow]No cache directory configured.[/yellow]")
        sys.exit(1)
    store = VariantCache(config.cache_dir, max_size_mb=config.cache_max_mb)
    if not store.enabled:
        error_console.print(f"[red]Error:[/red] cache at {config.cache_dir} cannot be opened")
        sys.exit(1)
    return store


@cache.command("stats")
@click.option("--cache-dir", type=click.Path(file_okay=False), help="Cache directory.")
def cache_stats(cache_dir: str | None) -> None:
    """Show cache statistics."""
    store = _open_cache(cache_dir)

    table = Table(title="Cache Statistics", show_header=True)
    table.add_column("Metric", style="cyan")
    table.add_column("Value")

    stats = store.stats()
    table.add_row("Entries", str(stats.entries))
    table.add_row("Size (MB)", f"{stats.size_mb:.1f}")

    console.print(table)
    store.close()


@cache.command("clear")
@click.option("--cache-dir", type=click.Path(file_okay=False), help="Cache directory.")
@click.confirmation_option(prompt="Are you sure you want to clear the cache?")
def cache_clear(cache_dir: str | None) -> None:
    """Clear all cached variants."""
    store = _open_cache(cache_dir)
    store.clear()
    store.close()
    console.print("[green]Cache cleared.[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()
