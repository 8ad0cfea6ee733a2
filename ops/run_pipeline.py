#!/usr/bin/env python3
"""
Mumbai Ward Map Pipeline CLI

Fetches ward geometry and per-ward election attributes for a year, joins
them, tallies seats per party and renders an interactive Leaflet map.

Usage:
    wardmap years                                   # List configured election years
    wardmap render --year 2017                      # One cycle, write html/bmc_2017_wards.html
    wardmap render --year 2017 --device touch       # Force tap-to-popup behaviour
    wardmap watch --year 2017                       # Re-fetch and re-render every 15s
    wardmap watch --year 2017 --interval 60 --cycles 3
    wardmap tally --year 2012                       # Print seats by party
    wardmap export --year 2017 --output joined.geojson

Logging:
    wardmap -v render                               # DEBUG level logging
    wardmap --trace render                          # TRACE level for deep debugging
    wardmap --log-file wardmap.log watch            # Also log to a file
"""

import asyncio
import os
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger

from ops.config_loader import Config
from processing.aggregate import tally_frame
from processing.errors import WardMapError


def setup_logging(verbose: bool = False, enable_trace: bool = False) -> None:
    """
    Configure loguru logging with appropriate levels.

    Args:
        verbose: If True, set log level to DEBUG
        enable_trace: If True, enable TRACE level logging for deep debugging
    """
    logger.remove()

    if enable_trace:
        log_level = "TRACE"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    elif verbose:
        log_level = "DEBUG"
        log_format = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | <level>{message}</level>"
    else:
        log_level = "INFO"
        log_format = (
            "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
        )

    logger.add(
        sys.stderr,
        format=log_format,
        level=log_level,
        colorize=True,
        backtrace=enable_trace,
        diagnose=enable_trace,
    )

    os.environ["LOGURU_LEVEL"] = log_level

    if verbose:
        logger.debug("🔧 Verbose logging enabled (DEBUG level)")
    if enable_trace:
        logger.trace("🔍 Trace logging enabled - maximum detail mode")


def _make_view(config: Config, device: Optional[str] = None, interval: Optional[float] = None):
    from mapping.interaction import resolve_device
    from mapping.view import WardMapView

    return WardMapView(
        config,
        device=resolve_device(device or config.get_map_setting("device")),
        interval=interval,
    )


def _load_once(config: Config, year: str, device: Optional[str] = None):
    """Run a single cycle, exiting non-zero on failure."""
    view = _make_view(config, device)
    try:
        asyncio.run(view.refresh_once(year))
    except WardMapError as e:
        logger.critical(f"❌ {e}")
        sys.exit(1)
    return view


def show_dry_run_info(config: Config, year: str) -> None:
    """Show what a render would fetch, without fetching."""
    from processing.geometry import GeometryLoader
    from processing.fetch import Fetcher

    logger.info("🔍 DRY RUN MODE - No fetches will be made")
    config.print_config_summary()
    try:
        kind = config.get_source_kind(year)
        if kind == "spreadsheet":
            config.get_sheet_config(year)
    except WardMapError as e:
        logger.critical(f"❌ {e}")
        sys.exit(1)

    loader = GeometryLoader(config, Fetcher(base_dir=config.project_root))
    logger.info(f"🗓️ Year: {year}")
    logger.info(f"🗺️ Geometry: {loader.location_for(year)}")
    logger.info(f"🔌 Attribute source: {kind}")
    logger.info(f"🖌️ Output: {config.get_map_output_path(year)}")


@click.group()
@click.option("--config", "config_file", type=click.Path(), help="Path to config.yaml")
@click.option("-v", "--verbose", is_flag=True, help="Enable DEBUG level logging")
@click.option(
    "--trace", is_flag=True, help="Enable TRACE level logging for deep debugging (maximum detail)"
)
@click.option("--log-file", type=str, help="Also log to specified file")
@click.pass_context
def cli(ctx, config_file, verbose, trace, log_file):
    """
    Mumbai ward election map pipeline.

    Joins ward boundaries with per-ward election results for a year and
    renders an interactive choropleth map.
    """
    setup_logging(verbose=verbose, enable_trace=trace)

    if log_file:
        log_level = "TRACE" if trace else ("DEBUG" if verbose else "INFO")
        logger.add(
            log_file,
            level=log_level,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | {name}:{function}:{line} | {message}",
            rotation="10 MB",
            retention="7 days",
        )
        logger.info(f"📄 Also logging to file: {log_file}")

    try:
        config = Config(config_file)
        logger.debug(f"📋 Project: {config.get('project_name')}")
    except Exception as e:
        logger.critical(f"Configuration error: {e}")
        logger.info("💡 Make sure config.yaml exists and is valid, or set WARDMAP_CONFIG_PATH")
        ctx.exit(1)

    ctx.obj = config


@cli.command()
@click.pass_obj
def years(config: Config):
    """List configured election years and their attribute sources."""
    default_year = config.get_default_year() if config.get_years() else None
    for year in config.get_years():
        marker = " (default)" if year == default_year else ""
        click.echo(f"{year}\t{config.get_source_kind(year)}{marker}")


@cli.command()
@click.option("--year", type=str, help="Election year (defaults to default_year)")
@click.option("--output", type=click.Path(), help="Output HTML path")
@click.option(
    "--device",
    type=click.Choice(["auto", "pointer", "touch"]),
    help="Interaction mode; auto detects touch support in the browser",
)
@click.option("--dry-run", is_flag=True, help="Show what would be fetched without fetching")
@click.pass_obj
def render(config: Config, year, output, device, dry_run):
    """Fetch, join and render one year's ward map."""
    year = year or config.get_default_year()
    if dry_run:
        show_dry_run_info(config, year)
        return

    view = _load_once(config, year, device)
    output_path = Path(output) if output else config.get_map_output_path(year)
    view.render(output_path)


@cli.command()
@click.option("--year", type=str, help="Election year (defaults to default_year)")
@click.option("--output", type=click.Path(), help="Output HTML path")
@click.option("--interval", type=float, help="Seconds between refreshes (default from config)")
@click.option("--cycles", type=int, help="Stop after this many successful publishes")
@click.option("--device", type=click.Choice(["auto", "pointer", "touch"]))
@click.pass_obj
def watch(config: Config, year, output, interval, cycles, device):
    """Keep the map fresh: re-fetch, re-join and re-render on an interval."""
    year = year or config.get_default_year()
    try:
        config.get_year_config(year)
    except WardMapError as e:
        logger.critical(f"❌ {e}")
        sys.exit(1)

    output_path = Path(output) if output else config.get_map_output_path(year)
    view = _make_view(config, device, interval)

    failures = []

    async def _watch() -> None:
        done = asyncio.Event()
        published = 0

        def write_map(current) -> bool:
            try:
                current.render(output_path)
            except OSError as e:
                logger.critical(f"❌ Cannot write {output_path}: {e}")
                failures.append(e)
                done.set()
                return False
            return True

        def on_publish(current) -> None:
            nonlocal published
            if not write_map(current):
                return
            published += 1
            if cycles and published >= cycles:
                done.set()

        def on_error(current, error: Exception) -> None:
            write_map(current)

        view.on_publish = on_publish
        view.on_error = on_error
        view.select_year(year)
        try:
            await done.wait()
        finally:
            view.stop()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        logger.info("👋 Stopped watching")
    if failures:
        sys.exit(1)


@cli.command()
@click.option("--year", type=str, help="Election year (defaults to default_year)")
@click.pass_obj
def tally(config: Config, year):
    """Print seats by party for a year."""
    year = year or config.get_default_year()
    view = _load_once(config, year)
    df = tally_frame(view.tally)
    click.echo(f"Seats by Party ({year})")
    click.echo(df.to_string(index=False) if not df.empty else "(no wards)")


@cli.command()
@click.option("--year", type=str, help="Election year (defaults to default_year)")
@click.option("--output", type=click.Path(), required=True, help="Output GeoJSON path")
@click.pass_obj
def export(config: Config, year, output):
    """Write the joined ward FeatureCollection to GeoJSON."""
    from processing.export import export_geojson

    year = year or config.get_default_year()
    view = _load_once(config, year)
    export_geojson(view.dataset, output)


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
