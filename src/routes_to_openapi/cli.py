"""CLI entry point for routes-to-openapi."""

import logging
import sys
from pathlib import Path

import click

from routes_to_openapi.config import GeneratorConfig, load_config
from routes_to_openapi.errors import RoutesToOpenApiError
from routes_to_openapi.pipeline import PipelineResult, build, run

EXIT_FATAL = 1
EXIT_EXCLUDED = 2


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.INFO if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load(config_path: Path | None, check: bool | None, strict: bool) -> GeneratorConfig:
    config = load_config(config_path)
    update = {}
    if check is not None:
        update["check_program_for_errors"] = check
    if strict:
        update["require_all_routes"] = True
    return config.model_copy(update=update) if update else config


def _report(result: PipelineResult) -> None:
    for route in result.routes:
        click.echo(f"  {route.method.value:<7} {route.path}  -> {route.handler}")
    for warning in result.warnings:
        click.echo(f"Warning: {warning}", err=True)
    for conflict in result.conflicts:
        click.echo(f"Warning: {conflict}", err=True)
    for error in result.excluded:
        click.echo(f"Excluded: {error}", err=True)


def _fail(error: RoutesToOpenApiError) -> None:
    click.echo(f"Error: {error}", err=True)
    sys.exit(EXIT_FATAL)


@click.group()
@click.version_option(package_name="routes-to-openapi")
def main():
    """routes-to-openapi: OpenAPI documents and validated routes from annotated handlers."""
    pass


@main.command()
@click.option("-c", "--config", "config_path", default=None, type=click.Path(path_type=Path), help="Config file (YAML or JSON).")
@click.option("--check/--no-check", default=None, help="Fail on program errors before extraction (overrides config).")
@click.option("--strict", is_flag=True, help="Fail when any route has to be excluded.")
@click.option("-v", "--verbose", is_flag=True, help="Log progress.")
def generate(config_path: Path | None, check: bool | None, strict: bool, verbose: bool):
    """Write the OpenAPI document and the route registration module."""
    _setup_logging(verbose)
    try:
        config = _load(config_path, check, strict)
        click.echo(f"Analysing {config.program_path}...")
        result = run(config)
    except RoutesToOpenApiError as e:
        _fail(e)

    click.echo(f"Found {len(result.routes)} routes.")
    _report(result)
    for path in result.written:
        click.echo(f"  Created {path}")

    if not result.ok:
        click.echo(f"{len(result.excluded)} route(s) were excluded.", err=True)
        sys.exit(EXIT_EXCLUDED)
    click.echo("Done!")


@main.command()
@click.option("-c", "--config", "config_path", default=None, type=click.Path(path_type=Path), help="Config file (YAML or JSON).")
@click.option("-v", "--verbose", is_flag=True, help="Log progress.")
def check(config_path: Path | None, verbose: bool):
    """Analyse the program and list its routes without writing anything."""
    _setup_logging(verbose)
    try:
        config = _load(config_path, None, False)
        result = build(config)
    except RoutesToOpenApiError as e:
        _fail(e)

    click.echo(f"Found {len(result.routes)} routes.")
    _report(result)
    if not result.ok:
        sys.exit(EXIT_EXCLUDED)
