"""CLI entry point for openapi-assembler."""

import logging
from pathlib import Path

import click
import yaml
from pydantic import ValidationError

from openapi_assembler.config import AssemblerConfig, load_config
from openapi_assembler.generator.assembler import ApiRouter
from openapi_assembler.registry.loader import BootstrapError, load_bootstrap


def _load_router(bootstrap_path: Path, config_path: Path | None) -> ApiRouter:
    """Read config and bootstrap files into a ready router."""
    try:
        config = load_config(config_path) if config_path else AssemblerConfig()
    except (yaml.YAMLError, ValidationError) as e:
        raise click.ClickException(f"Invalid config {config_path}: {e}") from e

    try:
        bootstrap = load_bootstrap(bootstrap_path)
    except BootstrapError as e:
        raise click.ClickException(str(e)) from e
    return bootstrap.build_router(config)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Log assembly details to stderr.")
def main(verbose: bool):
    """OpenAPI Assembler: build OpenAPI documents from handler and schema registries."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("bootstrap_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file for the document.")
@click.option("--format", "fmt", default="json", type=click.Choice(["json", "json-manual", "yaml"]), help="Output representation.")
@click.option("--indent", default=None, type=int, help="Indent JSON output (json format only).")
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Assembler config YAML.")
@click.option("--warn-unused", is_flag=True, help="List registered schemas no operation uses.")
def generate(bootstrap_path: Path, output: Path, fmt: str, indent: int | None, config_path: Path | None, warn_unused: bool):
    """Assemble an OpenAPI document from a bootstrap file."""
    click.echo(f"Loading registries from {bootstrap_path}...")
    router = _load_router(bootstrap_path, config_path)
    click.echo(f"Found {len(router.routes)} routes, {len(router.handlers)} handlers, {len(router.schemas)} schemas.")

    if fmt == "json":
        result = router.openapi_json(indent=indent)
    elif fmt == "json-manual":
        result = router.openapi_json_manual()
    else:
        result = router.openapi_yaml()

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(result, encoding="utf-8")
    click.echo(f"Document saved to {output}")

    if warn_unused:
        unused = router.warn_unused_schemas()
        for name in unused:
            click.echo(f"  unused schema: {name}")


@main.command()
@click.argument("bootstrap_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--config", "config_path", default=None, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Assembler config YAML.")
def unused(bootstrap_path: Path, config_path: Path | None):
    """List registered schemas that no routed operation reaches."""
    router = _load_router(bootstrap_path, config_path)
    names = router.unused_schemas()
    if not names:
        click.echo("All registered schemas are used.")
        return
    for name in names:
        click.echo(name)
