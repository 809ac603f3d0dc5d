#!/usr/bin/env python3
# flowcatalog/cli.py

import json
import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
import yaml

from flowcatalog.config import load_settings
from flowcatalog.engine import CatalogEngine
from flowcatalog.errors import ConfigError, FlowCatalogError, InputError
from flowcatalog.utils.io import load_any, write_json
from flowcatalog.utils.logger import get_logger, init_logger, level_from_name
from flowcatalog.validation.findings import ValidationResult

logger = get_logger("cli")
app = typer.Typer(help="FlowCatalog CLI - search, validate and assemble n8n-style workflow nodes")


def _emit(payload: Dict[str, Any]) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def _engine(ctx: typer.Context) -> CatalogEngine:
    return ctx.obj["engine"]


def _run(fn, *args, **kwargs) -> Dict[str, Any]:
    """Call an engine operation; errors go to stdout as JSON with a non-zero exit."""
    try:
        return fn(*args, **kwargs)
    except FlowCatalogError as e:
        body = e.to_dict() if hasattr(e, "to_dict") else {"code": "error", "message": str(e)}
        _emit({"error": body})
        raise typer.Exit(code=2 if isinstance(e, InputError) else 1)


def _parse_json_option(raw: Optional[str], name: str) -> Any:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"{name} is not valid JSON: {e}")


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(None, "--config", "-c", exists=True, readable=True, help="Settings file (.json/.yaml)"),
    remote_url: Optional[str] = typer.Option(None, "--remote-url", help="Remote catalog URL (overrides settings)"),
    catalog: Optional[Path] = typer.Option(None, "--catalog", exists=True, readable=True, help="Static catalog file (overrides settings)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logs"),
):
    """Global options shared by every command."""
    try:
        settings = load_settings(config)
    except ConfigError as e:
        raise typer.BadParameter(str(e))
    if remote_url:
        settings = replace(settings, remote_url=remote_url)
    if catalog:
        settings = replace(settings, static_catalog=catalog)

    level = logging.DEBUG if verbose else level_from_name(settings.log_level)
    init_logger(level=level, log_dir=settings.log_dir)
    ctx.obj = {"settings": settings, "engine": CatalogEngine.from_settings(settings)}


@app.command()
def search(
    ctx: typer.Context,
    query: str = typer.Argument("", help="Free-text query; empty lists everything"),
    category: Optional[str] = typer.Option(None, "--category", help="Only this category"),
    kind: Optional[str] = typer.Option(None, "--kind", help="trigger | regular | webhook"),
    capability: List[str] = typer.Option([], "--capability", help="Required capability (repeatable)"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max results"),
):
    """Ranked node types for a query."""
    filters = {"category": category, "node_kind": kind, "capabilities": capability}
    _emit(_run(_engine(ctx).search, query, filters, limit))


@app.command()
def suggest(
    ctx: typer.Context,
    type_name: Optional[str] = typer.Option(None, "--type", "-t", help="Current node type"),
    output: List[str] = typer.Option([], "--output", "-o", help="Offered output port type (repeatable)"),
    category: Optional[str] = typer.Option(None, "--category", help="Category for affinity ranking"),
    limit: Optional[int] = typer.Option(None, "--limit", "-n", help="Max results"),
):
    """Node types that can follow the given node or output ports."""
    if not type_name and not output:
        raise typer.BadParameter("pass --type or at least one --output")
    context = {"type": type_name, "output_types": output, "category": category}
    _emit(_run(_engine(ctx).suggest, context, limit))


@app.command()
def complete(
    ctx: typer.Context,
    prefix: str = typer.Argument(..., help="At least two characters"),
):
    """Autocomplete display names, aliases and categories."""
    _emit(_run(_engine(ctx).complete, prefix))


@app.command("validate-node")
def validate_node(
    ctx: typer.Context,
    type_name: str = typer.Argument(..., help="Node type name"),
    params: Optional[str] = typer.Option(None, "--params", "-p", help="Parameters as a JSON object"),
    params_file: Optional[Path] = typer.Option(None, "--params-file", exists=True, readable=True, help="Parameters file (.json/.yaml)"),
):
    """Check one node configuration. Exit code 1 when it has errors."""
    parameters = _load_file(params_file) if params_file else _parse_json_option(params, "--params")
    result = _run(_engine(ctx).validate_node, type_name, parameters)
    _emit(result)
    if not result["valid"]:
        raise typer.Exit(code=1)


@app.command()
def validate(
    ctx: typer.Context,
    workflow: Path = typer.Argument(..., exists=True, readable=True, help="Workflow graph JSON/YAML"),
    n8n: bool = typer.Option(False, "--n8n", help="Input is an n8n workflow export"),
    report: bool = typer.Option(False, "--report", help="Print a human-readable report instead of JSON"),
):
    """Validate a workflow graph. Exit code 1 when it has errors."""
    data = _load_file(workflow)
    result = _run(_engine(ctx).validate_workflow, data, "n8n" if n8n else "plain")
    if report:
        _print_report(result)
    else:
        _emit(result)
    if not result["valid"]:
        raise typer.Exit(code=1)


@app.command()
def skeleton(
    ctx: typer.Context,
    types: List[str] = typer.Argument(..., help="Node types in the desired order"),
    hints: Optional[str] = typer.Option(None, "--hints", help="Hints as a JSON object {parameters, names, spacing}"),
    out: Optional[Path] = typer.Option(None, "--out", help="Write the generated graph to this path"),
    n8n: bool = typer.Option(False, "--n8n", help="Emit the graph in n8n export format"),
):
    """Generate a minimally wired workflow for the given node types."""
    payload = _run(
        _engine(ctx).generate_skeleton,
        types,
        _parse_json_option(hints, "--hints"),
        "n8n" if n8n else "plain",
    )
    if out is not None:
        write_json(out, payload["graph"])
        logger.info("[ok] wrote %s", out)
    _emit(payload)


@app.command("catalog")
def catalog_info(
    ctx: typer.Context,
    type_name: Optional[str] = typer.Option(None, "--type", "-t", help="Describe one node type"),
    refresh: bool = typer.Option(False, "--refresh", help="Rebuild from all sources first and print the build report"),
):
    """Catalog statistics, or one descriptor with --type."""
    engine = _engine(ctx)
    if refresh:
        _emit(_run(engine.refresh_sync))
        return
    _emit(_run(engine.describe, type_name))


def _print_report(result: Dict[str, Any]) -> None:
    typer.echo(ValidationResult.from_dict(result).format_report())
    if result["catalog"]["stale"]:
        typer.echo("(catalog is stale)")


def _load_file(path: Path) -> Any:
    try:
        return load_any(path)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise typer.BadParameter(f"Cannot read {path}: {e}")


if __name__ == "__main__":
    app()
