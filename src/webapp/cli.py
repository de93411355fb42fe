from __future__ import annotations

import importlib
import json
import logging
from pathlib import Path
from typing import Any, List, Optional

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from webapp.domain.models import GeneratorOptions, ServerSpec
from webapp.openapi.path_converter import PathConverter
from webapp.routing.api import API


app = typer.Typer(no_args_is_help=True, add_completion=False)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger(__name__)


class _NoAliasDumper(yaml.SafeDumper):
    def ignore_aliases(self, data: Any) -> bool:
        return True


@app.callback()
def _configure(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging on stderr"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def load_api(app_ref: str) -> API:
    """``package.module:attribute`` (attribute defaults to ``api``) -> API instance."""
    module_name, _, attr = app_ref.partition(":")
    attr = attr or "api"
    if not module_name:
        raise typer.BadParameter(f"App reference must look like module:attribute, got {app_ref!r}")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import module {module_name!r}: {e}") from e

    obj: Any = module
    for part in attr.split("."):
        if not hasattr(obj, part):
            raise typer.BadParameter(f"{module_name!r} has no attribute {attr!r}")
        obj = getattr(obj, part)

    if not isinstance(obj, API):
        raise typer.BadParameter(f"{app_ref} is a {type(obj).__name__}, expected an API instance")
    logger.debug("loaded %s: %d methods", app_ref, len(obj.routes_by_method))
    return obj


def load_options_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise typer.BadParameter(f"Config file does not exist: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))  # JSON is valid YAML
    except yaml.YAMLError as e:
        raise typer.BadParameter(f"Config file is not valid YAML/JSON: {path}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise typer.BadParameter(f"Config file must contain a mapping: {path}")
    return data


def build_options(
    config: Optional[Path],
    title: Optional[str],
    version: Optional[str],
    description: Optional[str],
    servers: Optional[List[str]],
) -> GeneratorOptions:
    data = load_options_file(config) if config else {}

    # flags win over the file
    if title is not None:
        data["title"] = title
    if version is not None:
        data["version"] = version
    if description is not None:
        data["description"] = description
    if servers:
        data["servers"] = [ServerSpec(url=url).model_dump() for url in servers]

    try:
        return GeneratorOptions.model_validate(data)
    except ValidationError as e:
        raise typer.BadParameter(f"Invalid generator options: {e}") from e


def dump_document(spec: dict[str, Any], fmt: str) -> str:
    if fmt == "yaml":
        return yaml.dump(spec, Dumper=_NoAliasDumper, sort_keys=False, allow_unicode=True)
    return json.dumps(spec, indent=2, ensure_ascii=False)


@app.command()
def openapi(
    app_ref: str = typer.Argument(..., help="Route table to document, as module:attribute"),
    title: Optional[str] = typer.Option(None, help="info.title"),
    version: Optional[str] = typer.Option(None, help="info.version"),
    description: Optional[str] = typer.Option(None, help="info.description"),
    server: Optional[List[str]] = typer.Option(None, "--server", help="Server URL (repeatable)"),
    config: Optional[Path] = typer.Option(None, help="YAML/JSON file with generator options"),
    format: str = typer.Option("json", help="Output format: json|yaml"),
    out: Optional[str] = typer.Option(None, help="Output path (default: print to stdout)"),
) -> None:
    fmt = format.lower().strip()
    if fmt not in ("json", "yaml"):
        raise typer.BadParameter("format must be one of: json, yaml")

    api = load_api(app_ref)
    options = build_options(config, title, version, description, server)

    spec = api.generate_openapi_spec(options)
    text = dump_document(spec, fmt)

    if out:
        out_path = Path(out).expanduser()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(text, encoding="utf-8")
        console.print(
            f"[bold green]Wrote[/bold green] {fmt} document to: {out_path} "
            f"({len(spec['paths'])} paths)"
        )
    else:
        # raw text: rich would wrap long lines and read brackets as markup
        typer.echo(text)


@app.command()
def routes(
    app_ref: str = typer.Argument(..., help="Route table to list, as module:attribute"),
    format: str = typer.Option("table", help="Output format: table|json"),
) -> None:
    api = load_api(app_ref)
    converter = PathConverter()

    rows = []
    for method, compiled in api.routes_by_method.items():
        for route in compiled:
            rows.append(
                {
                    "method": method,
                    "regex": route.regex,
                    "path": converter.convert(route.regex).path,
                    "handler": route.handler.name,
                }
            )

    if format.lower() == "json":
        typer.echo(json.dumps(rows, indent=2))
        return

    console.print(f"[bold]Routes:[/bold] {len(rows)}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("METHOD", no_wrap=True)
    table.add_column("REGEX")
    table.add_column("OPENAPI PATH")
    table.add_column("HANDLER")

    for r in rows:
        table.add_row(r["method"], escape(r["regex"]), escape(r["path"]), escape(r["handler"]))

    console.print(table)


@app.command()
def ping() -> None:
    console.print("pong")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
