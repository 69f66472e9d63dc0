"""CLI entry point for api-catalog."""

import logging
from pathlib import Path
from uuid import UUID

import click

from api_catalog.catalog.models import CatalogService
from api_catalog.catalog.store import InMemoryCatalog
from api_catalog.config import CatalogSettings
from api_catalog.errors import CatalogError, NotFoundError
from api_catalog.exporter.openapi import OpenAPIExporter
from api_catalog.importer.pipeline import import_document


def _find_service(store: InMemoryCatalog, service: str) -> CatalogService:
    """Look a service up by id, then by name."""
    try:
        return store.get_service(UUID(service))
    except ValueError:
        pass
    found = store.find_service_by_name(service)
    if found is None:
        raise NotFoundError(f"Service {service!r} not found")
    return found


@click.group()
@click.option("--catalog", "catalog_path", default=None, type=click.Path(path_type=Path), help="Catalog snapshot file.")
@click.option("-v", "--verbose", is_flag=True, help="Log progress to stderr.")
@click.pass_context
def main(ctx: click.Context, catalog_path: Path | None, verbose: bool):
    """API Catalog: import and export API documentation as OpenAPI."""
    settings = CatalogSettings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if verbose else settings.log_level,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = {
        "settings": settings,
        "catalog_path": catalog_path or Path(settings.catalog_path),
    }


@main.command("import")
@click.argument("doc_path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--format", "fmt", default="auto", type=click.Choice(["auto", "json", "yaml"]), help="Document format.")
@click.option("--service-id", default=None, type=click.UUID, help="Import into an existing service.")
@click.pass_obj
def import_cmd(obj: dict, doc_path: Path, fmt: str, service_id: UUID | None):
    """Import an OpenAPI document into the catalog."""
    catalog_path: Path = obj["catalog_path"]
    store = InMemoryCatalog.load(catalog_path)

    click.echo(f"Importing {doc_path} (format: {fmt})...")
    try:
        result = import_document(
            doc_path.read_bytes(),
            store,
            fmt=None if fmt == "auto" else fmt,
            filename=doc_path.name,
            service_id=service_id,
        )
    except CatalogError as e:
        raise click.ClickException(str(e)) from e
    store.save(catalog_path)

    stats = result.stats
    click.echo(f"Service: {result.service.name} v{result.service.version} ({result.service.id})")
    click.echo(f"  Endpoints:  {stats.imported_endpoints}")
    click.echo(f"  Parameters: {stats.imported_parameters}")
    click.echo(f"  Responses:  {stats.imported_responses}")
    click.echo(f"  Schemas:    {stats.imported_schemas} ({stats.imported_attributes} attributes)")
    click.echo(f"  Links:      {stats.linked_schemas}")
    click.echo(f"  Skipped:    {stats.skipped_count}")
    for warning in stats.skipped:
        click.echo(f"    {warning}")
    click.echo(f"Catalog saved to {catalog_path}")


@main.command("export")
@click.argument("service")
@click.option("-o", "--output", required=True, type=click.Path(path_type=Path), help="Output file path.")
@click.option("--format", "fmt", default=None, type=click.Choice(["json", "yaml"]), help="Export format.")
@click.pass_obj
def export_cmd(obj: dict, service: str, output: Path, fmt: str | None):
    """Export a service from the catalog as an OpenAPI document."""
    settings: CatalogSettings = obj["settings"]
    store = InMemoryCatalog.load(obj["catalog_path"])
    fmt = fmt or settings.export_format

    try:
        found = _find_service(store, service)
        exporter = OpenAPIExporter(store, openapi_version=settings.openapi_version)
        data = exporter.export(found, store.list_api_calls(found.id), fmt)
    except CatalogError as e:
        raise click.ClickException(str(e)) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_bytes(data)
    click.echo(f"Exported {found.name} v{found.version} to {output}")


@main.command("services")
@click.pass_obj
def services_cmd(obj: dict):
    """List the services in the catalog."""
    store = InMemoryCatalog.load(obj["catalog_path"])
    services = store.list_services()
    if not services:
        click.echo("No services in catalog.")
        return
    for service in services:
        endpoints = len(store.list_api_calls(service.id))
        schemas = len(store.list_schemas(service.id))
        click.echo(f"{service.id}  {service.name} v{service.version}  endpoints={endpoints} schemas={schemas}")
