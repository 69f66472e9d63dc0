"""Import OpenAPI paths as catalog API calls.

One API call per (path, method) pair, for GET, POST, PUT, DELETE and PATCH.
Request and response bodies are linked to schemas already in the catalog by
name only; nothing here creates schemas.
"""

import logging
from uuid import UUID

from api_catalog.catalog.models import ITEMS_LINK, CatalogAPICall, CatalogSchema
from api_catalog.catalog.store import CatalogRepository
from api_catalog.parser.document import IMPORTED_METHODS, MediaType, Operation, Parameter, SchemaDocument, SchemaNode
from api_catalog.parser.names import ref_name, synthesize_schema_name

from .stats import ImportStats

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json"
IMPORTED_LOCATIONS = ("query", "path")
DROPPED_LOCATIONS = ("header", "cookie")


class SchemaLookup:
    """Finds schemas by exact name: this import's schemas first, then the store."""

    def __init__(self, store: CatalogRepository, service_id: UUID, known: dict[str, CatalogSchema] | None = None):
        self.store = store
        self.service_id = service_id
        self.known = known or {}

    def find(self, name: str) -> CatalogSchema | None:
        schema = self.known.get(name)
        if schema is None:
            schema = self.store.find_schema_by_name(self.service_id, name)
        return schema


def import_paths(
    document: SchemaDocument,
    store: CatalogRepository,
    service_id: UUID,
    stats: ImportStats,
    schemas: dict[str, CatalogSchema] | None = None,
) -> list[CatalogAPICall]:
    """Create an API call, with parameters and responses, per operation.

    ``schemas`` maps names to the schemas stored by this import; names not
    in it are looked up in the store.
    """
    lookup = SchemaLookup(store, service_id, schemas)
    for path in document.invalid_paths:
        stats.skip("path", path, "malformed path item")

    calls = []
    for path, path_item in document.paths.items():
        for method in path_item.invalid_methods:
            stats.skip("operation", f"{method.upper()} {path}", "malformed operation")

        for method, operation in path_item.operations():
            location = f"{method} {path}"
            if method.lower() not in IMPORTED_METHODS:
                stats.skip("method", location, f"{method} operations are not imported")
                continue
            calls.append(_import_operation(path, method, operation, store, lookup, stats))

    return calls


def _import_operation(
    path: str,
    method: str,
    operation: Operation,
    store: CatalogRepository,
    lookup: SchemaLookup,
    stats: ImportStats,
) -> CatalogAPICall:
    location = f"{method} {path}"
    call = store.create_api_call(
        lookup.service_id,
        path,
        method,
        description=operation.description,
        summary=operation.summary,
        operation_id=operation.operation_id,
        tags=operation.tags,
    )
    stats.imported_endpoints += 1

    if operation.invalid_parameters:
        stats.skip("parameter", location, f"{operation.invalid_parameters} malformed parameter(s)")
    for param in operation.parameters:
        _import_parameter(param, call, store, stats, location)

    if operation.request_body is not None:
        schema, kind = _find_body_schema(
            operation.request_body.content,
            synthesize_schema_name(operation.operation_id, path, method),
            lookup,
            stats,
            location,
        )
        if schema is not None:
            store.attach_schema_to_call(schema, call, kind)
            stats.linked_schemas += 1

    for code in operation.invalid_responses:
        stats.skip("response", f"{location} {code}", "malformed response")
    for status_code, response in operation.responses.items():
        content = response.content or {}
        stored = store.create_response(
            call,
            status_code=status_code,
            description=response.description,
            content_type=JSON_CONTENT if JSON_CONTENT in content else next(iter(content), JSON_CONTENT),
        )
        stats.imported_responses += 1

        schema, kind = _find_body_schema(
            content,
            synthesize_schema_name(operation.operation_id, path, method, is_response=True, status_code=status_code),
            lookup,
            stats,
            f"{location} {status_code}",
        )
        if schema is not None:
            store.attach_schema_to_response(schema, stored, kind)
            stats.linked_schemas += 1

    return call


def _find_body_schema(
    content: dict[str, MediaType],
    synthesized_name: str,
    lookup: SchemaLookup,
    stats: ImportStats,
    location: str,
) -> tuple[CatalogSchema | None, str | None]:
    media = content.get(JSON_CONTENT)
    if media is None or media.schema_ is None:
        return None, None

    name, kind = resolve_body_schema(media.schema_, synthesized_name)
    schema = lookup.find(name)
    if schema is None:
        if name == synthesized_name:
            # Inline bodies only link when a schema was registered under this name
            logger.debug("No schema named %r for inline body of %s", name, location)
        else:
            stats.skip("schema_link", location, f"schema {name!r} not found")
    return schema, kind


def _import_parameter(
    param: Parameter,
    call: CatalogAPICall,
    store: CatalogRepository,
    stats: ImportStats,
    location: str,
) -> None:
    if param.location in DROPPED_LOCATIONS:
        logger.debug("Not importing %s parameter %r of %s", param.location, param.name, location)
        return
    if param.location not in IMPORTED_LOCATIONS:
        stats.skip("parameter", location, f"parameter {param.name!r} has unknown location {param.location!r}")
        return

    store.create_parameter(
        call,
        name=param.name,
        type=_parameter_type(param.schema_),
        location=param.location,
        required=param.required,
        description=param.description,
        example=param.example.to_storage() if param.example is not None else None,
    )
    stats.imported_parameters += 1


def resolve_body_schema(schema: SchemaNode, synthesized_name: str) -> tuple[str, str | None]:
    """Name and link kind of a request/response body schema.

    A direct ``$ref`` names the schema; an array of ``$ref`` names the item
    schema with kind ``Items``; anything inline falls back to the
    synthesized name.
    """
    if schema.ref is not None:
        return ref_name(schema.ref), None
    if schema.items is not None and schema.items.ref is not None:
        return ref_name(schema.items.ref), ITEMS_LINK
    return synthesized_name, None


def _parameter_type(schema: SchemaNode | None) -> str:
    if schema is None:
        return "string"
    if schema.type:
        return schema.type
    if schema.ref is not None:
        return ref_name(schema.ref)
    return "string"
