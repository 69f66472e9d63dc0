"""Import an OpenAPI document into the catalog.

decode -> create service -> extract and project root schemas -> import
paths. Decoding happens before anything is written; everything after it
runs inside one store transaction.
"""

import logging
from urllib.parse import urlparse
from uuid import UUID

from api_catalog.catalog.models import CatalogSchema, CatalogService, ServiceEnvironment
from api_catalog.catalog.store import CatalogRepository
from api_catalog.parser.decode import decode
from api_catalog.parser.document import SchemaDocument, Server
from api_catalog.parser.extract import dangling_references, extract_all

from .operations import import_paths
from .projector import project_schema
from .stats import ImportResult, ImportStats

logger = logging.getLogger(__name__)


def import_document(
    data: bytes,
    store: CatalogRepository,
    fmt: str | None = None,
    filename: str | None = None,
    service_id: UUID | None = None,
) -> ImportResult:
    """Decode ``data`` and import it into ``store``.

    With ``service_id`` the document is imported into that existing service
    (NotFoundError if absent); otherwise a new service is created from
    ``info`` and ``servers``.
    """
    document = decode(data, fmt=fmt, filename=filename)
    return import_openapi_document(document, store, service_id=service_id)


def import_openapi_document(
    document: SchemaDocument,
    store: CatalogRepository,
    service_id: UUID | None = None,
) -> ImportResult:
    """Import an already decoded document."""
    stats = ImportStats()
    with store.transaction():
        if service_id is not None:
            service = store.get_service(service_id)
        else:
            service = store.create_service(service_from_document(document))

        schemas = import_schemas(document, store, service.id, stats)
        import_paths(document, store, service.id, stats, schemas)

    logger.info(
        "Imported %r: %d endpoints, %d schemas, %d links, %d skipped",
        service.name,
        stats.imported_endpoints,
        stats.imported_schemas,
        stats.linked_schemas,
        stats.skipped_count,
    )
    return ImportResult(service=service, stats=stats)


def import_schemas(
    document: SchemaDocument,
    store: CatalogRepository,
    service_id: UUID,
    stats: ImportStats,
) -> dict[str, CatalogSchema]:
    """Store every root schema; return them keyed by name.

    A schema whose name already exists in the service is reused as is.
    """
    for name in document.components.invalid_schemas:
        stats.skip("schema", name, "malformed schema")

    schemas = document.components.schemas
    for name, missing in dangling_references(schemas).items():
        for target in sorted(missing):
            stats.skip("schema_ref", name, f"reference to unknown schema {target!r}")

    by_name: dict[str, CatalogSchema] = {}
    for extracted in extract_all(schemas):
        existing = store.find_schema_by_name(service_id, extracted.name)
        if existing is not None:
            logger.debug("Reusing existing schema %r", extracted.name)
            by_name[extracted.name] = existing
            stats.reused_schemas += 1
            continue

        projection = project_schema(extracted.name, extracted.schema)
        schema = store.create_schema(service_id, projection.name, **projection.schema_fields())
        for attribute in projection.attributes:
            store.create_attribute(schema, attribute)
        by_name[extracted.name] = schema
        stats.imported_schemas += 1
        stats.imported_attributes += len(projection.attributes)
    return by_name


def service_from_document(document: SchemaDocument) -> CatalogService:
    info = document.info
    contact = info.contact
    return CatalogService(
        name=info.title,
        version=info.version,
        description=info.description,
        owner=contact.name if contact else None,
        contact_email=contact.email if contact else None,
        environments=[environment_from_server(server) for server in document.servers],
    )


def environment_from_server(server: Server) -> ServiceEnvironment:
    """Classify a server URL into a deployment environment."""
    url = server.url.lower()
    if "stage" in url or "staging" in url:
        env_type = "stage"
    elif "preprod" in url or "pre-production" in url:
        env_type = "preprod"
    elif "prod" in url or "production" in url:
        env_type = "prod"
    else:
        env_type = "development"

    return ServiceEnvironment(
        type=env_type,
        host=urlparse(server.url).hostname or "unknown",
        base_url=server.url,
        description=server.description,
    )
