"""Rebuild an OpenAPI document from catalog rows.

The document is assembled once as plain dictionaries; JSON and YAML are
both serialized from that same structure, so the two formats carry the
same content.
"""

import json
import logging
from datetime import date, datetime
from pathlib import Path

import yaml

from api_catalog.catalog.models import (
    ITEMS_LINK,
    CatalogAPICall,
    CatalogAttribute,
    CatalogParameter,
    CatalogSchema,
    CatalogService,
)
from api_catalog.catalog.store import CatalogRepository
from api_catalog.config import DEFAULT_OPENAPI_VERSION
from api_catalog.errors import UnsupportedFormatError
from api_catalog.importer.projector import ENUM_DEFAULT_SEPARATOR
from api_catalog.parser.detect import FORMATS
from api_catalog.parser.document import HTTP_METHODS
from api_catalog.parser.values import JsonKind, JsonValue, storage_to_python

logger = logging.getLogger(__name__)

JSON_CONTENT = "application/json"
SCHEMA_REF_PREFIX = "#/components/schemas/"
SCALAR_TYPES = ("string", "integer", "number", "boolean")


def schema_ref(name: str) -> dict:
    return {"$ref": f"{SCHEMA_REF_PREFIX}{name}"}


class OpenAPIExporter:
    """Exports a service and its API calls as an OpenAPI 3 document."""

    def __init__(self, store: CatalogRepository, openapi_version: str = DEFAULT_OPENAPI_VERSION):
        self.store = store
        self.openapi_version = openapi_version

    def export(self, service: CatalogService, calls: list[CatalogAPICall], fmt: str = "json") -> bytes:
        """Serialize the document for ``service`` as JSON or YAML bytes."""
        if fmt not in FORMATS:
            raise UnsupportedFormatError(f"Unsupported export format: {fmt}")
        document = self.build_document(service, calls)
        if fmt == "json":
            text = json.dumps(document, indent=2, sort_keys=True, ensure_ascii=False, default=_iso_default)
            return (text + "\n").encode("utf-8")
        return yaml.safe_dump(document, sort_keys=True, allow_unicode=True).encode("utf-8")

    def write_file(
        self, service: CatalogService, calls: list[CatalogAPICall], fmt: str, directory: Path
    ) -> Path:
        """Write the export to ``<directory>/<name>_v<version>.<fmt>``."""
        data = self.export(service, calls, fmt)
        directory.mkdir(parents=True, exist_ok=True)
        file_path = directory / f"{service.name}_v{service.version}.{fmt}"
        file_path.write_bytes(data)
        return file_path

    def build_document(self, service: CatalogService, calls: list[CatalogAPICall]) -> dict:
        paths: dict[str, dict] = {}
        for call in calls:
            method = call.method.lower()
            if method not in HTTP_METHODS:
                logger.warning("Not exporting %s %s: unsupported method", call.method, call.path)
                continue
            path_item = paths.setdefault(call.path, {})
            if method in path_item:
                logger.warning("Duplicate %s %s in catalog; exporting the last one", call.method, call.path)
            path_item[method] = self._operation(call)

        document = {
            "openapi": self.openapi_version,
            "info": self._info(service),
            "paths": paths,
        }
        servers = [_drop_none({"url": env.base_url, "description": env.description}) for env in service.environments]
        if servers:
            document["servers"] = servers

        schemas = {schema.name: self.schema_object(schema) for schema in self.store.list_schemas(service.id)}
        if schemas:
            document["components"] = {"schemas": schemas}
        return document

    def _info(self, service: CatalogService) -> dict:
        info = {"title": service.name, "version": service.version}
        if service.description:
            info["description"] = service.description
        contact = _drop_none({"name": service.owner, "email": service.contact_email})
        if contact:
            info["contact"] = contact
        return info

    def _operation(self, call: CatalogAPICall) -> dict:
        operation = _drop_none(
            {
                "operationId": call.operation_id,
                "summary": call.summary,
                "description": call.description,
            }
        )
        if call.tags:
            operation["tags"] = list(call.tags)

        parameters = [self._parameter(p) for p in self.store.parameters_of(call)]
        if parameters:
            operation["parameters"] = parameters

        linked = self.store.request_schema_of(call)
        if linked is not None:
            schema, kind = linked
            operation["requestBody"] = {"content": {"application/json": {"schema": _link_schema(schema, kind)}}}

        responses = {}
        for response in self.store.responses_of(call):
            body = {"description": response.description or "Response"}
            linked = self.store.response_schema_of(response)
            if linked is not None:
                schema, kind = linked
                # links are only ever read from application/json on import
                body["content"] = {JSON_CONTENT: {"schema": _link_schema(schema, kind)}}
            responses[response.status_code] = body
        operation["responses"] = responses
        return operation

    def _parameter(self, param: CatalogParameter) -> dict:
        if param.type in SCALAR_TYPES or param.type in ("array", "object"):
            schema = {"type": param.type}
        else:
            schema = schema_ref(param.type)
        parameter = {
            "name": param.name,
            "in": param.location,
            "required": param.required,
            "schema": schema,
        }
        if param.description:
            parameter["description"] = param.description
        if param.example is not None:
            parameter["example"] = storage_to_python(param.example)
        return parameter

    def schema_object(self, schema: CatalogSchema) -> dict:
        """Rebuild the component schema for one catalog schema."""
        if schema.is_reference and schema.referenced_model_name:
            return schema_ref(schema.referenced_model_name)

        attributes = self.store.attributes_of(schema)
        if schema.schema_type == "enum" and attributes:
            node = _attribute_schema(attributes[0])
        elif attributes:
            node = {
                "type": "object",
                "properties": {attr.name: _attribute_schema(attr) for attr in attributes},
            }
            required = [attr.name for attr in attributes if attr.required]
            if required:
                node["required"] = required
        elif schema.schema_type == "array":
            node = {"type": "array", "items": _element_schema(schema.element_type, schema.element_is_reference)}
        elif schema.schema_type in SCALAR_TYPES:
            node = {"type": schema.schema_type}
        else:
            node = {"type": "object"}

        if schema.title:
            node["title"] = schema.title
        if schema.description:
            node["description"] = schema.description
        return node


def _link_schema(schema: CatalogSchema, kind: str | None) -> dict:
    if kind == ITEMS_LINK:
        return {"type": "array", "items": schema_ref(schema.name)}
    return schema_ref(schema.name)


def _element_schema(element_type: str | None, is_reference: bool) -> dict:
    if element_type is None:
        return {"type": "string"}
    if is_reference:
        return schema_ref(element_type)
    return {"type": element_type}


def _attribute_schema(attr: CatalogAttribute) -> dict:
    # $ref is exclusive: no sibling keys
    if attr.element_is_reference and attr.type != "array":
        return schema_ref(attr.element_type)

    if attr.type == "array":
        node = {"type": "array", "items": _element_schema(attr.element_type, attr.element_is_reference)}
    elif attr.type == "enum":
        node = {"enum": list(attr.enum_values)}
        if attr.element_type:
            node["type"] = attr.element_type
    else:
        node = {"type": attr.type}

    if attr.format:
        node["format"] = attr.format
    if attr.description:
        node["description"] = attr.description
    if attr.nullable:
        node["nullable"] = True
    if attr.default_value is not None and not _is_enum_fallback(attr):
        node["default"] = _default_value(attr)
    return node


def _default_value(attr: CatalogAttribute):
    value = JsonValue.from_storage(attr.default_value)
    if value.kind is JsonKind.NULL:
        return None
    # "1" on a string property stays the text "1"
    if _declared_type(attr) == "string":
        return attr.default_value
    return value.to_python()


def _declared_type(attr: CatalogAttribute) -> str | None:
    """Primitive type as written in the source schema; enums keep it in ``element_type``."""
    if attr.type == "enum":
        return attr.element_type
    return attr.type


def _is_enum_fallback(attr: CatalogAttribute) -> bool:
    return attr.type == "enum" and attr.default_value == ENUM_DEFAULT_SEPARATOR.join(attr.enum_values)


def _drop_none(values: dict) -> dict:
    return {k: v for k, v in values.items() if v is not None}


def _iso_default(value):
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
