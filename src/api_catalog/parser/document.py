"""In-memory OpenAPI document model.

The decoder validates raw JSON trees into these models. Field names are
snake_case and accept either their own name or the camelCase OpenAPI key
(``operationId``, ``requestBody``, ``allOf`` ...). Unknown keys are ignored.
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from . import names
from .values import JsonValue

logger = logging.getLogger(__name__)

PRIMITIVE_TYPES = ("string", "number", "integer", "boolean", "array", "object")
IMPORTED_METHODS = ("get", "post", "put", "delete", "patch")
HTTP_METHODS = IMPORTED_METHODS + ("head", "options")


class OpenAPIModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _coerce_str(value: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


class SchemaNode(OpenAPIModel):
    """A (possibly recursive) schema node.

    A node with ``ref`` set carries nothing else: sibling keys of ``$ref``
    are dropped at validation time.
    """

    ref: str | None = Field(None, alias="$ref")
    type: str | None = None
    format: str | None = None
    title: str | None = None
    description: str | None = None
    pattern: str | None = None
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | bool | None = None
    exclusive_maximum: float | bool | None = None
    min_length: int | None = None
    max_length: int | None = None
    enum: list[str] | None = None
    items: "SchemaNode | None" = None
    properties: "dict[str, SchemaNode] | None" = None
    required: list[str] | None = None
    all_of: "list[SchemaNode] | None" = None
    any_of: "list[SchemaNode] | None" = None
    one_of: "list[SchemaNode] | None" = None
    default: JsonValue | None = None
    example: JsonValue | None = None
    nullable: bool | None = None

    @model_validator(mode="before")
    @classmethod
    def _ref_is_exclusive(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "$ref" in data:
            return {"$ref": data["$ref"]}
        # OpenAPI 3.1 allows a list of types, e.g. ["string", "null"]
        types = data.get("type")
        if isinstance(types, list):
            data = dict(data)
            concrete = [t for t in types if t != "null"]
            data["type"] = concrete[0] if concrete else None
            if "null" in types:
                data["nullable"] = True
        return data

    @field_validator("enum", mode="before")
    @classmethod
    def _enum_as_strings(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return value
        return [JsonValue.from_python(v).to_storage() for v in value]

    @field_validator("required", mode="before")
    @classmethod
    def _required_names(cls, value: Any) -> Any:
        # Swagger-style `required: true` on a property is not a name list
        if not isinstance(value, list):
            return None
        return [str(name) for name in value]

    @field_validator("default", "example", mode="before")
    @classmethod
    def _wrap_dynamic(cls, value: Any) -> JsonValue:
        return JsonValue.from_python(value)

    @property
    def ref_name(self) -> str | None:
        """Last path segment of ``ref``, i.e. the referenced schema name."""
        if self.ref is None:
            return None
        return names.ref_name(self.ref)


class Contact(OpenAPIModel):
    name: str | None = None
    email: str | None = None


class Info(OpenAPIModel):
    title: str
    version: str
    description: str | None = None
    contact: Contact | None = None

    @field_validator("title", "version", mode="before")
    @classmethod
    def _numbers_as_text(cls, value: Any) -> Any:
        # YAML reads `version: 1.0` as a float
        return _coerce_str(value)


class Server(OpenAPIModel):
    url: str
    description: str | None = None


class MediaType(OpenAPIModel):
    schema_: SchemaNode | None = Field(None, alias="schema")


class Parameter(OpenAPIModel):
    name: str
    location: str = Field(alias="in")
    description: str | None = None
    required: bool = False
    schema_: SchemaNode | None = Field(None, alias="schema")
    example: JsonValue | None = None
    content: dict[str, MediaType] | None = None

    @field_validator("example", mode="before")
    @classmethod
    def _wrap_example(cls, value: Any) -> JsonValue:
        return JsonValue.from_python(value)


class RequestBody(OpenAPIModel):
    description: str | None = None
    content: dict[str, MediaType] = {}
    required: bool | None = None


class Response(OpenAPIModel):
    description: str | None = None
    content: dict[str, MediaType] | None = None


class Operation(OpenAPIModel):
    """A single (path, method) operation.

    Malformed parameters and responses are dropped here rather than failing
    the whole document; they are counted in ``invalid_parameters`` and
    listed in ``invalid_responses`` so the importer can report them.
    """

    tags: list[str] = []
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = None
    parameters: list[Parameter] = []
    request_body: RequestBody | None = None
    responses: dict[str, Response] = {}
    invalid_parameters: int = 0
    invalid_responses: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_items(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)

        raw_params = data.get("parameters")
        if raw_params is not None:
            params, invalid = [], 0
            for raw in raw_params if isinstance(raw_params, list) else []:
                try:
                    params.append(Parameter.model_validate(raw))
                except ValidationError:
                    invalid += 1
            if not isinstance(raw_params, list):
                invalid += 1
            data["parameters"] = params
            data["invalid_parameters"] = invalid

        raw_responses = data.get("responses")
        if isinstance(raw_responses, dict):
            responses, invalid_codes = {}, []
            for code, raw in raw_responses.items():
                try:
                    responses[str(code)] = Response.model_validate(raw)
                except ValidationError:
                    invalid_codes.append(str(code))
            data["responses"] = responses
            data["invalid_responses"] = invalid_codes
        elif raw_responses is not None:
            data["responses"] = {}
        return data

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_names(cls, value: Any) -> Any:
        # Tags occasionally appear as tag objects instead of names
        if not isinstance(value, list):
            return []
        names = []
        for tag in value:
            if isinstance(tag, str):
                names.append(tag)
            elif isinstance(tag, dict) and isinstance(tag.get("name"), str):
                names.append(tag["name"])
        return names


class PathItem(OpenAPIModel):
    get: Operation | None = None
    post: Operation | None = None
    put: Operation | None = None
    delete: Operation | None = None
    patch: Operation | None = None
    head: Operation | None = None
    options: Operation | None = None
    invalid_methods: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_operations(cls, data: Any) -> Any:
        if data is None:
            return {}
        if not isinstance(data, dict):
            return data
        data = dict(data)
        invalid = []
        for method in HTTP_METHODS:
            if method not in data:
                continue
            try:
                data[method] = Operation.model_validate(data[method])
            except ValidationError as e:
                logger.debug("Dropping malformed %s operation: %s", method.upper(), e)
                del data[method]
                invalid.append(method)
        data["invalid_methods"] = invalid
        return data

    def operations(self) -> list[tuple[str, Operation]]:
        """Return (METHOD, operation) pairs in a fixed method order."""
        found = []
        for method in HTTP_METHODS:
            operation = getattr(self, method)
            if operation is not None:
                found.append((method.upper(), operation))
        return found


class Components(OpenAPIModel):
    """``components``; a schema that fails validation is dropped and listed in ``invalid_schemas``."""

    schemas: dict[str, SchemaNode] = {}
    invalid_schemas: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_schemas(cls, data: Any) -> Any:
        if data is None:
            return {}
        if not isinstance(data, dict) or not isinstance(data.get("schemas"), dict):
            return data
        data = dict(data)
        schemas, invalid = {}, []
        for name, raw in data["schemas"].items():
            try:
                schemas[str(name)] = SchemaNode.model_validate(raw)
            except ValidationError as e:
                logger.debug("Dropping malformed schema %r: %s", name, e)
                invalid.append(str(name))
        data["schemas"] = schemas
        data["invalid_schemas"] = invalid
        return data


class SchemaDocument(OpenAPIModel):
    """Root of a decoded OpenAPI document.

    ``x-`` extensions under ``paths`` are ignored; any other path entry that
    is not a valid path item is dropped and listed in ``invalid_paths``.
    """

    openapi: str | None = None
    info: Info
    servers: list[Server] = []
    paths: dict[str, PathItem]
    components: Components = Field(default_factory=Components)
    invalid_paths: list[str] = []

    @model_validator(mode="before")
    @classmethod
    def _drop_malformed_paths(cls, data: Any) -> Any:
        if not isinstance(data, dict) or not isinstance(data.get("paths"), dict):
            return data
        data = dict(data)
        paths, invalid = {}, []
        for path, raw in data["paths"].items():
            path = str(path)
            if path.startswith("x-"):
                continue
            try:
                paths[path] = PathItem.model_validate(raw)
            except ValidationError as e:
                logger.debug("Dropping malformed path item %r: %s", path, e)
                invalid.append(path)
        data["paths"] = paths
        data["invalid_paths"] = invalid
        return data

    @field_validator("openapi", mode="before")
    @classmethod
    def _version_as_text(cls, value: Any) -> Any:
        return _coerce_str(value)

    @field_validator("servers", mode="before")
    @classmethod
    def _valid_servers(cls, value: Any) -> Any:
        if not isinstance(value, list):
            return []
        return [s for s in value if isinstance(s, dict) and isinstance(s.get("url"), str)]
