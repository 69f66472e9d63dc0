"""Relational catalog rows.

Services own API calls; calls own parameters and responses; schemas own
attributes. Schemas are linked to calls (request body) and responses
through ``SchemaLink`` pivot rows, which do not own either side.
"""

from datetime import datetime, timezone
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

ITEMS_LINK = "Items"  # link reached through an array's items.$ref


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ServiceEnvironment(BaseModel):
    """A deployment of a service, derived from an OpenAPI server entry."""

    type: str  # stage / preprod / prod / development / testing
    host: str
    base_url: str
    description: str | None = None


class CatalogService(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    name: str
    version: str
    type: str = "internal"
    description: str | None = None
    owner: str | None = None
    contact_email: str | None = None
    environments: list[ServiceEnvironment] = []
    created_at: datetime = Field(default_factory=_now)


class CatalogSchema(BaseModel):
    """A named data shape; ``(service_id, name)`` is unique."""

    id: UUID = Field(default_factory=uuid4)
    service_id: UUID
    name: str
    schema_type: str = "object"  # object / array / enum / primitive / reference
    title: str | None = None
    description: str | None = None
    is_reference: bool = False
    referenced_model_name: str | None = None
    element_type: str | None = None
    element_is_reference: bool = False


class CatalogAttribute(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    schema_id: UUID | None = None
    name: str
    type: str  # primitive name, "object", "array", "enum" or a schema name
    nullable: bool = False
    required: bool = False
    description: str = ""
    default_value: str | None = None
    format: str | None = None
    enum_values: list[str] = []
    element_type: str | None = None
    element_is_reference: bool = False


class CatalogAPICall(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    service_id: UUID
    path: str
    method: str
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = None
    tags: list[str] = []


class CatalogParameter(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    api_call_id: UUID
    name: str
    type: str
    location: str  # query / path / header / cookie
    required: bool = False
    description: str | None = None
    example: str | None = None


class CatalogAPIResponse(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    api_call_id: UUID
    status_code: str
    description: str | None = None
    content_type: str = "application/json"


class SchemaLink(BaseModel):
    """Pivot row joining a schema to a call or a response."""

    schema_id: UUID
    target_id: UUID
    kind: str | None = None
