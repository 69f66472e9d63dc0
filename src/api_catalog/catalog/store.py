"""Catalog persistence.

``CatalogRepository`` is the interface the importer and exporter talk to.
``InMemoryCatalog`` implements it with plain dictionaries and can be saved
to and loaded from a JSON snapshot file, which is what the CLI uses.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import ContextManager, Iterator, Protocol
from uuid import UUID

from pydantic import BaseModel

from api_catalog.errors import CatalogError, NotFoundError

from .models import (
    CatalogAPICall,
    CatalogAPIResponse,
    CatalogAttribute,
    CatalogParameter,
    CatalogSchema,
    CatalogService,
    SchemaLink,
)

logger = logging.getLogger(__name__)


class CatalogRepository(Protocol):
    def transaction(self) -> ContextManager[None]: ...

    def create_service(self, service: CatalogService) -> CatalogService: ...

    def get_service(self, service_id: UUID) -> CatalogService: ...

    def find_service_by_name(self, name: str) -> CatalogService | None: ...

    def list_services(self) -> list[CatalogService]: ...

    def find_schema_by_name(self, service_id: UUID, name: str) -> CatalogSchema | None: ...

    def create_schema(self, service_id: UUID, name: str, **fields) -> CatalogSchema: ...

    def create_attribute(self, schema: CatalogSchema, attribute: CatalogAttribute) -> CatalogAttribute: ...

    def create_api_call(
        self, service_id: UUID, path: str, method: str, description: str | None = None, **fields
    ) -> CatalogAPICall: ...

    def create_parameter(self, call: CatalogAPICall, **fields) -> CatalogParameter: ...

    def create_response(self, call: CatalogAPICall, **fields) -> CatalogAPIResponse: ...

    def attach_schema_to_call(self, schema: CatalogSchema, call: CatalogAPICall, kind: str | None = None) -> None: ...

    def attach_schema_to_response(
        self, schema: CatalogSchema, response: CatalogAPIResponse, kind: str | None = None
    ) -> None: ...

    def list_schemas(self, service_id: UUID) -> list[CatalogSchema]: ...

    def attributes_of(self, schema: CatalogSchema) -> list[CatalogAttribute]: ...

    def list_api_calls(self, service_id: UUID) -> list[CatalogAPICall]: ...

    def parameters_of(self, call: CatalogAPICall) -> list[CatalogParameter]: ...

    def responses_of(self, call: CatalogAPICall) -> list[CatalogAPIResponse]: ...

    def request_schema_of(self, call: CatalogAPICall) -> tuple[CatalogSchema, str | None] | None: ...

    def response_schema_of(self, response: CatalogAPIResponse) -> tuple[CatalogSchema, str | None] | None: ...


class CatalogSnapshot(BaseModel):
    """Serializable state of an ``InMemoryCatalog``."""

    services: list[CatalogService] = []
    schemas: list[CatalogSchema] = []
    attributes: list[CatalogAttribute] = []
    api_calls: list[CatalogAPICall] = []
    parameters: list[CatalogParameter] = []
    responses: list[CatalogAPIResponse] = []
    call_links: list[SchemaLink] = []
    response_links: list[SchemaLink] = []


class InMemoryCatalog:
    """Dictionary-backed catalog store.

    Rows are never mutated in place once stored, so a transaction only has
    to remember the containers it started from.
    """

    def __init__(self, snapshot: CatalogSnapshot | None = None):
        self._restore(snapshot or CatalogSnapshot())

    # -- snapshots ---------------------------------------------------------

    @classmethod
    def load(cls, file_path: Path) -> "InMemoryCatalog":
        """Load a catalog from a snapshot file; a missing file is an empty catalog."""
        if not file_path.exists():
            return cls()
        text = file_path.read_text(encoding="utf-8")
        return cls(CatalogSnapshot.model_validate_json(text))

    def save(self, file_path: Path) -> None:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(self.snapshot().model_dump_json(indent=2), encoding="utf-8")

    def snapshot(self) -> CatalogSnapshot:
        return CatalogSnapshot(
            services=list(self._services.values()),
            schemas=list(self._schemas.values()),
            attributes=list(self._attributes.values()),
            api_calls=list(self._calls.values()),
            parameters=list(self._parameters.values()),
            responses=list(self._responses.values()),
            call_links=list(self._call_links),
            response_links=list(self._response_links),
        )

    def _restore(self, snapshot: CatalogSnapshot) -> None:
        self._services = {s.id: s for s in snapshot.services}
        self._schemas = {s.id: s for s in snapshot.schemas}
        self._attributes = {a.id: a for a in snapshot.attributes}
        self._calls = {c.id: c for c in snapshot.api_calls}
        self._parameters = {p.id: p for p in snapshot.parameters}
        self._responses = {r.id: r for r in snapshot.responses}
        self._call_links = list(snapshot.call_links)
        self._response_links = list(snapshot.response_links)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Roll every change back if the block raises."""
        saved = self.snapshot()
        try:
            yield
        except BaseException:
            logger.debug("Rolling back catalog transaction")
            self._restore(saved)
            raise

    # -- services ----------------------------------------------------------

    def create_service(self, service: CatalogService) -> CatalogService:
        self._services[service.id] = service
        return service

    def get_service(self, service_id: UUID) -> CatalogService:
        try:
            return self._services[service_id]
        except KeyError:
            raise NotFoundError(f"Service {service_id} not found") from None

    def find_service_by_name(self, name: str) -> CatalogService | None:
        for service in self._services.values():
            if service.name == name:
                return service
        return None

    def list_services(self) -> list[CatalogService]:
        return list(self._services.values())

    def delete_service(self, service_id: UUID) -> None:
        """Delete a service together with its calls and schemas."""
        self.get_service(service_id)
        for call in self.list_api_calls(service_id):
            self.delete_api_call(call.id)
        for schema in self.list_schemas(service_id):
            self.delete_schema(schema.id)
        del self._services[service_id]

    # -- schemas -----------------------------------------------------------

    def find_schema_by_name(self, service_id: UUID, name: str) -> CatalogSchema | None:
        for schema in self._schemas.values():
            if schema.service_id == service_id and schema.name == name:
                return schema
        return None

    def create_schema(self, service_id: UUID, name: str, **fields) -> CatalogSchema:
        self.get_service(service_id)
        if self.find_schema_by_name(service_id, name) is not None:
            raise CatalogError(f"Schema {name!r} already exists in service {service_id}")
        schema = CatalogSchema(service_id=service_id, name=name, **fields)
        self._schemas[schema.id] = schema
        return schema

    def create_attribute(self, schema: CatalogSchema, attribute: CatalogAttribute) -> CatalogAttribute:
        if schema.id not in self._schemas:
            raise NotFoundError(f"Schema {schema.name!r} not found")
        stored = attribute.model_copy(update={"schema_id": schema.id})
        self._attributes[stored.id] = stored
        return stored

    def list_schemas(self, service_id: UUID) -> list[CatalogSchema]:
        return [s for s in self._schemas.values() if s.service_id == service_id]

    def attributes_of(self, schema: CatalogSchema) -> list[CatalogAttribute]:
        return [a for a in self._attributes.values() if a.schema_id == schema.id]

    def delete_schema(self, schema_id: UUID) -> None:
        """Delete a schema, its attributes and every link to it."""
        if schema_id not in self._schemas:
            raise NotFoundError(f"Schema {schema_id} not found")
        del self._schemas[schema_id]
        self._attributes = {k: a for k, a in self._attributes.items() if a.schema_id != schema_id}
        self._call_links = [link for link in self._call_links if link.schema_id != schema_id]
        self._response_links = [link for link in self._response_links if link.schema_id != schema_id]

    # -- API calls ---------------------------------------------------------

    def create_api_call(
        self, service_id: UUID, path: str, method: str, description: str | None = None, **fields
    ) -> CatalogAPICall:
        self.get_service(service_id)
        call = CatalogAPICall(
            service_id=service_id, path=path, method=method.upper(), description=description, **fields
        )
        self._calls[call.id] = call
        return call

    def create_parameter(self, call: CatalogAPICall, **fields) -> CatalogParameter:
        parameter = CatalogParameter(api_call_id=call.id, **fields)
        self._parameters[parameter.id] = parameter
        return parameter

    def create_response(self, call: CatalogAPICall, **fields) -> CatalogAPIResponse:
        response = CatalogAPIResponse(api_call_id=call.id, **fields)
        self._responses[response.id] = response
        return response

    def get_api_call(self, call_id: UUID) -> CatalogAPICall:
        try:
            return self._calls[call_id]
        except KeyError:
            raise NotFoundError(f"API call {call_id} not found") from None

    def list_api_calls(self, service_id: UUID) -> list[CatalogAPICall]:
        return [c for c in self._calls.values() if c.service_id == service_id]

    def parameters_of(self, call: CatalogAPICall) -> list[CatalogParameter]:
        return [p for p in self._parameters.values() if p.api_call_id == call.id]

    def responses_of(self, call: CatalogAPICall) -> list[CatalogAPIResponse]:
        return [r for r in self._responses.values() if r.api_call_id == call.id]

    def delete_api_call(self, call_id: UUID) -> None:
        """Delete a call with its parameters, responses and links."""
        call = self.get_api_call(call_id)
        response_ids = {r.id for r in self.responses_of(call)}
        del self._calls[call_id]
        self._parameters = {k: p for k, p in self._parameters.items() if p.api_call_id != call_id}
        self._responses = {k: r for k, r in self._responses.items() if r.api_call_id != call_id}
        self._call_links = [link for link in self._call_links if link.target_id != call_id]
        self._response_links = [link for link in self._response_links if link.target_id not in response_ids]

    # -- links -------------------------------------------------------------

    def attach_schema_to_call(self, schema: CatalogSchema, call: CatalogAPICall, kind: str | None = None) -> None:
        self._call_links = _attach(self._call_links, SchemaLink(schema_id=schema.id, target_id=call.id, kind=kind))

    def attach_schema_to_response(
        self, schema: CatalogSchema, response: CatalogAPIResponse, kind: str | None = None
    ) -> None:
        self._response_links = _attach(
            self._response_links, SchemaLink(schema_id=schema.id, target_id=response.id, kind=kind)
        )

    def request_schema_of(self, call: CatalogAPICall) -> tuple[CatalogSchema, str | None] | None:
        return self._linked(self._call_links, call.id)

    def response_schema_of(self, response: CatalogAPIResponse) -> tuple[CatalogSchema, str | None] | None:
        return self._linked(self._response_links, response.id)

    def _linked(self, links: list[SchemaLink], target_id: UUID) -> tuple[CatalogSchema, str | None] | None:
        for link in links:
            if link.target_id == target_id and link.schema_id in self._schemas:
                return self._schemas[link.schema_id], link.kind
        return None


def _attach(links: list[SchemaLink], new: SchemaLink) -> list[SchemaLink]:
    """Add a pivot row, replacing an existing row for the same pair."""
    kept = [
        link for link in links if not (link.schema_id == new.schema_id and link.target_id == new.target_id)
    ]
    kept.append(new)
    return kept
