import json
from pathlib import Path

import pytest
import yaml

from api_catalog.catalog.models import CatalogAttribute, CatalogService, ServiceEnvironment
from api_catalog.catalog.store import InMemoryCatalog
from api_catalog.errors import UnsupportedFormatError
from api_catalog.exporter.openapi import OpenAPIExporter
from api_catalog.importer.pipeline import import_document

FIXTURES = Path(__file__).parent / "fixtures"
PET_REF = {"$ref": "#/components/schemas/Pet"}


def _imported(name: str = "petstore.yaml"):
    store = InMemoryCatalog()
    path = FIXTURES / name
    service = import_document(path.read_bytes(), store, filename=path.name).service
    return store, service


def _export(store: InMemoryCatalog, service: CatalogService, fmt: str = "json") -> bytes:
    return OpenAPIExporter(store).export(service, store.list_api_calls(service.id), fmt)


def _petstore_document() -> dict:
    store, service = _imported()
    return json.loads(_export(store, service))


def _walk(node):
    if isinstance(node, dict):
        yield node
        for value in node.values():
            yield from _walk(value)
    elif isinstance(node, list):
        for value in node:
            yield from _walk(value)


class TestDocumentShape:
    def test_info_and_servers(self):
        document = _petstore_document()
        assert document["openapi"] == "3.0.3"
        assert document["info"] == {
            "title": "Petstore",
            "version": "1.0",
            "description": "Pet catalog service",
            "contact": {"name": "Pet Team", "email": "pets@example.com"},
        }
        assert document["servers"] == [
            {"url": "https://api.staging.example.com/v1", "description": "Staging"},
            {"url": "https://api.example.com/v1"},
        ]

    def test_paths(self):
        paths = _petstore_document()["paths"]
        assert set(paths) == {"/pets", "/pets/{petId}"}
        assert set(paths["/pets"]) == {"get", "post"}
        assert set(paths["/pets/{petId}"]) == {"get"}

    def test_operation(self):
        operation = _petstore_document()["paths"]["/pets"]["get"]
        assert operation["operationId"] == "listPets"
        assert operation["summary"] == "List all pets"
        assert operation["tags"] == ["pets"]
        assert operation["parameters"] == [
            {"name": "limit", "in": "query", "required": False, "schema": {"type": "integer"}}
        ]

    def test_items_link_exported_as_array(self):
        response = _petstore_document()["paths"]["/pets"]["get"]["responses"]["200"]
        assert response["description"] == "A list of pets"
        assert response["content"]["application/json"]["schema"] == {"type": "array", "items": PET_REF}

    def test_request_body(self):
        operation = _petstore_document()["paths"]["/pets"]["post"]
        assert operation["requestBody"] == {
            "content": {"application/json": {"schema": {"$ref": "#/components/schemas/NewPet"}}}
        }
        assert set(operation["responses"]) == {"201", "default"}

    def test_object_schema(self):
        pet = _petstore_document()["components"]["schemas"]["Pet"]
        assert pet == {
            "type": "object",
            "required": ["id", "name"],
            "properties": {
                "id": {"type": "integer", "format": "int64"},
                "name": {"type": "string"},
                "status": {"$ref": "#/components/schemas/PetStatus"},
                "tags": {"type": "array", "items": {"type": "string"}},
                "parent": PET_REF,
                "weight": {"type": "number", "default": 2.5},
            },
        }

    def test_enum_schema_without_fallback_default(self):
        status = _petstore_document()["components"]["schemas"]["PetStatus"]
        assert status == {"enum": ["available", "pending", "sold"], "type": "string", "title": "status"}

    def test_array_schema(self):
        assert _petstore_document()["components"]["schemas"]["PetList"] == {"type": "array", "items": PET_REF}

    def test_boolean_default_restored(self):
        new_pet = _petstore_document()["components"]["schemas"]["NewPet"]
        assert new_pet["properties"]["vaccinated"] == {"type": "boolean", "default": False}

    def test_ref_has_no_siblings(self):
        for node in _walk(_petstore_document()):
            if "$ref" in node:
                assert len(node) == 1

    def test_missing_response_description_filled(self):
        store, service = _imported("users.json")
        document = json.loads(_export(store, service))
        response = document["paths"]["/users/{id}"]["get"]["responses"]["200"]
        assert response["description"] == "Response"


class TestDefaults:
    def _schema_document(self, attributes: list[CatalogAttribute]) -> dict:
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        schema = store.create_schema(service.id, "Thing")
        for attribute in attributes:
            store.create_attribute(schema, attribute)
        return json.loads(_export(store, service))["components"]["schemas"]["Thing"]

    def test_string_default_kept_as_text(self):
        thing = self._schema_document([CatalogAttribute(name="code", type="string", default_value="123")])
        assert thing["properties"]["code"]["default"] == "123"

    def test_typed_defaults_reinferred(self):
        thing = self._schema_document(
            [
                CatalogAttribute(name="count", type="integer", default_value="3"),
                CatalogAttribute(name="ids", type="array", element_type="integer", default_value="[1,2]"),
                CatalogAttribute(name="note", type="object", default_value="null", nullable=True),
            ]
        )
        props = thing["properties"]
        assert props["count"]["default"] == 3
        assert props["ids"] == {"type": "array", "items": {"type": "integer"}, "default": [1, 2]}
        assert props["note"] == {"type": "object", "nullable": True, "default": None}

    def test_null_string_default_exported_as_null(self):
        thing = self._schema_document(
            [CatalogAttribute(name="nick", type="string", default_value="null", nullable=True)]
        )
        assert thing["properties"]["nick"] == {"type": "string", "nullable": True, "default": None}

    def test_string_enum_default_kept_as_text(self):
        thing = self._schema_document(
            [CatalogAttribute(name="level", type="enum", enum_values=["1", "2"], element_type="string", default_value="1")]
        )
        assert thing["properties"]["level"] == {"enum": ["1", "2"], "type": "string", "default": "1"}

    def test_integer_enum_default_reinferred(self):
        thing = self._schema_document(
            [CatalogAttribute(name="level", type="enum", enum_values=["1", "2"], element_type="integer", default_value="2")]
        )
        assert thing["properties"]["level"]["default"] == 2

    def test_root_string_enum_default_kept_as_text(self):
        data = json.dumps(
            {
                "openapi": "3.0.3",
                "info": {"title": "Svc", "version": "1"},
                "paths": {},
                "components": {"schemas": {"Code": {"type": "string", "enum": ["01", "02"], "default": "01"}}},
            }
        ).encode("utf-8")
        store = InMemoryCatalog()
        service = import_document(data, store).service
        code = json.loads(_export(store, service))["components"]["schemas"]["Code"]
        assert code["default"] == "01"
        assert code["enum"] == ["01", "02"]

    def test_real_enum_default_exported(self):
        thing = self._schema_document(
            [CatalogAttribute(name="size", type="enum", enum_values=["s", "m"], element_type="string", default_value="m")]
        )
        assert thing["properties"]["size"] == {"enum": ["s", "m"], "type": "string", "default": "m"}


class TestSerialization:
    def test_json_keys_sorted(self):
        store, service = _imported()
        data = _export(store, service)
        assert data == (json.dumps(json.loads(data), indent=2, sort_keys=True, ensure_ascii=False) + "\n").encode()

    def test_yaml_matches_json(self):
        store, service = _imported()
        assert yaml.safe_load(_export(store, service, "yaml")) == json.loads(_export(store, service, "json"))

    def test_unsupported_format(self):
        store, service = _imported()
        with pytest.raises(UnsupportedFormatError):
            _export(store, service, "xml")

    def test_openapi_version_configurable(self):
        store, service = _imported()
        data = OpenAPIExporter(store, openapi_version="3.1.0").export(service, [], "json")
        assert json.loads(data)["openapi"] == "3.1.0"

    def test_write_file(self, tmp_path):
        store, service = _imported()
        exporter = OpenAPIExporter(store)
        written = exporter.write_file(service, store.list_api_calls(service.id), "yaml", tmp_path / "out")
        assert written == tmp_path / "out" / "Petstore_v1.0.yaml"
        assert yaml.safe_load(written.read_text())["info"]["title"] == "Petstore"


class TestRoundTrip:
    @pytest.mark.parametrize("fixture", ["petstore.yaml", "users.json"])
    @pytest.mark.parametrize("fmt", ["json", "yaml"])
    def test_export_import_export_is_stable(self, fixture, fmt):
        store, service = _imported(fixture)
        first = _export(store, service, fmt)

        second_store = InMemoryCatalog()
        second_service = import_document(first, second_store, fmt=fmt).service
        second = _export(second_store, second_service, fmt)

        third_store = InMemoryCatalog()
        third_service = import_document(second, third_store, fmt=fmt).service
        third = _export(third_store, third_service, fmt)

        assert second == third
        if fixture == "petstore.yaml":
            assert first == second

    def test_environments_survive_round_trip(self):
        store = InMemoryCatalog()
        service = store.create_service(
            CatalogService(
                name="Svc",
                version="2",
                environments=[ServiceEnvironment(type="prod", host="api.example.com", base_url="https://prod.example.com")],
            )
        )
        reimported_store = InMemoryCatalog()
        reimported = import_document(_export(store, service), reimported_store).service
        assert [(e.type, e.base_url) for e in reimported.environments] == [("prod", "https://prod.example.com")]


class TestCatalogRowsExport:
    def test_head_and_header_parameters_exported(self):
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        call = store.create_api_call(service.id, "/health", "head")
        store.create_parameter(call, name="X-Token", type="string", location="header", required=True, example="abc")
        store.create_response(call, status_code="204", description="Alive")

        document = json.loads(_export(store, service))
        operation = document["paths"]["/health"]["head"]
        assert operation["parameters"] == [
            {"name": "X-Token", "in": "header", "required": True, "schema": {"type": "string"}, "example": "abc"}
        ]
        assert operation["responses"] == {"204": {"description": "Alive"}}
        assert "components" not in document

    def test_parameter_of_schema_type_exported_as_ref(self):
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        call = store.create_api_call(service.id, "/items", "GET")
        store.create_parameter(call, name="sort", type="Sort", location="query", example="5")

        parameter = json.loads(_export(store, service))["paths"]["/items"]["get"]["parameters"][0]
        assert parameter["schema"] == {"$ref": "#/components/schemas/Sort"}
        assert parameter["example"] == 5

    def test_reference_schema_exported_bare(self):
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        store.create_schema(
            service.id, "Alias", schema_type="reference", is_reference=True, referenced_model_name="Pet", title="x"
        )
        schemas = json.loads(_export(store, service))["components"]["schemas"]
        assert schemas["Alias"] == PET_REF

    def test_linked_response_exported_as_json(self):
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        schema = store.create_schema(service.id, "Pet")
        call = store.create_api_call(service.id, "/pets", "GET")
        response = store.create_response(call, status_code="200", content_type="application/xml")
        store.attach_schema_to_response(schema, response)

        exported = json.loads(_export(store, service))["paths"]["/pets"]["get"]["responses"]["200"]
        assert exported["content"] == {"application/json": {"schema": PET_REF}}

    def test_duplicate_calls_keep_last(self, caplog):
        store = InMemoryCatalog()
        service = store.create_service(CatalogService(name="Svc", version="1"))
        store.create_api_call(service.id, "/pets", "GET", summary="first")
        store.create_api_call(service.id, "/pets", "GET", summary="second")

        with caplog.at_level("WARNING", logger="api_catalog.exporter.openapi"):
            operation = json.loads(_export(store, service))["paths"]["/pets"]["get"]
        assert operation["summary"] == "second"
        assert "Duplicate GET /pets" in caplog.text
