from uuid import uuid4

import pytest
from pydantic import ValidationError

from api_catalog.catalog.models import CatalogAPIResponse, CatalogAttribute, CatalogSchema, CatalogService
from api_catalog.config import DEFAULT_CATALOG_PATH, CatalogSettings
from api_catalog.errors import CatalogError, DecodeError, NotFoundError, SkippedItemWarning, UnsupportedFormatError
from api_catalog.importer.stats import ImportStats


class TestCatalogModels:
    def test_service_defaults(self):
        service = CatalogService(name="Svc", version="1")
        assert service.type == "internal"
        assert service.environments == []
        assert service.created_at.tzinfo is not None
        assert service.id != CatalogService(name="Svc", version="1").id

    def test_schema_defaults(self):
        schema = CatalogSchema(service_id=uuid4(), name="Thing")
        assert schema.schema_type == "object"
        assert schema.is_reference is False
        assert schema.referenced_model_name is None

    def test_attribute_defaults(self):
        attr = CatalogAttribute(name="id", type="string")
        assert attr.description == ""
        assert attr.enum_values == []
        assert attr.required is False

    def test_response_status_is_text(self):
        response = CatalogAPIResponse(api_call_id=uuid4(), status_code="default")
        assert response.content_type == "application/json"


class TestErrors:
    def test_hierarchy(self):
        assert issubclass(DecodeError, CatalogError)
        assert issubclass(NotFoundError, CatalogError)
        assert issubclass(UnsupportedFormatError, CatalogError)
        assert issubclass(UnsupportedFormatError, ValueError)

    def test_skipped_item_text(self):
        warning = SkippedItemWarning(kind="method", location="HEAD /pets", reason="not imported")
        assert str(warning) == "[method] HEAD /pets: not imported"


class TestImportStats:
    def test_skip_records_warning(self):
        stats = ImportStats()
        warning = stats.skip("parameter", "GET /x", "bad")
        assert stats.skipped == [warning]
        assert stats.skipped_count == 1

    def test_stats_not_shared(self):
        first, second = ImportStats(), ImportStats()
        first.skip("method", "HEAD /x", "skipped")
        assert second.skipped == []


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("API_CATALOG_PATH", "API_CATALOG_EXPORT_FORMAT", "API_CATALOG_LOG_LEVEL", "API_CATALOG_OPENAPI_VERSION"):
            monkeypatch.delenv(name, raising=False)
        settings = CatalogSettings.from_env()
        assert settings.catalog_path == DEFAULT_CATALOG_PATH
        assert settings.export_format == "json"
        assert settings.log_level == "WARNING"
        assert settings.openapi_version == "3.0.3"

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("API_CATALOG_PATH", "/tmp/cat.json")
        monkeypatch.setenv("API_CATALOG_EXPORT_FORMAT", "YAML")
        monkeypatch.setenv("API_CATALOG_LOG_LEVEL", "debug")
        monkeypatch.setenv("API_CATALOG_OPENAPI_VERSION", "3.1.0")
        settings = CatalogSettings.from_env()
        assert settings.catalog_path == "/tmp/cat.json"
        assert settings.export_format == "yaml"
        assert settings.log_level == "DEBUG"
        assert settings.openapi_version == "3.1.0"

    def test_invalid_export_format(self, monkeypatch):
        monkeypatch.setenv("API_CATALOG_EXPORT_FORMAT", "xml")
        with pytest.raises(ValidationError):
            CatalogSettings.from_env()
