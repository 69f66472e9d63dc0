"""Runtime settings, read from ``API_CATALOG_*`` environment variables."""

import os
from typing import Literal

from pydantic import BaseModel

DEFAULT_CATALOG_PATH = "catalog.json"
DEFAULT_OPENAPI_VERSION = "3.0.3"


class CatalogSettings(BaseModel):
    """Settings for the CLI and the exporter."""

    catalog_path: str = DEFAULT_CATALOG_PATH
    export_format: Literal["json", "yaml"] = "json"
    log_level: str = "WARNING"
    openapi_version: str = DEFAULT_OPENAPI_VERSION

    @classmethod
    def from_env(cls) -> "CatalogSettings":
        """Load settings from the environment, falling back to defaults."""
        return cls(
            catalog_path=os.getenv("API_CATALOG_PATH", DEFAULT_CATALOG_PATH),
            export_format=os.getenv("API_CATALOG_EXPORT_FORMAT", "json").lower(),
            log_level=os.getenv("API_CATALOG_LOG_LEVEL", "WARNING").upper(),
            openapi_version=os.getenv("API_CATALOG_OPENAPI_VERSION", DEFAULT_OPENAPI_VERSION),
        )
