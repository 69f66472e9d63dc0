"""Import statistics."""

import logging

from pydantic import BaseModel

from api_catalog.catalog.models import CatalogService
from api_catalog.errors import SkippedItemWarning

logger = logging.getLogger(__name__)


class ImportStats(BaseModel):
    imported_schemas: int = 0
    reused_schemas: int = 0
    imported_attributes: int = 0
    imported_endpoints: int = 0
    imported_parameters: int = 0
    imported_responses: int = 0
    linked_schemas: int = 0
    skipped: list[SkippedItemWarning] = []

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    def skip(self, kind: str, location: str, reason: str) -> SkippedItemWarning:
        warning = SkippedItemWarning(kind=kind, location=location, reason=reason)
        self.skipped.append(warning)
        logger.warning("Skipped %s", warning)
        return warning


class ImportResult(BaseModel):
    service: CatalogService
    stats: ImportStats
